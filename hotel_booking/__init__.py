"""
Бэкенд бронирования номеров отеля.
"""

__version__ = "1.0.0"
