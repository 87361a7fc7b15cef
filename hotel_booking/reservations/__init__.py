"""
Модуль контекста бронирования (Reservations Context).

Отвечает за бронирование номеров в отеле, включая:
- Проверку доступности номеров по типам и датам
- Создание и отмену бронирований с расчетом возврата
- Управление количеством номеров администратором
"""

from . import application, domain, event_handlers, infrastructure, interfaces

__all__ = [
    "domain",
    "application",
    "event_handlers",
    "infrastructure",
    "interfaces",
]
