"""
Общее ядро (Shared Kernel) системы бронирования отеля.

Содержит общие типы данных, исключения и утилиты.
"""

from .domain import (
    # Даты
    DateLike,
    DateRange,
    # Исключения
    AuthenticationFailedException,
    BookingNotFoundException,
    DomainException,
    IntegrationException,
    InvalidDateRangeException,
    InvalidRoomTypeException,
    MissingParameterException,
    NotificationFailure,
    PaymentProcessorFailure,
    RoomUnavailableException,
    # Базовые типы
    EntityId,
    generate_id,
    # Утилиты
    days_until,
    now,
    overlaps,
    parse_iso_date,
    round_half_up,
    today,
)

__all__ = [
    # Базовые типы
    "EntityId",
    "generate_id",
    # Даты
    "DateLike",
    "DateRange",
    "overlaps",
    "parse_iso_date",
    "days_until",
    # Исключения
    "DomainException",
    "MissingParameterException",
    "InvalidRoomTypeException",
    "InvalidDateRangeException",
    "RoomUnavailableException",
    "BookingNotFoundException",
    "AuthenticationFailedException",
    "IntegrationException",
    "NotificationFailure",
    "PaymentProcessorFailure",
    # Утилиты
    "round_half_up",
    "now",
    "today",
]
