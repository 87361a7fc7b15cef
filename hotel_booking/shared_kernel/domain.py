"""
Основные доменные типы и утилиты общего ядра.
"""

import math
import re
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, model_validator

# Общие типы идентификаторов
EntityId = UUID

DateLike = Union[date, str]

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

SECONDS_PER_DAY = 24 * 60 * 60


def generate_id() -> UUID:
    """Генерирует новый UUID."""
    return uuid4()


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    pass


class MissingParameterException(DomainException):
    """Не передан обязательный параметр."""

    def __init__(self, *names: str):
        super().__init__(f"Missing parameters: {', '.join(names)}")
        self.names = names


class InvalidRoomTypeException(DomainException):
    """Неизвестный тип номера."""

    def __init__(self, room_type: str):
        super().__init__(f"Invalid room type: {room_type}")
        self.room_type = room_type


class InvalidDateRangeException(DomainException):
    """Некорректная дата или диапазон дат."""

    pass


class RoomUnavailableException(DomainException):
    """Все номера данного типа заняты на выбранные даты."""

    def __init__(self, room_type: str):
        super().__init__(f"Room not available: {room_type}")
        self.room_type = room_type


class BookingNotFoundException(DomainException):
    """Активное бронирование не найдено."""

    def __init__(self, booking_id: str):
        super().__init__(f"Booking not found: {booking_id}")
        self.booking_id = booking_id


class AuthenticationFailedException(DomainException):
    """Неверные учетные данные администратора."""

    pass


class IntegrationException(Exception):
    """Ошибка внешнего сервиса. Не отменяет уже выполненную операцию."""

    pass


class NotificationFailure(IntegrationException):
    """Не удалось отправить уведомление."""

    pass


class PaymentProcessorFailure(IntegrationException):
    """Платежный сервис не смог выполнить возврат."""

    pass


# Даты
def parse_iso_date(value: DateLike) -> date:
    """Разбирает дату строго в формате YYYY-MM-DD."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value):
        raise InvalidDateRangeException(f"Invalid date (expected YYYY-MM-DD): {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidDateRangeException(f"Invalid date: {value!r}") from exc


def overlaps(start_a: DateLike, end_a: DateLike, start_b: DateLike, end_b: DateLike) -> bool:
    """
    Проверяет пересечение полуоткрытых интервалов [start, end).

    Интервалы не пересекаются, если один заканчивается не позже,
    чем начинается другой. Строки сравниваются лексикографически,
    что корректно только для формата YYYY-MM-DD.
    """
    return not (end_a <= start_b or start_a >= end_b)


class DateRange(BaseModel):
    """Диапазон дат проживания [check_in, check_out)."""

    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date

    @model_validator(mode="after")
    def check_out_after_check_in(self) -> "DateRange":
        if self.check_out <= self.check_in:
            raise ValueError("Дата выезда должна быть позже даты заезда")
        return self

    @classmethod
    def parse(cls, check_in: DateLike, check_out: DateLike) -> "DateRange":
        """Создает диапазон из строк или дат, поднимая доменное исключение."""
        start = parse_iso_date(check_in)
        end = parse_iso_date(check_out)
        if end <= start:
            raise InvalidDateRangeException(
                f"Checkout {end.isoformat()} must be after checkin {start.isoformat()}"
            )
        return cls(check_in=start, check_out=end)

    @property
    def nights(self) -> int:
        """Количество ночей в бронировании."""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "DateRange") -> bool:
        return overlaps(self.check_in, self.check_out, other.check_in, other.check_out)


# Деньги: целые суммы без дробной части
def round_half_up(value: Union[Decimal, int, float, str]) -> int:
    """Округляет до целого, половины округляются вверх."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# Общие утилиты
def now() -> datetime:
    """Возвращает текущую дату и время (UTC)."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Возвращает текущую дату."""
    return now().date()


def days_until(target: date, moment: datetime) -> int:
    """
    Количество дней от момента до полуночи (UTC) указанной даты,
    округленное вверх.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    start_of_day = datetime.combine(target, time.min, tzinfo=timezone.utc)
    return math.ceil((start_of_day - moment).total_seconds() / SECONDS_PER_DAY)
