"""
Доменная модель контекста бронирования.

Содержит типы номеров, сущность бронирования, политики цены и возврата,
доменные события и доменный сервис ReservationEngine, который
проверяет доступность, создает и отменяет бронирования.
"""

from __future__ import annotations

import threading
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..shared_kernel import (
    BookingNotFoundException,
    DateLike,
    DateRange,
    EntityId,
    InvalidRoomTypeException,
    MissingParameterException,
    RoomUnavailableException,
    days_until,
    generate_id,
    now,
    round_half_up,
)
from .interfaces import IBookingRepository, IInventoryStore

BOOKING_ID_PREFIX = "BK"


class RoomType(BaseModel):
    """Тип номера: цена за бронирование и количество номеров по умолчанию."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    base_price: int = Field(..., ge=0)
    capacity: int = Field(..., ge=0)


class RoomCatalog:
    """Каталог известных типов номеров."""

    def __init__(self, room_types: Iterable[RoomType]):
        self._room_types: Dict[str, RoomType] = {rt.name: rt for rt in room_types}
        if not self._room_types:
            raise ValueError("Каталог номеров не может быть пустым")

    def get(self, name: str) -> RoomType:
        room_type = self._room_types.get(name)
        if room_type is None:
            raise InvalidRoomTypeException(name)
        return room_type

    def names(self) -> List[str]:
        return list(self._room_types)

    def default_capacities(self) -> Dict[str, int]:
        return {name: rt.capacity for name, rt in self._room_types.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._room_types


class Booking(BaseModel):
    """Активное бронирование номера."""

    model_config = ConfigDict(frozen=True)

    booking_id: str
    room_type: str
    checkin: date
    checkout: date
    customer_email: str
    customer_phone: str
    base_price: int = Field(..., ge=0)
    tax: int = Field(..., ge=0)
    total_price: int = Field(..., ge=0)
    payment_reference: Optional[str] = None
    created_at: datetime = Field(default_factory=now)

    @property
    def period(self) -> DateRange:
        return DateRange(check_in=self.checkin, check_out=self.checkout)

    @property
    def paid_online(self) -> bool:
        return bool(self.payment_reference)


def make_booking_id(room_type: str, checkin: date, sequence: int) -> str:
    """Формирует идентификатор вида BK20240601-Deluxe-1."""
    return f"{BOOKING_ID_PREFIX}{checkin.strftime('%Y%m%d')}-{room_type}-{sequence}"


# Доменные события (эффекты, которые выполняет вызывающая сторона)


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    event_id: EntityId = Field(default_factory=generate_id)
    occurred_on: datetime = Field(default_factory=now)

    @property
    def event_type(self) -> str:
        return type(self).__name__


class BookingCreated(DomainEvent):
    """Событие создания бронирования."""

    booking: Booking


class BookingCancelled(DomainEvent):
    """Событие отмены бронирования."""

    booking: Booking
    refund_amount: int
    days_before: int


class RefundRequested(DomainEvent):
    """Запрос на возврат средств через платежный сервис."""

    booking_id: str
    payment_reference: str
    amount: int = Field(..., gt=0)


# Политики


class PriceQuote(BaseModel):
    """Расчет стоимости бронирования."""

    base_price: int
    tax: int
    total_price: int


class PricingPolicy(BaseModel):
    """Цена номера плюс налог (GST), округленный half-up."""

    model_config = ConfigDict(frozen=True)

    tax_rate: Decimal = Field(Decimal("0.05"), ge=0, le=1)

    def quote(self, base_price: int) -> PriceQuote:
        tax = round_half_up(Decimal(base_price) * self.tax_rate)
        return PriceQuote(base_price=base_price, tax=tax, total_price=base_price + tax)


class RefundTier(BaseModel):
    """Ступень возврата: не менее N дней до заезда -> доля стоимости."""

    model_config = ConfigDict(frozen=True)

    min_days_before: int
    fraction: Decimal = Field(..., ge=0, le=1)


class RefundPolicy(BaseModel):
    """
    Ступенчатая политика возврата.

    Ступени упорядочены по убыванию порога. Срабатывает первая ступень,
    у которой days_before >= min_days_before; если ни одна не подошла,
    возврат равен нулю. Чем ближе заезд, тем меньше доля возврата.
    """

    model_config = ConfigDict(frozen=True)

    tiers: Tuple[RefundTier, ...]

    @field_validator("tiers")
    @classmethod
    def tiers_are_monotonic(cls, tiers: Tuple[RefundTier, ...]) -> Tuple[RefundTier, ...]:
        ordered = tuple(sorted(tiers, key=lambda t: t.min_days_before, reverse=True))
        thresholds = [t.min_days_before for t in ordered]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError("Пороги ступеней возврата не должны повторяться")
        for higher, lower in zip(ordered, ordered[1:]):
            if lower.fraction > higher.fraction:
                raise ValueError(
                    "Доля возврата не может расти при приближении даты заезда"
                )
        return ordered

    def fraction_for(self, days_before: int) -> Decimal:
        for tier in self.tiers:
            if days_before >= tier.min_days_before:
                return tier.fraction
        return Decimal("0")

    def refund_amount(self, total_price: int, days_before: int) -> int:
        return round_half_up(Decimal(total_price) * self.fraction_for(days_before))

    @classmethod
    def from_mapping(cls, mapping: Dict[int, object]) -> "RefundPolicy":
        tiers = []
        for days, fraction in mapping.items():
            try:
                value = Decimal(str(fraction))
            except InvalidOperation as exc:
                # InvalidOperation не наследует ValueError
                raise ValueError(f"Некорректная доля возврата: {fraction!r}") from exc
            tiers.append(RefundTier(min_days_before=int(days), fraction=value))
        return cls(tiers=tuple(tiers))

    @classmethod
    def parse(cls, value: str) -> "RefundPolicy":
        """
        Разбирает имя пресета ("standard", "extended") или список
        ступеней вида "15:1,7:0.5,3:0.25".
        """
        preset = REFUND_PRESETS.get(value.strip().lower())
        if preset is not None:
            return cls.from_mapping(preset)

        mapping: Dict[int, object] = {}
        for chunk in value.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            days, sep, fraction = chunk.partition(":")
            if not sep:
                raise ValueError(f"Некорректная ступень возврата: {chunk!r}")
            mapping[int(days)] = fraction.strip()
        if not mapping:
            raise ValueError("Политика возврата не содержит ступеней")
        return cls.from_mapping(mapping)


REFUND_PRESETS: Dict[str, Dict[int, object]] = {
    "standard": {3: "1.0", 1: "0.5"},
    "extended": {15: "1.0", 7: "0.5", 3: "0.25"},
}


# Результаты операций


class ReservationResult(BaseModel):
    """Результат бронирования и эффекты для вызывающей стороны."""

    booking: Booking
    effects: List[DomainEvent] = Field(default_factory=list)


class CancellationResult(BaseModel):
    """Результат отмены и эффекты для вызывающей стороны."""

    booking: Booking
    refund_amount: int
    days_before: int
    effects: List[DomainEvent] = Field(default_factory=list)


class CapacityLine(BaseModel):
    """Строка сводки по типу номера."""

    total: int
    booked: int
    available: int


# Доменный сервис


class ReservationEngine:
    """
    Доменный сервис бронирования.

    Хранит активные бронирования в репозитории, емкость по типам номеров
    берет из хранилища инвентаря. Проверка доступности и изменение
    состояния в book/cancel/set_capacity выполняются под одной блокировкой.
    Внешние сервисы не вызываются: результат содержит список эффектов.
    """

    def __init__(
        self,
        catalog: RoomCatalog,
        inventory: IInventoryStore,
        bookings: IBookingRepository,
        pricing: Optional[PricingPolicy] = None,
        refund_policy: Optional[RefundPolicy] = None,
        clock: Callable[[], datetime] = now,
    ):
        self.catalog = catalog
        self.inventory = inventory
        self.bookings = bookings
        self.pricing = pricing or PricingPolicy()
        self.refund_policy = refund_policy or RefundPolicy.parse("standard")
        self._clock = clock
        self._lock = threading.RLock()

    # Доступность

    def remaining(self, room_type: str, checkin: DateLike, checkout: DateLike) -> int:
        """Количество свободных номеров типа на период."""
        self.catalog.get(room_type)
        period = DateRange.parse(checkin, checkout)
        with self._lock:
            return self._remaining(room_type, period)

    check_availability = remaining

    def is_available(self, room_type: str, checkin: DateLike, checkout: DateLike) -> bool:
        return self.remaining(room_type, checkin, checkout) > 0

    def availability(self, checkin: DateLike, checkout: DateLike) -> Dict[str, int]:
        """Количество свободных номеров по всем типам."""
        period = DateRange.parse(checkin, checkout)
        with self._lock:
            return {name: self._remaining(name, period) for name in self.catalog.names()}

    def _remaining(self, room_type: str, period: DateRange) -> int:
        overlapping = len(self.bookings.find_overlapping(room_type, period))
        return max(self.inventory.get(room_type) - overlapping, 0)

    # Бронирование

    def book(
        self,
        room_type: Optional[str],
        checkin: Optional[DateLike],
        checkout: Optional[DateLike],
        customer_email: Optional[str],
        customer_phone: Optional[str],
        payment_reference: Optional[str] = None,
    ) -> ReservationResult:
        """Создает бронирование, если на период остался свободный номер."""
        required = {
            "roomType": room_type,
            "checkin": checkin,
            "checkout": checkout,
            "customerEmail": customer_email,
            "customerPhone": customer_phone,
        }
        missing = [name for name, value in required.items() if value in (None, "")]
        if missing:
            raise MissingParameterException(*missing)

        room = self.catalog.get(room_type)
        period = DateRange.parse(checkin, checkout)

        with self._lock:
            overlapping = len(self.bookings.find_overlapping(room.name, period))
            if overlapping >= self.inventory.get(room.name):
                raise RoomUnavailableException(room.name)

            quote = self.pricing.quote(room.base_price)
            sequence = self.bookings.next_sequence()
            booking = Booking(
                booking_id=make_booking_id(room.name, period.check_in, sequence),
                room_type=room.name,
                checkin=period.check_in,
                checkout=period.check_out,
                customer_email=customer_email,
                customer_phone=customer_phone,
                base_price=quote.base_price,
                tax=quote.tax,
                total_price=quote.total_price,
                payment_reference=payment_reference or None,
                created_at=self._clock(),
            )
            self.bookings.add(booking)

        return ReservationResult(booking=booking, effects=[BookingCreated(booking=booking)])

    # Отмена

    def cancel(self, booking_id: Optional[str]) -> CancellationResult:
        """Отменяет бронирование и рассчитывает сумму возврата."""
        if not booking_id:
            raise MissingParameterException("id")

        with self._lock:
            booking = self.bookings.get(booking_id)
            if booking is None:
                raise BookingNotFoundException(booking_id)
            self.bookings.remove(booking_id)

        days_before = days_until(booking.checkin, self._clock())
        refund = self.refund_policy.refund_amount(booking.total_price, days_before)

        effects: List[DomainEvent] = [
            BookingCancelled(booking=booking, refund_amount=refund, days_before=days_before)
        ]
        if booking.paid_online and refund > 0:
            effects.append(
                RefundRequested(
                    booking_id=booking.booking_id,
                    payment_reference=booking.payment_reference,
                    amount=refund,
                )
            )

        return CancellationResult(
            booking=booking,
            refund_amount=refund,
            days_before=days_before,
            effects=effects,
        )

    # Администрирование

    def set_capacity(self, room_type: str, count: int) -> None:
        """
        Перезаписывает емкость типа номера.

        Активные бронирования не пересматриваются: новая емкость может
        оказаться меньше числа уже пересекающихся бронирований.
        """
        self.catalog.get(room_type)
        if count < 0:
            raise ValueError("Количество номеров не может быть отрицательным")
        with self._lock:
            self.inventory.set(room_type, count)

    def summary(self) -> Dict[str, CapacityLine]:
        with self._lock:
            result = {}
            for name in self.catalog.names():
                total = self.inventory.get(name)
                booked = len(self.bookings.find_by_room_type(name))
                result[name] = CapacityLine(
                    total=total, booked=booked, available=max(total - booked, 0)
                )
            return result

    def reset(self) -> None:
        """Сбрасывает бронирования, счетчик и инвентарь (для тестов)."""
        with self._lock:
            self.bookings.reset()
            self.inventory.reset()
