"""
Общие фикстуры для тестов.
"""

from datetime import datetime, timezone

import pytest

from hotel_booking.bootstrap import bootstrap_app
from hotel_booking.config import Settings
from hotel_booking.reservations.domain import (
    PricingPolicy,
    RefundPolicy,
    ReservationEngine,
    RoomCatalog,
    RoomType,
)
from hotel_booking.reservations.infrastructure import (
    DummyPaymentProcessor,
    InMemoryBookingRepository,
    InMemoryInventoryStore,
    RecordingNotifier,
)


class FixedClock:
    """Управляемые часы для тестов."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def set(self, *args: int) -> None:
        self.moment = datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def catalog() -> RoomCatalog:
    return RoomCatalog(
        [
            RoomType(name="Deluxe", base_price=1350, capacity=1),
            RoomType(name="Executive", base_price=1700, capacity=2),
        ]
    )


@pytest.fixture
def engine(catalog: RoomCatalog, clock: FixedClock) -> ReservationEngine:
    """Доменный сервис: Deluxe - 1 номер, Executive - 2 номера."""
    return ReservationEngine(
        catalog=catalog,
        inventory=InMemoryInventoryStore(catalog.default_capacities()),
        bookings=InMemoryBookingRepository(),
        pricing=PricingPolicy(),
        refund_policy=RefundPolicy.parse("standard"),
        clock=clock,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def payment_processor() -> DummyPaymentProcessor:
    return DummyPaymentProcessor()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        hotel_name="Hotel Maruthi",
        owner_email="owner@hotel.example",
        room_types="Deluxe:1350:1,Executive:1700:2",
        background_effects=False,
    )


@pytest.fixture
def container(settings, notifier, payment_processor, clock):
    """
    Собранное приложение с записывающим уведомителем и фиксированными часами.

    Эффекты публикуются синхронно, чтобы тесты сразу видели письма.
    """
    return bootstrap_app(
        settings=settings,
        notifier=notifier,
        payment_processor=payment_processor,
        clock=clock,
    )


@pytest.fixture
def book_room(engine: ReservationEngine):
    """Короткий вызов engine.book с контактами по умолчанию."""

    def _book(room_type: str, checkin: str, checkout: str, **kwargs):
        kwargs.setdefault("customer_email", "guest@example.com")
        kwargs.setdefault("customer_phone", "+919876543210")
        return engine.book(
            room_type=room_type, checkin=checkin, checkout=checkout, **kwargs
        )

    return _book
