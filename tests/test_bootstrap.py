"""
Тесты сборки приложения: выбор адаптеров по настройкам.
"""

import json

import pytest

from hotel_booking.bootstrap import bootstrap_app, build_notifier
from hotel_booking.config import Settings
from hotel_booking.reservations.application import BookRoomRequest, SetCapacityRequest
from hotel_booking.reservations.infrastructure import (
    BackgroundEventBus,
    ConsoleLogger,
    ConsoleNotifier,
    HttpApiNotifier,
    InMemoryEventBus,
    InMemoryInventoryStore,
    JsonFileInventoryStore,
    SmtpNotifier,
)

ROOM_TYPES = "Deluxe:1350:1,Executive:1700:2"


def file_settings(path) -> Settings:
    return Settings(
        room_types=ROOM_TYPES,
        inventory_backend="file",
        inventory_file=str(path),
        background_effects=False,
    )


class TestInventoryBackend:
    """Тесты выбора хранилища инвентаря."""

    def test_memory_by_default(self, notifier):
        container = bootstrap_app(
            Settings(room_types=ROOM_TYPES, background_effects=False), notifier=notifier
        )
        assert isinstance(container.engine.inventory, InMemoryInventoryStore)

    def test_file_backend_is_created_on_startup(self, tmp_path, notifier):
        path = tmp_path / "inventory.json"

        container = bootstrap_app(file_settings(path), notifier=notifier)

        assert isinstance(container.engine.inventory, JsonFileInventoryStore)
        assert json.loads(path.read_text(encoding="utf-8")) == {"Deluxe": 1, "Executive": 2}

    def test_capacity_override_survives_restart(self, tmp_path, notifier, clock):
        path = tmp_path / "inventory.json"
        first = bootstrap_app(file_settings(path), notifier=notifier, clock=clock)
        first.reservations.book_room(
            BookRoomRequest(
                room_type="Deluxe",
                checkin="2024-06-01",
                checkout="2024-06-03",
                customer_email="guest@example.com",
                customer_phone="+919876543210",
            )
        )
        first.admin.set_capacity(SetCapacityRequest(room_type="Deluxe", count=3))

        second = bootstrap_app(file_settings(path), notifier=notifier, clock=clock)

        # Емкость сохраняется в файле, бронирования живут только в памяти
        assert second.engine.inventory.get("Deluxe") == 3
        assert second.engine.remaining("Deluxe", "2024-06-01", "2024-06-03") == 3

    def test_broken_inventory_file_fails_startup(self, tmp_path, notifier):
        path = tmp_path / "inventory.json"
        path.write_text(json.dumps({"Deluxe": 2.5}), encoding="utf-8")

        with pytest.raises(ValueError):
            bootstrap_app(file_settings(path), notifier=notifier)


class TestNotifierSelection:
    """Тесты выбора уведомителя."""

    def test_console(self):
        notifier = build_notifier(Settings(), ConsoleLogger())
        assert isinstance(notifier, ConsoleNotifier)

    def test_smtp(self):
        settings = Settings(
            email_provider="smtp",
            smtp_host="smtp.example",
            smtp_port=2525,
            smtp_user="user",
            smtp_password="pw",
            sender_email="bookings@hotel.example",
        )

        notifier = build_notifier(settings, ConsoleLogger())

        assert isinstance(notifier, SmtpNotifier)
        assert (notifier.host, notifier.port, notifier.username) == ("smtp.example", 2525, "user")
        assert notifier.default_sender == "bookings@hotel.example"

    def test_api(self):
        settings = Settings(
            email_provider="api",
            email_api_url="https://mail.example/v3/smtp/email",
            email_api_key="secret",
        )

        notifier = build_notifier(settings, ConsoleLogger())

        assert isinstance(notifier, HttpApiNotifier)
        assert notifier.api_url == "https://mail.example/v3/smtp/email"
        assert notifier.api_key == "secret"
        notifier.close()

    def test_container_uses_configured_notifier(self):
        container = bootstrap_app(
            Settings(email_provider="api", email_api_key="secret", background_effects=False)
        )

        assert isinstance(container.notifier, HttpApiNotifier)
        container.close()
        assert container.notifier.is_closed


class TestEffectPublishing:
    def test_background_by_default(self, notifier):
        container = bootstrap_app(Settings(), notifier=notifier)

        assert isinstance(container.event_bus, BackgroundEventBus)
        container.close()

    def test_synchronous_when_disabled(self, notifier):
        container = bootstrap_app(Settings(background_effects=False), notifier=notifier)
        assert isinstance(container.event_bus, InMemoryEventBus)
