from functools import partial
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict

from .config import Settings
from .reservations.application import AdminApplicationService, ReservationApplicationService
from .reservations.domain import (
    BookingCancelled,
    BookingCreated,
    PricingPolicy,
    RefundRequested,
    ReservationEngine,
    RoomCatalog,
)
from .reservations.event_handlers import (
    MailSettings,
    notify_customer_booked,
    notify_customer_cancelled,
    notify_owner_booked,
    notify_owner_cancelled,
    on_refund_requested,
)
from .reservations.infrastructure import (
    BackgroundEventBus,
    ConfiguredAdminAuthenticator,
    ConsoleLogger,
    ConsoleNotifier,
    DummyPaymentProcessor,
    HttpApiNotifier,
    InMemoryBookingRepository,
    InMemoryEventBus,
    InMemoryInventoryStore,
    JsonFileInventoryStore,
    SmtpNotifier,
)
from .reservations.interfaces import IInventoryStore, INotifier, IPaymentProcessor
from .shared_kernel import now


class Container(BaseModel):
    """Собранные компоненты приложения."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: Settings
    engine: ReservationEngine
    event_bus: Union[BackgroundEventBus, InMemoryEventBus]
    notifier: Any
    reservations: ReservationApplicationService
    admin: AdminApplicationService

    def close(self) -> None:
        """Дожидается фоновых эффектов и освобождает ресурсы адаптеров."""
        if isinstance(self.event_bus, BackgroundEventBus):
            self.event_bus.close()
        if isinstance(self.notifier, HttpApiNotifier):
            self.notifier.close()


def build_notifier(settings: Settings, logger: ConsoleLogger) -> INotifier:
    """Выбирает уведомитель по настройке email_provider."""
    if settings.email_provider == "smtp":
        return SmtpNotifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            default_sender=settings.sender_email,
            timeout=settings.email_timeout,
        )
    if settings.email_provider == "api":
        return HttpApiNotifier(
            api_url=settings.email_api_url,
            api_key=settings.email_api_key,
            default_sender=settings.sender_email,
            timeout=settings.email_timeout,
        )
    return ConsoleNotifier(logger)


def build_inventory(settings: Settings, catalog: RoomCatalog) -> IInventoryStore:
    if settings.inventory_backend == "file":
        store = JsonFileInventoryStore(settings.inventory_file, catalog.default_capacities())
        # Испорченный файл должен остановить запуск, а не каждый запрос
        store.all()
        return store
    return InMemoryInventoryStore(catalog.default_capacities())


def bootstrap_app(
    settings: Optional[Settings] = None,
    notifier: Optional[INotifier] = None,
    payment_processor: Optional[IPaymentProcessor] = None,
    clock: Callable = now,
) -> Container:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or Settings.from_env()
    logger = ConsoleLogger()

    # 1. Доменный сервис и его хранилища
    catalog = RoomCatalog(settings.room_types)
    engine = ReservationEngine(
        catalog=catalog,
        inventory=build_inventory(settings, catalog),
        bookings=InMemoryBookingRepository(),
        pricing=PricingPolicy(tax_rate=settings.tax_rate),
        refund_policy=settings.refund_policy,
        clock=clock,
    )

    # 2. Внешние сервисы
    notifier = notifier or build_notifier(settings, ConsoleLogger("hotel_booking.email"))
    payment_processor = payment_processor or DummyPaymentProcessor()

    # 3. Подписываем обработчики на события
    event_bus: Union[BackgroundEventBus, InMemoryEventBus] = InMemoryEventBus(logger)
    if settings.background_effects:
        event_bus = BackgroundEventBus(event_bus, max_workers=settings.effect_workers)
    mail = MailSettings(
        hotel_name=settings.hotel_name,
        owner_email=settings.owner_email,
        sender_email=settings.sender_email,
    )
    for handler in (notify_customer_booked, notify_owner_booked):
        event_bus.subscribe(BookingCreated, partial(handler, notifier=notifier, mail=mail))
    for handler in (notify_customer_cancelled, notify_owner_cancelled):
        event_bus.subscribe(BookingCancelled, partial(handler, notifier=notifier, mail=mail))
    event_bus.subscribe(
        RefundRequested, partial(on_refund_requested, processor=payment_processor)
    )

    # 4. Сервисы приложения
    authenticator = ConfiguredAdminAuthenticator(
        settings.admin_username, settings.admin_password
    )
    return Container(
        settings=settings,
        engine=engine,
        event_bus=event_bus,
        notifier=notifier,
        reservations=ReservationApplicationService(engine, event_bus, logger),
        admin=AdminApplicationService(engine, authenticator, logger),
    )
