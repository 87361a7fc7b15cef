"""
Интерфейсы (порты) для контекста бронирования.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from ..shared_kernel import DateRange
    from .domain import Booking, DomainEvent

T_Event = TypeVar("T_Event", bound="DomainEvent")


class ILogger(Protocol):
    """Интерфейс для логгера."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...


class IEventBus(Protocol):
    """Интерфейс для шины событий."""

    def publish(self, event: DomainEvent) -> None: ...
    def subscribe(
        self, event_type: Type[T_Event], handler: Callable[[T_Event], None]
    ) -> None: ...


class IInventoryStore(Protocol):
    """Хранилище емкости по типам номеров."""

    def get(self, room_type: str) -> int: ...
    def set(self, room_type: str, count: int) -> None: ...
    def all(self) -> Dict[str, int]: ...
    def reset(self) -> None: ...


class IBookingRepository(Protocol):
    """Интерфейс репозитория активных бронирований."""

    def add(self, booking: Booking) -> None: ...
    def get(self, booking_id: str) -> Booking | None: ...
    def remove(self, booking_id: str) -> None: ...
    def list_active(self) -> List[Booking]: ...
    def find_by_room_type(self, room_type: str) -> List[Booking]: ...
    def find_overlapping(self, room_type: str, period: DateRange) -> List[Booking]: ...
    def next_sequence(self) -> int: ...
    def reset(self) -> None: ...


class EmailMessage(BaseModel):
    """Письмо для отправки через уведомитель."""

    to: str
    subject: str
    html: str
    sender: Optional[str] = None


class INotifier(Protocol):
    """Интерфейс для отправки уведомлений. Ошибки - NotificationFailure."""

    def send(self, message: EmailMessage) -> None: ...


class IPaymentProcessor(Protocol):
    """Интерфейс платежного сервиса. Ошибки - PaymentProcessorFailure."""

    def refund(
        self, payment_reference: str, amount: int, metadata: Dict[str, Any]
    ) -> Dict[str, Any]: ...


class AdminCredentials(BaseModel):
    """Учетные данные администратора."""

    username: str
    password: str


class AdminIdentity(BaseModel):
    """Подтвержденная личность администратора."""

    username: str


class IAuthenticator(Protocol):
    """Проверка учетных данных. При ошибке - AuthenticationFailedException."""

    def verify(self, credentials: AdminCredentials) -> AdminIdentity: ...
