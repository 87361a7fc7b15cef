"""
Инфраструктурный слой контекста бронирования.

Содержит реализации репозиториев, хранилищ инвентаря и других интерфейсов,
зависимые от конкретных технологий (файлы, SMTP, HTTP API и т.д.).
"""

import hashlib
import hmac
import json
import logging
import smtplib
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from email.message import EmailMessage as MimeMessage
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Type
from uuid import uuid4

import httpx

from ..shared_kernel import (
    AuthenticationFailedException,
    DateRange,
    NotificationFailure,
    PaymentProcessorFailure,
)
from . import interfaces as ports
from .domain import Booking, DomainEvent


def _validate_count(room_type: str, count: int) -> int:
    # 7.0 из вручную отредактированного файла считаем целым
    if isinstance(count, float) and count.is_integer():
        count = int(count)
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValueError(f"Количество номеров для {room_type} должно быть целым числом")
    if count < 0:
        raise ValueError(f"Количество номеров для {room_type} не может быть отрицательным")
    return count


class InMemoryInventoryStore(ports.IInventoryStore):
    """Реализация хранилища инвентаря в памяти."""

    def __init__(self, defaults: Dict[str, int]):
        self._defaults = {k: _validate_count(k, v) for k, v in defaults.items()}
        self._counts: Dict[str, int] = dict(self._defaults)

    def get(self, room_type: str) -> int:
        return self._counts.get(room_type, 0)

    def set(self, room_type: str, count: int) -> None:
        self._counts[room_type] = _validate_count(room_type, count)

    def all(self) -> Dict[str, int]:
        return dict(self._counts)

    def reset(self) -> None:
        self._counts = dict(self._defaults)


class JsonFileInventoryStore(ports.IInventoryStore):
    """
    Хранилище инвентаря в JSON-файле.

    Формат файла - плоский объект {"Deluxe": 7, "Executive": 7}.
    Если файла нет, он создается со значениями по умолчанию при первом
    обращении. Чтение-изменение-запись выполняется под блокировкой.
    """

    def __init__(self, file_path: str, defaults: Dict[str, int]):
        """
        Инициализирует хранилище.

        Args:
            file_path: Путь к JSON-файлу с данными
            defaults: Емкость по умолчанию для каждого типа номера
        """
        self._file_path = Path(file_path)
        self._defaults = {k: _validate_count(k, v) for k, v in defaults.items()}
        self._lock = threading.Lock()

    def _load_data(self) -> Dict[str, int]:
        """Загружает данные из JSON-файла, создавая его при необходимости."""
        if not self._file_path.exists():
            self._save_data(self._defaults)
            return dict(self._defaults)

        with open(self._file_path, "r", encoding="utf-8") as f:
            raw_data = f.read()

        if not raw_data.strip():
            self._save_data(self._defaults)
            return dict(self._defaults)

        stored = json.loads(raw_data)
        if not isinstance(stored, dict):
            raise ValueError(f"Файл инвентаря {self._file_path} должен содержать объект")

        data = dict(self._defaults)
        data.update({str(k): _validate_count(str(k), v) for k, v in stored.items()})
        return data

    def _save_data(self, data: Dict[str, int]) -> None:
        """Сохраняет данные в JSON-файл."""
        # Создаем директорию, если она не существует
        self._file_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self._file_path)

    def get(self, room_type: str) -> int:
        with self._lock:
            return self._load_data().get(room_type, 0)

    def set(self, room_type: str, count: int) -> None:
        count = _validate_count(room_type, count)
        with self._lock:
            data = self._load_data()
            data[room_type] = count
            self._save_data(data)

    def all(self) -> Dict[str, int]:
        with self._lock:
            return self._load_data()

    def reset(self) -> None:
        with self._lock:
            self._save_data(self._defaults)


class InMemoryBookingRepository(ports.IBookingRepository):
    """Реализация репозитория активных бронирований в памяти."""

    def __init__(self):
        self._bookings: Dict[str, Booking] = {}
        self._sequence = 0

    def add(self, booking: Booking) -> None:
        if booking.booking_id in self._bookings:
            raise ValueError(f"Booking with id {booking.booking_id} already exists")
        self._bookings[booking.booking_id] = booking

    def get(self, booking_id: str) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def remove(self, booking_id: str) -> None:
        if booking_id not in self._bookings:
            raise KeyError(f"Booking with id {booking_id} not found")
        del self._bookings[booking_id]

    def list_active(self) -> List[Booking]:
        return list(self._bookings.values())

    def find_by_room_type(self, room_type: str) -> List[Booking]:
        return [b for b in self._bookings.values() if b.room_type == room_type]

    def find_overlapping(self, room_type: str, period: DateRange) -> List[Booking]:
        return [
            booking
            for booking in self._bookings.values()
            if booking.room_type == room_type and booking.period.overlaps(period)
        ]

    def next_sequence(self) -> int:
        # Счетчик только растет, отмены номера не освобождают
        self._sequence += 1
        return self._sequence

    def reset(self) -> None:
        self._bookings.clear()
        self._sequence = 0


def configure_logging(level: str = "INFO") -> None:
    """Настраивает корневой логгер приложения."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


class ConsoleLogger(ports.ILogger):
    """Логгер поверх стандартного logging; контекст выводится как JSON."""

    def __init__(self, name: str = "hotel_booking"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, context: Dict[str, Any]) -> None:
        if context:
            message = f"{message} | {json.dumps(context, default=str, ensure_ascii=False)}"
        self._logger.log(level, message)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, kwargs)


class InMemoryEventBus(ports.IEventBus):
    """
    Реализация шины событий в памяти.

    Ошибки обработчиков логируются и не пробрасываются: уведомления
    и возвраты не влияют на уже выполненную операцию.
    """

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], list] = {}
        self._logger = logger or ConsoleLogger()

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие."""
        event_type = type(event)
        if event_type not in self._subscribers:
            self._logger.debug(f"No subscribers for event type {event_type.__name__}")
            return

        self._logger.info(f"Publishing event: {event_type.__name__}", event_id=event.event_id)

        for handler in self._subscribers[event_type]:
            try:
                handler(event)
            except Exception as e:
                self._logger.error(
                    f"Error in event handler for {event_type.__name__}",
                    error=str(e),
                    error_type=type(e).__name__,
                    event=event.model_dump(mode="json"),
                )

    def subscribe(self, event_type: Type[DomainEvent], handler) -> None:
        """Подписывает обработчик на события указанного типа."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        self._logger.debug(f"Subscribed handler to {event_type.__name__} events")


class BackgroundEventBus(ports.IEventBus):
    """
    Шина, которая публикует события в фоновом пуле потоков.

    Обработчики (письма, возвраты) выполняются вне потока запроса,
    поэтому их задержки не влияют на время ответа. Ошибки обработчиков
    по-прежнему логирует вложенная InMemoryEventBus.
    """

    def __init__(self, bus: InMemoryEventBus, max_workers: int = 2):
        self._bus = bus
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="hotel-effects"
        )
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    def publish(self, event: DomainEvent) -> None:
        future = self._executor.submit(self._bus.publish, event)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def subscribe(self, event_type: Type[DomainEvent], handler) -> None:
        self._bus.subscribe(event_type, handler)

    def wait(self, timeout: Optional[float] = None) -> None:
        """Дожидается публикации всех отправленных событий."""
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


# Уведомления


class ConsoleNotifier(ports.INotifier):
    """Уведомитель, который пишет письма в лог."""

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._logger = logger or ConsoleLogger("hotel_booking.email")

    def send(self, message: ports.EmailMessage) -> None:
        self._logger.info(
            f"[Email] {message.subject}", to=message.to, sender=message.sender
        )


class RecordingNotifier(ports.INotifier):
    """Уведомитель, сохраняющий письма в памяти."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[ports.EmailMessage] = []

    def send(self, message: ports.EmailMessage) -> None:
        if self.fail:
            raise NotificationFailure(f"Delivery to {message.to} failed")
        self.sent.append(message)


class SmtpNotifier(ports.INotifier):
    """Отправка писем через SMTP с STARTTLS."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        default_sender: str = "",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.default_sender = default_sender
        self.timeout = timeout

    def _build(self, message: ports.EmailMessage) -> MimeMessage:
        mime = MimeMessage()
        mime["From"] = message.sender or self.default_sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.html, subtype="html")
        return mime

    def send(self, message: ports.EmailMessage) -> None:
        mime = self._build(message)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(mime)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationFailure(f"SMTP delivery to {message.to} failed: {exc}") from exc


class HttpApiNotifier(ports.INotifier):
    """Отправка писем через HTTP API транзакционной почты (формат Brevo v3)."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        default_sender: str,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.default_sender = default_sender
        # Закрываем только клиент, созданный здесь
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def send(self, message: ports.EmailMessage) -> None:
        payload = {
            "sender": {"email": message.sender or self.default_sender},
            "to": [{"email": message.to}],
            "subject": message.subject,
            "htmlContent": message.html,
        }
        try:
            response = self._client.post(
                self.api_url,
                json=payload,
                headers={"api-key": self.api_key, "accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationFailure(f"Email API delivery to {message.to} failed: {exc}") from exc


# Платежи


class DummyPaymentProcessor(ports.IPaymentProcessor):
    """Заглушка платежного сервиса для тестирования и локального запуска."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.refunds: Dict[str, Dict[str, Any]] = {}

    def refund(
        self, payment_reference: str, amount: int, metadata: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Оформляет возврат средств по исходному платежу."""
        if self.fail:
            raise PaymentProcessorFailure(f"Refund for {payment_reference} was declined")

        refund_id = f"RFND-{uuid4().hex[:8].upper()}"
        result = {
            "refund_id": refund_id,
            "original_payment_id": payment_reference,
            "status": "processed",
            "amount": amount,
            "processed_at": datetime.now(timezone.utc).isoformat(),
            "metadata": metadata or {},
        }
        self.refunds[refund_id] = result
        return result


# Аутентификация


class ConfiguredAdminAuthenticator(ports.IAuthenticator):
    """
    Проверяет логин и пароль против настроенной учетной записи.

    Не выдает сессий и токенов, подходит только для простой панели.
    """

    def __init__(self, username: str, password: str):
        self._username = username
        self._password_hash = self._hash(password)

    @staticmethod
    def _hash(password: str) -> bytes:
        return hashlib.sha256(password.encode("utf-8")).digest()

    def verify(self, credentials: ports.AdminCredentials) -> ports.AdminIdentity:
        username_ok = hmac.compare_digest(
            credentials.username.encode("utf-8"), self._username.encode("utf-8")
        )
        password_ok = hmac.compare_digest(
            self._hash(credentials.password), self._password_hash
        )
        if not (username_ok and password_ok):
            raise AuthenticationFailedException("Invalid credentials")
        return ports.AdminIdentity(username=credentials.username)
