"""
Прикладной слой контекста бронирования.

Содержит сервисы приложения, которые координируют взаимодействие
между внешними интерфейсами, доменным сервисом ReservationEngine
и шиной событий. Эффекты (письма, возвраты) публикуются только после
того, как операция над бронированиями завершилась.
"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..shared_kernel import AuthenticationFailedException, MissingParameterException
from . import interfaces as ports
from .domain import Booking, CapacityLine, DomainEvent, ReservationEngine


class CamelModel(BaseModel):
    """Базовая модель с camelCase-ключами во внешнем JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# DTO (Data Transfer Objects) для входящих данных


class BookRoomRequest(CamelModel):
    """
    Запрос на создание бронирования.

    Поля необязательны на уровне схемы: отсутствие значения проверяет
    доменный сервис и сообщает его как MissingParameter.
    """

    room_type: Optional[str] = None
    checkin: Optional[str] = None
    checkout: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_reference: Optional[str] = None


class SetCapacityRequest(CamelModel):
    """Запрос администратора на изменение количества номеров."""

    room_type: str
    count: int = Field(..., ge=0)


class LoginRequest(CamelModel):
    username: str
    password: str


# DTO для исходящих данных


class BookingDTO(CamelModel):
    """DTO для представления бронирования."""

    booking_id: str
    room_type: str
    checkin: date
    checkout: date
    customer_email: str
    customer_phone: str
    base_price: int
    tax: int
    total_price: int
    payment_reference: Optional[str] = None

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingDTO":
        """Создает DTO из доменной модели."""
        return cls(
            booking_id=booking.booking_id,
            room_type=booking.room_type,
            checkin=booking.checkin,
            checkout=booking.checkout,
            customer_email=booking.customer_email,
            customer_phone=booking.customer_phone,
            base_price=booking.base_price,
            tax=booking.tax,
            total_price=booking.total_price,
            payment_reference=booking.payment_reference,
        )


class BookingConfirmationDTO(CamelModel):
    status: str = "Booked"
    booking: BookingDTO


class CancellationDTO(CamelModel):
    status: str = "Cancelled"
    booking_id: str
    refund_amount: int


class CapacityLineDTO(CamelModel):
    total: int
    booked: int
    available: int

    @classmethod
    def from_domain(cls, line: CapacityLine) -> "CapacityLineDTO":
        return cls(total=line.total, booked=line.booked, available=line.available)


class LoginResponse(CamelModel):
    success: bool
    message: str


# Сервисы приложения


class ReservationApplicationService:
    """Сервис приложения для работы с бронированиями."""

    def __init__(
        self,
        engine: ReservationEngine,
        event_bus: ports.IEventBus,
        logger: ports.ILogger,
    ):
        """Инициализирует сервис."""
        self._engine = engine
        self._event_bus = event_bus
        self._logger = logger

    def check_availability(
        self, checkin: Optional[str], checkout: Optional[str]
    ) -> Dict[str, int]:
        """Возвращает количество свободных номеров по типам."""
        missing = [
            name
            for name, value in (("checkin", checkin), ("checkout", checkout))
            if not value
        ]
        if missing:
            raise MissingParameterException(*missing)
        return self._engine.availability(checkin, checkout)

    def book_room(self, request: BookRoomRequest) -> BookingConfirmationDTO:
        """Создает бронирование и публикует его эффекты."""
        result = self._engine.book(
            room_type=request.room_type,
            checkin=request.checkin,
            checkout=request.checkout,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            payment_reference=request.payment_reference,
        )
        booking = result.booking
        self._logger.info(
            "Booking created",
            booking_id=booking.booking_id,
            room_type=booking.room_type,
            total_price=booking.total_price,
        )
        self._dispatch(result.effects)
        return BookingConfirmationDTO(booking=BookingDTO.from_domain(booking))

    def cancel_booking(self, booking_id: Optional[str]) -> CancellationDTO:
        """Отменяет бронирование и публикует запросы на уведомления и возврат."""
        result = self._engine.cancel(booking_id)
        self._logger.info(
            "Booking cancelled",
            booking_id=result.booking.booking_id,
            days_before=result.days_before,
            refund_amount=result.refund_amount,
        )
        self._dispatch(result.effects)
        return CancellationDTO(
            booking_id=result.booking.booking_id, refund_amount=result.refund_amount
        )

    def _dispatch(self, effects: List[DomainEvent]) -> None:
        for event in effects:
            self._event_bus.publish(event)


class AdminApplicationService:
    """Сервис приложения для администратора отеля."""

    def __init__(
        self,
        engine: ReservationEngine,
        authenticator: ports.IAuthenticator,
        logger: ports.ILogger,
    ):
        self._engine = engine
        self._authenticator = authenticator
        self._logger = logger

    def login(self, request: LoginRequest) -> LoginResponse:
        """Проверяет учетные данные администратора."""
        try:
            identity = self._authenticator.verify(
                ports.AdminCredentials(username=request.username, password=request.password)
            )
        except AuthenticationFailedException:
            self._logger.warning("Admin login failed", username=request.username)
            return LoginResponse(success=False, message="Invalid credentials")

        self._logger.info("Admin logged in", username=identity.username)
        return LoginResponse(success=True, message="Login successful")

    def set_capacity(self, request: SetCapacityRequest) -> None:
        """Перезаписывает количество номеров без сверки с бронированиями."""
        self._engine.set_capacity(request.room_type, request.count)
        self._logger.warning(
            "Room capacity overridden",
            room_type=request.room_type,
            count=request.count,
        )

    def summary(self) -> Dict[str, CapacityLineDTO]:
        """Сводка по типам номеров: всего, занято, свободно."""
        return {
            name: CapacityLineDTO.from_domain(line)
            for name, line in self._engine.summary().items()
        }
