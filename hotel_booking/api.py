"""
HTTP-интерфейс сервиса бронирования (FastAPI).

Маршруты только разбирают запрос и вызывают сервисы приложения;
доменные исключения переводятся в HTTP-статусы обработчиками ниже.
"""

from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .bootstrap import Container, bootstrap_app
from .reservations.application import (
    AdminApplicationService,
    BookingConfirmationDTO,
    BookRoomRequest,
    CancellationDTO,
    CapacityLineDTO,
    LoginRequest,
    LoginResponse,
    ReservationApplicationService,
    SetCapacityRequest,
)
from .reservations.infrastructure import configure_logging
from .shared_kernel import (
    BookingNotFoundException,
    DomainException,
    InvalidDateRangeException,
    InvalidRoomTypeException,
    MissingParameterException,
    RoomUnavailableException,
)

STATUS_BY_EXCEPTION = {
    MissingParameterException: 400,
    InvalidRoomTypeException: 400,
    InvalidDateRangeException: 400,
    RoomUnavailableException: 409,
    BookingNotFoundException: 404,
}


def _error(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})


def get_reservations(request: Request) -> ReservationApplicationService:
    return request.app.state.container.reservations


def get_admin(request: Request) -> AdminApplicationService:
    return request.app.state.container.admin


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Создает приложение FastAPI поверх собранного контейнера."""
    container = container or bootstrap_app()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        container.close()

    app = FastAPI(
        title=f"{container.settings.hotel_name} Room Booking API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException):
        status_code = STATUS_BY_EXCEPTION.get(type(exc), 400)
        return _error(status_code, str(exc), type(exc).__name__)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(400, "Invalid request parameters", "InvalidRequest")

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return f"{container.settings.hotel_name} Room Booking API is running!"

    @app.get("/api/room-availability")
    def room_availability(
        checkin: Optional[str] = Query(None),
        checkout: Optional[str] = Query(None),
        service: ReservationApplicationService = Depends(get_reservations),
    ) -> Dict[str, int]:
        return service.check_availability(checkin, checkout)

    @app.post("/api/book-room", response_model=BookingConfirmationDTO)
    def book_room(
        body: Optional[BookRoomRequest] = None,
        service: ReservationApplicationService = Depends(get_reservations),
    ):
        # Пустое тело разбирается доменом как отсутствующие параметры
        return service.book_room(body or BookRoomRequest())

    @app.delete("/api/cancel-booking", response_model=CancellationDTO)
    def cancel_booking(
        booking_id: Optional[str] = Query(None, alias="id"),
        service: ReservationApplicationService = Depends(get_reservations),
    ):
        return service.cancel_booking(booking_id)

    @app.post("/api/admin/login", response_model=LoginResponse)
    def admin_login(
        body: LoginRequest, service: AdminApplicationService = Depends(get_admin)
    ):
        return service.login(body)

    @app.post("/api/admin/set-capacity")
    def admin_set_capacity(
        body: SetCapacityRequest, service: AdminApplicationService = Depends(get_admin)
    ):
        service.set_capacity(body)
        return {"success": True}

    @app.get("/api/admin/summary", response_model=Dict[str, CapacityLineDTO])
    def admin_summary(service: AdminApplicationService = Depends(get_admin)):
        return service.summary()

    return app


def main() -> None:
    import uvicorn

    container = bootstrap_app()
    configure_logging(container.settings.log_level)
    uvicorn.run(create_app(container), host="0.0.0.0", port=container.settings.port)


if __name__ == "__main__":
    main()
