"""
Настройки приложения.

Все значения имеют умолчания и могут быть переопределены переменными
окружения (см. ENV_VARS). Некорректные значения приводят к
pydantic.ValidationError при запуске.
"""

import os
from decimal import Decimal
from typing import Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .reservations.domain import RefundPolicy, RoomType

DEFAULT_ROOM_TYPES = "Deluxe:1350:7,Executive:1700:7"

ENV_VARS: Dict[str, str] = {
    "HOTEL_NAME": "hotel_name",
    "HOTEL_OWNER_EMAIL": "owner_email",
    "HOTEL_SENDER_EMAIL": "sender_email",
    "HOTEL_ROOM_TYPES": "room_types",
    "HOTEL_TAX_RATE": "tax_rate",
    "HOTEL_REFUND_POLICY": "refund_policy",
    "HOTEL_INVENTORY_BACKEND": "inventory_backend",
    "HOTEL_INVENTORY_FILE": "inventory_file",
    "HOTEL_EMAIL_PROVIDER": "email_provider",
    "HOTEL_BACKGROUND_EFFECTS": "background_effects",
    "HOTEL_EFFECT_WORKERS": "effect_workers",
    "SMTP_HOST": "smtp_host",
    "SMTP_PORT": "smtp_port",
    "SMTP_USER": "smtp_user",
    "SMTP_PASSWORD": "smtp_password",
    "EMAIL_API_URL": "email_api_url",
    "EMAIL_API_KEY": "email_api_key",
    "EMAIL_TIMEOUT": "email_timeout",
    "ADMIN_USERNAME": "admin_username",
    "ADMIN_PASSWORD": "admin_password",
    "LOG_LEVEL": "log_level",
    "PORT": "port",
}


def parse_room_types(value: str) -> List[RoomType]:
    """Разбирает строку вида "Deluxe:1350:7,Executive:1700:7"."""
    room_types = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        parts = [p.strip() for p in chunk.split(":")]
        if len(parts) != 3:
            raise ValueError(f"Ожидается name:price:capacity, получено {chunk!r}")
        name, price, capacity = parts
        room_types.append(RoomType(name=name, base_price=int(price), capacity=int(capacity)))
    return room_types


class Settings(BaseModel):
    """Конфигурация сервиса бронирования."""

    hotel_name: str = "Hotel Maruthi"
    owner_email: str = "owner@hotel.example"
    sender_email: str = "bookings@hotel.example"

    room_types: List[RoomType] = Field(
        default_factory=lambda: parse_room_types(DEFAULT_ROOM_TYPES), min_length=1
    )
    tax_rate: Decimal = Field(Decimal("0.05"), ge=0, le=1)
    refund_policy: RefundPolicy = Field(
        default_factory=lambda: RefundPolicy.parse("standard")
    )

    inventory_backend: Literal["memory", "file"] = "memory"
    inventory_file: str = "data/inventory.json"

    email_provider: Literal["console", "smtp", "api"] = "console"
    smtp_host: str = "smtp-relay.brevo.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    email_api_url: str = "https://api.brevo.com/v3/smtp/email"
    email_api_key: str = ""
    email_timeout: float = Field(10.0, gt=0)

    # Письма и возвраты выполняются в фоновом пуле потоков
    background_effects: bool = True
    effect_workers: int = Field(2, ge=1)

    admin_username: str = "admin"
    admin_password: str = "admin"

    log_level: str = "INFO"
    port: int = 3000

    @field_validator("room_types", mode="before")
    @classmethod
    def parse_room_types_string(cls, v):
        if isinstance(v, str):
            return parse_room_types(v)
        return v

    @field_validator("room_types")
    @classmethod
    def room_type_names_unique(cls, v: List[RoomType]) -> List[RoomType]:
        names = [rt.name for rt in v]
        if len(set(names)) != len(names):
            raise ValueError("Типы номеров не должны повторяться")
        return v

    @field_validator("refund_policy", mode="before")
    @classmethod
    def parse_refund_policy(cls, v):
        if isinstance(v, str):
            return RefundPolicy.parse(v)
        return v

    @field_validator("email_provider", "inventory_backend", mode="before")
    @classmethod
    def lower_case_choice(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Создает настройки из переменных окружения."""
        environ = os.environ if environ is None else environ
        values = {
            field: environ[name]
            for name, field in ENV_VARS.items()
            if environ.get(name, "") != ""
        }
        return cls(**values)
