"""
Runtime settings, read from the environment (and a .env file if present).
"""

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("config")

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_FILE = BASE_DIR / ".env"

DEFAULT_BOOKING_TTL_MINUTES = 15
DEFAULT_EXPIRATION_INTERVAL_SECONDS = 60
DEFAULT_PAYMENT_INSTRUCTION = "Awaiting manual transfer by phone number"


class Settings(BaseSettings):
    """
    Application settings.

    Environment variables match the field names case-insensitively
    (BOOKING_TTL_MINUTES, DATA_DIR, TELEGRAM_BOT_TOKEN, ...). The expiration
    interval is read from EXPIRATION_CHECK_INTERVAL_SECONDS.
    """
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_ignore_empty=True,
        extra="ignore",
    )

    booking_ttl_minutes: int = Field(default=DEFAULT_BOOKING_TTL_MINUTES, gt=0)
    expiration_interval_seconds: int = Field(
        default=DEFAULT_EXPIRATION_INTERVAL_SECONDS,
        gt=0,
        validation_alias=AliasChoices("expiration_interval_seconds", "expiration_check_interval_seconds"),
    )
    data_dir: Path = Field(default=BASE_DIR / "data")
    persist_data: bool = True
    telegram_bot_token: Optional[str] = None
    telegram_admin_chat_id: Optional[str] = None
    payment_instruction: str = DEFAULT_PAYMENT_INSTRUCTION

    @field_validator("booking_ttl_minutes", "expiration_interval_seconds", mode="before")
    @classmethod
    def positive_or_default(cls, value: Any, info: ValidationInfo) -> Any:
        """Invalid or non-positive values fall back to the field default."""
        default = cls.model_fields[info.field_name].default
        try:
            parsed = int(str(value).strip())
        except (TypeError, ValueError):
            logger.warning(f"Invalid {info.field_name} {value!r}, using {default}")
            return default
        return parsed if parsed > 0 else default

    @classmethod
    def from_env(cls, use_env_file: bool = True) -> "Settings":
        """Settings from the process environment, plus the .env file unless disabled."""
        if use_env_file:
            return cls()
        return cls(_env_file=None)


def get_booking_ttl_minutes() -> int:
    """Reservation lifetime in minutes (BOOKING_TTL_MINUTES, default 15)."""
    return Settings().booking_ttl_minutes
