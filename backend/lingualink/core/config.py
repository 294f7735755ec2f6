# backend/lingualink/core/config.py
from decimal import Decimal
import logging
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def _default_urgency_multipliers() -> Dict[str, Decimal]:
    return {
        "low": Decimal("1.0"),
        "normal": Decimal("1.0"),
        "high": Decimal("1.5"),
        "urgent": Decimal("2.0"),
    }


class Settings(BaseSettings):
    log_level: str = Field(default="INFO", description="Root log level for configure_logging")
    currency: str = Field(default="USD", description="Currency every computed amount is quoted in")

    # Cancellation policy (advisory: flags late cancellations, never blocks them)
    cancellation_notice_hours: int = Field(default=24, ge=0)
    emergency_cancellation_notice_hours: int = Field(default=2, ge=0)

    # Reschedule policy; None means reschedules are unlimited
    max_reschedules: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum reschedules per session chain (unset = unlimited)",
    )

    # Translation pricing
    translation_minimum_fee: Decimal = Field(default=Decimal("25.00"), ge=0)
    urgency_multipliers: Dict[str, Decimal] = Field(default_factory=_default_urgency_multipliers)

    # Per-interpreter scheduling lock
    interpreter_lock_ttl_seconds: int = Field(default=30, ge=1)
    interpreter_lock_wait_seconds: float = Field(default=5.0, ge=0)
    interpreter_lock_redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for the distributed lock; unset keeps locks in-process",
    )
    lock_namespace: str = Field(default="lingualink")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper() or "INFO"
        return value

    @field_validator("urgency_multipliers")
    @classmethod
    def _validate_multipliers(cls, value: Dict[str, Decimal]) -> Dict[str, Decimal]:
        for level, multiplier in value.items():
            if multiplier <= 0:
                raise ValueError(f"urgency multiplier for {level} must be positive")
        return {str(k).lower(): v for k, v in value.items()}


settings = Settings()
