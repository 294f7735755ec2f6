# backend/lingualink/schemas/session.py
"""
Input payloads for session lifecycle actions.

These validate what arrives over the wire and convert it into domain value
objects. Pydantic failures surface as the engine's ``ValidationError`` so
callers only ever see one error type for bad input.
"""

from datetime import datetime
from typing import Any, Mapping, Optional, Type, TypeVar, Union

from pydantic import Field, ValidationError as PydanticValidationError, field_validator

from ..core.enums import CancellationReason
from ..core.exceptions import ErrorCode, ValidationError
from ..domain.models import (
    RATING_MAX,
    RATING_MIN,
    InterpreterSession,
    SessionRating,
    TimeInterval,
)
from ._strict_base import StrictRequestModel

ModelT = TypeVar("ModelT", bound=StrictRequestModel)


def parse_payload(model_cls: Type[ModelT], data: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """Validate ``data`` into ``model_cls``, raising the domain ValidationError."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False)
        missing = any(err.get("type") == "missing" for err in errors)
        raise ValidationError(
            f"Invalid {model_cls.__name__}",
            code=ErrorCode.VAL_MISSING_REQUIRED_FIELD if missing else ErrorCode.VAL_INVALID_INPUT,
            details={
                "errors": [
                    {
                        "field": ".".join(str(part) for part in err.get("loc", ())),
                        "message": err.get("msg"),
                        "type": err.get("type"),
                    }
                    for err in errors
                ]
            },
        ) from exc


class RatingPayload(StrictRequestModel):
    """Rating submitted by one party after a completed session."""

    overall: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    punctuality: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    professionalism: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    accuracy: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    communication: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    comment: Optional[str] = Field(None, max_length=1000)

    @field_validator("comment")
    @classmethod
    def clean_comment(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def to_domain(self, rated_at: Optional[datetime] = None) -> SessionRating:
        return SessionRating(
            overall=self.overall,
            punctuality=self.punctuality,
            professionalism=self.professionalism,
            accuracy=self.accuracy,
            communication=self.communication,
            comment=self.comment,
            rated_at=rated_at,
        )


class CancellationPayload(StrictRequestModel):
    """Why a session or request is being cancelled."""

    category: CancellationReason = Field(..., description="Cancellation category")
    reason: Optional[str] = Field(None, max_length=500, description="Free-text explanation")

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class ReschedulePayload(StrictRequestModel):
    """
    Move a session to a new start time.

    ``new_duration`` defaults to the current session's scheduled duration.
    """

    new_start_time: datetime
    new_duration: Optional[int] = Field(None, gt=0, le=720, description="Minutes")
    reason: Optional[str] = Field(None, max_length=500)

    def interval_for(self, session: InterpreterSession) -> TimeInterval:
        duration = self.new_duration or session.estimated_duration
        return TimeInterval.from_duration(self.new_start_time, duration)
