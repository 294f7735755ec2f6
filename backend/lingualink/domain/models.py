"""Core domain entities of the lifecycle engine, as immutable dataclasses.

The engine never traverses live ORM graphs; it works on these value
objects, handed to it by the persistence collaborator, and returns new
instances (via ``dataclasses.replace``) instead of mutating them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Mapping, Optional, Tuple

from ..core.enums import (
    ActorRole,
    AvailabilityStatus,
    CancellationReason,
    InterpreterSpecialization,
    InterpreterStatus,
    RequestStatus,
    ServiceType,
    SessionStatus,
    SessionType,
    UrgencyLevel,
)
from ..core.exceptions import ErrorCode, ValidationError

TERMINAL_SESSION_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.NO_SHOW}
)
COMMITTED_SESSION_STATUSES = frozenset({SessionStatus.CONFIRMED, SessionStatus.IN_PROGRESS})
TERMINAL_REQUEST_STATUSES = frozenset(
    {RequestStatus.COMPLETED, RequestStatus.CANCELLED, RequestStatus.REJECTED}
)

RATING_MIN = 1
RATING_MAX = 5


@dataclass(frozen=True)
class TimeInterval:
    """Half-open interval ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise ValidationError(
                "Interval start and end must both be timezone-aware or both naive",
                code=ErrorCode.VAL_INVALID_INPUT,
                details={"start": self.start.isoformat(), "end": self.end.isoformat()},
            )
        if self.end <= self.start:
            raise ValidationError(
                "Interval end must be after its start",
                code=ErrorCode.VAL_INVALID_INPUT,
                details={"start": self.start.isoformat(), "end": self.end.isoformat()},
            )

    @classmethod
    def from_duration(cls, start: datetime, duration_minutes: int) -> "TimeInterval":
        if duration_minutes <= 0:
            raise ValidationError(
                "Duration must be positive",
                code=ErrorCode.VAL_VALUE_TOO_SMALL,
                details={"duration_minutes": duration_minutes},
            )
        return cls(start=start, end=start + timedelta(minutes=duration_minutes))

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "TimeInterval") -> bool:
        # Back-to-back intervals share only a boundary and do not overlap
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class Actor:
    """Identity of whoever triggers a lifecycle action, supplied by auth."""

    user_id: str
    role: ActorRole
    interpreter_id: Optional[str] = None


@dataclass(frozen=True)
class SessionRating:
    """A 1-5 rating left by one party of a completed session."""

    overall: int
    punctuality: int
    professionalism: int
    accuracy: int
    communication: int
    comment: Optional[str] = None
    rated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name in ("overall", "punctuality", "professionalism", "accuracy", "communication"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(
                    f"Rating {name} must be an integer",
                    code=ErrorCode.VAL_INVALID_INPUT,
                    details={"field": name, "value": value},
                )
            if value < RATING_MIN:
                raise ValidationError(
                    f"Rating {name} must be at least {RATING_MIN}",
                    code=ErrorCode.VAL_VALUE_TOO_SMALL,
                    details={"field": name, "value": value},
                )
            if value > RATING_MAX:
                raise ValidationError(
                    f"Rating {name} must be at most {RATING_MAX}",
                    code=ErrorCode.VAL_VALUE_TOO_LARGE,
                    details={"field": name, "value": value},
                )


@dataclass(frozen=True)
class AdditionalFee:
    """Travel, equipment or other fee charged on top of the base cost."""

    description: str
    amount: Decimal


@dataclass(frozen=True)
class SessionTypeRate:
    rate: Decimal
    minimum_duration: int  # minutes


@dataclass(frozen=True)
class RateStructure:
    """Interpreter pricing: base hourly rate plus per-type and per-specialization tweaks."""

    hourly_rate: Decimal
    minimum_hours: int = 1
    session_types: Mapping[SessionType, SessionTypeRate] = field(default_factory=dict)
    specializations: Mapping[InterpreterSpecialization, Decimal] = field(default_factory=dict)
    rate_per_word: Optional[Decimal] = None


@dataclass(frozen=True)
class Interpreter:
    """Interpreter profile plus running statistics."""

    id: str
    user_id: str
    rate_structure: RateStructure
    status: InterpreterStatus = InterpreterStatus.ACTIVE
    languages: Tuple[str, ...] = ()
    specializations: Tuple[InterpreterSpecialization, ...] = (InterpreterSpecialization.GENERAL,)
    supported_session_types: Tuple[SessionType, ...] = (SessionType.PHONE, SessionType.VIDEO)
    current_availability_status: AvailabilityStatus = AvailabilityStatus.OFFLINE
    total_sessions_completed: int = 0
    average_rating: float = 0.0
    total_ratings: int = 0
    total_earnings: Decimal = Decimal("0")


@dataclass(frozen=True)
class InterpreterSession:
    """The booked unit of work: one client, one interpreter, one interval, one rate."""

    id: str
    client_id: str
    interpreter_id: str
    session_type: SessionType
    source_language: str
    target_language: str
    scheduled_start_time: datetime
    scheduled_end_time: datetime
    hourly_rate: Decimal
    status: SessionStatus = SessionStatus.REQUESTED
    specialization: InterpreterSpecialization = InterpreterSpecialization.GENERAL
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    actual_duration: Optional[int] = None  # minutes
    total_cost: Decimal = Decimal("0")
    additional_fees: Tuple[AdditionalFee, ...] = ()
    payment_id: Optional[str] = None
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    original_session_id: Optional[str] = None
    rescheduled_session_id: Optional[str] = None
    rescheduled_count: int = 0
    cancellation_reason: Optional[str] = None
    cancellation_category: Optional[CancellationReason] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    client_rating: Optional[SessionRating] = None
    interpreter_rating: Optional[SessionRating] = None
    requirements: Dict[str, str] = field(default_factory=dict)
    session_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        # Raises ValidationError unless scheduled_end_time > scheduled_start_time
        TimeInterval(self.scheduled_start_time, self.scheduled_end_time)

    @property
    def scheduled_interval(self) -> TimeInterval:
        return TimeInterval(self.scheduled_start_time, self.scheduled_end_time)

    @property
    def estimated_duration(self) -> int:
        return self.scheduled_interval.duration_minutes

    @property
    def is_superseded(self) -> bool:
        return self.rescheduled_session_id is not None

    @property
    def effective_status(self) -> SessionStatus:
        """Stored status, or RESCHEDULED once a successor session exists."""
        if self.is_superseded:
            return SessionStatus.RESCHEDULED
        return self.status

    @property
    def is_terminal(self) -> bool:
        return self.is_superseded or self.status in TERMINAL_SESSION_STATUSES

    @property
    def is_committed(self) -> bool:
        return not self.is_superseded and self.status in COMMITTED_SESSION_STATUSES

    @property
    def is_active(self) -> bool:
        return self.effective_status == SessionStatus.IN_PROGRESS

    @property
    def needs_payment(self) -> bool:
        return not self.is_paid and self.effective_status in (
            SessionStatus.CONFIRMED,
            SessionStatus.COMPLETED,
        )

    def is_upcoming(self, now: datetime) -> bool:
        return self.scheduled_start_time > now and self.effective_status in (
            SessionStatus.REQUESTED,
            SessionStatus.CONFIRMED,
        )


@dataclass(frozen=True)
class ServiceRequest:
    """A client's ask, progressing toward a booked session or rejection."""

    id: str
    client_id: str
    service_type: ServiceType
    source_language: str
    target_language: str
    status: RequestStatus = RequestStatus.PENDING
    interpreter_id: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    estimated_duration: Optional[int] = None  # minutes
    urgency_level: UrgencyLevel = UrgencyLevel.NORMAL
    word_count: Optional[int] = None
    specialization: InterpreterSpecialization = InterpreterSpecialization.GENERAL
    total_cost: Optional[Decimal] = None
    description: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_translation(self) -> bool:
        return self.service_type == ServiceType.TRANSLATION

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_REQUEST_STATUSES

    @property
    def scheduled_interval(self) -> Optional[TimeInterval]:
        if self.scheduled_at is None or not self.estimated_duration:
            return None
        return TimeInterval.from_duration(self.scheduled_at, self.estimated_duration)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, rounded half-up; negative if end precedes start."""
    seconds = (end - start).total_seconds()
    return int((seconds + 30) // 60)
