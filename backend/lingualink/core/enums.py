# backend/lingualink/core/enums.py
"""
Core enums for the LinguaLink session lifecycle engine.

Status enums are closed sets: the lifecycle state machine keys its
transition tables on (status, action) pairs built from these values, so
adding a member here without a table entry makes it unreachable.
String values match the platform's persisted/status wire format.
"""

from enum import Enum


class SessionStatus(str, Enum):
    """InterpreterSession lifecycle statuses."""

    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    # Derived marker only; never stored on a session record
    RESCHEDULED = "rescheduled"


class RequestStatus(str, Enum):
    """ServiceRequest lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class SessionAction(str, Enum):
    """Actions that drive an InterpreterSession transition."""

    CONFIRM = "confirm"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    MARK_NO_SHOW = "mark_no_show"


class RequestAction(str, Enum):
    """Actions that drive a ServiceRequest transition."""

    CONFIRM = "confirm"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    REJECT = "reject"


class ServiceType(str, Enum):
    TRANSLATION = "translation"
    IN_PERSON_INTERPRETATION = "in_person_interpretation"
    PHONE_INTERPRETATION = "phone_interpretation"
    VIDEO_INTERPRETATION = "video_interpretation"


class SessionType(str, Enum):
    IN_PERSON = "in_person"
    PHONE = "phone"
    VIDEO = "video"


class InterpreterSpecialization(str, Enum):
    MEDICAL = "medical"
    LEGAL = "legal"
    BUSINESS = "business"
    TECHNICAL = "technical"
    ACADEMIC = "academic"
    GOVERNMENT = "government"
    CONFERENCE = "conference"
    COMMUNITY = "community"
    GENERAL = "general"


class InterpreterStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING_APPROVAL = "pending_approval"
    SUSPENDED = "suspended"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    BREAK = "break"
    OFFLINE = "offline"


class CancellationReason(str, Enum):
    """Cancellation categories recorded on a cancelled session."""

    CLIENT_REQUEST = "client_request"
    INTERPRETER_UNAVAILABLE = "interpreter_unavailable"
    TECHNICAL_ISSUES = "technical_issues"
    EMERGENCY = "emergency"
    NO_SHOW = "no_show"
    OTHER = "other"


class UrgencyLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class ActorRole(str, Enum):
    """Role an actor holds when acting on a session."""

    CLIENT = "client"
    INTERPRETER = "interpreter"
    ADMIN = "admin"
    SYSTEM = "system"


# Maps request service types onto the session type they are booked as.
SERVICE_TYPE_TO_SESSION_TYPE = {
    ServiceType.IN_PERSON_INTERPRETATION: SessionType.IN_PERSON,
    ServiceType.PHONE_INTERPRETATION: SessionType.PHONE,
    ServiceType.VIDEO_INTERPRETATION: SessionType.VIDEO,
}
