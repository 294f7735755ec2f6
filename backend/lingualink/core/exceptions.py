# backend/lingualink/core/exceptions.py
"""
Domain-specific exceptions for the LinguaLink lifecycle engine.

Every failure the engine can produce is one of these typed exceptions.
Each carries a stable error code from the platform taxonomy (VAL_*, REQ_*,
SES_*) so the API layer can render the uniform error envelope without
reinterpreting the failure.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class ErrorCode:
    """Stable error codes shared with the platform's response taxonomy."""

    VAL_INVALID_INPUT = "VAL_INVALID_INPUT"
    VAL_MISSING_REQUIRED_FIELD = "VAL_MISSING_REQUIRED_FIELD"
    VAL_INVALID_FORMAT = "VAL_INVALID_FORMAT"
    VAL_VALUE_TOO_SMALL = "VAL_VALUE_TOO_SMALL"
    VAL_VALUE_TOO_LARGE = "VAL_VALUE_TOO_LARGE"

    REQ_NOT_FOUND = "REQ_NOT_FOUND"
    REQ_DUPLICATE_RESOURCE = "REQ_DUPLICATE_RESOURCE"
    REQ_INVALID_STATE = "REQ_INVALID_STATE"
    REQ_RESOURCE_LOCKED = "REQ_RESOURCE_LOCKED"
    REQ_OPERATION_NOT_ALLOWED = "REQ_OPERATION_NOT_ALLOWED"

    SES_NOT_FOUND = "SES_NOT_FOUND"
    SES_ALREADY_STARTED = "SES_ALREADY_STARTED"
    SES_ALREADY_COMPLETED = "SES_ALREADY_COMPLETED"
    SES_INTERPRETER_NOT_AVAILABLE = "SES_INTERPRETER_NOT_AVAILABLE"
    SES_ALREADY_RESCHEDULED = "SES_ALREADY_RESCHEDULED"

    INT_UNKNOWN_ERROR = "INT_UNKNOWN_ERROR"


class DomainException(Exception):
    """Base exception for all lifecycle engine errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = ErrorCode.INT_UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationError(DomainException):
    """Raised for malformed input: bad intervals, durations, rating scores."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = ErrorCode.VAL_INVALID_INPUT


class NotFoundError(DomainException):
    """Raised when a session, request or interpreter cannot be loaded."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = ErrorCode.REQ_NOT_FOUND


class ConflictError(DomainException):
    """Raised when the requested change conflicts with current state."""

    status_code = status.HTTP_409_CONFLICT
    default_code = ErrorCode.REQ_INVALID_STATE


class InvalidTransition(ConflictError):
    """Raised when a status change is not reachable from the current status."""

    def __init__(
        self,
        current_state: str,
        requested: str,
        *,
        entity_id: Optional[str] = None,
        message: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        self.current_state = current_state
        self.requested = requested
        details: Dict[str, Any] = {"current_state": current_state, "requested": requested}
        if entity_id:
            details["entity_id"] = entity_id
        super().__init__(
            message=message or f"Invalid status transition: cannot {requested} from {current_state}",
            code=code or ErrorCode.REQ_INVALID_STATE,
            details=details,
        )


class SchedulingConflict(ConflictError):
    """Raised when a proposed interval overlaps a committed session."""

    def __init__(
        self,
        interpreter_id: str,
        conflicting_session_id: str,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.interpreter_id = interpreter_id
        self.conflicting_session_id = conflicting_session_id
        payload = {
            "interpreter_id": interpreter_id,
            "conflicting_session_id": conflicting_session_id,
        }
        payload.update(details or {})
        super().__init__(
            message="Interpreter has a conflicting session at this time",
            code=ErrorCode.SES_INTERPRETER_NOT_AVAILABLE,
            details=payload,
        )


class InterpreterUnavailable(ConflictError):
    """Raised when the interpreter profile cannot take the session at all."""

    def __init__(self, interpreter_id: str, reason: str) -> None:
        super().__init__(
            message=f"Interpreter is not available: {reason}",
            code=ErrorCode.SES_INTERPRETER_NOT_AVAILABLE,
            details={"interpreter_id": interpreter_id, "reason": reason},
        )


class AlreadyRescheduled(ConflictError):
    """Raised when rescheduling a session that already has a successor."""

    def __init__(self, session_id: str, rescheduled_session_id: str) -> None:
        super().__init__(
            message="Session has already been rescheduled; reschedule the newest session instead",
            code=ErrorCode.SES_ALREADY_RESCHEDULED,
            details={
                "session_id": session_id,
                "rescheduled_session_id": rescheduled_session_id,
            },
        )


class DuplicateRating(ConflictError):
    """Raised when an actor rates the same session a second time."""

    def __init__(self, session_id: str, rater_role: str) -> None:
        super().__init__(
            message=f"Session has already been rated by {rater_role}",
            code=ErrorCode.REQ_DUPLICATE_RESOURCE,
            details={"session_id": session_id, "rater_role": rater_role},
        )


class BusinessRuleException(DomainException):
    """Raised when a configured business policy rejects the action."""

    status_code = HTTP_422_UNPROCESSABLE
    default_code = ErrorCode.REQ_OPERATION_NOT_ALLOWED


class RescheduleLimitReached(BusinessRuleException):
    """Raised when the configured reschedule limit has been used up."""

    def __init__(self, session_id: str, limit: int) -> None:
        super().__init__(
            message=f"Session has reached the reschedule limit of {limit}",
            details={"session_id": session_id, "max_reschedules": limit},
        )


class OperationNotAllowed(DomainException):
    """Raised when the actor is not a party to the session."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = ErrorCode.REQ_OPERATION_NOT_ALLOWED


class ResourceLocked(DomainException):
    """Raised when the interpreter's scheduling lock could not be acquired."""

    status_code = status.HTTP_423_LOCKED
    default_code = ErrorCode.REQ_RESOURCE_LOCKED

    def __init__(self, resource: str) -> None:
        super().__init__(
            message="Another scheduling change is in progress; retry shortly",
            details={"resource": resource},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used by the reference persistence adapter when a query or write fails.
    """
