# backend/lingualink/repositories/session_repository.py
"""
SQLAlchemy-backed session repository.

Implements the ``SessionStore`` interface the lifecycle engine consumes,
translating between table rows and the engine's immutable value objects.
Transactions are left to the caller (see ``transaction``).
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import (
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
from ..core.exceptions import RepositoryException
from ..domain.models import (
    COMMITTED_SESSION_STATUSES,
    AdditionalFee,
    Interpreter,
    InterpreterSession,
    RateStructure,
    ServiceRequest,
    SessionRating,
    SessionTypeRate,
)
from ..models.interpreter import InterpreterRecord
from ..models.service_request import ServiceRequestRecord
from ..models.session import SessionRecord

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; stored values are UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _rating_to_json(rating: Optional[SessionRating]) -> Optional[Dict[str, Any]]:
    if rating is None:
        return None
    return {
        "overall": rating.overall,
        "punctuality": rating.punctuality,
        "professionalism": rating.professionalism,
        "accuracy": rating.accuracy,
        "communication": rating.communication,
        "comment": rating.comment,
        "rated_at": rating.rated_at.isoformat() if rating.rated_at else None,
    }


def _rating_from_json(data: Optional[Dict[str, Any]]) -> Optional[SessionRating]:
    if not data:
        return None
    rated_at = data.get("rated_at")
    return SessionRating(
        overall=data["overall"],
        punctuality=data["punctuality"],
        professionalism=data["professionalism"],
        accuracy=data["accuracy"],
        communication=data["communication"],
        comment=data.get("comment"),
        rated_at=_aware(datetime.fromisoformat(rated_at)) if rated_at else None,
    )


def session_to_domain(row: SessionRecord) -> InterpreterSession:
    return InterpreterSession(
        id=row.id,
        client_id=row.client_id,
        interpreter_id=row.interpreter_id,
        session_type=SessionType(row.session_type),
        source_language=row.source_language,
        target_language=row.target_language,
        scheduled_start_time=_aware(row.scheduled_start_time),
        scheduled_end_time=_aware(row.scheduled_end_time),
        hourly_rate=Decimal(row.hourly_rate),
        status=SessionStatus(row.status),
        specialization=InterpreterSpecialization(row.specialization),
        actual_start_time=_aware(row.actual_start_time),
        actual_end_time=_aware(row.actual_end_time),
        actual_duration=row.actual_duration,
        total_cost=Decimal(row.total_cost or 0),
        additional_fees=tuple(
            AdditionalFee(description=fee["description"], amount=Decimal(str(fee["amount"])))
            for fee in (row.additional_fees or [])
        ),
        payment_id=row.payment_id,
        is_paid=bool(row.is_paid),
        paid_at=_aware(row.paid_at),
        original_session_id=row.original_session_id,
        rescheduled_session_id=row.rescheduled_session_id,
        rescheduled_count=row.rescheduled_count or 0,
        cancellation_reason=row.cancellation_reason,
        cancellation_category=(
            CancellationReason(row.cancellation_category) if row.cancellation_category else None
        ),
        cancelled_by=row.cancelled_by,
        cancelled_at=_aware(row.cancelled_at),
        client_rating=_rating_from_json(row.client_rating),
        interpreter_rating=_rating_from_json(row.interpreter_rating),
        requirements=dict(row.requirements or {}),
        session_notes=row.session_notes,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def session_to_columns(session: InterpreterSession) -> Dict[str, Any]:
    return {
        "id": session.id,
        "client_id": session.client_id,
        "interpreter_id": session.interpreter_id,
        "session_type": session.session_type.value,
        "source_language": session.source_language,
        "target_language": session.target_language,
        "specialization": session.specialization.value,
        "scheduled_start_time": session.scheduled_start_time,
        "scheduled_end_time": session.scheduled_end_time,
        "actual_start_time": session.actual_start_time,
        "actual_end_time": session.actual_end_time,
        "actual_duration": session.actual_duration,
        "status": session.status.value,
        "hourly_rate": session.hourly_rate,
        "total_cost": session.total_cost,
        "additional_fees": [
            {"description": fee.description, "amount": str(fee.amount)}
            for fee in session.additional_fees
        ],
        "payment_id": session.payment_id,
        "is_paid": session.is_paid,
        "paid_at": session.paid_at,
        "original_session_id": session.original_session_id,
        "rescheduled_session_id": session.rescheduled_session_id,
        "rescheduled_count": session.rescheduled_count,
        "cancellation_reason": session.cancellation_reason,
        "cancellation_category": (
            session.cancellation_category.value if session.cancellation_category else None
        ),
        "cancelled_by": session.cancelled_by,
        "cancelled_at": session.cancelled_at,
        "client_rating": _rating_to_json(session.client_rating),
        "interpreter_rating": _rating_to_json(session.interpreter_rating),
        "requirements": dict(session.requirements),
        "session_notes": session.session_notes,
    }


def interpreter_to_domain(row: InterpreterRecord) -> Interpreter:
    rate_structure = RateStructure(
        hourly_rate=Decimal(row.hourly_rate),
        minimum_hours=row.minimum_hours,
        session_types={
            SessionType(key): SessionTypeRate(
                rate=Decimal(str(value["rate"])),
                minimum_duration=int(value.get("minimum_duration", 0)),
            )
            for key, value in (row.session_type_rates or {}).items()
        },
        specializations={
            InterpreterSpecialization(key): Decimal(str(value))
            for key, value in (row.specialization_multipliers or {}).items()
        },
        rate_per_word=Decimal(row.rate_per_word) if row.rate_per_word is not None else None,
    )
    return Interpreter(
        id=row.id,
        user_id=row.user_id,
        rate_structure=rate_structure,
        status=InterpreterStatus(row.status),
        languages=tuple(row.languages or ()),
        specializations=tuple(InterpreterSpecialization(s) for s in row.specializations or ()),
        supported_session_types=tuple(SessionType(s) for s in row.supported_session_types or ()),
        current_availability_status=AvailabilityStatus(row.current_availability_status),
        total_sessions_completed=row.total_sessions_completed or 0,
        average_rating=float(row.average_rating or 0.0),
        total_ratings=row.total_ratings or 0,
        total_earnings=Decimal(row.total_earnings or 0),
    )


def interpreter_to_columns(interpreter: Interpreter) -> Dict[str, Any]:
    rates = interpreter.rate_structure
    return {
        "id": interpreter.id,
        "user_id": interpreter.user_id,
        "status": interpreter.status.value,
        "current_availability_status": interpreter.current_availability_status.value,
        "languages": list(interpreter.languages),
        "specializations": [s.value for s in interpreter.specializations],
        "supported_session_types": [t.value for t in interpreter.supported_session_types],
        "hourly_rate": rates.hourly_rate,
        "minimum_hours": rates.minimum_hours,
        "rate_per_word": rates.rate_per_word,
        "session_type_rates": {
            key.value: {"rate": str(value.rate), "minimum_duration": value.minimum_duration}
            for key, value in rates.session_types.items()
        },
        "specialization_multipliers": {
            key.value: str(value) for key, value in rates.specializations.items()
        },
        "total_sessions_completed": interpreter.total_sessions_completed,
        "average_rating": interpreter.average_rating,
        "total_ratings": interpreter.total_ratings,
        "total_earnings": interpreter.total_earnings,
    }


def request_to_domain(row: ServiceRequestRecord) -> ServiceRequest:
    return ServiceRequest(
        id=row.id,
        client_id=row.client_id,
        service_type=ServiceType(row.service_type),
        source_language=row.source_language,
        target_language=row.target_language,
        status=RequestStatus(row.status),
        interpreter_id=row.interpreter_id,
        scheduled_at=_aware(row.scheduled_at),
        estimated_duration=row.estimated_duration,
        urgency_level=UrgencyLevel(row.urgency_level),
        word_count=row.word_count,
        specialization=InterpreterSpecialization(row.specialization),
        total_cost=Decimal(row.total_cost) if row.total_cost is not None else None,
        description=row.description,
        cancelled_by=row.cancelled_by,
        cancelled_at=_aware(row.cancelled_at),
        cancellation_reason=row.cancellation_reason,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def request_to_columns(request: ServiceRequest) -> Dict[str, Any]:
    return {
        "id": request.id,
        "client_id": request.client_id,
        "interpreter_id": request.interpreter_id,
        "service_type": request.service_type.value,
        "source_language": request.source_language,
        "target_language": request.target_language,
        "specialization": request.specialization.value,
        "urgency_level": request.urgency_level.value,
        "status": request.status.value,
        "scheduled_at": request.scheduled_at,
        "estimated_duration": request.estimated_duration,
        "word_count": request.word_count,
        "total_cost": request.total_cost,
        "description": request.description,
        "cancelled_by": request.cancelled_by,
        "cancelled_at": request.cancelled_at,
        "cancellation_reason": request.cancellation_reason,
    }


class SessionRepository:
    """
    Repository for sessions, requests and interpreter profiles.

    Reads return domain value objects; writes upsert by primary key.
    """

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Commit on success, roll back on any error."""
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryException(f"Transaction failed: {str(exc)}") from exc
        except Exception:
            self.db.rollback()
            raise

    # Reads

    def get_session(self, session_id: str) -> Optional[InterpreterSession]:
        try:
            row = self.db.get(SessionRecord, session_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve session: {str(e)}")
        return session_to_domain(row) if row is not None else None

    def get_committed_sessions(self, interpreter_id: str) -> List[InterpreterSession]:
        """CONFIRMED / IN_PROGRESS sessions of the interpreter that were not rescheduled."""
        try:
            rows = (
                self.db.query(SessionRecord)
                .filter(
                    SessionRecord.interpreter_id == interpreter_id,
                    SessionRecord.status.in_([s.value for s in COMMITTED_SESSION_STATUSES]),
                    SessionRecord.rescheduled_session_id.is_(None),
                )
                .order_by(SessionRecord.scheduled_start_time, SessionRecord.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading committed sessions for {interpreter_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve committed sessions: {str(e)}")
        return [session_to_domain(row) for row in rows]

    def get_sessions_for_client(self, client_id: str) -> List[InterpreterSession]:
        try:
            rows = (
                self.db.query(SessionRecord)
                .filter(SessionRecord.client_id == client_id)
                .order_by(SessionRecord.scheduled_start_time)
                .all()
            )
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to retrieve client sessions: {str(e)}")
        return [session_to_domain(row) for row in rows]

    def get_interpreter(self, interpreter_id: str) -> Optional[Interpreter]:
        try:
            row = self.db.get(InterpreterRecord, interpreter_id)
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to retrieve interpreter: {str(e)}")
        return interpreter_to_domain(row) if row is not None else None

    def get_request(self, request_id: str) -> Optional[ServiceRequest]:
        try:
            row = self.db.get(ServiceRequestRecord, request_id)
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to retrieve service request: {str(e)}")
        return request_to_domain(row) if row is not None else None

    # Writes

    def _upsert(self, model: Any, columns: Dict[str, Any]) -> None:
        try:
            row = self.db.get(model, columns["id"])
            if row is None:
                self.db.add(model(**columns))
            else:
                for key, value in columns.items():
                    setattr(row, key, value)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error saving {model.__name__} {columns['id']}: {str(e)}")
            raise RepositoryException(f"Failed to save {model.__name__}: {str(e)}")

    def save_session(self, session: InterpreterSession) -> None:
        self._upsert(SessionRecord, session_to_columns(session))

    def save_request(self, request: ServiceRequest) -> None:
        self._upsert(ServiceRequestRecord, request_to_columns(request))

    def save_interpreter(self, interpreter: Interpreter) -> None:
        self._upsert(InterpreterRecord, interpreter_to_columns(interpreter))

    def update_interpreter_stats(
        self,
        interpreter_id: str,
        *,
        sessions_completed_delta: int = 0,
        earnings_delta: Decimal = Decimal("0"),
        average_rating: Optional[float] = None,
        total_ratings: Optional[int] = None,
    ) -> None:
        try:
            row = self.db.get(InterpreterRecord, interpreter_id)
            if row is None:
                raise RepositoryException(f"Interpreter {interpreter_id} not found")
            row.total_sessions_completed = (row.total_sessions_completed or 0) + sessions_completed_delta
            row.total_earnings = Decimal(row.total_earnings or 0) + earnings_delta
            if average_rating is not None:
                row.average_rating = average_rating
            if total_ratings is not None:
                row.total_ratings = total_ratings
            self.db.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to update interpreter stats: {str(e)}")
