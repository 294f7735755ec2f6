# backend/lingualink/models/session.py
"""
Interpreter session table.

Rows are never rewritten by a reschedule: the superseded row keeps its
status and gains ``rescheduled_session_id``; the successor row points back
through ``original_session_id``.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func
import ulid

from ..core.enums import InterpreterSpecialization, SessionStatus
from .base import Base


class SessionRecord(Base):
    """Persistent form of ``InterpreterSession``."""

    __tablename__ = "interpreter_sessions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    client_id = Column(String(26), nullable=False, index=True)
    interpreter_id = Column(String(26), ForeignKey("interpreters.id"), nullable=False)

    session_type = Column(String(20), nullable=False)
    source_language = Column(String(10), nullable=False)
    target_language = Column(String(10), nullable=False)
    specialization = Column(String(30), nullable=False, default=InterpreterSpecialization.GENERAL.value)

    scheduled_start_time = Column(DateTime(timezone=True), nullable=False)
    scheduled_end_time = Column(DateTime(timezone=True), nullable=False)
    actual_start_time = Column(DateTime(timezone=True), nullable=True)
    actual_end_time = Column(DateTime(timezone=True), nullable=True)
    actual_duration = Column(Integer, nullable=True)

    status = Column(String(20), nullable=False, default=SessionStatus.REQUESTED.value, index=True)

    # Pricing
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    total_cost = Column(Numeric(10, 2), nullable=False, default=0)
    additional_fees = Column(JSON, nullable=False, default=list)
    payment_id = Column(String(255), nullable=True)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Reschedule chain
    original_session_id = Column(String(26), ForeignKey("interpreter_sessions.id"), nullable=True)
    rescheduled_session_id = Column(String(26), ForeignKey("interpreter_sessions.id"), nullable=True)
    rescheduled_count = Column(Integer, nullable=False, default=0)

    # Cancellation
    cancellation_reason = Column(Text, nullable=True)
    cancellation_category = Column(String(30), nullable=True)
    cancelled_by = Column(String(26), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Ratings, one per party
    client_rating = Column(JSON, nullable=True)
    interpreter_rating = Column(JSON, nullable=True)

    requirements = Column(JSON, nullable=False, default=dict)
    session_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_interpreter_sessions_interpreter_status", "interpreter_id", "status"),
        CheckConstraint(
            "scheduled_end_time > scheduled_start_time", name="ck_interpreter_sessions_interval"
        ),
        CheckConstraint("rescheduled_count >= 0", name="ck_interpreter_sessions_rescheduled_count"),
    )

    def __repr__(self) -> str:
        return f"<SessionRecord {self.id} {self.status} {self.scheduled_start_time}>"
