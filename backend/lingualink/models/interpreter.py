"""Interpreter profile table: rates plus running statistics."""

from sqlalchemy import JSON, Column, DateTime, Float, Integer, Numeric, String
from sqlalchemy.sql import func
import ulid

from ..core.enums import AvailabilityStatus, InterpreterStatus
from .base import Base


class InterpreterRecord(Base):
    __tablename__ = "interpreters"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=InterpreterStatus.PENDING_APPROVAL.value)
    current_availability_status = Column(
        String(20), nullable=False, default=AvailabilityStatus.OFFLINE.value
    )

    languages = Column(JSON, nullable=False, default=list)
    specializations = Column(JSON, nullable=False, default=list)
    supported_session_types = Column(JSON, nullable=False, default=list)

    # Rate structure
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    minimum_hours = Column(Integer, nullable=False, default=1)
    rate_per_word = Column(Numeric(10, 4), nullable=True)
    session_type_rates = Column(JSON, nullable=False, default=dict)
    specialization_multipliers = Column(JSON, nullable=False, default=dict)

    # Running statistics
    total_sessions_completed = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0.0)
    total_ratings = Column(Integer, nullable=False, default=0)
    total_earnings = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
