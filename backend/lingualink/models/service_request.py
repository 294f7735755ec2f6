"""Service request table."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func
import ulid

from ..core.enums import InterpreterSpecialization, RequestStatus, UrgencyLevel
from .base import Base


class ServiceRequestRecord(Base):
    __tablename__ = "service_requests"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    client_id = Column(String(26), nullable=False, index=True)
    interpreter_id = Column(String(26), ForeignKey("interpreters.id"), nullable=True)

    service_type = Column(String(40), nullable=False)
    source_language = Column(String(10), nullable=False)
    target_language = Column(String(10), nullable=False)
    specialization = Column(String(30), nullable=False, default=InterpreterSpecialization.GENERAL.value)
    urgency_level = Column(String(10), nullable=False, default=UrgencyLevel.NORMAL.value)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)

    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    estimated_duration = Column(Integer, nullable=True)
    word_count = Column(Integer, nullable=True)
    total_cost = Column(Numeric(10, 2), nullable=True)
    description = Column(Text, nullable=True)

    cancelled_by = Column(String(26), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
