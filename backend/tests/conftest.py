"""Shared fixtures for the lifecycle engine test suite."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
import itertools

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from lingualink.core.config import Settings
from lingualink.core.enums import (
    ActorRole,
    InterpreterSpecialization,
    InterpreterStatus,
    SessionStatus,
    SessionType,
)
from lingualink.domain.models import (
    Actor,
    Interpreter,
    InterpreterSession,
    RateStructure,
    SessionRating,
)
from lingualink.models import Base
from lingualink.repositories.read_model import InMemorySessionStore

FIXED_NOW = datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc)
INTERPRETER_ID = "INT1"
INTERPRETER_USER_ID = "USER_INT1"
CLIENT_ID = "CLIENT1"


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def test_config() -> Settings:
    return Settings(
        interpreter_lock_redis_url=None,
        interpreter_lock_wait_seconds=0.05,
        max_reschedules=None,
    )


@pytest.fixture
def rate_structure() -> RateStructure:
    return RateStructure(
        hourly_rate=Decimal("50.00"),
        minimum_hours=1,
        specializations={InterpreterSpecialization.LEGAL: Decimal("1.5")},
        rate_per_word=Decimal("0.10"),
    )


@pytest.fixture
def interpreter(rate_structure) -> Interpreter:
    return Interpreter(
        id=INTERPRETER_ID,
        user_id=INTERPRETER_USER_ID,
        rate_structure=rate_structure,
        status=InterpreterStatus.ACTIVE,
        languages=("en", "es"),
        specializations=(InterpreterSpecialization.GENERAL, InterpreterSpecialization.LEGAL),
        supported_session_types=(SessionType.PHONE, SessionType.VIDEO),
    )


@pytest.fixture
def make_session(now):
    """Factory for sessions starting ``start_in_hours`` after the fixed clock."""
    counter = itertools.count(1)

    def _make(
        start_in_hours: float = 48,
        duration_minutes: int = 60,
        status: SessionStatus = SessionStatus.CONFIRMED,
        **overrides,
    ) -> InterpreterSession:
        start = now + timedelta(hours=start_in_hours)
        fields = {
            "id": f"S{next(counter):03d}",
            "client_id": CLIENT_ID,
            "interpreter_id": INTERPRETER_ID,
            "session_type": SessionType.VIDEO,
            "source_language": "en",
            "target_language": "es",
            "scheduled_start_time": start,
            "scheduled_end_time": start + timedelta(minutes=duration_minutes),
            "hourly_rate": Decimal("50.00"),
            "status": status,
            "created_at": now,
        }
        fields.update(overrides)
        return InterpreterSession(**fields)

    return _make


@pytest.fixture
def make_rating():
    def _make(overall: int = 5, **overrides) -> SessionRating:
        fields = {
            "overall": overall,
            "punctuality": 5,
            "professionalism": 5,
            "accuracy": 4,
            "communication": 5,
        }
        fields.update(overrides)
        return SessionRating(**fields)

    return _make


@pytest.fixture
def client_actor() -> Actor:
    return Actor(user_id=CLIENT_ID, role=ActorRole.CLIENT)


@pytest.fixture
def interpreter_actor() -> Actor:
    return Actor(user_id=INTERPRETER_USER_ID, role=ActorRole.INTERPRETER, interpreter_id=INTERPRETER_ID)


@pytest.fixture
def admin_actor() -> Actor:
    return Actor(user_id="ADMIN1", role=ActorRole.ADMIN)


@pytest.fixture
def stranger_actor() -> Actor:
    return Actor(user_id="SOMEONE_ELSE", role=ActorRole.CLIENT)


@pytest.fixture
def store(interpreter) -> InMemorySessionStore:
    return InMemorySessionStore(interpreters=[interpreter])


@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
