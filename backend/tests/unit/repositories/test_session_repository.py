from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest

from lingualink.core.enums import (
    CancellationReason,
    InterpreterSpecialization,
    RequestStatus,
    ServiceType,
    SessionStatus,
    SessionType,
)
from lingualink.core.exceptions import RepositoryException
from lingualink.domain.models import (
    AdditionalFee,
    Interpreter,
    RateStructure,
    ServiceRequest,
    SessionTypeRate,
)
from lingualink.repositories.session_repository import SessionRepository
from lingualink.services.effect_executor import EffectExecutor
from lingualink.services.session_lifecycle_service import SessionLifecycleService


@pytest.fixture
def repo(db, interpreter):
    repository = SessionRepository(db)
    repository.save_interpreter(interpreter)
    db.commit()
    return repository


class TestSessionRoundTrip:
    def test_session_fields_survive(self, repo, make_session, make_rating, now):
        session = make_session(
            specialization=InterpreterSpecialization.LEGAL,
            additional_fees=(AdditionalFee("travel", Decimal("12.50")),),
            requirements={"special_instructions": "emergency"},
            client_rating=make_rating(4, rated_at=now, comment="good"),
            cancellation_category=CancellationReason.OTHER,
            actual_start_time=now,
            total_cost=Decimal("62.50"),
        )
        with repo.transaction():
            repo.save_session(session)

        loaded = repo.get_session(session.id)
        assert loaded.scheduled_start_time == session.scheduled_start_time
        assert loaded.actual_start_time == now
        assert loaded.additional_fees == session.additional_fees
        assert loaded.client_rating == session.client_rating
        assert loaded.requirements == session.requirements
        assert loaded.total_cost == Decimal("62.50")
        assert loaded.specialization == InterpreterSpecialization.LEGAL
        assert loaded.cancellation_category == CancellationReason.OTHER

    def test_missing_session(self, repo):
        assert repo.get_session("NOPE") is None

    def test_save_updates_existing_row(self, repo, make_session):
        session = make_session(status=SessionStatus.REQUESTED)
        repo.save_session(session)
        repo.save_session(replace(session, status=SessionStatus.CONFIRMED))
        assert repo.get_session(session.id).status == SessionStatus.CONFIRMED


class TestCommittedSessions:
    def test_only_committed_non_superseded(self, repo, make_session):
        confirmed = make_session(start_in_hours=48)
        in_progress = make_session(start_in_hours=24, status=SessionStatus.IN_PROGRESS)
        superseded = make_session(rescheduled_session_id=confirmed.id)
        others = [
            make_session(status=SessionStatus.REQUESTED),
            make_session(status=SessionStatus.CANCELLED),
            make_session(status=SessionStatus.COMPLETED),
            make_session(interpreter_id="INT2"),
        ]
        for s in [confirmed, in_progress, superseded, *others]:
            repo.save_session(s)

        committed = repo.get_committed_sessions("INT1")
        assert [s.id for s in committed] == [in_progress.id, confirmed.id]

    def test_client_sessions(self, repo, make_session):
        repo.save_session(make_session())
        repo.save_session(make_session(client_id="CLIENT2"))
        assert len(repo.get_sessions_for_client("CLIENT1")) == 1


class TestInterpreter:
    def test_rate_structure_round_trip(self, db):
        repo = SessionRepository(db)
        profile = Interpreter(
            id="INT9",
            user_id="USER9",
            rate_structure=RateStructure(
                hourly_rate=Decimal("60.00"),
                minimum_hours=2,
                session_types={SessionType.PHONE: SessionTypeRate(Decimal("45.00"), 30)},
                specializations={InterpreterSpecialization.MEDICAL: Decimal("1.25")},
                rate_per_word=Decimal("0.12"),
            ),
        )
        repo.save_interpreter(profile)
        loaded = repo.get_interpreter("INT9")
        assert loaded.rate_structure == profile.rate_structure
        assert loaded.supported_session_types == profile.supported_session_types

    def test_stats_update(self, repo):
        repo.update_interpreter_stats(
            "INT1", sessions_completed_delta=1, earnings_delta=Decimal("100.00")
        )
        repo.update_interpreter_stats("INT1", average_rating=4.5, total_ratings=2)
        profile = repo.get_interpreter("INT1")
        assert profile.total_sessions_completed == 1
        assert profile.total_earnings == Decimal("100.00")
        assert profile.average_rating == 4.5
        assert profile.total_ratings == 2

    def test_stats_for_unknown_interpreter(self, repo):
        with pytest.raises(RepositoryException):
            repo.update_interpreter_stats("NOPE", sessions_completed_delta=1)


def test_request_round_trip(repo, now):
    request = ServiceRequest(
        id="R1",
        client_id="CLIENT1",
        service_type=ServiceType.PHONE_INTERPRETATION,
        source_language="en",
        target_language="es",
        status=RequestStatus.CONFIRMED,
        interpreter_id="INT1",
        scheduled_at=now + timedelta(days=1),
        estimated_duration=45,
        total_cost=Decimal("50.00"),
    )
    repo.save_request(request)
    loaded = repo.get_request("R1")
    assert loaded.scheduled_at == request.scheduled_at
    assert loaded.total_cost == Decimal("50.00")
    assert loaded.status == RequestStatus.CONFIRMED


def test_lifecycle_service_on_sqlalchemy(repo, db, test_config, now, make_session, client_actor):
    old = make_session()
    repo.save_session(old)
    db.commit()
    service = SessionLifecycleService(
        repo, config=test_config, effect_executor=EffectExecutor(repo), clock=lambda: now
    )

    with repo.transaction():
        result = service.reschedule(
            old.id,
            {"new_start_time": (old.scheduled_start_time + timedelta(days=1)).isoformat()},
            client_actor,
        )

    assert repo.get_session(old.id).rescheduled_session_id == result.entity.id
    assert [s.id for s in repo.get_committed_sessions("INT1")] == [result.entity.id]
