from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from lingualink.core.enums import RequestStatus, ServiceType
from lingualink.domain.effects import (
    InvalidateInvoiceDraft,
    NotifyParties,
    PersistEntity,
    RecomputeInterpreterStats,
    TransitionResult,
)
from lingualink.domain.models import ServiceRequest
from lingualink.services.effect_executor import EffectExecutor


def test_persists_and_updates_stats(store, make_session):
    session = make_session()
    executor = EffectExecutor(store)
    executor.execute(
        TransitionResult(
            entity=session,
            effects=(
                PersistEntity(session),
                RecomputeInterpreterStats(
                    "INT1", sessions_completed_delta=1, earnings_delta=Decimal("75.00")
                ),
                RecomputeInterpreterStats("INT1", average_rating=4.5, total_ratings=2),
            ),
        )
    )
    assert store.get_session(session.id) == session
    profile = store.get_interpreter("INT1")
    assert profile.total_sessions_completed == 1
    assert profile.total_earnings == Decimal("75.00")
    assert profile.average_rating == 4.5
    assert profile.total_ratings == 2


def test_persists_requests(store):
    request = ServiceRequest(
        id="R1",
        client_id="CLIENT1",
        service_type=ServiceType.TRANSLATION,
        source_language="en",
        target_language="de",
        status=RequestStatus.CONFIRMED,
    )
    EffectExecutor(store).execute_all([PersistEntity(request)])
    assert store.get_request("R1") == request


def test_outbound_effects_go_to_sinks(store):
    notify = MagicMock()
    invalidate = MagicMock()
    executor = EffectExecutor(store, notify=notify, invalidate_invoice=invalidate)
    notification = NotifyParties("session.cancelled", {"session_id": "S1"})
    invalidation = InvalidateInvoiceDraft("S1", "cancelled")

    executor.execute_all([notification, invalidation])

    notify.assert_called_once_with(notification)
    invalidate.assert_called_once_with(invalidation)


def test_default_sinks_log(store, caplog):
    with caplog.at_level("INFO", logger="lingualink.services.effect_executor"):
        EffectExecutor(store).execute_all(
            [NotifyParties("session.confirmed"), InvalidateInvoiceDraft("S1", "rescheduled")]
        )
    assert "session.confirmed" in caplog.text
    assert "rescheduled" in caplog.text


def test_unknown_effect_rejected(store):
    with pytest.raises(TypeError):
        EffectExecutor(store).execute_all([object()])
