from lingualink.core.enums import SessionStatus
from lingualink.services.session_statistics import compute_session_statistics


def test_counts_and_rates(make_session, now):
    sessions = [
        make_session(status=SessionStatus.COMPLETED, start_in_hours=-48),
        make_session(status=SessionStatus.CANCELLED),
        make_session(status=SessionStatus.NO_SHOW, start_in_hours=-24),
        make_session(status=SessionStatus.CONFIRMED, start_in_hours=24),
        # superseded by the confirmed session above; counted once
        make_session(status=SessionStatus.CONFIRMED, rescheduled_session_id="S004"),
    ]
    stats = compute_session_statistics(sessions, now)

    assert stats.total == 4
    assert stats.completed == 1
    assert stats.cancelled == 1
    assert stats.no_show == 1
    assert stats.upcoming == 1
    assert stats.completion_rate == 25.0
    assert stats.cancellation_rate == 25.0


def test_rates_rounded_to_one_decimal(make_session, now):
    sessions = [
        make_session(status=SessionStatus.COMPLETED),
        make_session(status=SessionStatus.REQUESTED),
        make_session(status=SessionStatus.REQUESTED, start_in_hours=-1),
    ]
    stats = compute_session_statistics(sessions, now)
    assert stats.completion_rate == 33.3
    assert stats.upcoming == 1


def test_empty(now):
    stats = compute_session_statistics([], now)
    assert stats.to_dict() == {
        "total": 0,
        "completed": 0,
        "cancelled": 0,
        "no_show": 0,
        "upcoming": 0,
        "completion_rate": 0.0,
        "cancellation_rate": 0.0,
    }
