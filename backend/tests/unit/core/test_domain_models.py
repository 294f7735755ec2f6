from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from lingualink.core.enums import SessionStatus
from lingualink.core.exceptions import ErrorCode, ValidationError
from lingualink.domain.models import SessionRating, TimeInterval, minutes_between


class TestTimeInterval:
    def test_end_must_follow_start(self, now):
        with pytest.raises(ValidationError):
            TimeInterval(now, now)

    def test_mixed_timezones_rejected(self, now):
        with pytest.raises(ValidationError):
            TimeInterval(now, datetime(2025, 6, 2, 10, 0))

    def test_from_duration(self, now):
        interval = TimeInterval.from_duration(now, 90)
        assert interval.end == now + timedelta(minutes=90)
        assert interval.duration_minutes == 90

    def test_from_non_positive_duration(self, now):
        with pytest.raises(ValidationError) as exc:
            TimeInterval.from_duration(now, 0)
        assert exc.value.code == ErrorCode.VAL_VALUE_TOO_SMALL

    def test_back_to_back_do_not_overlap(self, now):
        first = TimeInterval.from_duration(now, 60)
        second = TimeInterval.from_duration(first.end, 60)
        assert not first.overlaps(second)
        assert not second.overlaps(first)

    def test_containment_overlaps(self, now):
        outer = TimeInterval.from_duration(now, 120)
        inner = TimeInterval.from_duration(now + timedelta(minutes=30), 30)
        assert outer.overlaps(inner)
        assert inner.overlaps(outer)


class TestSessionRating:
    @pytest.mark.parametrize(
        "value,code",
        [(0, ErrorCode.VAL_VALUE_TOO_SMALL), (6, ErrorCode.VAL_VALUE_TOO_LARGE)],
    )
    def test_bounds(self, make_rating, value, code):
        with pytest.raises(ValidationError) as exc:
            make_rating(value)
        assert exc.value.code == code

    def test_bool_is_not_a_score(self):
        with pytest.raises(ValidationError):
            SessionRating(True, 5, 5, 5, 5)


class TestSessionDerivedState:
    def test_superseded_session_reports_rescheduled(self, make_session):
        session = make_session(rescheduled_session_id="S999")
        assert session.status == SessionStatus.CONFIRMED
        assert session.effective_status == SessionStatus.RESCHEDULED
        assert session.is_terminal
        assert not session.is_committed
        assert not session.needs_payment

    def test_is_active(self, make_session):
        assert make_session(status=SessionStatus.IN_PROGRESS).is_active
        assert not make_session(status=SessionStatus.IN_PROGRESS, rescheduled_session_id="S9").is_active
        assert not make_session().is_active

    def test_needs_payment(self, make_session):
        session = make_session(status=SessionStatus.COMPLETED)
        assert session.needs_payment
        assert not replace(session, is_paid=True).needs_payment

    def test_is_upcoming(self, make_session, now):
        session = make_session(start_in_hours=2)
        assert session.is_upcoming(now)
        assert not session.is_upcoming(now + timedelta(hours=3))
        assert not replace(session, status=SessionStatus.CANCELLED).is_upcoming(now)

    def test_scheduled_end_must_follow_start(self, make_session):
        session = make_session()
        with pytest.raises(ValidationError):
            replace(session, scheduled_end_time=session.scheduled_start_time)


def test_minutes_between_rounds_half_up():
    start = datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc)
    assert minutes_between(start, start + timedelta(minutes=59, seconds=30)) == 60
    assert minutes_between(start, start + timedelta(minutes=59, seconds=29)) == 59
