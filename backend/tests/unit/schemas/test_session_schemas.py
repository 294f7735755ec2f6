from datetime import timedelta

import pytest

from lingualink.core.enums import CancellationReason
from lingualink.core.exceptions import ErrorCode, ValidationError
from lingualink.schemas.session import (
    CancellationPayload,
    RatingPayload,
    ReschedulePayload,
    parse_payload,
)


class TestRatingPayload:
    def test_to_domain(self, now):
        payload = parse_payload(
            RatingPayload,
            {
                "overall": 5,
                "punctuality": 4,
                "professionalism": 5,
                "accuracy": 3,
                "communication": 4,
                "comment": "   ",
            },
        )
        rating = payload.to_domain(rated_at=now)
        assert rating.overall == 5
        assert rating.accuracy == 3
        assert rating.comment is None
        assert rating.rated_at == now

    def test_comment_length_limit(self):
        with pytest.raises(ValidationError):
            parse_payload(
                RatingPayload,
                {
                    "overall": 5,
                    "punctuality": 5,
                    "professionalism": 5,
                    "accuracy": 5,
                    "communication": 5,
                    "comment": "x" * 1001,
                },
            )

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_payload(
                RatingPayload,
                {
                    "overall": 5,
                    "punctuality": 5,
                    "professionalism": 5,
                    "accuracy": 5,
                    "communication": 5,
                    "stars": 5,
                },
            )
        assert exc.value.code == ErrorCode.VAL_INVALID_INPUT
        assert exc.value.details["errors"][0]["field"] == "stars"

    def test_instance_passes_through(self):
        payload = RatingPayload(
            overall=1, punctuality=1, professionalism=1, accuracy=1, communication=1
        )
        assert parse_payload(RatingPayload, payload) is payload


class TestCancellationPayload:
    def test_category_parsed(self):
        payload = parse_payload(
            CancellationPayload, {"category": "technical_issues", "reason": " audio failed "}
        )
        assert payload.category == CancellationReason.TECHNICAL_ISSUES
        assert payload.reason == "audio failed"

    def test_unknown_category(self):
        with pytest.raises(ValidationError):
            parse_payload(CancellationPayload, {"category": "bored"})


class TestReschedulePayload:
    def test_defaults_to_current_duration(self, make_session):
        session = make_session(duration_minutes=75)
        new_start = session.scheduled_start_time + timedelta(days=1)
        interval = ReschedulePayload(new_start_time=new_start).interval_for(session)
        assert interval.start == new_start
        assert interval.duration_minutes == 75

    def test_explicit_duration(self, make_session):
        session = make_session()
        new_start = session.scheduled_start_time + timedelta(days=1)
        interval = ReschedulePayload(new_start_time=new_start, new_duration=120).interval_for(session)
        assert interval.end == new_start + timedelta(minutes=120)

    @pytest.mark.parametrize("duration", [0, -15])
    def test_non_positive_duration(self, now, duration):
        with pytest.raises(ValidationError):
            parse_payload(ReschedulePayload, {"new_start_time": now, "new_duration": duration})

    def test_missing_start(self):
        with pytest.raises(ValidationError) as exc:
            parse_payload(ReschedulePayload, {"reason": "later"})
        assert exc.value.code == ErrorCode.VAL_MISSING_REQUIRED_FIELD
