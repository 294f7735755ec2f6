from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError
import pytest

from lingualink.core.config import Settings


def test_defaults():
    config = Settings(_env_file=None)
    assert config.cancellation_notice_hours == 24
    assert config.emergency_cancellation_notice_hours == 2
    assert config.max_reschedules is None
    assert config.translation_minimum_fee == Decimal("25.00")
    assert config.urgency_multipliers["urgent"] == Decimal("2.0")
    assert config.interpreter_lock_redis_url is None


def test_log_level_is_normalized():
    assert Settings(_env_file=None, log_level=" debug ").log_level == "DEBUG"


def test_urgency_multipliers_must_be_positive():
    with pytest.raises(PydanticValidationError):
        Settings(_env_file=None, urgency_multipliers={"urgent": Decimal("-1")})


def test_urgency_keys_lowercased():
    config = Settings(_env_file=None, urgency_multipliers={"URGENT": Decimal("3")})
    assert config.urgency_multipliers == {"urgent": Decimal("3")}


def test_max_reschedules_from_environment(monkeypatch):
    monkeypatch.setenv("MAX_RESCHEDULES", "3")
    assert Settings(_env_file=None).max_reschedules == 3


def test_max_reschedules_must_be_positive():
    with pytest.raises(PydanticValidationError):
        Settings(_env_file=None, max_reschedules=0)
