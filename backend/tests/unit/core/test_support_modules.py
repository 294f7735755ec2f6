import logging

from lingualink.core.logging_config import LOG_FORMAT, configure_logging
from lingualink.core.ulid_helper import generate_ulid, is_valid_ulid, parse_ulid
from lingualink.monitoring.prometheus_metrics import prometheus_metrics


def test_generated_ulids_are_valid_and_unique():
    first, second = generate_ulid(), generate_ulid()
    assert first != second
    assert is_valid_ulid(first)
    assert parse_ulid(first) is not None


def test_invalid_ulid():
    assert not is_valid_ulid("not-a-ulid")
    assert parse_ulid("") is None


def test_configure_logging_sets_root_level(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
    configure_logging("debug")
    assert calls == {"level": "DEBUG", "format": LOG_FORMAT}


def test_metrics_exposition():
    prometheus_metrics.record_scheduling_conflict()
    prometheus_metrics.record_interpreter_lock("acquire", "local")
    body = prometheus_metrics.get_metrics().decode()
    assert "lingualink_scheduling_conflicts_total" in body
    assert "lingualink_interpreter_lock_total" in body
    assert prometheus_metrics.get_content_type().startswith("text/plain")
