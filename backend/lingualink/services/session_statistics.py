"""Aggregate counts over a client's or interpreter's sessions."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Iterable

from ..core.enums import SessionStatus
from ..domain.models import InterpreterSession


@dataclass(frozen=True)
class SessionStatistics:
    total: int
    completed: int
    cancelled: int
    no_show: int
    upcoming: int
    completion_rate: float
    cancellation_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _percent(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 1)


def compute_session_statistics(
    sessions: Iterable[InterpreterSession], now: datetime
) -> SessionStatistics:
    """
    Count sessions by outcome.

    Superseded sessions are skipped so a rescheduled booking is counted once,
    through its newest successor.
    """
    active = [s for s in sessions if not s.is_superseded]
    completed = sum(1 for s in active if s.status == SessionStatus.COMPLETED)
    cancelled = sum(1 for s in active if s.status == SessionStatus.CANCELLED)
    no_show = sum(1 for s in active if s.status == SessionStatus.NO_SHOW)
    upcoming = sum(1 for s in active if s.is_upcoming(now))
    total = len(active)
    return SessionStatistics(
        total=total,
        completed=completed,
        cancelled=cancelled,
        no_show=no_show,
        upcoming=upcoming,
        completion_rate=_percent(completed, total),
        cancellation_rate=_percent(cancelled, total),
    )
