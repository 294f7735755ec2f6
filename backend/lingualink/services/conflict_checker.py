# backend/lingualink/services/conflict_checker.py
"""
Conflict Checker Service for the LinguaLink lifecycle engine.

Decides whether a proposed interval can be booked for an interpreter.

- Intervals are half-open, so back-to-back sessions never conflict
- Only committed sessions (CONFIRMED / IN_PROGRESS, not superseded by a
  reschedule) take part; cancelled and no-show sessions free their slot
- When several sessions conflict, the earliest-starting one is reported
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, List, Optional, Sequence

from ..core.config import Settings
from ..domain.models import InterpreterSession, TimeInterval
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.read_model import SessionReadModel
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConflictCheckResult:
    """Bookable, or the conflicting session that blocks the slot."""

    bookable: bool
    conflicting_session_id: Optional[str] = None
    conflicting_interval: Optional[TimeInterval] = None

    @classmethod
    def ok(cls) -> "ConflictCheckResult":
        return cls(bookable=True)

    @classmethod
    def conflict(cls, session: InterpreterSession) -> "ConflictCheckResult":
        return cls(
            bookable=False,
            conflicting_session_id=session.id,
            conflicting_interval=session.scheduled_interval,
        )


def active_sessions(sessions: Iterable[InterpreterSession]) -> List[InterpreterSession]:
    """Drop sessions that were superseded by a reschedule."""
    return [s for s in sessions if not s.is_superseded]


class ConflictResolver(BaseService):
    """
    Service for checking interpreter booking conflicts.

    Works against an injected read model, or against an explicit snapshot of
    sessions handed in by the caller (the lifecycle state machine passes the
    snapshot it was given so it never performs I/O itself).
    """

    def __init__(
        self,
        read_model: Optional[SessionReadModel] = None,
        config: Optional[Settings] = None,
    ):
        super().__init__(config)
        self.read_model = read_model

    def _candidates(
        self, interpreter_id: str, sessions: Optional[Iterable[InterpreterSession]]
    ) -> Sequence[InterpreterSession]:
        if sessions is not None:
            return list(sessions)
        if self.read_model is None:
            raise RuntimeError("ConflictResolver needs a read model or an explicit session snapshot")
        return self.read_model.get_committed_sessions(interpreter_id)

    def find_conflicts(
        self,
        interpreter_id: str,
        proposed: TimeInterval,
        exclude_session_id: Optional[str] = None,
        sessions: Optional[Iterable[InterpreterSession]] = None,
    ) -> List[InterpreterSession]:
        """
        All committed sessions of the interpreter overlapping ``proposed``.

        Ordered by start time, then id, so the first entry is the one
        ``check`` reports.
        """
        conflicts = [
            s
            for s in self._candidates(interpreter_id, sessions)
            if s.interpreter_id == interpreter_id
            and s.is_committed
            and s.id != exclude_session_id
            and s.scheduled_interval.overlaps(proposed)
        ]
        conflicts.sort(key=lambda s: (s.scheduled_start_time, s.id))
        return conflicts

    def check(
        self,
        interpreter_id: str,
        proposed: TimeInterval,
        exclude_session_id: Optional[str] = None,
        sessions: Optional[Iterable[InterpreterSession]] = None,
    ) -> ConflictCheckResult:
        """
        Check if ``proposed`` can be booked for the interpreter.

        Args:
            interpreter_id: The interpreter whose committed sessions are checked
            proposed: The half-open interval to book
            exclude_session_id: Session to ignore (the one being replaced)
            sessions: Optional snapshot to check against instead of the read model

        Returns:
            ConflictCheckResult.ok(), or the earliest-starting conflict
        """
        conflicts = self.find_conflicts(interpreter_id, proposed, exclude_session_id, sessions)
        if not conflicts:
            return ConflictCheckResult.ok()

        prometheus_metrics.record_scheduling_conflict()
        logger.warning(
            "Found %d conflicting sessions for interpreter %s between %s and %s",
            len(conflicts),
            interpreter_id,
            proposed.start.isoformat(),
            proposed.end.isoformat(),
        )
        return ConflictCheckResult.conflict(conflicts[0])
