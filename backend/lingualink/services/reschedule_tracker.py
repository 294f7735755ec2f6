# backend/lingualink/services/reschedule_tracker.py
"""
Reschedule linkage for interpreter sessions.

A reschedule never edits the old session's interval. It creates a successor
session and links the two both ways:

    old.rescheduled_session_id -> new.id
    new.original_session_id    -> old.id

The old session keeps its stored status and reports ``rescheduled`` through
``effective_status``. Only the newest session of a chain can be rescheduled
again, so every chain stays linear.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
import logging
from typing import Callable, Iterable, List, Optional

from ..core.config import Settings
from ..core.enums import SessionStatus
from ..core.exceptions import (
    AlreadyRescheduled,
    InvalidTransition,
    RescheduleLimitReached,
    SchedulingConflict,
)
from ..core.ulid_helper import generate_ulid
from ..domain.models import Actor, InterpreterSession, RateStructure, TimeInterval
from .base import BaseService
from .conflict_checker import ConflictResolver
from .rate_calculator import RateCalculator

logger = logging.getLogger(__name__)

RESCHEDULABLE_STATUSES = frozenset({SessionStatus.REQUESTED, SessionStatus.CONFIRMED})


@dataclass(frozen=True)
class RescheduleResult:
    old: InterpreterSession
    new: InterpreterSession


def _append_note(existing: Optional[str], note: str) -> str:
    if not existing:
        return note
    return f"{existing}\n{note}"


class RescheduleTracker(BaseService):
    """Creates successor sessions and keeps reschedule chains consistent."""

    def __init__(
        self,
        conflict_resolver: Optional[ConflictResolver] = None,
        rate_calculator: Optional[RateCalculator] = None,
        config: Optional[Settings] = None,
        id_factory: Callable[[], str] = generate_ulid,
    ):
        super().__init__(config)
        self.conflict_resolver = conflict_resolver or ConflictResolver(config=self.config)
        self.rate_calculator = rate_calculator or RateCalculator(self.config)
        self.id_factory = id_factory

    def reschedule(
        self,
        old: InterpreterSession,
        new_interval: TimeInterval,
        actor: Actor,
        committed_sessions: Optional[Iterable[InterpreterSession]] = None,
        *,
        reason: Optional[str] = None,
        rate_structure: Optional[RateStructure] = None,
        now: Optional[datetime] = None,
    ) -> RescheduleResult:
        """
        Move a session to a new interval.

        Args:
            old: The session being rescheduled (must be the newest in its chain)
            new_interval: Proposed interval for the successor
            actor: Who asked for the change
            committed_sessions: Interpreter's committed sessions, read under lock
            reason: Free-text reason recorded in the successor's notes
            rate_structure: Interpreter rates used to recompute the cost of an
                unpaid session
            now: Timestamp for created/updated fields

        Returns:
            RescheduleResult with the linked old and new sessions

        Raises:
            AlreadyRescheduled: old already has a successor
            InvalidTransition: old is not requested/confirmed
            RescheduleLimitReached: configured limit used up
            SchedulingConflict: new interval overlaps a committed session
        """
        if old.rescheduled_session_id is not None:
            raise AlreadyRescheduled(old.id, old.rescheduled_session_id)

        if old.status not in RESCHEDULABLE_STATUSES:
            raise InvalidTransition(
                old.effective_status.value,
                "reschedule",
                entity_id=old.id,
            )

        limit = self.config.max_reschedules
        if limit is not None and old.rescheduled_count >= limit:
            raise RescheduleLimitReached(old.id, limit)

        result = self.conflict_resolver.check(
            old.interpreter_id,
            new_interval,
            exclude_session_id=old.id,
            sessions=committed_sessions,
        )
        if not result.bookable:
            raise SchedulingConflict(
                old.interpreter_id,
                result.conflicting_session_id,
                details={
                    "session_id": old.id,
                    "proposed_start": new_interval.start.isoformat(),
                    "proposed_end": new_interval.end.isoformat(),
                },
            )

        stamp = now or datetime.now(timezone.utc)
        note = f"Rescheduled by {actor.user_id}"
        if reason:
            note = f"{note}: {reason}"

        new_session = InterpreterSession(
            id=self.id_factory(),
            client_id=old.client_id,
            interpreter_id=old.interpreter_id,
            session_type=old.session_type,
            source_language=old.source_language,
            target_language=old.target_language,
            scheduled_start_time=new_interval.start,
            scheduled_end_time=new_interval.end,
            hourly_rate=old.hourly_rate,
            status=old.status,
            specialization=old.specialization,
            additional_fees=old.additional_fees,
            requirements=dict(old.requirements),
            payment_id=old.payment_id,
            is_paid=old.is_paid,
            paid_at=old.paid_at,
            original_session_id=old.id,
            rescheduled_count=old.rescheduled_count + 1,
            session_notes=_append_note(old.session_notes, note),
            created_at=stamp,
            updated_at=stamp,
        )
        if old.is_paid:
            # The payment moves with the session; its cost is final
            new_session = replace(new_session, total_cost=old.total_cost)
        else:
            cost = self.rate_calculator.compute(new_session, rate_structure)
            new_session = replace(new_session, total_cost=cost.total)

        old_session = replace(old, rescheduled_session_id=new_session.id, updated_at=stamp)

        logger.info(
            "Session rescheduled",
            extra={
                "session_id": old.id,
                "new_session_id": new_session.id,
                "interpreter_id": old.interpreter_id,
                "actor": actor.user_id,
                "rescheduled_count": new_session.rescheduled_count,
            },
        )
        return RescheduleResult(old=old_session, new=new_session)

    @staticmethod
    def chain(
        session: InterpreterSession,
        lookup: Callable[[str], Optional[InterpreterSession]],
    ) -> List[InterpreterSession]:
        """
        Walk ``original_session_id`` links back to the root.

        Returns the chain ordered root first, ending with ``session``.
        """
        chain = [session]
        seen = {session.id}
        current = session
        while current.original_session_id is not None:
            previous = lookup(current.original_session_id)
            if previous is None or previous.id in seen:
                break
            chain.append(previous)
            seen.add(previous.id)
            current = previous
        chain.reverse()
        return chain
