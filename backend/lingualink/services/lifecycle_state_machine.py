# backend/lingualink/services/lifecycle_state_machine.py
"""
Lifecycle state machine for interpreter sessions and service requests.

Every status change goes through ``apply``. It takes the current entity,
the proposed action, the actor and a context snapshot, and returns the new
entity plus the effects the caller must execute. It performs no I/O: the
committed sessions it checks for conflicts and the interpreter profile it
prices against are handed in through ``TransitionContext``.

Session flow:
    requested -> confirmed -> in_progress -> completed
    exits: cancelled (any non-terminal), no_show (from confirmed),
           rescheduled (derived, see RescheduleTracker)

Request flow:
    pending -> confirmed -> in_progress -> completed
    exits: cancelled (any non-terminal), rejected (from pending)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from ..core.config import Settings
from ..core.enums import (
    SERVICE_TYPE_TO_SESSION_TYPE,
    ActorRole,
    CancellationReason,
    InterpreterStatus,
    RequestAction,
    RequestStatus,
    SessionAction,
    SessionStatus,
    SessionType,
)
from ..core.exceptions import (
    DuplicateRating,
    ErrorCode,
    InterpreterUnavailable,
    InvalidTransition,
    OperationNotAllowed,
    SchedulingConflict,
    ValidationError,
)
from ..domain.effects import (
    Effect,
    Entity,
    InvalidateInvoiceDraft,
    NotifyParties,
    PersistEntity,
    RecomputeInterpreterStats,
    TransitionResult,
)
from ..domain.models import (
    Actor,
    Interpreter,
    InterpreterSession,
    ServiceRequest,
    SessionRating,
    TimeInterval,
    minutes_between,
)
from ..monitoring.prometheus_metrics import prometheus_metrics
from .base import BaseService
from .conflict_checker import ConflictResolver
from .rate_calculator import RateCalculator
from .rating_aggregator import RatingAggregator
from .reschedule_tracker import RescheduleTracker

logger = logging.getLogger(__name__)

SESSION_TRANSITIONS: Dict[tuple, SessionStatus] = {
    (SessionStatus.REQUESTED, SessionAction.CONFIRM): SessionStatus.CONFIRMED,
    (SessionStatus.CONFIRMED, SessionAction.START): SessionStatus.IN_PROGRESS,
    (SessionStatus.IN_PROGRESS, SessionAction.COMPLETE): SessionStatus.COMPLETED,
    (SessionStatus.CONFIRMED, SessionAction.MARK_NO_SHOW): SessionStatus.NO_SHOW,
    (SessionStatus.REQUESTED, SessionAction.CANCEL): SessionStatus.CANCELLED,
    (SessionStatus.CONFIRMED, SessionAction.CANCEL): SessionStatus.CANCELLED,
    (SessionStatus.IN_PROGRESS, SessionAction.CANCEL): SessionStatus.CANCELLED,
}

# Only the assigned interpreter (or an admin/system actor) drives a session forward
INTERPRETER_ACTIONS = frozenset(
    {SessionAction.CONFIRM, SessionAction.START, SessionAction.COMPLETE}
)

REQUEST_TRANSITIONS: Dict[tuple, RequestStatus] = {
    (RequestStatus.PENDING, RequestAction.CONFIRM): RequestStatus.CONFIRMED,
    (RequestStatus.CONFIRMED, RequestAction.START): RequestStatus.IN_PROGRESS,
    (RequestStatus.IN_PROGRESS, RequestAction.COMPLETE): RequestStatus.COMPLETED,
    (RequestStatus.PENDING, RequestAction.REJECT): RequestStatus.REJECTED,
    (RequestStatus.PENDING, RequestAction.CANCEL): RequestStatus.CANCELLED,
    (RequestStatus.CONFIRMED, RequestAction.CANCEL): RequestStatus.CANCELLED,
    (RequestStatus.IN_PROGRESS, RequestAction.CANCEL): RequestStatus.CANCELLED,
}


@dataclass(frozen=True)
class TransitionContext:
    """Snapshot of everything a transition may consult besides the entity itself."""

    now: Optional[datetime] = None
    interpreter: Optional[Interpreter] = None
    committed_sessions: Optional[Sequence[InterpreterSession]] = None
    cancellation_category: Optional[CancellationReason] = None
    cancellation_reason: Optional[str] = None
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None

    def resolved_now(self) -> datetime:
        return self.now or datetime.now(timezone.utc)


def _coerce_action(action: Union[str, SessionAction, RequestAction], enum_cls: type) -> Any:
    if isinstance(action, enum_cls):
        return action
    try:
        return enum_cls(getattr(action, "value", action))
    except ValueError as exc:
        raise ValidationError(
            f"Unknown action: {action}",
            code=ErrorCode.VAL_INVALID_INPUT,
            details={"action": str(action), "allowed": [a.value for a in enum_cls]},
        ) from exc


def _is_emergency(session: InterpreterSession) -> bool:
    return "emergency" in session.requirements.get("special_instructions", "").lower()


class LifecycleStateMachine(BaseService):
    """Validates status changes and computes their effects."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        conflict_resolver: Optional[ConflictResolver] = None,
        rate_calculator: Optional[RateCalculator] = None,
        rating_aggregator: Optional[RatingAggregator] = None,
        reschedule_tracker: Optional[RescheduleTracker] = None,
    ):
        super().__init__(config)
        self.conflict_resolver = conflict_resolver or ConflictResolver(config=self.config)
        self.rate_calculator = rate_calculator or RateCalculator(self.config)
        self.rating_aggregator = rating_aggregator or RatingAggregator()
        self.reschedule_tracker = reschedule_tracker or RescheduleTracker(
            conflict_resolver=self.conflict_resolver,
            rate_calculator=self.rate_calculator,
            config=self.config,
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def apply(
        self,
        entity: Entity,
        action: Union[str, SessionAction, RequestAction],
        actor: Actor,
        context: Optional[TransitionContext] = None,
    ) -> TransitionResult:
        """
        Apply ``action`` to a session or request.

        Raises:
            InvalidTransition: action not legal from the current status
            SchedulingConflict: confirm overlaps a committed session
            InterpreterUnavailable: interpreter profile cannot take the session
            ValidationError: missing or malformed context for the action
        """
        context = context or TransitionContext()
        if isinstance(entity, InterpreterSession):
            return self.apply_session(
                entity, _coerce_action(action, SessionAction), actor, context
            )
        if isinstance(entity, ServiceRequest):
            return self.apply_request(
                entity, _coerce_action(action, RequestAction), actor, context
            )
        raise ValidationError(
            f"Unsupported entity type: {type(entity).__name__}",
            code=ErrorCode.VAL_INVALID_INPUT,
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def apply_session(
        self,
        session: InterpreterSession,
        action: SessionAction,
        actor: Actor,
        context: TransitionContext,
    ) -> TransitionResult:
        current = session.effective_status
        target = SESSION_TRANSITIONS.get((current, action))
        if target is None:
            logger.warning(
                "Rejected session transition",
                extra={
                    "session_id": session.id,
                    "current_status": current.value,
                    "action": action.value,
                    "actor": actor.user_id,
                },
            )
            raise InvalidTransition(
                current.value,
                action.value,
                entity_id=session.id,
                code=self._invalid_session_code(current, action),
            )

        if action in INTERPRETER_ACTIONS:
            self._ensure_assigned_interpreter(session, actor)
        else:
            self._ensure_party(session, actor, allow_admin=True)

        now = context.resolved_now()
        handler = {
            SessionAction.CONFIRM: self._confirm_session,
            SessionAction.START: self._start_session,
            SessionAction.COMPLETE: self._complete_session,
            SessionAction.CANCEL: self._cancel_session,
            SessionAction.MARK_NO_SHOW: self._mark_no_show,
        }[action]
        updated, effects = handler(session, actor, context, now)

        self._log_transition("session", session.id, current.value, target.value, actor, session.interpreter_id)
        return TransitionResult(entity=updated, effects=tuple(effects))

    @staticmethod
    def _invalid_session_code(current: SessionStatus, action: SessionAction) -> str:
        if current == SessionStatus.COMPLETED:
            return ErrorCode.SES_ALREADY_COMPLETED
        if current == SessionStatus.IN_PROGRESS and action in (
            SessionAction.START,
            SessionAction.CONFIRM,
        ):
            return ErrorCode.SES_ALREADY_STARTED
        return ErrorCode.REQ_INVALID_STATE

    def _ensure_interpreter_can_take(
        self, interpreter: Optional[Interpreter], interpreter_id: str, session_type: Optional[SessionType]
    ) -> None:
        if interpreter is None:
            return
        if interpreter.status != InterpreterStatus.ACTIVE:
            raise InterpreterUnavailable(interpreter_id, f"interpreter is {interpreter.status.value}")
        if session_type is not None and session_type not in interpreter.supported_session_types:
            raise InterpreterUnavailable(
                interpreter_id, f"{session_type.value} sessions are not supported"
            )

    def _ensure_bookable(
        self,
        interpreter_id: str,
        interval: TimeInterval,
        context: TransitionContext,
        exclude_session_id: Optional[str] = None,
    ) -> None:
        result = self.conflict_resolver.check(
            interpreter_id,
            interval,
            exclude_session_id=exclude_session_id,
            sessions=context.committed_sessions,
        )
        if not result.bookable:
            raise SchedulingConflict(
                interpreter_id,
                result.conflicting_session_id,
                details={
                    "proposed_start": interval.start.isoformat(),
                    "proposed_end": interval.end.isoformat(),
                },
            )

    def _confirm_session(
        self,
        session: InterpreterSession,
        actor: Actor,
        context: TransitionContext,
        now: datetime,
    ) -> tuple:
        self._ensure_interpreter_can_take(
            context.interpreter, session.interpreter_id, session.session_type
        )
        self._ensure_bookable(
            session.interpreter_id,
            session.scheduled_interval,
            context,
            exclude_session_id=session.id,
        )

        total_cost = session.total_cost
        if not session.is_paid:
            rate_structure = context.interpreter.rate_structure if context.interpreter else None
            total_cost = self.rate_calculator.compute(session, rate_structure).total

        updated = replace(
            session, status=SessionStatus.CONFIRMED, total_cost=total_cost, updated_at=now
        )
        effects: List[Effect] = [
            PersistEntity(updated),
            NotifyParties(
                "session.confirmed",
                {
                    "session_id": session.id,
                    "client_id": session.client_id,
                    "interpreter_id": session.interpreter_id,
                    "scheduled_start_time": session.scheduled_start_time.isoformat(),
                    "total_cost": str(total_cost),
                },
            ),
        ]
        if total_cost != session.total_cost and session.total_cost:
            effects.append(InvalidateInvoiceDraft(session.id, "cost_recomputed"))
        return updated, effects

    def _start_session(
        self,
        session: InterpreterSession,
        actor: Actor,
        context: TransitionContext,
        now: datetime,
    ) -> tuple:
        started_at = session.actual_start_time or context.actual_start_time or now
        updated = replace(
            session,
            status=SessionStatus.IN_PROGRESS,
            actual_start_time=started_at,
            updated_at=now,
        )
        return updated, [
            PersistEntity(updated),
            NotifyParties(
                "session.started",
                {
                    "session_id": session.id,
                    "client_id": session.client_id,
                    "interpreter_id": session.interpreter_id,
                    "actual_start_time": started_at.isoformat(),
                },
            ),
        ]

    def _complete_session(
        self,
        session: InterpreterSession,
        actor: Actor,
        context: TransitionContext,
        now: datetime,
    ) -> tuple:
        started_at = session.actual_start_time or session.scheduled_start_time
        ended_at = context.actual_end_time or session.actual_end_time or now
        duration = session.actual_duration
        if duration is None:
            duration = minutes_between(started_at, ended_at)
        if duration < 0:
            raise ValidationError(
                "Session cannot end before it started",
                code=ErrorCode.VAL_VALUE_TOO_SMALL,
                details={
                    "actual_start_time": started_at.isoformat(),
                    "actual_end_time": ended_at.isoformat(),
                },
            )

        updated = replace(
            session,
            status=SessionStatus.COMPLETED,
            actual_start_time=started_at,
            actual_end_time=ended_at,
            actual_duration=duration,
            updated_at=now,
        )
        # Cost fixed at confirmation is final; only a never-priced session is priced here
        if not session.is_paid and not session.total_cost:
            rate_structure = context.interpreter.rate_structure if context.interpreter else None
            updated = replace(
                updated, total_cost=self.rate_calculator.compute(updated, rate_structure).total
            )

        effects: List[Effect] = [
            PersistEntity(updated),
            RecomputeInterpreterStats(
                session.interpreter_id,
                sessions_completed_delta=1,
                earnings_delta=updated.total_cost,
            ),
            NotifyParties(
                "session.completed",
                {
                    "session_id": session.id,
                    "client_id": session.client_id,
                    "interpreter_id": session.interpreter_id,
                    "actual_duration": duration,
                    "total_cost": str(updated.total_cost),
                },
            ),
        ]
        return updated, effects

    def _cancel_session(
        self,
        session: InterpreterSession,
        actor: Actor,
        context: TransitionContext,
        now: datetime,
    ) -> tuple:
        category = self._require_cancellation_category(context)
        notice_hours = (
            self.config.emergency_cancellation_notice_hours
            if _is_emergency(session)
            else self.config.cancellation_notice_hours
        )
        late = session.scheduled_start_time - now < timedelta(hours=notice_hours)

        updated = replace(
            session,
            status=SessionStatus.CANCELLED,
            cancellation_category=category,
            cancellation_reason=context.cancellation_reason or category.value,
            cancelled_by=actor.user_id,
            cancelled_at=now,
            updated_at=now,
        )
        return updated, [
            PersistEntity(updated),
            NotifyParties(
                "session.cancelled",
                {
                    "session_id": session.id,
                    "client_id": session.client_id,
                    "interpreter_id": session.interpreter_id,
                    "cancelled_by": actor.user_id,
                    "cancellation_category": category.value,
                    "cancellation_reason": updated.cancellation_reason,
                    "late_cancellation": late,
                },
            ),
            InvalidateInvoiceDraft(session.id, "cancelled"),
        ]

    def _mark_no_show(
        self,
        session: InterpreterSession,
        actor: Actor,
        context: TransitionContext,
        now: datetime,
    ) -> tuple:
        updated = replace(session, status=SessionStatus.NO_SHOW, updated_at=now)
        return updated, [
            PersistEntity(updated),
            NotifyParties(
                "session.no_show",
                {
                    "session_id": session.id,
                    "client_id": session.client_id,
                    "interpreter_id": session.interpreter_id,
                    "reported_by": actor.user_id,
                },
            ),
        ]

    @staticmethod
    def _require_cancellation_category(context: TransitionContext) -> CancellationReason:
        if context.cancellation_category is None:
            raise ValidationError(
                "A cancellation category is required",
                code=ErrorCode.VAL_MISSING_REQUIRED_FIELD,
                details={
                    "field": "cancellation_category",
                    "allowed": [c.value for c in CancellationReason],
                },
            )
        if isinstance(context.cancellation_category, CancellationReason):
            return context.cancellation_category
        try:
            return CancellationReason(context.cancellation_category)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown cancellation category: {context.cancellation_category}",
                code=ErrorCode.VAL_INVALID_INPUT,
                details={"field": "cancellation_category"},
            ) from exc

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def apply_request(
        self,
        request: ServiceRequest,
        action: RequestAction,
        actor: Actor,
        context: TransitionContext,
    ) -> TransitionResult:
        current = request.status
        target = REQUEST_TRANSITIONS.get((current, action))
        if target is None:
            logger.warning(
                "Rejected request transition",
                extra={
                    "request_id": request.id,
                    "current_status": current.value,
                    "action": action.value,
                    "actor": actor.user_id,
                },
            )
            raise InvalidTransition(current.value, action.value, entity_id=request.id)

        now = context.resolved_now()
        changes: Dict[str, Any] = {"status": target, "updated_at": now}
        payload: Dict[str, Any] = {
            "request_id": request.id,
            "client_id": request.client_id,
            "interpreter_id": request.interpreter_id,
        }

        if action == RequestAction.CONFIRM:
            changes.update(self._confirm_request(request, context))
            payload["total_cost"] = (
                str(changes["total_cost"]) if changes.get("total_cost") is not None else None
            )
        elif action == RequestAction.CANCEL:
            category = self._require_cancellation_category(context)
            changes.update(
                cancelled_by=actor.user_id,
                cancelled_at=now,
                cancellation_reason=context.cancellation_reason or category.value,
            )
            payload.update(cancelled_by=actor.user_id, cancellation_category=category.value)
        elif action == RequestAction.REJECT:
            payload["reason"] = context.cancellation_reason

        updated = replace(request, **changes)
        self._log_transition("request", request.id, current.value, target.value, actor, request.interpreter_id)
        return TransitionResult(
            entity=updated,
            effects=(PersistEntity(updated), NotifyParties(f"request.{target.value}", payload)),
        )

    def _confirm_request(self, request: ServiceRequest, context: TransitionContext) -> Dict[str, Any]:
        if not request.interpreter_id:
            raise ValidationError(
                "An interpreter must be assigned before confirming the request",
                code=ErrorCode.VAL_MISSING_REQUIRED_FIELD,
                details={"field": "interpreter_id"},
            )
        session_type = SERVICE_TYPE_TO_SESSION_TYPE.get(request.service_type)
        self._ensure_interpreter_can_take(context.interpreter, request.interpreter_id, session_type)

        interval = None if request.is_translation else request.scheduled_interval
        if interval is not None and (
            context.committed_sessions is not None or self.conflict_resolver.read_model is not None
        ):
            self._ensure_bookable(request.interpreter_id, interval, context)

        if context.interpreter is None:
            return {}
        quote = self.rate_calculator.quote_request(request, context.interpreter.rate_structure)
        return {"total_cost": quote.total}

    # ------------------------------------------------------------------
    # Reschedule and rating
    # ------------------------------------------------------------------

    def reschedule(
        self,
        session: InterpreterSession,
        new_interval: TimeInterval,
        actor: Actor,
        context: Optional[TransitionContext] = None,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        """
        Reschedule a session; the returned entity is the new session.

        Both the superseded and the new session are persisted.
        """
        context = context or TransitionContext()
        now = context.resolved_now()
        self._ensure_party(session, actor, allow_admin=True)
        if context.interpreter is not None:
            self._ensure_interpreter_can_take(
                context.interpreter, session.interpreter_id, session.session_type
            )
        result = self.reschedule_tracker.reschedule(
            session,
            new_interval,
            actor,
            context.committed_sessions,
            reason=reason,
            rate_structure=context.interpreter.rate_structure if context.interpreter else None,
            now=now,
        )
        prometheus_metrics.record_transition(
            "session", session.effective_status.value, SessionStatus.RESCHEDULED.value
        )
        return TransitionResult(
            entity=result.new,
            effects=(
                PersistEntity(result.old),
                PersistEntity(result.new),
                NotifyParties(
                    "session.rescheduled",
                    {
                        "session_id": result.old.id,
                        "new_session_id": result.new.id,
                        "client_id": session.client_id,
                        "interpreter_id": session.interpreter_id,
                        "rescheduled_by": actor.user_id,
                        "new_start_time": new_interval.start.isoformat(),
                        "new_end_time": new_interval.end.isoformat(),
                        "reason": reason,
                    },
                ),
                InvalidateInvoiceDraft(result.old.id, "rescheduled"),
            ),
        )

    def rate(
        self,
        session: InterpreterSession,
        actor: Actor,
        rating: SessionRating,
        interpreter: Optional[Interpreter] = None,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        """
        Record one party's rating of a completed session.

        The client's rating also folds into the interpreter's running average,
        so ``interpreter`` is required for client ratings.
        """
        if session.effective_status != SessionStatus.COMPLETED:
            raise InvalidTransition(session.effective_status.value, "rate", entity_id=session.id)

        rater_role = self._ensure_party(session, actor, allow_admin=False)
        stamp = now or datetime.now(timezone.utc)
        stored = rating if rating.rated_at else replace(rating, rated_at=stamp)
        effects: List[Effect] = []

        if rater_role == ActorRole.CLIENT:
            if session.client_rating is not None:
                raise DuplicateRating(session.id, ActorRole.CLIENT.value)
            if interpreter is None:
                raise ValidationError(
                    "Interpreter profile is required to aggregate a client rating",
                    code=ErrorCode.VAL_MISSING_REQUIRED_FIELD,
                    details={"field": "interpreter"},
                )
            updated = replace(session, client_rating=stored, updated_at=stamp)
            aggregate = self.rating_aggregator.apply(interpreter, stored)
            effects.append(PersistEntity(updated))
            effects.append(
                RecomputeInterpreterStats(
                    session.interpreter_id,
                    average_rating=aggregate.new_average,
                    total_ratings=aggregate.new_total_ratings,
                )
            )
        else:
            if session.interpreter_rating is not None:
                raise DuplicateRating(session.id, ActorRole.INTERPRETER.value)
            updated = replace(session, interpreter_rating=stored, updated_at=stamp)
            effects.append(PersistEntity(updated))

        effects.append(
            NotifyParties(
                "session.rated",
                {
                    "session_id": session.id,
                    "rater_role": rater_role.value,
                    "overall": stored.overall,
                },
            )
        )
        logger.info(
            "Session rated",
            extra={"session_id": session.id, "rater_role": rater_role.value, "overall": stored.overall},
        )
        return TransitionResult(entity=updated, effects=tuple(effects))

    @staticmethod
    def _ensure_assigned_interpreter(session: InterpreterSession, actor: Actor) -> None:
        if actor.interpreter_id is not None and actor.interpreter_id == session.interpreter_id:
            return
        if actor.role in (ActorRole.ADMIN, ActorRole.SYSTEM):
            return
        raise OperationNotAllowed(
            "Only the assigned interpreter may confirm or update session progress",
            details={"session_id": session.id, "actor": actor.user_id},
        )

    @staticmethod
    def _ensure_party(session: InterpreterSession, actor: Actor, *, allow_admin: bool) -> ActorRole:
        if actor.user_id == session.client_id:
            return ActorRole.CLIENT
        if actor.interpreter_id is not None and actor.interpreter_id == session.interpreter_id:
            return ActorRole.INTERPRETER
        if allow_admin and actor.role in (ActorRole.ADMIN, ActorRole.SYSTEM):
            return actor.role
        raise OperationNotAllowed(
            "Only the session's client or interpreter may perform this action",
            details={"session_id": session.id, "actor": actor.user_id},
        )

    def _log_transition(
        self,
        entity: str,
        entity_id: str,
        from_status: str,
        to_status: str,
        actor: Actor,
        interpreter_id: Optional[str],
    ) -> None:
        prometheus_metrics.record_transition(entity, from_status, to_status)
        logger.info(
            "%s %s transitioned %s -> %s",
            entity.capitalize(),
            entity_id,
            from_status,
            to_status,
            extra={
                f"{entity}_id": entity_id,
                "interpreter_id": interpreter_id,
                "from_status": from_status,
                "to_status": to_status,
                "actor": actor.user_id,
            },
        )
