# backend/lingualink/services/session_lifecycle_service.py
"""
Session Lifecycle Service for the LinguaLink platform.

Facade over the lifecycle engine. Loads what a transition needs from the
read model, serializes scheduling changes per interpreter, and hands the
resulting effects to an optional executor.

Confirm and reschedule for the same interpreter run under the interpreter
lock, and the committed sessions are re-read inside it. When an executor is
configured, effects are executed before the lock is released so the next
caller's re-read sees the new booking.
"""

from __future__ import annotations

from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime, timezone
import logging
from typing import Any, Callable, ContextManager, Mapping, Optional, Union

from ..core.config import Settings
from ..core.enums import RequestAction, SessionAction
from ..core.exceptions import ErrorCode, NotFoundError, ValidationError
from ..core.interpreter_lock import interpreter_lock, session_rating_lock
from ..domain.effects import Entity, TransitionResult
from ..domain.models import (
    Actor,
    Interpreter,
    InterpreterSession,
    ServiceRequest,
    SessionRating,
    TimeInterval,
)
from ..repositories.read_model import SessionReadModel
from ..schemas.session import CancellationPayload, RatingPayload, ReschedulePayload, parse_payload
from .base import BaseService
from .conflict_checker import ConflictCheckResult, ConflictResolver
from .lifecycle_state_machine import LifecycleStateMachine, TransitionContext

logger = logging.getLogger(__name__)

LockFactory = Callable[..., ContextManager[None]]


class SessionLifecycleService(BaseService):
    """
    Entry point for every lifecycle operation.

    Args:
        read_model: Source of sessions, committed schedules and interpreter profiles
        config: Settings override
        effect_executor: Optional object with ``execute(result)``; when set,
            effects are applied while the interpreter lock is still held
        state_machine: Override for tests
        lock_factory: Interpreter lock context manager factory
        clock: Returns the current time; override for tests
    """

    def __init__(
        self,
        read_model: SessionReadModel,
        config: Optional[Settings] = None,
        effect_executor: Optional[Any] = None,
        state_machine: Optional[LifecycleStateMachine] = None,
        lock_factory: LockFactory = interpreter_lock,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(config)
        self.read_model = read_model
        self.effect_executor = effect_executor
        self.conflict_resolver = ConflictResolver(read_model, self.config)
        self.state_machine = state_machine or LifecycleStateMachine(
            config=self.config, conflict_resolver=self.conflict_resolver
        )
        self.lock_factory = lock_factory
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    def load_session(self, session_id: str) -> InterpreterSession:
        session = self.read_model.get_session(session_id)
        if session is None:
            raise NotFoundError(
                "Session not found",
                code=ErrorCode.SES_NOT_FOUND,
                details={"session_id": session_id},
            )
        return session

    def load_interpreter(self, interpreter_id: str) -> Interpreter:
        interpreter = self.read_model.get_interpreter(interpreter_id)
        if interpreter is None:
            raise NotFoundError(
                "Interpreter not found",
                details={"interpreter_id": interpreter_id},
            )
        return interpreter

    def _scheduling_lock(self, entity: Entity, action: Any) -> ContextManager[None]:
        if action.value != SessionAction.CONFIRM.value or not entity.interpreter_id:
            return nullcontext()
        if isinstance(entity, ServiceRequest) and entity.scheduled_interval is None:
            return nullcontext()
        return self.lock_factory(entity.interpreter_id, config=self.config)

    def _finish(self, result: TransitionResult) -> TransitionResult:
        if self.effect_executor is not None:
            self.effect_executor.execute(result)
        return result

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @BaseService.measure_operation("apply_transition")
    def apply_transition(
        self,
        entity: Entity,
        action: Union[str, SessionAction, RequestAction],
        actor: Actor,
        context: Optional[TransitionContext] = None,
        cancellation: Optional[Union[CancellationPayload, Mapping[str, Any]]] = None,
    ) -> TransitionResult:
        """
        Apply a lifecycle action to a session or service request.

        Interpreter profile and committed sessions are filled into the
        context from the read model when the caller did not provide them.
        For ``cancel``, ``cancellation`` carries the category and reason as
        received from the client.
        """
        action_enum = SessionAction if isinstance(entity, InterpreterSession) else RequestAction
        try:
            parsed_action = action_enum(getattr(action, "value", action))
        except ValueError as exc:
            raise ValidationError(
                f"Unknown action: {action}",
                code=ErrorCode.VAL_INVALID_INPUT,
                details={"action": str(action)},
            ) from exc

        context = context or TransitionContext()
        if context.now is None:
            context = replace(context, now=self.clock())
        if cancellation is not None and parsed_action.value == SessionAction.CANCEL.value:
            payload = parse_payload(CancellationPayload, cancellation)
            context = replace(
                context,
                cancellation_category=payload.category,
                cancellation_reason=payload.reason,
            )

        with self._scheduling_lock(entity, parsed_action):
            interpreter = context.interpreter
            if interpreter is None and entity.interpreter_id:
                interpreter = self.read_model.get_interpreter(entity.interpreter_id)
            committed = context.committed_sessions
            if parsed_action.value == SessionAction.CONFIRM.value and entity.interpreter_id:
                # Re-read under the lock; a snapshot taken earlier may be stale
                committed = list(self.read_model.get_committed_sessions(entity.interpreter_id))
            resolved = replace(context, interpreter=interpreter, committed_sessions=committed)
            result = self.state_machine.apply(entity, parsed_action, actor, resolved)
            return self._finish(result)

    def check_conflict(
        self,
        interpreter_id: str,
        interval: TimeInterval,
        exclude_id: Optional[str] = None,
    ) -> ConflictCheckResult:
        """Read-only availability probe; takes no lock."""
        return self.conflict_resolver.check(interpreter_id, interval, exclude_session_id=exclude_id)

    @BaseService.measure_operation("reschedule")
    def reschedule(
        self,
        session_id: str,
        new_interval: Union[TimeInterval, ReschedulePayload, Mapping[str, Any]],
        actor: Actor,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        """
        Move a session to a new interval by creating a linked successor.

        Returns the result whose entity is the new session.
        """
        session = self.load_session(session_id)
        with self.lock_factory(session.interpreter_id, config=self.config):
            session = self.load_session(session_id)
            if isinstance(new_interval, TimeInterval):
                interval = new_interval
            else:
                payload = parse_payload(ReschedulePayload, new_interval)
                interval = payload.interval_for(session)
                reason = reason or payload.reason

            context = TransitionContext(
                now=self.clock(),
                interpreter=self.read_model.get_interpreter(session.interpreter_id),
                committed_sessions=list(
                    self.read_model.get_committed_sessions(session.interpreter_id)
                ),
            )
            result = self.state_machine.reschedule(session, interval, actor, context, reason=reason)
            return self._finish(result)

    @BaseService.measure_operation("rate")
    def rate(
        self,
        session_id: str,
        actor: Actor,
        rating_payload: Union[SessionRating, RatingPayload, Mapping[str, Any]],
    ) -> TransitionResult:
        """Record a rating; submissions for one session are serialized."""
        if isinstance(rating_payload, SessionRating):
            rating = rating_payload
        else:
            rating = parse_payload(RatingPayload, rating_payload).to_domain()

        with session_rating_lock(session_id, config=self.config):
            session = self.load_session(session_id)
            # Running average is read-modify-write on the interpreter profile
            with self.lock_factory(session.interpreter_id, config=self.config):
                interpreter = self.load_interpreter(session.interpreter_id)
                result = self.state_machine.rate(
                    session, actor, rating, interpreter, now=self.clock()
                )
                return self._finish(result)
