"""Effect executor - applies the effects a transition returned."""

import logging
from typing import Any, Callable, Dict, Iterable, Optional

from ..domain.effects import (
    Effect,
    InvalidateInvoiceDraft,
    NotifyParties,
    PersistEntity,
    RecomputeInterpreterStats,
    TransitionResult,
)
from ..domain.models import InterpreterSession, ServiceRequest
from ..repositories.read_model import SessionStore

logger = logging.getLogger(__name__)


def log_notification(effect: NotifyParties) -> None:
    logger.info("Notify parties: %s", effect.event_type, extra={"payload": effect.payload})


def log_invoice_invalidation(effect: InvalidateInvoiceDraft) -> None:
    logger.info(
        "Invalidate invoice draft for session %s (%s)", effect.session_id, effect.reason
    )


class EffectExecutor:
    """
    Executes effects in order against a store and outbound sinks.

    Persistence and statistics go to the store; notifications and invoice
    invalidations go to the configured sinks, which log by default.
    """

    def __init__(
        self,
        store: SessionStore,
        notify: Optional[Callable[[NotifyParties], None]] = None,
        invalidate_invoice: Optional[Callable[[InvalidateInvoiceDraft], None]] = None,
    ):
        self.store = store
        self._handlers: Dict[type, Callable[[Any], None]] = {
            PersistEntity: self._persist,
            RecomputeInterpreterStats: self._recompute_stats,
            NotifyParties: notify or log_notification,
            InvalidateInvoiceDraft: invalidate_invoice or log_invoice_invalidation,
        }

    def execute(self, result: TransitionResult) -> None:
        self.execute_all(result.effects)

    def execute_all(self, effects: Iterable[Effect]) -> None:
        for effect in effects:
            handler = self._handlers.get(type(effect))
            if handler is None:
                raise TypeError(f"No handler for effect {type(effect).__name__}")
            handler(effect)

    def _persist(self, effect: PersistEntity) -> None:
        if isinstance(effect.entity, InterpreterSession):
            self.store.save_session(effect.entity)
        elif isinstance(effect.entity, ServiceRequest):
            self.store.save_request(effect.entity)
        else:
            raise TypeError(f"Cannot persist {type(effect.entity).__name__}")

    def _recompute_stats(self, effect: RecomputeInterpreterStats) -> None:
        self.store.update_interpreter_stats(
            effect.interpreter_id,
            sessions_completed_delta=effect.sessions_completed_delta,
            earnings_delta=effect.earnings_delta,
            average_rating=effect.average_rating,
            total_ratings=effect.total_ratings,
        )
