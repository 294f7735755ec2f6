"""Side-effect instructions returned by the lifecycle engine.

The engine never performs I/O. Every transition returns the new entity
state plus a tuple of effects; the surrounding service executes them
(persist, recompute stats, notify, invalidate invoice drafts).
"""

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

from .models import InterpreterSession, ServiceRequest

Entity = Union[InterpreterSession, ServiceRequest]


@dataclass(frozen=True)
class PersistEntity:
    """Write the given entity state back to storage."""

    entity: Entity

    def to_dict(self) -> Dict[str, Any]:
        return {"entity_type": type(self.entity).__name__, "entity_id": self.entity.id}


@dataclass(frozen=True)
class RecomputeInterpreterStats:
    """Apply deltas / new aggregates to an interpreter's running statistics."""

    interpreter_id: str
    sessions_completed_delta: int = 0
    earnings_delta: Decimal = Decimal("0")
    average_rating: Optional[float] = None
    total_ratings: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NotifyParties:
    """Tell the session/request parties that something happened."""

    event_type: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"event_type": self.event_type, "payload": dict(self.payload)}


@dataclass(frozen=True)
class InvalidateInvoiceDraft:
    """Drop any invoice draft computed from a now-stale session cost."""

    session_id: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Effect = Union[PersistEntity, RecomputeInterpreterStats, NotifyParties, InvalidateInvoiceDraft]


@dataclass(frozen=True)
class TransitionResult:
    """New entity state plus the effects the caller must execute."""

    entity: Entity
    effects: Tuple[Effect, ...] = ()

    def effects_of(self, effect_type: type) -> Tuple[Effect, ...]:
        return tuple(effect for effect in self.effects if isinstance(effect, effect_type))
