"""
Read model and store interfaces consumed by the lifecycle engine.

The engine only ever sees the value objects these return; how they are
loaded (SQLAlchemy, a cache, a remote service) is the collaborator's
business. ``InMemorySessionStore`` is a dict-backed implementation used by
tests and by callers that already hold a snapshot.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
import threading
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from ..domain.models import Interpreter, InterpreterSession, ServiceRequest


class SessionReadModel(Protocol):
    """Lookups the engine needs from persistence."""

    def get_session(self, session_id: str) -> Optional[InterpreterSession]:
        ...

    def get_committed_sessions(self, interpreter_id: str) -> Sequence[InterpreterSession]:
        """All CONFIRMED/IN_PROGRESS, non-superseded sessions for one interpreter."""
        ...

    def get_interpreter(self, interpreter_id: str) -> Optional[Interpreter]:
        ...


class SessionStore(SessionReadModel, Protocol):
    """Write side used by the effect executor."""

    def save_session(self, session: InterpreterSession) -> None:
        ...

    def save_request(self, request: ServiceRequest) -> None:
        ...

    def update_interpreter_stats(
        self,
        interpreter_id: str,
        *,
        sessions_completed_delta: int = 0,
        earnings_delta: Decimal = Decimal("0"),
        average_rating: Optional[float] = None,
        total_ratings: Optional[int] = None,
    ) -> None:
        ...


class InMemorySessionStore:
    """Thread-safe dict-backed SessionStore."""

    def __init__(
        self,
        sessions: Iterable[InterpreterSession] = (),
        interpreters: Iterable[Interpreter] = (),
    ):
        self._lock = threading.RLock()
        self._sessions: Dict[str, InterpreterSession] = {s.id: s for s in sessions}
        self._interpreters: Dict[str, Interpreter] = {i.id: i for i in interpreters}
        self._requests: Dict[str, ServiceRequest] = {}

    def get_session(self, session_id: str) -> Optional[InterpreterSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def get_request(self, request_id: str) -> Optional[ServiceRequest]:
        with self._lock:
            return self._requests.get(request_id)

    def get_committed_sessions(self, interpreter_id: str) -> List[InterpreterSession]:
        with self._lock:
            return [
                s
                for s in self._sessions.values()
                if s.interpreter_id == interpreter_id and s.is_committed
            ]

    def get_interpreter(self, interpreter_id: str) -> Optional[Interpreter]:
        with self._lock:
            return self._interpreters.get(interpreter_id)

    def save_session(self, session: InterpreterSession) -> None:
        with self._lock:
            self._sessions[session.id] = session

    def save_request(self, request: ServiceRequest) -> None:
        with self._lock:
            self._requests[request.id] = request

    def save_interpreter(self, interpreter: Interpreter) -> None:
        with self._lock:
            self._interpreters[interpreter.id] = interpreter

    def update_interpreter_stats(
        self,
        interpreter_id: str,
        *,
        sessions_completed_delta: int = 0,
        earnings_delta: Decimal = Decimal("0"),
        average_rating: Optional[float] = None,
        total_ratings: Optional[int] = None,
    ) -> None:
        with self._lock:
            interpreter = self._interpreters[interpreter_id]
            self._interpreters[interpreter_id] = replace(
                interpreter,
                total_sessions_completed=interpreter.total_sessions_completed
                + sessions_completed_delta,
                total_earnings=interpreter.total_earnings + earnings_delta,
                average_rating=(
                    interpreter.average_rating if average_rating is None else average_rating
                ),
                total_ratings=interpreter.total_ratings if total_ratings is None else total_ratings,
            )

    def all_sessions(self) -> List[InterpreterSession]:
        with self._lock:
            return list(self._sessions.values())
