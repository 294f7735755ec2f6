from .read_model import InMemorySessionStore, SessionReadModel, SessionStore
from .session_repository import SessionRepository

__all__ = [
    "InMemorySessionStore",
    "SessionReadModel",
    "SessionRepository",
    "SessionStore",
]
