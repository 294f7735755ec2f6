from .base import Base
from .interpreter import InterpreterRecord
from .service_request import ServiceRequestRecord
from .session import SessionRecord

__all__ = [
    "Base",
    "InterpreterRecord",
    "ServiceRequestRecord",
    "SessionRecord",
]
