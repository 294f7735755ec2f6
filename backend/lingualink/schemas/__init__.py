from .session import (
    CancellationPayload,
    RatingPayload,
    ReschedulePayload,
    parse_payload,
)

__all__ = [
    "CancellationPayload",
    "RatingPayload",
    "ReschedulePayload",
    "parse_payload",
]
