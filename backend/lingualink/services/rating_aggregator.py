from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from ..core.exceptions import ErrorCode, ValidationError
from ..domain.models import RATING_MAX, RATING_MIN, Interpreter, SessionRating


@dataclass(frozen=True)
class RatingAggregate:
    new_average: float
    new_total_ratings: int


def fold_rating(average: float, total: int, overall: int) -> RatingAggregate:
    if total < 0:
        raise ValidationError(
            "Rating count must not be negative",
            code=ErrorCode.VAL_VALUE_TOO_SMALL,
            details={"total_ratings": total},
        )
    if not RATING_MIN <= overall <= RATING_MAX:
        raise ValidationError(
            f"Overall rating must be between {RATING_MIN} and {RATING_MAX}",
            code=ErrorCode.VAL_INVALID_INPUT,
            details={"overall": overall},
        )
    new_total = total + 1
    return RatingAggregate(
        new_average=(float(average) * total + overall) / new_total,
        new_total_ratings=new_total,
    )


class RatingAggregator:
    """Running mean of the overall scores clients give an interpreter."""

    def apply(self, interpreter: Interpreter, rating: SessionRating) -> RatingAggregate:
        return fold_rating(interpreter.average_rating, interpreter.total_ratings, rating.overall)

    @staticmethod
    def recompute(ratings: Iterable[Union[SessionRating, int]]) -> RatingAggregate:
        scores = [r.overall if isinstance(r, SessionRating) else int(r) for r in ratings]
        if not scores:
            return RatingAggregate(new_average=0.0, new_total_ratings=0)
        return RatingAggregate(
            new_average=sum(scores) / len(scores),
            new_total_ratings=len(scores),
        )
