"""Centralized cost calculations for interpreter sessions and service requests.

Pure and deterministic: the same session state always yields the same
breakdown, so recomputing a cost is idempotent. Amounts are Decimals
rounded half-up to cents.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import math
from typing import Optional

from ..core.config import Settings, settings as default_settings
from ..core.enums import SERVICE_TYPE_TO_SESSION_TYPE, InterpreterSpecialization, SessionType
from ..core.exceptions import ErrorCode, ValidationError
from ..domain.models import InterpreterSession, RateStructure, ServiceRequest, minutes_between

CENTS = Decimal("0.01")
ONE = Decimal("1")


def to_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _as_decimal(value: object, field_name: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(
            f"{field_name} is not a valid amount",
            code=ErrorCode.VAL_INVALID_FORMAT,
            details={field_name: value},
        ) from exc
    if amount < 0:
        raise ValidationError(
            f"{field_name} must not be negative",
            code=ErrorCode.VAL_VALUE_TOO_SMALL,
            details={field_name: str(value)},
        )
    return amount


@dataclass(frozen=True)
class CostBreakdown:
    """Result of a cost computation."""

    base_cost: Decimal
    fees: Decimal
    total: Decimal
    billable_hours: Optional[int] = None
    specialization_multiplier: Decimal = ONE
    urgency_multiplier: Decimal = ONE
    currency: str = "USD"


def billable_hours(duration_minutes: int, minimum_hours: int) -> int:
    """Round a duration up to whole hours, never below the minimum."""
    if duration_minutes < 0:
        raise ValidationError(
            "Duration must not be negative",
            code=ErrorCode.VAL_VALUE_TOO_SMALL,
            details={"duration_minutes": duration_minutes},
        )
    return max(minimum_hours, math.ceil(duration_minutes / 60))


def session_duration_minutes(session: InterpreterSession) -> int:
    """Actual duration when known, otherwise the scheduled duration."""
    if session.actual_duration is not None:
        return session.actual_duration
    if session.actual_start_time and session.actual_end_time:
        return minutes_between(session.actual_start_time, session.actual_end_time)
    return session.estimated_duration


def rate_for_session(rate_structure: RateStructure, session_type: SessionType) -> Decimal:
    """Hourly rate a new session of this type should carry (before specialization)."""
    override = rate_structure.session_types.get(session_type)
    if override is not None and override.rate:
        return override.rate
    return rate_structure.hourly_rate


def minimum_hours_for(rate_structure: Optional[RateStructure], session_type: SessionType) -> int:
    if rate_structure is None:
        return 1
    minimum = max(rate_structure.minimum_hours, 0)
    override = rate_structure.session_types.get(session_type)
    if override is not None and override.minimum_duration > 0:
        minimum = max(minimum, math.ceil(override.minimum_duration / 60))
    return minimum


def specialization_multiplier(
    rate_structure: Optional[RateStructure], specialization: InterpreterSpecialization
) -> Decimal:
    if rate_structure is None:
        return ONE
    multiplier = rate_structure.specializations.get(specialization)
    return Decimal(str(multiplier)) if multiplier is not None else ONE


class RateCalculator:
    """Session parameters in, cost breakdown out."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def compute(
        self, session: InterpreterSession, rate_structure: Optional[RateStructure] = None
    ) -> CostBreakdown:
        """
        Compute the cost of a time-based session.

        base_cost = hourly_rate x billable hours x specialization multiplier;
        fees = sum of additional fees.
        """
        hourly_rate = _as_decimal(session.hourly_rate, "hourly_rate")
        hours = billable_hours(
            session_duration_minutes(session),
            minimum_hours_for(rate_structure, session.session_type),
        )
        multiplier = specialization_multiplier(rate_structure, session.specialization)
        base_cost = to_money(hourly_rate * hours * multiplier)
        fees = to_money(
            sum(
                (_as_decimal(fee.amount, "additional_fee") for fee in session.additional_fees),
                Decimal("0"),
            )
        )
        return CostBreakdown(
            base_cost=base_cost,
            fees=fees,
            total=base_cost + fees,
            billable_hours=hours,
            specialization_multiplier=multiplier,
            currency=self.config.currency,
        )

    def quote_request(
        self, request: ServiceRequest, rate_structure: RateStructure
    ) -> CostBreakdown:
        """Quote a service request against the assigned interpreter's rates."""
        multiplier = specialization_multiplier(rate_structure, request.specialization)

        if request.is_translation:
            if rate_structure.rate_per_word is None:
                raise ValidationError(
                    "Interpreter has no per-word rate for translation work",
                    code=ErrorCode.VAL_MISSING_REQUIRED_FIELD,
                    details={"field": "rate_per_word"},
                )
            if not request.word_count or request.word_count <= 0:
                raise ValidationError(
                    "Translation requests require a positive word count",
                    code=ErrorCode.VAL_MISSING_REQUIRED_FIELD,
                    details={"field": "word_count", "value": request.word_count},
                )
            rate_per_word = _as_decimal(rate_structure.rate_per_word, "rate_per_word")
            urgency = self.config.urgency_multipliers.get(request.urgency_level.value, ONE)
            subtotal = rate_per_word * request.word_count * urgency * multiplier
            base_cost = to_money(max(subtotal, self.config.translation_minimum_fee))
            return CostBreakdown(
                base_cost=base_cost,
                fees=Decimal("0.00"),
                total=base_cost,
                specialization_multiplier=multiplier,
                urgency_multiplier=urgency,
                currency=self.config.currency,
            )

        session_type = SERVICE_TYPE_TO_SESSION_TYPE[request.service_type]
        if not request.estimated_duration or request.estimated_duration <= 0:
            raise ValidationError(
                "Interpretation requests require a positive estimated duration",
                code=ErrorCode.VAL_MISSING_REQUIRED_FIELD,
                details={"field": "estimated_duration", "value": request.estimated_duration},
            )
        hourly_rate = _as_decimal(rate_for_session(rate_structure, session_type), "hourly_rate")
        hours = billable_hours(
            request.estimated_duration, minimum_hours_for(rate_structure, session_type)
        )
        base_cost = to_money(hourly_rate * hours * multiplier)
        return CostBreakdown(
            base_cost=base_cost,
            fees=Decimal("0.00"),
            total=base_cost,
            billable_hours=hours,
            specialization_multiplier=multiplier,
            currency=self.config.currency,
        )
