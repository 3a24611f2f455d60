"""Rounding split breakdowns to a currency's minor units for display."""

import logging
from decimal import Decimal

from ..currency import decimal_places, quantize_amount
from ..exceptions import RoundingError
from ..models import ShareLine, SplitBreakdown

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal, currency_code: str) -> int:
    """
    Convert an amount to integer minor units (cents, or yen for JPY).
    Uses ROUND_HALF_UP for consistency.
    """
    places = decimal_places(currency_code)
    return int(quantize_amount(amount, currency_code).scaleb(places))


def from_minor_units(units: int, currency_code: str) -> Decimal:
    """Convert integer minor units back to a Decimal amount."""
    return Decimal(units).scaleb(-decimal_places(currency_code))


def round_breakdown(breakdown: SplitBreakdown) -> SplitBreakdown:
    """
    Round every share to minor units so the lines still add up.

    Steps:
    1. Round each share independently
    2. Round the breakdown's assigned total
    3. Compute residual = expected - sum of rounded shares
    4. Push the residual onto the largest share

    Each share can be off by at most half a minor unit, so a residual
    larger than one unit per line means the input is inconsistent.

    Raises:
        RoundingError: If residual exceeds the safety threshold
    """
    currency = breakdown.currency_code
    if not breakdown.lines:
        return breakdown

    units = [to_minor_units(line.amount, currency) for line in breakdown.lines]
    expected_total = to_minor_units(breakdown.assigned_total, currency)
    residual = expected_total - sum(units)

    threshold = len(units)
    if abs(residual) > threshold:
        raise RoundingError(
            f"Rounding residual exceeds safety threshold:\n"
            f"  Expected: {expected_total} minor units\n"
            f"  Actual:   {sum(units)} minor units\n"
            f"  Residual: {residual} minor units (threshold {threshold})"
        )

    if residual != 0:
        largest = max(range(len(units)), key=lambda i: abs(units[i]))
        units[largest] += residual
        logger.info(
            f"Applied rounding adjustment: {residual} minor units "
            f"to participant {breakdown.lines[largest].participant_id}"
        )

    lines = [
        ShareLine(
            participant_id=line.participant_id,
            amount=from_minor_units(unit, currency),
            percentage=line.percentage,
        )
        for line, unit in zip(breakdown.lines, units)
    ]

    return breakdown.model_copy(
        update={
            "lines": lines,
            "assigned_total": from_minor_units(expected_total, currency),
            "unassigned_total": quantize_amount(breakdown.unassigned_total, currency),
        }
    )
