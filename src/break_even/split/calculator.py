"""
Core split calculation logic.

Every function here is pure: it reads an Expense (and optionally rates or
settlements) and returns a value without touching any external state.
"""

import logging
from decimal import Decimal

from ..exceptions import RateUnavailableError, SplitValidationError
from ..models import (
    ByItemSplit,
    ByPartsSplit,
    EqualSplit,
    ExchangeRates,
    Expense,
    ShareLine,
    SplitBreakdown,
    UnequalSplit,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Largest gap between assigned amounts and the total that still reconciles
RECONCILE_TOLERANCE = Decimal("0.01")

DEFAULT_PARTS = 1


def parts_for(expense: Expense, participant_id: str) -> int:
    """Get a participant's parts under a by-parts split (default 1)."""
    strategy = expense.strategy
    if not isinstance(strategy, ByPartsSplit):
        return 0
    return strategy.parts.get(participant_id, DEFAULT_PARTS)


def total_parts(expense: Expense) -> int:
    """
    Sum of all participant parts for a by-parts split.

    Returns 0 for any other split method.
    """
    if not isinstance(expense.strategy, ByPartsSplit):
        return 0
    return sum(parts_for(expense, pid) for pid in expense.participant_ids)


def compute_share(expense: Expense, participant_id: str) -> Decimal:
    """
    Compute how much one participant owes toward an expense.

    Participants outside the expense get zero, as do all participants of a
    by-parts split whose parts add up to zero. No rounding is applied.

    Args:
        expense: The expense being split
        participant_id: Participant to compute the share for

    Returns:
        The participant's share in the expense currency
    """
    if not expense.has_participant(participant_id):
        return ZERO

    strategy = expense.strategy

    if isinstance(strategy, EqualSplit):
        return expense.total_amount / len(expense.participant_ids)

    if isinstance(strategy, UnequalSplit):
        return strategy.amounts.get(participant_id, ZERO)

    if isinstance(strategy, ByPartsSplit):
        denominator = total_parts(expense)
        if denominator == 0:
            return ZERO
        return expense.total_amount * parts_for(expense, participant_id) / denominator

    if isinstance(strategy, ByItemSplit):
        share = ZERO
        for item in strategy.items:
            if participant_id in item.assigned_to:
                share += item.amount / len(item.assigned_to)
        return share

    raise TypeError(f"Unknown split method: {strategy!r}")


def remaining_to_assign(expense: Expense) -> Decimal:
    """
    Amount of an unequal split not yet assigned to anyone.

    Over-assignment is clamped to zero. Other split methods return zero.
    """
    strategy = expense.strategy
    if not isinstance(strategy, UnequalSplit):
        return ZERO
    assigned = sum(strategy.amounts.values(), ZERO)
    return max(ZERO, expense.total_amount - assigned)


def items_total(expense: Expense) -> Decimal:
    """Sum of all item amounts in a by-item split."""
    strategy = expense.strategy
    if not isinstance(strategy, ByItemSplit):
        return ZERO
    return sum((item.amount for item in strategy.items), ZERO)


def unassigned_total(expense: Expense) -> Decimal:
    """Sum of by-item amounts that nobody is assigned to."""
    strategy = expense.strategy
    if not isinstance(strategy, ByItemSplit):
        return ZERO
    return sum(
        (item.amount for item in strategy.items if not item.assigned_to), ZERO
    )


def compute_breakdown(expense: Expense) -> SplitBreakdown:
    """
    Compute every participant's share of an expense.

    By-parts lines also carry their percentage of the total.
    """
    denominator = total_parts(expense)
    lines = []

    for participant_id in expense.participant_ids:
        percentage = None
        if isinstance(expense.strategy, ByPartsSplit) and denominator > 0:
            percentage = (
                Decimal(parts_for(expense, participant_id)) / denominator * 100
            )

        lines.append(
            ShareLine(
                participant_id=participant_id,
                amount=compute_share(expense, participant_id),
                percentage=percentage,
            )
        )

    return SplitBreakdown(
        method=expense.strategy.method,
        currency_code=expense.currency_code,
        total_amount=expense.total_amount,
        lines=lines,
        assigned_total=sum((line.amount for line in lines), ZERO),
        unassigned_total=unassigned_total(expense),
    )


def find_split_problems(expense: Expense) -> list[str]:
    """
    List reasons an expense's split doesn't reconcile with its total.

    An empty list means the split is ready to save.
    """
    problems = []
    strategy = expense.strategy

    if isinstance(strategy, ByPartsSplit):
        for participant_id in expense.participant_ids:
            if parts_for(expense, participant_id) == 0:
                problems.append(f"Participant {participant_id} has zero parts")

    elif isinstance(strategy, UnequalSplit):
        assigned = sum(
            (compute_share(expense, pid) for pid in expense.participant_ids), ZERO
        )
        if abs(expense.total_amount - assigned) > RECONCILE_TOLERANCE:
            problems.append(
                f"Custom amounts add up to {assigned}, "
                f"expected {expense.total_amount}"
            )

    elif isinstance(strategy, ByItemSplit):
        for item in strategy.items:
            if not item.assigned_to:
                problems.append(f"Item '{item.name}' is not assigned to anyone")
        total = items_total(expense)
        if abs(expense.total_amount - total) > RECONCILE_TOLERANCE:
            problems.append(
                f"Items add up to {total}, expected {expense.total_amount}"
            )

    return problems


def validate_expense(expense: Expense, strict: bool = False) -> list[str]:
    """
    Check that an expense's split reconciles with its total.

    In non-strict mode problems are only logged, so partially assigned
    splits can still be saved.

    Returns:
        The list of problems found

    Raises:
        SplitValidationError: If strict and any problem was found
    """
    problems = find_split_problems(expense)
    if problems and strict:
        raise SplitValidationError(problems)

    for problem in problems:
        logger.warning(f"Expense {expense.id or expense.title!r}: {problem}")

    return problems


def convert(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    rates: ExchangeRates,
) -> Decimal:
    """
    Convert an amount between currencies using a rate snapshot.

    Both rates are relative to the snapshot's base currency. Converting a
    currency to itself returns the amount untouched.

    Raises:
        RateUnavailableError: If either currency is missing from the snapshot
    """
    if from_currency.upper() == to_currency.upper():
        return amount

    from_rate = rates.rate(from_currency)
    if not from_rate:
        raise RateUnavailableError(from_currency.upper())

    to_rate = rates.rate(to_currency)
    if not to_rate:
        raise RateUnavailableError(to_currency.upper())

    return amount * (to_rate / from_rate)
