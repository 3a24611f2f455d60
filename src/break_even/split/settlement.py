"""Settlement bookkeeping: pairwise balances and applying payments to shares."""

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import Literal

from ..exceptions import InvalidAmountError
from ..models import (
    AppliedAmount,
    Expense,
    OutstandingShare,
    OverSettlement,
    PairBalance,
    SettlementAllocation,
    SettlementRecord,
)
from .calculator import ZERO, compute_share

logger = logging.getLogger(__name__)

# Shares within this much of fully paid count as settled
SETTLED_TOLERANCE = Decimal("0.001")

SplitStatus = Literal["pending", "partial", "settled"]


def gross_owed(expense: Expense, debtor_id: str, creditor_id: str) -> Decimal:
    """
    How much debtor owes creditor on an expense before any settlement.

    Negative when creditor owes debtor instead.
    """
    if debtor_id == creditor_id:
        return ZERO
    if expense.payer_id == creditor_id:
        return compute_share(expense, debtor_id)
    if expense.payer_id == debtor_id:
        return -compute_share(expense, creditor_id)
    return ZERO


def settled_between(
    settlements: Iterable[SettlementRecord],
    debtor_id: str,
    creditor_id: str,
    currency_code: str,
) -> Decimal:
    """
    Net amount debtor has paid creditor in one currency.

    Payments from creditor to debtor count as negative.
    """
    currency = currency_code.upper()
    total = ZERO
    for record in settlements:
        if record.currency_code != currency:
            continue
        if record.payer_id == debtor_id and record.payee_id == creditor_id:
            total += record.amount
        elif record.payer_id == creditor_id and record.payee_id == debtor_id:
            total -= record.amount
    return total


def clamp_balance(
    gross: Decimal,
    paid: Decimal,
    debtor_id: str,
    creditor_id: str,
    currency_code: str,
) -> PairBalance:
    """
    Subtract settlements from a gross debt without letting it flip sign.

    The remaining balance is clamped between zero and the gross amount.
    Paying past zero is reported through ``over_settlement``.
    """
    remaining = gross - paid

    # Orient so the debt is non-negative, clamp, then restore the sign
    sign = -1 if gross < 0 else 1
    owed = gross * sign
    oriented = remaining * sign

    over_settlement = None
    if oriented < 0:
        excess = -oriented
        over_settlement = OverSettlement(
            debtor_id=debtor_id if sign > 0 else creditor_id,
            creditor_id=creditor_id if sign > 0 else debtor_id,
            currency_code=currency_code,
            owed=owed,
            settled=owed + excess,
            excess=excess,
        )
        oriented = ZERO
    elif oriented > owed:
        # Payments ran the other way; they can't grow the debt
        oriented = owed

    return PairBalance(
        debtor_id=debtor_id,
        creditor_id=creditor_id,
        currency_code=currency_code,
        gross_amount=gross,
        settled_amount=paid,
        amount=oriented * sign,
        over_settlement=over_settlement,
    )


def net_balance(
    expense: Expense,
    debtor_id: str,
    creditor_id: str,
    settlements: Iterable[SettlementRecord],
) -> PairBalance:
    """
    Compute how much debtor still owes creditor on one expense.

    Settlements in the expense currency between the same pair are summed
    (order doesn't matter). The result is clamped between zero and the
    gross amount, so paying too much never flips who owes whom. Paying past
    zero is reported through ``over_settlement`` instead.

    Args:
        expense: The expense the debt comes from
        debtor_id: Participant whose debt is measured
        creditor_id: Participant being owed
        settlements: Settlement history (any pair, any currency)

    Returns:
        Pair balance; ``amount`` is negative when creditor owes debtor
    """
    balance = clamp_balance(
        gross=gross_owed(expense, debtor_id, creditor_id),
        paid=settled_between(
            settlements, debtor_id, creditor_id, expense.currency_code
        ),
        debtor_id=debtor_id,
        creditor_id=creditor_id,
        currency_code=expense.currency_code,
    )

    if balance.over_settlement:
        over = balance.over_settlement
        logger.warning(
            f"Over-settlement on expense {expense.id or expense.title!r}: "
            f"settled {over.settled} against {over.owed} owed "
            f"(excess {over.excess} {over.currency_code})"
        )

    return balance


def net_balance_by_currency(
    expenses: Iterable[Expense],
    debtor_id: str,
    creditor_id: str,
    settlements: Iterable[SettlementRecord],
) -> dict[str, PairBalance]:
    """
    Net pair balances across many expenses, one per currency.

    Gross debts are summed per currency before settlements are subtracted,
    so each settlement is counted once.
    """
    settlements = list(settlements)
    gross_by_currency: dict[str, Decimal] = {}
    for expense in expenses:
        gross_by_currency[expense.currency_code] = gross_by_currency.get(
            expense.currency_code, ZERO
        ) + gross_owed(expense, debtor_id, creditor_id)

    balances = {}
    for currency_code, gross in gross_by_currency.items():
        balance = clamp_balance(
            gross=gross,
            paid=settled_between(settlements, debtor_id, creditor_id, currency_code),
            debtor_id=debtor_id,
            creditor_id=creditor_id,
            currency_code=currency_code,
        )
        if balance.over_settlement:
            logger.warning(
                f"Over-settlement between {debtor_id} and {creditor_id}: "
                f"excess {balance.over_settlement.excess} {currency_code}"
            )
        balances[currency_code] = balance

    return balances


def is_fully_settled(share: OutstandingShare) -> bool:
    """Check whether a share is paid off (within a small tolerance)."""
    return share.settled_amount >= share.amount - SETTLED_TOLERANCE


def initial_shares(expense: Expense) -> list[OutstandingShare]:
    """
    Create one outstanding share per participant of a new expense.

    The payer's own share starts out fully settled.
    """
    if expense.id is None:
        raise ValueError("Expense must have an id to track shares")

    shares = []
    for participant_id in expense.participant_ids:
        amount = compute_share(expense, participant_id)
        shares.append(
            OutstandingShare(
                expense_id=expense.id,
                participant_id=participant_id,
                amount=amount,
                settled_amount=amount if participant_id == expense.payer_id else ZERO,
                created_at=expense.created_at,
            )
        )
    return shares


def split_status(shares: list[OutstandingShare]) -> SplitStatus:
    """Summarize an expense's shares as pending, partial or settled."""
    settled = [is_fully_settled(share) for share in shares]
    if all(settled):
        return "settled"
    if any(settled):
        return "partial"
    return "pending"


def apply_settlement(
    shares: list[OutstandingShare], amount: Decimal
) -> SettlementAllocation:
    """
    Spread a settlement payment across outstanding shares, oldest first.

    Each share absorbs at most its remaining amount. Whatever is left once
    every share is paid off comes back as ``unapplied_amount``. The input
    shares are not modified; updated copies are returned.

    Args:
        shares: Outstanding shares owed by one person to another
        amount: Payment amount

    Returns:
        The allocation, including updated copies of the shares

    Raises:
        InvalidAmountError: If amount is not positive
    """
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"Invalid settlement amount: {amount}")

    ordered = sorted(shares, key=lambda s: s.created_at)
    balance_before = sum((s.remaining for s in ordered), ZERO)

    remaining_amount = amount
    applied = []
    updated = []

    for share in ordered:
        to_apply = min(remaining_amount, share.remaining)
        if to_apply <= 0:
            updated.append(share)
            continue

        new_share = share.model_copy(
            update={"settled_amount": share.settled_amount + to_apply}
        )
        updated.append(new_share)
        applied.append(
            AppliedAmount(
                expense_id=share.expense_id,
                participant_id=share.participant_id,
                amount_applied=to_apply,
                fully_settled=is_fully_settled(new_share),
            )
        )
        remaining_amount -= to_apply

    settled_amount = amount - remaining_amount

    logger.info(
        f"Applied settlement of {settled_amount} across {len(applied)} shares "
        f"(balance before: {balance_before}, unapplied: {remaining_amount})"
    )

    return SettlementAllocation(
        requested_amount=amount,
        settled_amount=settled_amount,
        unapplied_amount=remaining_amount,
        balance_before=balance_before,
        applied=applied,
        shares=updated,
    )
