"""Service layer that composes split calculation, settlements and rates.

The calculator and settlement modules are pure; this module adds the
application policy on top: strict validation from settings, display
rounding, and converting balances into the user's currency.
"""

import logging
from decimal import Decimal

from ..config import Settings
from ..exceptions import RateUnavailableError
from ..models import (
    BalanceSummary,
    CurrencyBalance,
    ExchangeRates,
    Expense,
    OutstandingShare,
    SettlementAllocation,
    SettlementRecord,
    SplitBreakdown,
)
from ..rates import ExchangeRateService
from .calculator import ZERO, compute_breakdown, convert, validate_expense
from .rounding import round_breakdown
from .settlement import apply_settlement, net_balance_by_currency

logger = logging.getLogger(__name__)


class SplitService:
    """Service for computing splits and balances between people."""

    def __init__(
        self,
        settings: Settings,
        rate_service: ExchangeRateService | None = None,
    ):
        """Initialize the split service."""
        self.settings = settings
        self.rate_service = rate_service
        self._latest_rates: ExchangeRates | None = None

    def latest_rates(self) -> ExchangeRates | None:
        """Latest rate snapshot from the rate service (fetched once)."""
        if self._latest_rates is None and self.rate_service is not None:
            self._latest_rates = self.rate_service.get_rates()
        return self._latest_rates

    def create_breakdown(
        self,
        expense: Expense,
        strict: bool | None = None,
        rounded: bool = False,
    ) -> SplitBreakdown:
        """
        Validate an expense and compute its per-participant breakdown.

        Args:
            expense: The expense to split
            strict: Override settings.strict_split_validation
            rounded: Round shares to the currency's minor units

        Returns:
            Breakdown ready to be handed to the backend

        Raises:
            SplitValidationError: If strict validation finds problems
        """
        if strict is None:
            strict = self.settings.strict_split_validation
        validate_expense(expense, strict=strict)

        breakdown = compute_breakdown(expense)
        if rounded:
            breakdown = round_breakdown(breakdown)

        logger.info(
            f"Computed {breakdown.method} split of {expense.total_amount} "
            f"{expense.currency_code} across {len(breakdown.lines)} participants"
        )
        return breakdown

    def record_settlement(
        self, shares: list[OutstandingShare], amount: Decimal
    ) -> SettlementAllocation:
        """Apply a settlement payment to the oldest outstanding shares first."""
        allocation = apply_settlement(shares, amount)
        if allocation.unapplied_amount > 0:
            logger.warning(
                f"Settlement exceeds balance by {allocation.unapplied_amount}"
            )
        return allocation

    def convert_for_display(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        rates: ExchangeRates | None,
    ) -> Decimal:
        """
        Convert an amount for display.

        Raises:
            RateUnavailableError: If no snapshot is available or a rate is missing
        """
        if from_currency == to_currency:
            return amount
        if rates is None:
            raise RateUnavailableError(from_currency, "No exchange rates available")
        return convert(amount, from_currency, to_currency, rates)

    def balance_with(
        self,
        expenses: list[Expense],
        settlements: list[SettlementRecord],
        user_id: str,
        friend_id: str,
        display_currency: str | None = None,
    ) -> BalanceSummary:
        """
        Summarize what a friend and the user owe each other.

        Balances are netted per original currency, then converted into the
        display currency using the newest snapshot stored with that
        currency's expenses (or the latest fetched rates). When no rate is
        available the amount is added unconverted and the currency is
        listed in ``unconverted_currencies``.

        Args:
            expenses: Expenses that may involve both people
            settlements: Settlement history between them
            user_id: The current user's participant ID
            friend_id: The friend's participant ID
            display_currency: Target currency (defaults to settings)

        Returns:
            Balance summary in the display currency
        """
        display_currency = (display_currency or self.settings.default_currency).upper()
        summary = BalanceSummary(display_currency=display_currency)

        balances = net_balance_by_currency(expenses, friend_id, user_id, settlements)

        for currency_code, balance in balances.items():
            if balance.over_settlement:
                summary.over_settlements.append(balance.over_settlement)
            if balance.amount == 0:
                continue

            rates = self._snapshot_for(expenses, currency_code)
            try:
                converted = self.convert_for_display(
                    balance.amount, currency_code, display_currency, rates
                )
            except RateUnavailableError as e:
                logger.warning(f"Showing {currency_code} unconverted: {e}")
                converted = balance.amount
                summary.unconverted_currencies.append(currency_code)

            entry = summary.by_currency.setdefault(currency_code, CurrencyBalance())
            if balance.amount > 0:
                entry.friend_owes += balance.amount
                summary.friend_owes_user += converted
            else:
                entry.user_owes += -balance.amount
                summary.user_owes_friend += -converted

        summary.net_balance = summary.friend_owes_user - summary.user_owes_friend

        logger.info(
            f"Balance with {friend_id}: {summary.net_balance} {display_currency} "
            f"across {len(balances)} currencies"
        )
        return summary

    def _snapshot_for(
        self, expenses: list[Expense], currency_code: str
    ) -> ExchangeRates | None:
        snapshots = [
            expense.exchange_rates
            for expense in expenses
            if expense.currency_code == currency_code and expense.exchange_rates
        ]
        if snapshots:
            return max(snapshots, key=lambda r: r.fetched_at)
        return self.latest_rates()


def total_outstanding(shares: list[OutstandingShare]) -> Decimal:
    """Sum of what is still owed across shares."""
    return sum((share.remaining for share in shares), ZERO)
