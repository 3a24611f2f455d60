"""Pydantic domain models for Break Even."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ============================================================================
# People
# ============================================================================


class Participant(BaseModel):
    """A person who can owe or be owed money."""

    id: str
    name: str
    is_current_user: bool = False


# ============================================================================
# Allocation Strategies
# ============================================================================


class SplitItem(BaseModel):
    """A line item assigned to one or more participants."""

    name: str
    amount: Decimal
    assigned_to: set[str] = Field(default_factory=set)  # participant IDs


class EqualSplit(BaseModel):
    """Total divided evenly across participants."""

    method: Literal["equal"] = "equal"


class UnequalSplit(BaseModel):
    """Explicit amount per participant."""

    method: Literal["unequal"] = "unequal"
    amounts: dict[str, Decimal] = Field(default_factory=dict)


class ByPartsSplit(BaseModel):
    """Shares proportional to integer parts per participant.

    Participants without an entry count as one part.
    """

    method: Literal["by_parts"] = "by_parts"
    parts: dict[str, Annotated[int, Field(ge=0)]] = Field(default_factory=dict)


class ByItemSplit(BaseModel):
    """Each item split evenly among the participants it is assigned to."""

    method: Literal["by_item"] = "by_item"
    items: list[SplitItem] = Field(default_factory=list)


AllocationStrategy = Annotated[
    EqualSplit | UnequalSplit | ByPartsSplit | ByItemSplit,
    Field(discriminator="method"),
]


# ============================================================================
# Currency
# ============================================================================


class ExchangeRates(BaseModel):
    """Exchange rate snapshot. Each rate is units of currency per base unit."""

    base_currency: str = "USD"
    rates: dict[str, Decimal]
    fetched_at: datetime = Field(default_factory=datetime.now)

    def rate(self, currency_code: str) -> Decimal | None:
        """Get the rate for a currency code (case-insensitive)."""
        code = currency_code.upper()
        for key, value in self.rates.items():
            if key.upper() == code:
                return value
        return None


# ============================================================================
# Expenses & Settlements
# ============================================================================


class Expense(BaseModel):
    """One shared cost event."""

    id: str | None = None
    title: str = ""
    total_amount: Decimal = Field(gt=0)
    currency_code: str = "USD"
    strategy: AllocationStrategy = Field(default_factory=EqualSplit)
    payer_id: str
    participant_ids: list[str] = Field(min_length=1)
    created_at: datetime = Field(default_factory=datetime.now)
    exchange_rates: ExchangeRates | None = None  # snapshot at creation time

    @field_validator("currency_code")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("participant_ids")
    @classmethod
    def _dedupe_participants(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    def has_participant(self, participant_id: str) -> bool:
        """Check whether the participant takes part in this expense."""
        return participant_id in self.participant_ids


class SettlementRecord(BaseModel):
    """A payment from payer to payee that reduces an outstanding balance."""

    model_config = ConfigDict(frozen=True)

    payer_id: str
    payee_id: str
    amount: Decimal = Field(gt=0)
    currency_code: str = "USD"
    date: datetime = Field(default_factory=datetime.now)
    note: str | None = None

    @field_validator("currency_code")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()


# ============================================================================
# Calculation Results
# ============================================================================


class ShareLine(BaseModel):
    """One participant's share of an expense."""

    participant_id: str
    amount: Decimal
    percentage: Decimal | None = None  # only for by-parts splits


class SplitBreakdown(BaseModel):
    """Per-participant shares of an expense, ready to hand to the backend."""

    method: str
    currency_code: str
    total_amount: Decimal
    lines: list[ShareLine]
    assigned_total: Decimal
    unassigned_total: Decimal = Decimal("0")

    def amount_for(self, participant_id: str) -> Decimal:
        """Get the share amount for a participant (zero if absent)."""
        for line in self.lines:
            if line.participant_id == participant_id:
                return line.amount
        return Decimal("0")


class OverSettlement(BaseModel):
    """Advisory: recorded settlements exceed what was owed."""

    debtor_id: str
    creditor_id: str
    currency_code: str
    owed: Decimal
    settled: Decimal
    excess: Decimal


class PairBalance(BaseModel):
    """How much debtor owes creditor on one expense after settlements.

    ``amount`` is signed: negative means creditor owes debtor.
    """

    debtor_id: str
    creditor_id: str
    currency_code: str
    gross_amount: Decimal
    settled_amount: Decimal
    amount: Decimal
    over_settlement: OverSettlement | None = None


class OutstandingShare(BaseModel):
    """A participant's share of an expense and how much of it is settled."""

    expense_id: str
    participant_id: str
    amount: Decimal
    settled_amount: Decimal = Decimal("0")
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def remaining(self) -> Decimal:
        """Amount still owed on this share."""
        return max(Decimal("0"), self.amount - self.settled_amount)


class AppliedAmount(BaseModel):
    """Portion of a settlement applied to one share."""

    expense_id: str
    participant_id: str
    amount_applied: Decimal
    fully_settled: bool


class SettlementAllocation(BaseModel):
    """Result of spreading a settlement payment across outstanding shares."""

    requested_amount: Decimal
    settled_amount: Decimal
    unapplied_amount: Decimal
    balance_before: Decimal
    applied: list[AppliedAmount] = Field(default_factory=list)
    shares: list[OutstandingShare] = Field(default_factory=list)


class CurrencyBalance(BaseModel):
    """Amounts owed in one original currency."""

    friend_owes: Decimal = Decimal("0")
    user_owes: Decimal = Decimal("0")


class BalanceSummary(BaseModel):
    """Balance between the current user and one friend across expenses."""

    display_currency: str
    friend_owes_user: Decimal = Decimal("0")
    user_owes_friend: Decimal = Decimal("0")
    net_balance: Decimal = Decimal("0")
    by_currency: dict[str, CurrencyBalance] = Field(default_factory=dict)
    unconverted_currencies: list[str] = Field(default_factory=list)
    over_settlements: list[OverSettlement] = Field(default_factory=list)


# ============================================================================
# Receipt Models
# ============================================================================


class ReceiptItem(BaseModel):
    """One line item read from a receipt."""

    name: str = ""
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Field(default=Decimal("0"), alias="unitPrice")

    model_config = ConfigDict(populate_by_name=True)


class ReceiptScan(BaseModel):
    """Receipt analysis output."""

    merchant_name: str = Field(default="", alias="merchantName")
    items: list[ReceiptItem] | None = None
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    date: str = ""

    model_config = ConfigDict(populate_by_name=True)
