"""Break Even - Split shared expenses and track who owes whom."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database
from .models import (
    ByItemSplit,
    ByPartsSplit,
    EqualSplit,
    ExchangeRates,
    Expense,
    Participant,
    SettlementRecord,
    SplitItem,
    UnequalSplit,
)
from .rates import ExchangeRateService
from .split.calculator import (
    compute_breakdown,
    compute_share,
    convert,
    remaining_to_assign,
    total_parts,
)
from .split.service import SplitService
from .split.settlement import apply_settlement, net_balance

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "ByItemSplit",
    "ByPartsSplit",
    "EqualSplit",
    "ExchangeRates",
    "Expense",
    "Participant",
    "SettlementRecord",
    "SplitItem",
    "UnequalSplit",
    "ExchangeRateService",
    "compute_breakdown",
    "compute_share",
    "convert",
    "remaining_to_assign",
    "total_parts",
    "SplitService",
    "apply_settlement",
    "net_balance",
]
