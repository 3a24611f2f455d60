"""Supported currencies, fallback rates and amount formatting."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from .models import ExchangeRates


class SupportedCurrency(str, Enum):
    """Currencies the app can split and display in."""

    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    INR = "INR"
    JPY = "JPY"

    @property
    def symbol(self) -> str:
        """Display symbol (e.g., "$" or "C$")."""
        return _SYMBOLS[self]

    @property
    def display_name(self) -> str:
        """Full currency name (e.g., "US Dollar")."""
        return _NAMES[self]

    @property
    def decimal_places(self) -> int:
        """Number of minor-unit digits (JPY has none)."""
        return 0 if self is SupportedCurrency.JPY else 2

    @classmethod
    def from_code(cls, code: str) -> "SupportedCurrency | None":
        """Look up a currency by code, returning None if unsupported."""
        try:
            return cls(code.upper())
        except ValueError:
            return None


_SYMBOLS = {
    SupportedCurrency.USD: "$",
    SupportedCurrency.EUR: "€",
    SupportedCurrency.GBP: "£",
    SupportedCurrency.CAD: "C$",
    SupportedCurrency.AUD: "A$",
    SupportedCurrency.INR: "₹",
    SupportedCurrency.JPY: "¥",
}

_NAMES = {
    SupportedCurrency.USD: "US Dollar",
    SupportedCurrency.EUR: "Euro",
    SupportedCurrency.GBP: "British Pound",
    SupportedCurrency.CAD: "Canadian Dollar",
    SupportedCurrency.AUD: "Australian Dollar",
    SupportedCurrency.INR: "Indian Rupee",
    SupportedCurrency.JPY: "Japanese Yen",
}

# Approximate USD-based rates used when no live snapshot is available
FALLBACK_RATES: dict[str, Decimal] = {
    "USD": Decimal("1.0"),
    "EUR": Decimal("0.92"),
    "GBP": Decimal("0.79"),
    "CAD": Decimal("1.36"),
    "AUD": Decimal("1.53"),
    "INR": Decimal("83.12"),
    "JPY": Decimal("149.50"),
}


def fallback_rates(fetched_at: datetime | None = None) -> ExchangeRates:
    """Build an exchange rate snapshot from the built-in fallback rates."""
    return ExchangeRates(
        base_currency="USD",
        rates=dict(FALLBACK_RATES),
        fetched_at=fetched_at or datetime.now(),
    )


def decimal_places(currency_code: str) -> int:
    """Minor-unit digits for a currency code (2 for unknown codes)."""
    currency = SupportedCurrency.from_code(currency_code)
    return currency.decimal_places if currency else 2


def quantize_amount(amount: Decimal, currency_code: str) -> Decimal:
    """Round an amount to the currency's minor units using ROUND_HALF_UP."""
    places = decimal_places(currency_code)
    exponent = Decimal(1).scaleb(-places)
    return amount.quantize(exponent, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal, currency_code: str) -> str:
    """
    Format an amount for display, e.g. ``$1,234.50`` or ``¥1,500``.

    Negative amounts get a leading minus sign before the symbol.
    """
    currency = SupportedCurrency.from_code(currency_code)
    places = decimal_places(currency_code)
    rounded = quantize_amount(amount, currency_code)
    body = f"{abs(rounded):,.{places}f}"
    sign = "-" if rounded < 0 else ""

    if currency is None:
        return f"{sign}{body} {currency_code.upper()}"
    return f"{sign}{currency.symbol}{body}"
