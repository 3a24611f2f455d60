"""Tests for currency metadata and formatting."""

from datetime import datetime
from decimal import Decimal

import pytest

from break_even.currency import (
    FALLBACK_RATES,
    SupportedCurrency,
    decimal_places,
    fallback_rates,
    format_amount,
    quantize_amount,
)


class TestSupportedCurrency:
    def test_all_fallback_rates_covered(self):
        assert {c.value for c in SupportedCurrency} == set(FALLBACK_RATES)

    def test_from_code_case_insensitive(self):
        assert SupportedCurrency.from_code("eur") is SupportedCurrency.EUR

    def test_from_code_unknown(self):
        assert SupportedCurrency.from_code("XYZ") is None

    def test_metadata(self):
        assert SupportedCurrency.GBP.symbol == "£"
        assert SupportedCurrency.INR.display_name == "Indian Rupee"
        assert SupportedCurrency.JPY.decimal_places == 0
        assert SupportedCurrency.CAD.decimal_places == 2


class TestFallbackRates:
    def test_usd_base(self):
        rates = fallback_rates()

        assert rates.base_currency == "USD"
        assert rates.rate("USD") == Decimal("1.0")
        assert rates.rate("jpy") == Decimal("149.50")

    def test_fetched_at(self):
        when = datetime(2025, 3, 1)

        assert fallback_rates(when).fetched_at == when

    def test_copy_is_independent(self):
        rates = fallback_rates()
        rates.rates["EUR"] = Decimal("5")

        assert FALLBACK_RATES["EUR"] == Decimal("0.92")


class TestFormatting:
    def test_decimal_places_unknown_currency(self):
        assert decimal_places("XYZ") == 2

    def test_quantize_half_up(self):
        assert quantize_amount(Decimal("2.345"), "USD") == Decimal("2.35")
        assert quantize_amount(Decimal("2.5"), "JPY") == Decimal("3")

    @pytest.mark.parametrize(
        "amount,code,expected",
        [
            ("1234.5", "USD", "$1,234.50"),
            ("1500", "JPY", "¥1,500"),
            ("-5", "USD", "-$5.00"),
            ("0.999", "EUR", "€1.00"),
            ("12", "XYZ", "12.00 XYZ"),
            ("10", "cad", "C$10.00"),
        ],
    )
    def test_format_amount(self, amount, code, expected):
        assert format_amount(Decimal(amount), code) == expected
