"""ExchangeRate-API client."""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

import httpx

from ..currency import FALLBACK_RATES
from ..exceptions import ExchangeRateAPIError
from ..models import ExchangeRates

logger = logging.getLogger(__name__)


class ExchangeRateClient:
    """Client for the ExchangeRate-API v6."""

    BASE_URL = "https://v6.exchangerate-api.com/v6"

    def __init__(
        self,
        api_key: str,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the exchange rate client."""
        self.api_key = api_key
        self.client = httpx.Client(
            base_url=f"{self.BASE_URL}/{api_key}",
            timeout=30.0,
            transport=transport,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def get_latest(self, base_currency: str = "USD") -> ExchangeRates:
        """
        Fetch the latest rates for the supported currencies.

        Currencies missing from the response take their fallback rate.

        Args:
            base_currency: Currency the rates are relative to

        Returns:
            Exchange rate snapshot

        Raises:
            ExchangeRateAPIError: If the request fails, the API reports an error
                or the response is malformed
        """
        try:
            response = self.client.get(f"/latest/{base_currency}")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExchangeRateAPIError(f"Exchange rate request failed: {e}") from e

        try:
            data = response.json()
            if data.get("result") != "success":
                raise ExchangeRateAPIError(
                    f"Exchange rate API error: {data.get('error-type', 'unknown')}"
                )

            conversion_rates = data.get("conversion_rates") or {}
            rates = {}
            for code, fallback in FALLBACK_RATES.items():
                value = conversion_rates.get(code)
                rate = Decimal(str(value)) if value else None
                if rate is not None and rate.is_finite() and rate > 0:
                    rates[code] = rate
                else:
                    logger.warning(f"No rate for {code} in response, using fallback")
                    rates[code] = fallback
        except (ValueError, AttributeError, InvalidOperation) as e:
            raise ExchangeRateAPIError(f"Malformed exchange rate response: {e}") from e

        rates[base_currency] = Decimal("1")

        logger.info(f"Fetched exchange rates for {len(rates)} currencies")

        return ExchangeRates(
            base_currency=base_currency,
            rates=rates,
            fetched_at=datetime.now(),
        )
