"""Exchange rate provider with a local cache and fallback rates."""

import logging
from datetime import datetime, timedelta

import httpx

from .clients.exchange_rates import ExchangeRateClient
from .config import Settings
from .currency import fallback_rates
from .db import Database
from .exceptions import ExchangeRateAPIError
from .models import ExchangeRates

logger = logging.getLogger(__name__)

BASE_CURRENCY = "USD"


class ExchangeRateService:
    """Serves the latest exchange rate snapshot, fetching only when stale."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the exchange rate service."""
        self.settings = settings
        self.db = database
        self.transport = transport

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(hours=self.settings.rates_cache_ttl_hours)

    def is_fresh(self, rates: ExchangeRates, now: datetime | None = None) -> bool:
        """Check whether a snapshot is younger than the cache TTL."""
        now = now or datetime.now()
        return now - rates.fetched_at < self.cache_ttl

    def get_rates(self, force_refresh: bool = False) -> ExchangeRates:
        """
        Get exchange rates, calling the API only if the cache is stale.

        Priority:
        1. Fresh cached snapshot (unless force_refresh)
        2. Fallback rates when no API key is configured
        3. Freshly fetched rates
        4. Stale cached snapshot if the fetch failed
        5. Fallback rates as a last resort

        Returns:
            Exchange rate snapshot (always succeeds)
        """
        cached = self.db.get_latest_exchange_rates(BASE_CURRENCY)
        now = datetime.now()

        if cached and not force_refresh and self.is_fresh(cached, now):
            age_minutes = int((now - cached.fetched_at).total_seconds() // 60)
            logger.info(f"Using cached exchange rates (age: {age_minutes} minutes)")
            return cached

        if not self.settings.exchange_rate_api_key:
            logger.warning("EXCHANGE_RATE_API_KEY not set - using fallback rates")
            return self._store(fallback_rates(now))

        logger.info("Fetching fresh exchange rates from API...")
        try:
            with ExchangeRateClient(
                self.settings.exchange_rate_api_key, transport=self.transport
            ) as client:
                fresh = client.get_latest(BASE_CURRENCY)
        except ExchangeRateAPIError as e:
            logger.error(f"Failed to fetch exchange rates: {e}")
            if cached:
                logger.info("Using stale cached rates as fallback")
                return cached
            return self._store(fallback_rates(now))

        logger.info("Fresh exchange rates fetched and cached")
        return self._store(fresh)

    def _store(self, rates: ExchangeRates) -> ExchangeRates:
        self.db.save_exchange_rates(rates)
        return rates
