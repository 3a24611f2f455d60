"""Configuration management for Break Even."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ExchangeRate-API (fallback rates are used when unset)
    exchange_rate_api_key: str | None = None

    # Display settings
    default_currency: str = "USD"

    # Exchange rate cache
    rates_cache_ttl_hours: float = 24.0

    # Reject splits whose amounts don't reconcile with the total
    strict_split_validation: bool = False

    # Database path (exchange rate cache)
    database_path: Path = Path.home() / ".break_even" / "break_even.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.default_currency = self.default_currency.upper()
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your .env file and environment "
            f"variables. See .env.example for reference.\n"
            f"Error: {e}"
        ) from e
