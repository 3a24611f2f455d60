"""SQLite database operations for Break Even."""

import json
import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .models import ExchangeRates


class Database:
    """SQLite database manager (exchange rate cache)."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Exchange rate snapshots table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS exchange_rates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                base_currency TEXT NOT NULL,
                rates_json TEXT NOT NULL,
                fetched_at TIMESTAMP NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_exchange_rates_base_fetched
            ON exchange_rates (base_currency, fetched_at)
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Exchange rate operations
    # ========================================================================

    def save_exchange_rates(self, rates: ExchangeRates) -> int:
        """Save an exchange rate snapshot."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO exchange_rates (base_currency, rates_json, fetched_at)
            VALUES (?, ?, ?)
            """,
            (
                rates.base_currency,
                json.dumps({code: str(rate) for code, rate in rates.rates.items()}),
                rates.fetched_at.isoformat(),
            ),
        )
        self.conn.commit()
        row_id = cursor.lastrowid
        if row_id is None:
            raise RuntimeError("Failed to insert exchange rate snapshot")
        return row_id

    def get_latest_exchange_rates(
        self, base_currency: str = "USD"
    ) -> ExchangeRates | None:
        """Get the most recently fetched snapshot for a base currency."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT * FROM exchange_rates
            WHERE base_currency = ?
            ORDER BY fetched_at DESC, id DESC
            LIMIT 1
            """,
            (base_currency,),
        )
        row = cursor.fetchone()

        if not row:
            return None

        return ExchangeRates(
            base_currency=row["base_currency"],
            rates={
                code: Decimal(rate)
                for code, rate in json.loads(row["rates_json"]).items()
            },
            fetched_at=datetime.fromisoformat(row["fetched_at"]),
        )
