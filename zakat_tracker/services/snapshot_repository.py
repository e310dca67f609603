"""SQLite store for daily Nisab snapshots, one row per (date, currency)."""
import logging
from datetime import date

from zakat_tracker.db import connect

logger = logging.getLogger(__name__)

_COLUMNS = (
    'date, currency, gold_price_per_gram, silver_price_per_gram, '
    'nisab_gold_value, nisab_silver_value, source'
)


class NisabSnapshotStore:
    """Natural-keyed snapshot table.

    Writes are upserts on (date, currency): concurrent writers computing the
    same day's value converge on a single row, last write wins. A short-lived
    connection is opened per call so the store can be used from worker threads.
    """

    def __init__(self, db_path: str):
        self._db_path = db_path

    def get(self, snapshot_date: date, currency: str) -> dict | None:
        """Snapshot row for a day and currency, or None."""
        conn = connect(self._db_path)
        try:
            row = conn.execute(
                f'SELECT {_COLUMNS} FROM nisab_prices WHERE date = ? AND currency = ?',
                (snapshot_date.isoformat(), currency.upper())
            ).fetchone()
        finally:
            conn.close()
        return dict(row) if row else None

    def latest(self, currency: str) -> dict | None:
        """Most recent snapshot for a currency, or None."""
        conn = connect(self._db_path)
        try:
            row = conn.execute(
                f'SELECT {_COLUMNS} FROM nisab_prices WHERE currency = ? ORDER BY date DESC LIMIT 1',
                (currency.upper(),)
            ).fetchone()
        finally:
            conn.close()
        return dict(row) if row else None

    def upsert(
        self,
        snapshot_date: date,
        currency: str,
        gold_price_per_gram: float,
        silver_price_per_gram: float,
        nisab_gold_value: float,
        nisab_silver_value: float,
        source: str,
    ) -> None:
        """Insert or replace the snapshot for (date, currency)."""
        conn = connect(self._db_path)
        try:
            conn.execute('''
                INSERT INTO nisab_prices (
                    date, currency, gold_price_per_gram, silver_price_per_gram,
                    nisab_gold_value, nisab_silver_value, source
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(date, currency) DO UPDATE SET
                    gold_price_per_gram = excluded.gold_price_per_gram,
                    silver_price_per_gram = excluded.silver_price_per_gram,
                    nisab_gold_value = excluded.nisab_gold_value,
                    nisab_silver_value = excluded.nisab_silver_value,
                    source = excluded.source
            ''', (
                snapshot_date.isoformat(), currency.upper(),
                gold_price_per_gram, silver_price_per_gram,
                nisab_gold_value, nisab_silver_value, source,
            ))
            conn.commit()
        finally:
            conn.close()
        logger.debug(f"Stored Nisab snapshot {snapshot_date.isoformat()} {currency.upper()}")
