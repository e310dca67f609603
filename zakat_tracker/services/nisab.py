"""Nisab threshold resolution with a persisted daily snapshot.

The gold-based value is the threshold used for obligation decisions; the
silver-based value is computed and stored alongside it for display.
"""
import logging
import sqlite3
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from zakat_tracker.constants import NISAB_GOLD_GRAMS, NISAB_SILVER_GRAMS, SOURCE_FALLBACK
from .prices import MetalPriceQuote, PriceQuoteProvider
from .snapshot_repository import NisabSnapshotStore
from .time_provider import TimeProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NisabThreshold:
    """Derived Nisab values for one (date, currency)."""
    gold_based: float
    silver_based: float
    currency: str
    date: date
    gold_per_gram: float
    silver_per_gram: float
    source: str

    def to_dict(self) -> dict:
        return {
            'gold_based': round(self.gold_based, 2),
            'silver_based': round(self.silver_based, 2),
            'currency': self.currency,
            'date': self.date.isoformat(),
            'gold_per_gram': round(self.gold_per_gram, 4),
            'silver_per_gram': round(self.silver_per_gram, 4),
            'gold_grams': NISAB_GOLD_GRAMS,
            'silver_grams': NISAB_SILVER_GRAMS,
            'source': self.source,
        }

    @classmethod
    def from_quote(cls, quote: MetalPriceQuote) -> 'NisabThreshold':
        return cls(
            gold_based=quote.gold_per_gram * NISAB_GOLD_GRAMS,
            silver_based=quote.silver_per_gram * NISAB_SILVER_GRAMS,
            currency=quote.currency,
            date=quote.date,
            gold_per_gram=quote.gold_per_gram,
            silver_per_gram=quote.silver_per_gram,
            source=quote.source,
        )

    @classmethod
    def from_row(cls, row: dict) -> 'NisabThreshold':
        return cls(
            gold_based=float(row['nisab_gold_value']),
            silver_based=float(row['nisab_silver_value']),
            currency=row['currency'],
            date=date.fromisoformat(row['date']),
            gold_per_gram=float(row['gold_price_per_gram']),
            silver_per_gram=float(row['silver_price_per_gram']),
            source=row.get('source') or SOURCE_FALLBACK,
        )


@dataclass(frozen=True)
class NisabResolution:
    """A threshold plus whether it rests on fallback prices."""
    threshold: NisabThreshold
    degraded: bool

    @property
    def value(self) -> float:
        return self.threshold.gold_based


class NisabResolver:
    """Resolves today's Nisab threshold for a currency.

    Lookup order:
    1. Persisted snapshot for (today, currency)
    2. Price quote -> computed threshold, persisted as today's snapshot

    Once a day's snapshot exists it pins the threshold for the rest of the
    day, whatever the market does in the meantime.
    """

    def __init__(
        self,
        price_provider: PriceQuoteProvider,
        snapshot_store: Optional[NisabSnapshotStore] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        self._prices = price_provider
        self._snapshots = snapshot_store
        self._time_provider = time_provider

    def _today(self) -> date:
        return (self._time_provider or TimeProvider.get_default()).today()

    def get_threshold(self, currency: str) -> float:
        """Gold-based Nisab threshold for today."""
        return self.resolve(currency).value

    def resolve(self, currency: str) -> NisabResolution:
        """Today's threshold, reading or creating the daily snapshot."""
        currency = currency.upper()
        today = self._today()

        existing = self.for_date(today, currency)
        if existing is not None:
            logger.debug(f"Nisab snapshot {today.isoformat()} {currency} found")
            return NisabResolution(existing, degraded=existing.source == SOURCE_FALLBACK)

        threshold = self._compute(currency)
        self._persist(threshold)
        return NisabResolution(threshold, degraded=threshold.source == SOURCE_FALLBACK)

    def update_today(self, currency: str) -> dict:
        """Daily update job: create today's snapshot unless it already exists.

        Returns:
            Dict with success flag, whether a snapshot was created, and the
            snapshot data (None when it already existed).
        """
        currency = currency.upper()
        today = self._today()

        if self.for_date(today, currency) is not None:
            logger.info(f"Nisab prices for {today.isoformat()} {currency} already exist")
            return {'success': True, 'created': False, 'data': None, 'error': None}

        threshold = self._compute(currency)
        if not self._persist(threshold):
            return {
                'success': False,
                'created': False,
                'data': None,
                'error': 'Failed to store Nisab snapshot',
            }
        logger.info(f"Nisab prices stored for {today.isoformat()} {currency} ({threshold.source})")
        return {'success': True, 'created': True, 'data': threshold.to_dict(), 'error': None}

    def for_date(self, snapshot_date: date, currency: str) -> Optional[NisabThreshold]:
        """Persisted snapshot for a given day, or None."""
        if self._snapshots is None:
            return None
        try:
            row = self._snapshots.get(snapshot_date, currency)
        except sqlite3.Error as e:
            logger.warning(f"Nisab snapshot lookup failed for {snapshot_date.isoformat()} {currency}: {e}")
            return None
        return NisabThreshold.from_row(row) if row else None

    def latest(self, currency: str) -> Optional[NisabThreshold]:
        """Most recent persisted snapshot, or None."""
        if self._snapshots is None:
            return None
        try:
            row = self._snapshots.latest(currency)
        except sqlite3.Error as e:
            logger.warning(f"Latest Nisab snapshot lookup failed for {currency}: {e}")
            return None
        return NisabThreshold.from_row(row) if row else None

    def _compute(self, currency: str) -> NisabThreshold:
        quote = self._prices.get_prices(currency)
        threshold = NisabThreshold.from_quote(quote)
        # The snapshot is keyed by the resolver's day, even if the quote was cached earlier
        if threshold.date != self._today():
            threshold = replace(threshold, date=self._today())
        return threshold

    def _persist(self, threshold: NisabThreshold) -> bool:
        if self._snapshots is None:
            return False
        try:
            self._snapshots.upsert(
                threshold.date,
                threshold.currency,
                threshold.gold_per_gram,
                threshold.silver_per_gram,
                threshold.gold_based,
                threshold.silver_based,
                threshold.source,
            )
            return True
        except sqlite3.Error as e:
            logger.warning(f"Failed to store Nisab snapshot {threshold.date.isoformat()} {threshold.currency}: {e}")
            return False
