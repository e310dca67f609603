"""Zakat obligation engine.

Two modes:

* calculate(): point-in-time figures from lifetime savings, zakatable income
  and user-entered debts against today's Nisab.
* evaluate_eligibility(): Hawl-based determination over the Hijri year that
  ends on the user's Zakat anniversary.

Neither raises. Upstream failures produce zero-valued results marked
degraded, so callers always get something renderable.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Optional

from zakat_tracker.constants import FALLBACK_NISAB_THRESHOLD, ZAKAT_RATE
from . import hijri_calendar
from .hijri_calendar import HijriDate
from .nisab import NisabResolver
from .profiles import ProfileStore
from .time_provider import TimeProvider
from .wealth import WealthAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZakatCalculation:
    current_savings: float
    zakatable_income: float
    debts: float
    total_zakatable_wealth: float
    nisab_threshold: float
    zakat_due: float
    is_above_nisab: bool
    amount_to_reach_nisab: float
    degraded: bool = False

    def to_dict(self) -> dict:
        return {
            'current_savings': round(self.current_savings, 2),
            'zakatable_income': round(self.zakatable_income, 2),
            'debts': round(self.debts, 2),
            'total_zakatable_wealth': round(self.total_zakatable_wealth, 2),
            'nisab_threshold': round(self.nisab_threshold, 2),
            'zakat_due': round(self.zakat_due, 2),
            'is_above_nisab': self.is_above_nisab,
            'amount_to_reach_nisab': round(self.amount_to_reach_nisab, 2),
            'zakat_rate': ZAKAT_RATE,
            'degraded': self.degraded,
        }


@dataclass(frozen=True)
class ZakatEligibilityResult:
    is_obligatory: bool
    annual_savings: float
    nisab_threshold: float
    zakat_amount_due: float
    has_maintained_nisab: bool
    days_until_zakat_date: Optional[int]
    next_zakat_date_hijri: Optional[HijriDate]
    next_zakat_date_gregorian: Optional[date]
    degraded: bool = False

    def to_dict(self) -> dict:
        return {
            'is_obligatory': self.is_obligatory,
            'annual_savings': round(self.annual_savings, 2),
            'nisab_threshold': round(self.nisab_threshold, 2),
            'zakat_amount_due': round(self.zakat_amount_due, 2),
            'has_maintained_nisab': self.has_maintained_nisab,
            'days_until_zakat_date': self.days_until_zakat_date,
            'next_zakat_date_hijri': self.next_zakat_date_hijri.to_dict() if self.next_zakat_date_hijri else None,
            'next_zakat_date_gregorian': (
                self.next_zakat_date_gregorian.isoformat() if self.next_zakat_date_gregorian else None
            ),
            'degraded': self.degraded,
        }


def build_calculation(
    current_savings: float,
    zakatable_income: float,
    debts: float,
    nisab_threshold: float,
    degraded: bool = False,
) -> ZakatCalculation:
    """Apply the Zakat rules to already-gathered totals."""
    total = current_savings + zakatable_income - debts
    above = total >= nisab_threshold
    return ZakatCalculation(
        current_savings=current_savings,
        zakatable_income=zakatable_income,
        debts=debts,
        total_zakatable_wealth=total,
        nisab_threshold=nisab_threshold,
        zakat_due=total * ZAKAT_RATE if above else 0.0,
        is_above_nisab=above,
        amount_to_reach_nisab=max(0.0, nisab_threshold - total),
        degraded=degraded,
    )


def next_anniversary(anchor: HijriDate, today_hijri: HijriDate) -> HijriDate:
    """Next occurrence of the anchor's month/day strictly after today.

    This Hijri year's anniversary if today is before it, otherwise next
    year's. A 30th is clamped to the 29th in years where the month is short.
    """
    this_year = hijri_calendar.add_hijri_years(anchor, today_hijri.year - anchor.year)
    if today_hijri < this_year:
        return this_year
    return hijri_calendar.add_hijri_years(anchor, today_hijri.year + 1 - anchor.year)


def hawl_window(anchor: HijriDate, today_hijri: HijriDate) -> tuple[HijriDate, HijriDate]:
    """Hijri year ending on this Hijri year's anniversary: (start, end)."""
    end = hijri_calendar.add_hijri_years(anchor, today_hijri.year - anchor.year)
    start = hijri_calendar.add_hijri_years(end, -1)
    return start, end


class ZakatEngine:
    """Orchestrates Nisab, wealth and calendar lookups into Zakat results."""

    def __init__(
        self,
        nisab: NisabResolver,
        wealth: WealthAggregator,
        profiles: Optional[ProfileStore] = None,
        time_provider: Optional[TimeProvider] = None,
        default_currency: str = 'USD',
    ):
        self._nisab = nisab
        self._wealth = wealth
        self._profiles = profiles
        self._time_provider = time_provider
        self._default_currency = default_currency

    def _today(self) -> date:
        return (self._time_provider or TimeProvider.get_default()).today()

    def _fallback_threshold(self, currency: str) -> float:
        """Best-effort threshold after a failure elsewhere."""
        try:
            return self._nisab.get_threshold(currency)
        except Exception as e:
            logger.warning(f"Nisab threshold unavailable for {currency}: {e}")
            return FALLBACK_NISAB_THRESHOLD

    def calculate(self, user_id: str, debts: float = 0.0, currency: str = 'USD') -> ZakatCalculation:
        """Point-in-time Zakat figures for a user. Never raises."""
        try:
            with ThreadPoolExecutor(max_workers=3) as executor:
                savings_future = executor.submit(self._wealth.current_savings, user_id)
                income_future = executor.submit(self._wealth.zakatable_income, user_id)
                nisab_future = executor.submit(self._nisab.resolve, currency)
                current_savings = savings_future.result()
                zakatable_income = income_future.result()
                resolution = nisab_future.result()
        except Exception as e:
            logger.warning(f"Zakat calculation failed for user {user_id}: {e}")
            threshold = self._fallback_threshold(currency)
            return build_calculation(0.0, 0.0, 0.0, threshold, degraded=True)

        return build_calculation(
            current_savings,
            zakatable_income,
            debts,
            resolution.value,
            degraded=resolution.degraded,
        )

    def evaluate_eligibility(self, user_id: str, currency: Optional[str] = None) -> ZakatEligibilityResult:
        """Hawl-anchored Zakat eligibility. Never raises.

        hasMaintainedNisab is judged on the window's net savings only, not on
        the balance throughout the year.
        """
        try:
            profile = self._profiles.get(user_id) if self._profiles is not None else None
        except Exception as e:
            logger.warning(f"Profile lookup failed for user {user_id}: {e}")
            return self._empty_eligibility(FALLBACK_NISAB_THRESHOLD, degraded=True)

        if currency is None:
            currency = profile.preferred_currency if profile else self._default_currency
        anchor = profile.hawl_anchor if profile else None

        if anchor is None:
            try:
                resolution = self._nisab.resolve(currency)
                return self._empty_eligibility(resolution.value, degraded=resolution.degraded)
            except Exception as e:
                logger.warning(f"Nisab threshold unavailable for {currency}: {e}")
                return self._empty_eligibility(FALLBACK_NISAB_THRESHOLD, degraded=True)

        try:
            today = self._today()
            today_hijri = hijri_calendar.to_hijri(today)
            start_hijri, end_hijri = hawl_window(anchor, today_hijri)
            start = hijri_calendar.to_gregorian(start_hijri)
            end = hijri_calendar.to_gregorian(end_hijri)

            with ThreadPoolExecutor(max_workers=2) as executor:
                savings_future = executor.submit(self._wealth.savings_between, user_id, start, end)
                nisab_future = executor.submit(self._nisab.resolve, currency)
                annual_savings = savings_future.result()
                resolution = nisab_future.result()

            next_hijri = next_anniversary(anchor, today_hijri)
            next_gregorian = hijri_calendar.to_gregorian(next_hijri)
        except Exception as e:
            logger.warning(f"Zakat eligibility failed for user {user_id}: {e}")
            return self._empty_eligibility(self._fallback_threshold(currency), degraded=True)

        threshold = resolution.value
        maintained = annual_savings >= threshold
        return ZakatEligibilityResult(
            is_obligatory=maintained,
            annual_savings=annual_savings,
            nisab_threshold=threshold,
            zakat_amount_due=annual_savings * ZAKAT_RATE if maintained else 0.0,
            has_maintained_nisab=maintained,
            days_until_zakat_date=(next_gregorian - today).days,
            next_zakat_date_hijri=next_hijri,
            next_zakat_date_gregorian=next_gregorian,
            degraded=resolution.degraded,
        )

    @staticmethod
    def _empty_eligibility(threshold: float, degraded: bool) -> ZakatEligibilityResult:
        return ZakatEligibilityResult(
            is_obligatory=False,
            annual_savings=0.0,
            nisab_threshold=threshold,
            zakat_amount_due=0.0,
            has_maintained_nisab=False,
            days_until_zakat_date=None,
            next_zakat_date_hijri=None,
            next_zakat_date_gregorian=None,
            degraded=degraded,
        )
