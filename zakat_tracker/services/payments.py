"""Zakat payment ledger: recording, history and the yearly comparison."""
import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Optional

from zakat_tracker.constants import (
    FALLBACK_NISAB_THRESHOLD,
    YEARLY_COMPARISON_TRAILING_YEARS,
    ZAKAT_PAYMENTS_TABLE,
    ZAKAT_RATE,
)
from . import hijri_calendar
from .hijri_calendar import HijriDate
from .ledger_store import LedgerError, LedgerStore
from .nisab import NisabResolver
from .time_provider import TimeProvider
from .wealth import OperationResult, WealthAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZakatPaymentRecord:
    id: int
    amount: float
    paid_date: date
    paid_date_hijri: HijriDate
    notes: Optional[str]
    created_at: Optional[str]

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'amount': round(self.amount, 2),
            'paid_date': self.paid_date.isoformat(),
            'paid_date_hijri': self.paid_date_hijri.to_dict(),
            'paid_date_display': hijri_calendar.format_dual_date(self.paid_date),
            'notes': self.notes,
            'created_at': self.created_at,
        }


@dataclass(frozen=True)
class YearlyComparisonRow:
    year: int
    hijri_year: int
    savings: float
    nisab_threshold: float
    zakat_paid: float
    zakat_due: float

    def to_dict(self) -> dict:
        return {
            'year': self.year,
            'hijri_year': self.hijri_year,
            'savings': round(self.savings, 2),
            'nisab_threshold': round(self.nisab_threshold, 2),
            'zakat_paid': round(self.zakat_paid, 2),
            'zakat_due': round(self.zakat_due, 2),
        }


class PaymentLedger:
    """Zakat payments stored in the ledger's zakat_payments table."""

    def __init__(
        self,
        ledger: LedgerStore,
        wealth: WealthAggregator,
        nisab: NisabResolver,
        time_provider: Optional[TimeProvider] = None,
    ):
        self._ledger = ledger
        self._wealth = wealth
        self._nisab = nisab
        self._time_provider = time_provider

    def _today(self) -> date:
        return (self._time_provider or TimeProvider.get_default()).today()

    def record_payment(self, user_id: str, amount: float, paid_date: date, notes: str = '') -> OperationResult:
        """Append a payment.

        Amounts must be positive and finite. The paid date must fall inside the
        Hijri calendar's supported range.
        """
        if amount is None or not math.isfinite(amount) or amount <= 0:
            return OperationResult(False, 'Payment amount must be positive')
        try:
            hijri_calendar.to_hijri(paid_date)
        except ValueError:
            return OperationResult(False, 'Payment date is outside the supported calendar range')
        try:
            payment_id = self._ledger.insert(ZAKAT_PAYMENTS_TABLE, {
                'user_id': user_id,
                'amount': float(amount),
                'paid_date': paid_date,
                'notes': notes or None,
            })
        except LedgerError as e:
            logger.warning(f"Failed to record Zakat payment for user {user_id}: {e}")
            return OperationResult(False, 'Failed to record zakat payment')
        logger.info(f"Recorded Zakat payment {payment_id} for user {user_id}")
        return OperationResult(True)

    def list_history(self, user_id: str) -> list[ZakatPaymentRecord]:
        """Payments newest first, each with its Hijri paid date."""
        try:
            payments = self._ledger.entries(
                ZAKAT_PAYMENTS_TABLE, {'user_id': user_id}, order_by='paid_date', descending=True
            )
        except LedgerError as e:
            logger.warning(f"Failed to load Zakat history for user {user_id}: {e}")
            return []
        records = []
        for p in payments:
            try:
                paid_date_hijri = hijri_calendar.to_hijri(p.paid_date)
            except ValueError as e:
                logger.warning(f"Skipping Zakat payment {p.id} for user {user_id}: {e}")
                continue
            records.append(ZakatPaymentRecord(
                id=p.id,
                amount=p.amount,
                paid_date=p.paid_date,
                paid_date_hijri=paid_date_hijri,
                notes=p.notes,
                created_at=p.created_at,
            ))
        return records

    def total_paid(self, user_id: str) -> float:
        try:
            return self._ledger.sum_amount(ZAKAT_PAYMENTS_TABLE, {'user_id': user_id})
        except LedgerError as e:
            logger.warning(f"Failed to total Zakat payments for user {user_id}: {e}")
            return 0.0

    def yearly_comparison(self, user_id: str, currency: str = 'USD') -> list[YearlyComparisonRow]:
        """Savings against Nisab per Gregorian year, newest first.

        Covers every year with a payment plus the current year and the four
        before it. All rows use today's Nisab threshold.
        """
        history = self.list_history(user_id)
        current_year = self._today().year
        years = {p.paid_date.year for p in history}
        years.update(current_year - i for i in range(YEARLY_COMPARISON_TRAILING_YEARS))

        try:
            threshold = self._nisab.get_threshold(currency)
        except Exception as e:
            logger.warning(f"Nisab threshold unavailable for {currency}: {e}")
            threshold = FALLBACK_NISAB_THRESHOLD

        rows = []
        try:
            for year in sorted(years, reverse=True):
                year_start = date(year, 1, 1)
                savings = self._wealth.savings_between(user_id, year_start, date(year, 12, 31))
                rows.append(YearlyComparisonRow(
                    year=year,
                    hijri_year=hijri_calendar.to_hijri(year_start).year,
                    savings=savings,
                    nisab_threshold=threshold,
                    zakat_paid=sum(p.amount for p in history if p.paid_date.year == year),
                    zakat_due=savings * ZAKAT_RATE if savings >= threshold else 0.0,
                ))
        except (LedgerError, ValueError) as e:
            logger.warning(f"Yearly Zakat comparison failed for user {user_id}: {e}")
            return []
        return rows
