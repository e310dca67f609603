"""Wealth totals folded from the ledger: savings and zakatable income."""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date

from zakat_tracker.constants import EXPENSE_TABLE, INCOME_TABLE, ZAKAT_PAYMENTS_TABLE
from .ledger_store import IncomeEntry, LedgerError, LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a write against a collaborator."""
    success: bool
    error: str | None = None

    def to_dict(self) -> dict:
        return {'success': self.success, 'error': self.error}


class WealthAggregator:
    """Read-only projections over the ledger.

    Nothing is cached: every call re-reads the ledger, so a change to an
    entry shows up on the next read.
    """

    def __init__(self, ledger: LedgerStore):
        self._ledger = ledger

    def current_savings(self, user_id: str) -> float:
        """Lifetime income minus expenses minus Zakat already paid.

        Raises:
            LedgerError: If any of the three reads fails.
        """
        filters = {'user_id': user_id}
        with ThreadPoolExecutor(max_workers=3) as executor:
            income = executor.submit(self._ledger.sum_amount, INCOME_TABLE, filters)
            expenses = executor.submit(self._ledger.sum_amount, EXPENSE_TABLE, filters)
            paid = executor.submit(self._ledger.sum_amount, ZAKAT_PAYMENTS_TABLE, filters)
            return income.result() - expenses.result() - paid.result()

    def zakatable_income(self, user_id: str) -> float:
        """Sum of income entries flagged zakatable."""
        return self._ledger.sum_amount(INCOME_TABLE, {'user_id': user_id, 'is_zakatable': True})

    def savings_between(self, user_id: str, start: date, end: date) -> float:
        """Income minus expenses dated within [start, end], both inclusive."""
        filters = {'user_id': user_id, 'date__gte': start, 'date__lte': end}
        with ThreadPoolExecutor(max_workers=2) as executor:
            income = executor.submit(self._ledger.sum_amount, INCOME_TABLE, filters)
            expenses = executor.submit(self._ledger.sum_amount, EXPENSE_TABLE, filters)
            return income.result() - expenses.result()

    def list_income(self, user_id: str, zakatable_only: bool = False) -> list[IncomeEntry]:
        """Income entries newest first."""
        filters = {'user_id': user_id}
        if zakatable_only:
            filters['is_zakatable'] = True
        return self._ledger.entries(INCOME_TABLE, filters, order_by='date', descending=True)

    def set_zakatable(self, user_id: str, income_id: int, is_zakatable: bool) -> OperationResult:
        """Flip the zakatable flag on one of the user's income entries."""
        try:
            changed = self._ledger.update(
                INCOME_TABLE,
                {'id': income_id, 'user_id': user_id},
                {'is_zakatable': bool(is_zakatable)},
            )
        except LedgerError as e:
            logger.warning(f"Failed to update zakatable flag on income {income_id}: {e}")
            return OperationResult(False, 'Failed to update zakatable status')
        if changed == 0:
            return OperationResult(False, 'Income entry not found')
        return OperationResult(True)
