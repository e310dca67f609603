"""Ledger store access: income, expense and Zakat payment rows.

Raw rows are validated into one of three entry types at this boundary, so
services downstream work with typed entries rather than loose dicts.
"""
import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import ClassVar, Optional, Union

from zakat_tracker.constants import EXPENSE_TABLE, INCOME_TABLE, ZAKAT_PAYMENTS_TABLE
from zakat_tracker.db import connect

logger = logging.getLogger(__name__)

# Writable/filterable columns per ledger table
TABLE_COLUMNS = {
    INCOME_TABLE: ('id', 'user_id', 'amount', 'category', 'date', 'notes', 'is_zakatable', 'created_at', 'deleted_at'),
    EXPENSE_TABLE: ('id', 'user_id', 'amount', 'category', 'date', 'notes', 'created_at', 'deleted_at'),
    ZAKAT_PAYMENTS_TABLE: ('id', 'user_id', 'amount', 'paid_date', 'notes', 'created_at', 'deleted_at'),
}

# Filter suffix -> SQL operator
FILTER_OPERATORS = {
    'eq': '=',
    'gte': '>=',
    'lte': '<=',
    'gt': '>',
    'lt': '<',
}


class LedgerError(Exception):
    """Ledger store unavailable or query failed."""
    pass


class LedgerRowError(LedgerError):
    """A ledger row is missing required columns or has malformed values."""
    pass


def _parse_amount(value) -> float:
    if value is None or isinstance(value, bool):
        raise LedgerRowError(f"Invalid amount: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise LedgerRowError(f"Invalid amount: {value!r}")


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise LedgerRowError(f"Invalid date: {value!r}")


@dataclass(frozen=True)
class IncomeEntry:
    kind: ClassVar[str] = 'income'
    id: int
    user_id: str
    amount: float
    date: date
    category: str
    notes: Optional[str]
    is_zakatable: bool

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'amount': self.amount,
            'date': self.date.isoformat(),
            'category': self.category,
            'notes': self.notes,
            'is_zakatable': self.is_zakatable,
        }


@dataclass(frozen=True)
class ExpenseEntry:
    kind: ClassVar[str] = 'expense'
    id: int
    user_id: str
    amount: float
    date: date
    category: str
    notes: Optional[str]


@dataclass(frozen=True)
class ZakatPayment:
    kind: ClassVar[str] = 'zakat_payment'
    id: int
    user_id: str
    amount: float
    paid_date: date
    notes: Optional[str]
    created_at: Optional[str]


LedgerEntry = Union[IncomeEntry, ExpenseEntry, ZakatPayment]


def entry_from_row(table: str, row: dict) -> LedgerEntry:
    """Validate a raw row from a ledger table into its entry type.

    Raises:
        LedgerRowError: If required columns are missing or malformed.
    """
    try:
        if table == INCOME_TABLE:
            return IncomeEntry(
                id=row['id'],
                user_id=row['user_id'],
                amount=_parse_amount(row['amount']),
                date=_parse_date(row['date']),
                category=row.get('category') or 'other',
                notes=row.get('notes'),
                is_zakatable=bool(row.get('is_zakatable')),
            )
        if table == EXPENSE_TABLE:
            return ExpenseEntry(
                id=row['id'],
                user_id=row['user_id'],
                amount=_parse_amount(row['amount']),
                date=_parse_date(row['date']),
                category=row.get('category') or 'other',
                notes=row.get('notes'),
            )
        if table == ZAKAT_PAYMENTS_TABLE:
            return ZakatPayment(
                id=row['id'],
                user_id=row['user_id'],
                amount=_parse_amount(row['amount']),
                paid_date=_parse_date(row['paid_date']),
                notes=row.get('notes'),
                created_at=row.get('created_at'),
            )
    except KeyError as e:
        raise LedgerRowError(f"Row in {table} is missing column {e}")
    raise LedgerError(f"Unknown ledger table: {table}")


def parse_filter_key(table: str, key: str) -> tuple[str, str]:
    """Split 'date__gte' into ('date', '>=') after checking the column exists."""
    column, _, suffix = key.partition('__')
    op = FILTER_OPERATORS.get(suffix or 'eq')
    if op is None:
        raise LedgerError(f"Unsupported filter operator: {suffix}")
    if column not in TABLE_COLUMNS.get(table, ()):
        raise LedgerError(f"Unknown column {column} for {table}")
    return column, op


def _check_table(table: str) -> None:
    if table not in TABLE_COLUMNS:
        raise LedgerError(f"Unknown ledger table: {table}")


class LedgerStore(ABC):
    """Query-style access to the ledger tables.

    Soft-deleted rows (deleted_at set) are never returned.
    """

    @abstractmethod
    def query(self, table: str, filters: dict | None = None, order_by: str | None = None,
              descending: bool = False) -> list[dict]:
        """Rows of a ledger table matching all filters.

        Filter keys are column names, optionally suffixed with __gte, __lte,
        __gt or __lt; a bare column name means equality.
        """
        pass

    @abstractmethod
    def insert(self, table: str, values: dict) -> int:
        """Insert a row and return its id."""
        pass

    @abstractmethod
    def update(self, table: str, filters: dict, values: dict) -> int:
        """Update matching rows and return how many changed."""
        pass

    def entries(self, table: str, filters: dict | None = None, order_by: str | None = None,
                descending: bool = False) -> list[LedgerEntry]:
        """query() validated into typed entries."""
        return [entry_from_row(table, row) for row in self.query(table, filters, order_by, descending)]

    def sum_amount(self, table: str, filters: dict | None = None) -> float:
        """Sum of the amount column over matching entries."""
        return sum(entry.amount for entry in self.entries(table, filters))


class SQLiteLedgerStore(LedgerStore):
    """LedgerStore over the application's SQLite database.

    Opens a connection per call so concurrent readers on worker threads never
    share one.
    """

    def __init__(self, db_path: str):
        self._db_path = db_path

    def _where(self, table: str, filters: dict | None) -> tuple[str, list]:
        clauses = ['deleted_at IS NULL']
        params = []
        for key, value in (filters or {}).items():
            column, op = parse_filter_key(table, key)
            clauses.append(f'{column} {op} ?')
            if isinstance(value, bool):
                value = int(value)
            elif isinstance(value, date):
                value = value.isoformat()
            params.append(value)
        return ' AND '.join(clauses), params

    def query(self, table: str, filters: dict | None = None, order_by: str | None = None,
              descending: bool = False) -> list[dict]:
        _check_table(table)
        where, params = self._where(table, filters)
        sql = f'SELECT * FROM {table} WHERE {where}'
        if order_by:
            if order_by not in TABLE_COLUMNS[table]:
                raise LedgerError(f"Unknown column {order_by} for {table}")
            sql += f' ORDER BY {order_by} {"DESC" if descending else "ASC"}, id {"DESC" if descending else "ASC"}'
        try:
            conn = connect(self._db_path)
            try:
                rows = conn.execute(sql, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise LedgerError(f"Query on {table} failed: {e}")
        return [dict(row) for row in rows]

    def insert(self, table: str, values: dict) -> int:
        _check_table(table)
        for column in values:
            if column not in TABLE_COLUMNS[table] or column == 'id':
                raise LedgerError(f"Cannot insert column {column} into {table}")
        columns = ', '.join(values)
        placeholders = ', '.join('?' * len(values))
        params = [v.isoformat() if isinstance(v, date) else v for v in values.values()]
        try:
            conn = connect(self._db_path)
            try:
                cursor = conn.execute(f'INSERT INTO {table} ({columns}) VALUES ({placeholders})', params)
                conn.commit()
                return cursor.lastrowid
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise LedgerError(f"Insert into {table} failed: {e}")

    def update(self, table: str, filters: dict, values: dict) -> int:
        _check_table(table)
        if not filters:
            raise LedgerError("Refusing to update without filters")
        for column in values:
            if column not in TABLE_COLUMNS[table] or column == 'id':
                raise LedgerError(f"Cannot update column {column} of {table}")
        where, where_params = self._where(table, filters)
        assignments = ', '.join(f'{column} = ?' for column in values)
        params = [int(v) if isinstance(v, bool) else v for v in values.values()] + where_params
        try:
            conn = connect(self._db_path)
            try:
                cursor = conn.execute(f'UPDATE {table} SET {assignments} WHERE {where}', params)
                conn.commit()
                return cursor.rowcount
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise LedgerError(f"Update of {table} failed: {e}")

    def soft_delete(self, table: str, filters: dict) -> int:
        """Mark matching rows deleted; used by import tooling and tests."""
        return self.update(table, filters, {'deleted_at': datetime.now(timezone.utc).isoformat()})
