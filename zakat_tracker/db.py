"""SQLite database connection management for the ledger and Nisab snapshots."""
import os
import sqlite3
from flask import current_app, g


def get_db_path() -> str:
    """Get the path to the SQLite database file."""
    data_dir = current_app.config.get('DATA_DIR', os.path.join(os.path.dirname(__file__), '..', 'data'))
    os.makedirs(data_dir, exist_ok=True)
    return os.path.join(data_dir, 'zakat.sqlite')


def connect(db_path: str) -> sqlite3.Connection:
    """Open a standalone connection with row access by column name."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def get_db() -> sqlite3.Connection:
    """Get a database connection, creating one if needed for this request."""
    if 'db' not in g:
        g.db = connect(get_db_path())
    return g.db


def close_db(e=None):
    """Close the database connection at end of request."""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def init_db():
    """Initialize the database with schema."""
    db = get_db()
    db.executescript(get_schema())
    db.commit()


def get_schema() -> str:
    """Return the database schema SQL."""
    return '''
-- Users: profile collaborator (Hawl anchor stored as Hijri YYYY-MM-DD)
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    zakat_date_hijri TEXT,
    currency TEXT NOT NULL DEFAULT 'USD',
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Income entries; is_zakatable is the only column this core mutates
CREATE TABLE IF NOT EXISTS income_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    amount REAL NOT NULL,
    category TEXT NOT NULL DEFAULT 'other',
    date TEXT NOT NULL,
    notes TEXT,
    is_zakatable INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_income_user_date ON income_entries(user_id, date);

-- Expense entries
CREATE TABLE IF NOT EXISTS expense_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    amount REAL NOT NULL,
    category TEXT NOT NULL DEFAULT 'other',
    date TEXT NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_expense_user_date ON expense_entries(user_id, date);

-- Zakat payments (Gregorian paid_date; Hijri is derived on read)
CREATE TABLE IF NOT EXISTS zakat_payments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    amount REAL NOT NULL,
    paid_date TEXT NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_zakat_payments_user ON zakat_payments(user_id, paid_date);

-- Daily Nisab snapshot, one row per (date, currency)
CREATE TABLE IF NOT EXISTS nisab_prices (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    currency TEXT NOT NULL,
    gold_price_per_gram REAL NOT NULL,
    silver_price_per_gram REAL NOT NULL,
    nisab_gold_value REAL NOT NULL,
    nisab_silver_value REAL NOT NULL,
    source TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(date, currency)
);
CREATE INDEX IF NOT EXISTS idx_nisab_prices_currency ON nisab_prices(currency, date);
'''


def init_app(app):
    """Register database functions with Flask app and ensure database exists."""
    app.teardown_appcontext(close_db)

    # CREATE IF NOT EXISTS keeps this idempotent
    with app.app_context():
        db = get_db()
        db.executescript(get_schema())
        db.commit()
