"""Pytest fixtures for Zakat Tracker tests."""
import pytest
from datetime import date, timedelta

from zakat_tracker import create_app
from zakat_tracker.db import get_db
from zakat_tracker.services.time_provider import TimeProvider

from tests.fakes.fake_metal_provider import FakeMetalProvider
from tests.fakes.memory_ledger_store import MemoryLedgerStore


# Fixed "today" for deterministic tests
FROZEN_TODAY = date(2026, 1, 15)

# Per troy ounce, chosen so per-gram prices are round numbers
GOLD_PER_OUNCE = 31.1035 * 80
SILVER_PER_OUNCE = 31.1035 * 1


@pytest.fixture(autouse=True)
def no_provider_keys(monkeypatch):
    """Keep real price APIs out of every test."""
    monkeypatch.delenv('METALS_API_KEY', raising=False)
    monkeypatch.delenv('GOLDAPI_KEY', raising=False)
    monkeypatch.delenv('NISAB_UPDATE_SECRET', raising=False)


@pytest.fixture
def frozen_time():
    """Freeze the default TimeProvider at FROZEN_TODAY.

    Automatically resets the default TimeProvider after the test completes.
    """
    provider = TimeProvider(frozen_date=FROZEN_TODAY)
    TimeProvider.set_default(provider)
    yield provider
    TimeProvider.reset_default()


@pytest.fixture
def frozen_today():
    """Returns the frozen date value for assertions."""
    return FROZEN_TODAY


@pytest.fixture
def metal_provider():
    """Fake provider quoting gold at 80/g and silver at 1/g."""
    return FakeMetalProvider({'gold': GOLD_PER_OUNCE, 'silver': SILVER_PER_OUNCE})


@pytest.fixture
def memory_ledger():
    return MemoryLedgerStore()


@pytest.fixture
def app(tmp_path, metal_provider, frozen_time):
    """Application on an empty database in a temporary DATA_DIR."""
    app = create_app({
        'TESTING': True,
        'DATA_DIR': str(tmp_path),
        'DEFAULT_CURRENCY': 'USD',
        'PRICE_CACHE_BACKEND': 'memory',
        'NISAB_UPDATE_SECRET': None,
        'METAL_PROVIDER': metal_provider,
        'TIME_PROVIDER': frozen_time,
    })
    yield app


@pytest.fixture
def client(app):
    """Create test client."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def db_app(app, frozen_today):
    """Application with a seeded ledger.

    User 'u1':
        income 6000 (zakatable) 30 days ago, 2000 (not zakatable) 60 days ago
        expense 1500 10 days ago
        Zakat payment 100 on 2025-03-20
    User 'u2': no ledger rows
    """
    with app.app_context():
        db = get_db()
        db.executemany(
            'INSERT INTO income_entries (user_id, amount, category, date, notes, is_zakatable) '
            'VALUES (?, ?, ?, ?, ?, ?)',
            [
                ('u1', 6000.0, 'salary', (frozen_today - timedelta(days=30)).isoformat(), 'December', 1),
                ('u1', 2000.0, 'gift', (frozen_today - timedelta(days=60)).isoformat(), None, 0),
            ]
        )
        db.execute(
            'INSERT INTO expense_entries (user_id, amount, category, date) VALUES (?, ?, ?, ?)',
            ('u1', 1500.0, 'rent', (frozen_today - timedelta(days=10)).isoformat())
        )
        db.execute(
            'INSERT INTO zakat_payments (user_id, amount, paid_date, notes) VALUES (?, ?, ?, ?)',
            ('u1', 100.0, '2025-03-20', 'Ramadan')
        )
        db.commit()
    yield app


@pytest.fixture
def db_client(db_app):
    """Create test client with a seeded ledger."""
    with db_app.test_client() as client:
        yield client
