"""Tests for the user profile store."""
import sqlite3

import pytest

from zakat_tracker.db import get_schema
from zakat_tracker.services.hijri_calendar import HijriDate
from zakat_tracker.services.profiles import ProfileStore


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / 'zakat.sqlite')
    conn = sqlite3.connect(path)
    conn.executescript(get_schema())
    conn.close()
    return path


@pytest.fixture
def profiles(db_path):
    return ProfileStore(db_path, default_currency='USD')


def test_unknown_user_gets_defaults(profiles):
    profile = profiles.get('nobody')
    assert profile.hawl_anchor is None
    assert profile.preferred_currency == 'USD'


def test_set_and_clear_anchor(profiles):
    profiles.set_hawl_anchor('u1', HijriDate(1446, 9, 1))
    assert profiles.get('u1').hawl_anchor == HijriDate(1446, 9, 1)

    profiles.set_hawl_anchor('u1', None)
    assert profiles.get('u1').hawl_anchor is None


def test_set_currency_keeps_anchor(profiles):
    profiles.set_hawl_anchor('u1', HijriDate(1446, 9, 1))
    profiles.set_preferred_currency('u1', 'eur')

    profile = profiles.get('u1')
    assert profile.preferred_currency == 'EUR'
    assert profile.hawl_anchor == HijriDate(1446, 9, 1)


def test_malformed_anchor_treated_as_absent(profiles, db_path):
    conn = sqlite3.connect(db_path)
    conn.execute("INSERT INTO users (id, zakat_date_hijri) VALUES ('u1', '1446-13-40')")
    conn.commit()
    conn.close()

    assert profiles.get('u1').hawl_anchor is None
    assert profiles.users_with_anchor() == []


def test_users_with_anchor(profiles):
    profiles.set_hawl_anchor('b', HijriDate(1446, 1, 1))
    profiles.set_hawl_anchor('a', HijriDate(1446, 2, 1))
    profiles.set_preferred_currency('c', 'GBP')

    assert [p.user_id for p in profiles.users_with_anchor()] == ['a', 'b']


def test_to_dict(profiles):
    profiles.set_hawl_anchor('u1', HijriDate(1446, 9, 1))
    assert profiles.get('u1').to_dict() == {
        'user_id': 'u1',
        'hawl_anchor': {'year': 1446, 'month': 9, 'day': 1},
        'preferred_currency': 'USD',
    }
