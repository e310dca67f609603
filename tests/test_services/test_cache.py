"""Tests for the price caches."""
import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from zakat_tracker.services.cache import CACHE_FILE, FilePriceCache, PriceCache
from zakat_tracker.services.time_provider import TimeProvider

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return TimeProvider(frozen_now=NOW)


def test_get_missing_key(clock):
    assert PriceCache(ttl_seconds=60, time_provider=clock).get('USD') is None


def test_set_then_get(clock):
    cache = PriceCache(ttl_seconds=60, time_provider=clock)
    cache.set('USD', {'gold_per_gram': 65.0})
    assert cache.get('USD') == {'gold_per_gram': 65.0}


def test_entry_expires_after_ttl(clock):
    cache = PriceCache(ttl_seconds=3600, time_provider=clock)
    cache.set('USD', {'value': 1})

    later = PriceCache(ttl_seconds=3600, time_provider=TimeProvider(frozen_now=NOW + timedelta(seconds=3600)))
    later._entries = cache._entries
    assert later.get('USD') is None
    assert 'USD' not in later._entries


def test_is_entry_valid_fresh(clock):
    cache = PriceCache(ttl_seconds=86400, time_provider=clock)
    entry = {'as_of': (NOW - timedelta(hours=23)).isoformat()}
    assert cache.is_entry_valid(entry) is True


def test_is_entry_valid_expired(clock):
    cache = PriceCache(ttl_seconds=86400, time_provider=clock)
    entry = {'as_of': (NOW - timedelta(hours=25)).isoformat()}
    assert cache.is_entry_valid(entry) is False


def test_is_entry_valid_missing_as_of(clock):
    assert PriceCache(time_provider=clock).is_entry_valid({'data': {}}) is False


def test_is_entry_valid_future_timestamp(clock):
    """Entries stamped in the future are not trusted."""
    cache = PriceCache(ttl_seconds=86400, time_provider=clock)
    assert cache.is_entry_valid({'as_of': (NOW + timedelta(minutes=5)).isoformat()}) is False


def test_default_ttl_from_env(monkeypatch, clock):
    monkeypatch.setenv('PRICE_CACHE_TTL_SECONDS', '120')
    assert PriceCache(time_provider=clock).ttl_seconds == 120


def test_clear(clock):
    cache = PriceCache(ttl_seconds=60, time_provider=clock)
    cache.set('USD', {'value': 1})
    cache.clear()
    assert cache.get('USD') is None


class TestFilePriceCache:
    """Tests for the file-backed cache."""

    def test_persists_across_instances(self, tmp_path, clock):
        FilePriceCache(str(tmp_path), ttl_seconds=60, time_provider=clock).set('EUR', {'value': 2})
        assert FilePriceCache(str(tmp_path), ttl_seconds=60, time_provider=clock).get('EUR') == {'value': 2}

    def test_writes_json_file(self, tmp_path, clock):
        cache = FilePriceCache(str(tmp_path), ttl_seconds=60, time_provider=clock)
        cache.set('USD', {'value': 1})

        with open(os.path.join(str(tmp_path), CACHE_FILE)) as f:
            data = json.load(f)
        assert data['USD']['data'] == {'value': 1}
        assert data['USD']['as_of'] == NOW.isoformat()

    def test_no_temp_files_left_behind(self, tmp_path, clock):
        cache = FilePriceCache(str(tmp_path), ttl_seconds=60, time_provider=clock)
        cache.set('USD', {'value': 1})
        cache.set('GBP', {'value': 3})
        assert os.listdir(str(tmp_path)) == [CACHE_FILE]

    def test_corrupt_file_reads_as_empty(self, tmp_path, clock):
        (tmp_path / CACHE_FILE).write_text('{not json')
        cache = FilePriceCache(str(tmp_path), ttl_seconds=60, time_provider=clock)
        assert cache.get('USD') is None

    def test_clear_removes_file(self, tmp_path, clock):
        cache = FilePriceCache(str(tmp_path), ttl_seconds=60, time_provider=clock)
        cache.set('USD', {'value': 1})
        cache.clear()
        assert not (tmp_path / CACHE_FILE).exists()
