"""Keyed TTL caches for resolved metal price quotes."""
import json
import logging
import os
import tempfile
from datetime import datetime
from typing import Optional

from .config import get_price_cache_ttl
from .time_provider import TimeProvider

logger = logging.getLogger(__name__)

CACHE_FILE = 'price_cache.json'


class PriceCache:
    """In-memory cache of JSON-safe dicts keyed by string, with a TTL.

    Each entry records its 'as_of' timestamp; entries older than the TTL are
    treated as absent and dropped on read.
    """

    def __init__(self, ttl_seconds: Optional[int] = None, time_provider: Optional[TimeProvider] = None):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_price_cache_ttl()
        self._time_provider = time_provider
        self._entries: dict[str, dict] = {}

    def _now(self) -> datetime:
        return (self._time_provider or TimeProvider.get_default()).now()

    def _load(self) -> dict[str, dict]:
        return self._entries

    def _store(self, entries: dict[str, dict]) -> None:
        self._entries = entries

    def is_entry_valid(self, entry: dict) -> bool:
        """Check if an entry's TTL has not expired."""
        if 'as_of' not in entry:
            return False
        try:
            as_of = datetime.fromisoformat(entry['as_of'].replace('Z', '+00:00'))
            age = (self._now() - as_of).total_seconds()
            return 0 <= age < self.ttl_seconds
        except (ValueError, TypeError):
            return False

    def get(self, key: str) -> Optional[dict]:
        """Return the cached value, or None if missing/expired."""
        entries = self._load()
        entry = entries.get(key)
        if entry is None:
            return None
        if not self.is_entry_valid(entry):
            logger.debug(f"Cache entry {key} expired")
            entries.pop(key, None)
            self._store(entries)
            return None
        return entry.get('data')

    def set(self, key: str, value: dict) -> None:
        entries = self._load()
        entries[key] = {'as_of': self._now().isoformat(), 'data': value}
        self._store(entries)

    def clear(self) -> None:
        self._store({})


class FilePriceCache(PriceCache):
    """PriceCache persisted to a JSON file with atomic writes.

    Survives process restarts so a failed provider is not retried by every
    worker within the TTL window.
    """

    def __init__(self, data_dir: str, ttl_seconds: Optional[int] = None,
                 time_provider: Optional[TimeProvider] = None):
        super().__init__(ttl_seconds=ttl_seconds, time_provider=time_provider)
        self.data_dir = data_dir

    def get_cache_path(self) -> str:
        return os.path.join(self.data_dir, CACHE_FILE)

    def _load(self) -> dict[str, dict]:
        path = self.get_cache_path()
        if not os.path.exists(path):
            return {}
        try:
            with open(path, 'r') as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable price cache {path}: {e}")
            return {}

    def _store(self, entries: dict[str, dict]) -> None:
        """Atomic write: temp file then rename."""
        path = self.get_cache_path()
        os.makedirs(os.path.dirname(path), exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=os.path.dirname(path), suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(entries, f, indent=2)
            os.replace(temp_path, path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def clear(self) -> None:
        path = self.get_cache_path()
        if os.path.exists(path):
            os.unlink(path)
