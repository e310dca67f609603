"""User profile collaborator: Hawl anchor and preferred currency."""
import logging
import sqlite3
from dataclasses import dataclass
from typing import Optional

from zakat_tracker.data.currencies import DEFAULT_CURRENCY
from zakat_tracker.db import connect
from .hijri_calendar import HijriDate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserProfile:
    user_id: str
    hawl_anchor: Optional[HijriDate]
    preferred_currency: str

    def to_dict(self) -> dict:
        return {
            'user_id': self.user_id,
            'hawl_anchor': self.hawl_anchor.to_dict() if self.hawl_anchor else None,
            'preferred_currency': self.preferred_currency,
        }


def _parse_anchor(user_id: str, value: Optional[str]) -> Optional[HijriDate]:
    if not value:
        return None
    try:
        return HijriDate.parse(value)
    except ValueError as e:
        logger.warning(f"Ignoring malformed Zakat date for user {user_id}: {e}")
        return None


class ProfileStore:
    """Profiles kept in the users table; unknown users get defaults."""

    def __init__(self, db_path: str, default_currency: str = DEFAULT_CURRENCY):
        self._db_path = db_path
        self._default_currency = default_currency

    def get(self, user_id: str) -> UserProfile:
        conn = connect(self._db_path)
        try:
            row = conn.execute(
                'SELECT id, zakat_date_hijri, currency FROM users WHERE id = ?', (user_id,)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return UserProfile(user_id, None, self._default_currency)
        return UserProfile(
            user_id=user_id,
            hawl_anchor=_parse_anchor(user_id, row['zakat_date_hijri']),
            preferred_currency=(row['currency'] or self._default_currency).upper(),
        )

    def _upsert(self, user_id: str, column: str, value) -> None:
        conn = connect(self._db_path)
        try:
            conn.execute(f'''
                INSERT INTO users (id, {column}) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET {column} = excluded.{column}, updated_at = datetime('now')
            ''', (user_id, value))
            conn.commit()
        finally:
            conn.close()

    def set_hawl_anchor(self, user_id: str, anchor: Optional[HijriDate]) -> None:
        """Set or clear the user's Zakat anniversary."""
        self._upsert(user_id, 'zakat_date_hijri', anchor.isoformat() if anchor else None)

    def set_preferred_currency(self, user_id: str, currency: str) -> None:
        self._upsert(user_id, 'currency', currency.upper())

    def users_with_anchor(self) -> list[UserProfile]:
        """Profiles that have a usable Hawl anchor."""
        conn = connect(self._db_path)
        try:
            rows = conn.execute(
                'SELECT id, zakat_date_hijri, currency FROM users WHERE zakat_date_hijri IS NOT NULL ORDER BY id'
            ).fetchall()
        except sqlite3.Error as e:
            logger.warning(f"Failed to list users with a Zakat date: {e}")
            return []
        finally:
            conn.close()

        profiles = []
        for row in rows:
            anchor = _parse_anchor(row['id'], row['zakat_date_hijri'])
            if anchor is not None:
                profiles.append(UserProfile(row['id'], anchor, (row['currency'] or self._default_currency).upper()))
        return profiles
