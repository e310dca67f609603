"""Clock abstraction for the Nisab snapshot day and Hawl countdowns.

"Today" is the UTC calendar date. The daily Nisab snapshot, the price cache
TTL and the days-until-anniversary countdown all read the clock through a
TimeProvider so tests can pin it to a fixed instant.
"""
from datetime import date, datetime, time, timezone
from typing import Optional


class TimeProvider:
    """Source of the current UTC instant, optionally frozen.

    Usage:
        provider = TimeProvider()
        provider.today()

        provider = TimeProvider(frozen_date=date(2026, 3, 20))
        provider.today()  # always 2026-03-20
        provider.now()    # 2026-03-20T00:00:00+00:00
    """

    _instance: Optional['TimeProvider'] = None

    def __init__(self, frozen_date: Optional[date] = None, frozen_now: Optional[datetime] = None):
        """Initialize TimeProvider.

        Args:
            frozen_date: If provided, today() always returns this date and
                now() returns UTC midnight of it.
            frozen_now: If provided, now() returns this instant and today()
                its date. Takes precedence over frozen_date.
        """
        if frozen_now is not None and frozen_now.tzinfo is None:
            frozen_now = frozen_now.replace(tzinfo=timezone.utc)
        if frozen_now is None and frozen_date is not None:
            frozen_now = datetime.combine(frozen_date, time.min, tzinfo=timezone.utc)
        self._frozen_now = frozen_now

    def now(self) -> datetime:
        """Current timezone-aware UTC datetime."""
        if self._frozen_now is not None:
            return self._frozen_now
        return datetime.now(timezone.utc)

    def today(self) -> date:
        """Current UTC date."""
        return self.now().date()

    @classmethod
    def get_default(cls) -> 'TimeProvider':
        """Get the process-wide TimeProvider."""
        if cls._instance is None:
            cls._instance = TimeProvider()
        return cls._instance

    @classmethod
    def set_default(cls, provider: 'TimeProvider') -> None:
        """Replace the process-wide TimeProvider (tests)."""
        cls._instance = provider

    @classmethod
    def reset_default(cls) -> None:
        """Go back to the real clock."""
        cls._instance = None


def get_today(time_provider: Optional[TimeProvider] = None) -> date:
    """Today's UTC date from the given or default provider."""
    if time_provider is None:
        time_provider = TimeProvider.get_default()
    return time_provider.today()
