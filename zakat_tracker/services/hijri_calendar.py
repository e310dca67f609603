"""Gregorian <-> Hijri calendar conversion.

Conversion is delegated to hijri_converter (Umm al-Qura tables). Month
lengths are derived from the conversion itself rather than assumed, so they
always agree with the table in use.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from hijri_converter import Gregorian, Hijri

HIJRI_MONTH_NAMES = [
    'Muharram', 'Safar', "Rabi' al-awwal", "Rabi' al-thani",
    'Jumada al-awwal', 'Jumada al-thani', 'Rajab', "Sha'ban",
    'Ramadan', 'Shawwal', "Dhu al-Qi'dah", 'Dhu al-Hijjah',
]

# (month, day) -> name
ISLAMIC_HOLIDAYS = {
    (1, 1): 'Islamic New Year',
    (1, 10): 'Ashura',
    (3, 12): 'Mawlid al-Nabi',
    (7, 27): "Isra and Mi'raj",
    (9, 1): 'First day of Ramadan',
    (9, 27): 'Laylat al-Qadr',  # approximate
    (10, 1): 'Eid al-Fitr',
    (12, 9): 'Day of Arafah',
    (12, 10): 'Eid al-Adha',
}


@dataclass(frozen=True, order=True)
class HijriDate:
    """A day in the Hijri calendar. Ordering is chronological."""
    year: int
    month: int
    day: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Hijri month must be 1-12, got {self.month}")
        if self.day < 1 or self.day > days_in_hijri_month(self.year, self.month):
            raise ValueError(f"Invalid day {self.day} for Hijri {self.year}-{self.month:02d}")

    @classmethod
    def parse(cls, value: str) -> 'HijriDate':
        """Parse 'YYYY-MM-DD'."""
        try:
            year, month, day = (int(part) for part in value.strip().split('-'))
        except (AttributeError, ValueError):
            raise ValueError(f"Invalid Hijri date string: {value!r}")
        return cls(year, month, day)

    def isoformat(self) -> str:
        return f"{self.year}-{self.month:02d}-{self.day:02d}"

    def to_dict(self) -> dict:
        return {'year': self.year, 'month': self.month, 'day': self.day}


@dataclass(frozen=True)
class HolidayInfo:
    is_holiday: bool
    name: Optional[str] = None

    def to_dict(self) -> dict:
        result = {'is_holiday': self.is_holiday}
        if self.name:
            result['name'] = self.name
        return result


def _to_library_hijri(year: int, month: int, day: int) -> Hijri:
    try:
        return Hijri(year, month, day)
    except OverflowError as e:
        raise ValueError(f"Hijri date {year}-{month:02d}-{day:02d} out of supported range: {e}")


def _to_library_gregorian(gregorian: date) -> Hijri:
    try:
        return Gregorian(gregorian.year, gregorian.month, gregorian.day).to_hijri()
    except OverflowError as e:
        raise ValueError(f"Gregorian date {gregorian.isoformat()} out of supported range: {e}")


def to_hijri(gregorian: date) -> HijriDate:
    """Convert a Gregorian date to its Hijri equivalent."""
    h = _to_library_gregorian(gregorian)
    return HijriDate(h.year, h.month, h.day)


def _hijri_first_to_gregorian(year: int, month: int) -> date:
    g = _to_library_hijri(year, month, 1).to_gregorian()
    return date(g.year, g.month, g.day)


def to_gregorian(hijri: HijriDate) -> date:
    """Convert a Hijri date to the Gregorian calendar."""
    g = _to_library_hijri(hijri.year, hijri.month, hijri.day).to_gregorian()
    return date(g.year, g.month, g.day)


def days_in_hijri_month(year: int, month: int) -> int:
    """Length of a Hijri month (29 or 30).

    The first day of the following month is converted to Gregorian, one day is
    subtracted, and the Hijri day number of that Gregorian date is the length.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Hijri month must be 1-12, got {month}")
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    last_day = _hijri_first_to_gregorian(next_year, next_month) - timedelta(days=1)
    return _to_library_gregorian(last_day).day


def is_holiday(hijri: HijriDate) -> HolidayInfo:
    """Look up the Islamic holiday falling on a Hijri date, if any."""
    name = ISLAMIC_HOLIDAYS.get((hijri.month, hijri.day))
    if name is None:
        return HolidayInfo(is_holiday=False)
    return HolidayInfo(is_holiday=True, name=name)


def hijri_month_name(month: int) -> str:
    """English transliteration of a Hijri month, '' when out of range."""
    if 1 <= month <= 12:
        return HIJRI_MONTH_NAMES[month - 1]
    return ''


def format_hijri(hijri: HijriDate) -> str:
    """'15 Ramadan 1446'"""
    return f"{hijri.day} {hijri_month_name(hijri.month)} {hijri.year}"


def format_gregorian(gregorian: date) -> str:
    """'March 15, 2025'"""
    return f"{gregorian.strftime('%B')} {gregorian.day}, {gregorian.year}"


def format_dual_date(gregorian: date) -> str:
    """'15 Ramadan 1446 / March 15, 2025'"""
    return f"{format_hijri(to_hijri(gregorian))} / {format_gregorian(gregorian)}"


def hijri_month_range(year: int, month: int) -> tuple[date, date]:
    """First and last Gregorian day of a Hijri month."""
    start = _hijri_first_to_gregorian(year, month)
    end = start + timedelta(days=days_in_hijri_month(year, month) - 1)
    return start, end


def add_hijri_years(hijri: HijriDate, years: int) -> HijriDate:
    """Shift by whole Hijri years, clamping the 30th onto the 29th when needed."""
    target_year = hijri.year + years
    day = min(hijri.day, days_in_hijri_month(target_year, hijri.month))
    return HijriDate(target_year, hijri.month, day)
