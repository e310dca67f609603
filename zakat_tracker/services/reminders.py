"""Upcoming Zakat anniversary reminders."""
import logging
from dataclasses import dataclass
from datetime import date

from .hijri_calendar import HijriDate
from .profiles import ProfileStore
from .zakat_engine import ZakatEngine, ZakatEligibilityResult

logger = logging.getLogger(__name__)

URGENT_DAYS = 7


@dataclass(frozen=True)
class ZakatReminder:
    user_id: str
    currency: str
    next_zakat_date_hijri: HijriDate
    next_zakat_date_gregorian: date
    days_until: int
    eligibility: ZakatEligibilityResult

    @property
    def title(self) -> str:
        if self.days_until <= URGENT_DAYS:
            return f'Urgent: Zakat Due in {self.days_until} Days!'
        return f'Zakat Reminder: {self.days_until} Days Until Due'

    @property
    def message(self) -> str:
        e = self.eligibility
        if e.is_obligatory:
            return (
                f'Your Zakat of {e.zakat_amount_due:,.2f} {self.currency} is due soon. '
                f'Your savings of {e.annual_savings:,.2f} exceed the Nisab threshold of {e.nisab_threshold:,.2f}.'
            )
        return (
            f'Your Zakat date is approaching. Your savings of {e.annual_savings:,.2f} {self.currency} '
            f'are below the Nisab threshold of {e.nisab_threshold:,.2f}, so Zakat is not obligatory.'
        )

    def to_dict(self) -> dict:
        return {
            'user_id': self.user_id,
            'currency': self.currency,
            'next_zakat_date_hijri': self.next_zakat_date_hijri.to_dict(),
            'next_zakat_date_gregorian': self.next_zakat_date_gregorian.isoformat(),
            'days_until': self.days_until,
            'title': self.title,
            'message': self.message,
            'eligibility': {
                'is_obligatory': self.eligibility.is_obligatory,
                'zakat_amount_due': round(self.eligibility.zakat_amount_due, 2),
                'annual_savings': round(self.eligibility.annual_savings, 2),
                'nisab_threshold': round(self.eligibility.nisab_threshold, 2),
                'degraded': self.eligibility.degraded,
            },
        }


def check_reminders(engine: ZakatEngine, profiles: ProfileStore, window_days: int = 30) -> list[ZakatReminder]:
    """Users whose next Zakat date falls within the next window_days days."""
    reminders = []
    for profile in profiles.users_with_anchor():
        result = engine.evaluate_eligibility(profile.user_id, profile.preferred_currency)
        if result.days_until_zakat_date is None:
            logger.warning(f"No Zakat date could be computed for user {profile.user_id}")
            continue
        if not 0 < result.days_until_zakat_date <= window_days:
            continue
        reminders.append(ZakatReminder(
            user_id=profile.user_id,
            currency=profile.preferred_currency,
            next_zakat_date_hijri=result.next_zakat_date_hijri,
            next_zakat_date_gregorian=result.next_zakat_date_gregorian,
            days_until=result.days_until_zakat_date,
            eligibility=result,
        ))
    logger.info(f"{len(reminders)} Zakat reminder(s) due within {window_days} days")
    return reminders
