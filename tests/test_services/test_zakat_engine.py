"""Tests for the Zakat engine."""
from datetime import date, timedelta

import pytest

from zakat_tracker.constants import EXPENSE_TABLE, INCOME_TABLE
from zakat_tracker.services import hijri_calendar
from zakat_tracker.services.hijri_calendar import HijriDate
from zakat_tracker.services.nisab import NisabResolution, NisabThreshold
from zakat_tracker.services.profiles import UserProfile
from zakat_tracker.services.time_provider import TimeProvider
from zakat_tracker.services.wealth import WealthAggregator
from zakat_tracker.services.zakat_engine import (
    ZakatEngine,
    build_calculation,
    hawl_window,
    next_anniversary,
)

TODAY = date(2026, 1, 15)


class FixedNisab:
    """Nisab resolver stand-in with a fixed threshold."""

    def __init__(self, value=4000.0, degraded=False, error=None):
        self.value = value
        self.degraded = degraded
        self.error = error

    def resolve(self, currency):
        if self.error:
            raise self.error
        threshold = NisabThreshold(self.value, self.value / 10, currency, TODAY, 0.0, 0.0,
                                   'fallback' if self.degraded else 'api')
        return NisabResolution(threshold, self.degraded)

    def get_threshold(self, currency):
        return self.resolve(currency).value


class StaticProfiles:
    def __init__(self, profiles=None):
        self.profiles = profiles or {}

    def get(self, user_id):
        return self.profiles.get(user_id, UserProfile(user_id, None, 'USD'))


@pytest.fixture
def clock():
    return TimeProvider(frozen_date=TODAY)


def _engine(ledger, clock, nisab=None, profiles=None):
    return ZakatEngine(nisab or FixedNisab(), WealthAggregator(ledger), profiles or StaticProfiles(), clock)


class TestCalculate:
    """Point-in-time calculation."""

    def test_just_below_nisab(self, memory_ledger, clock):
        memory_ledger.add(INCOME_TABLE, 'u1', 3999.0, date(2025, 1, 1), is_zakatable=False)

        result = _engine(memory_ledger, clock).calculate('u1')

        assert result.total_zakatable_wealth == 3999.0
        assert result.is_above_nisab is False
        assert result.zakat_due == 0.0
        assert result.amount_to_reach_nisab == 1.0
        assert result.degraded is False

    def test_debts_are_deducted(self, memory_ledger, clock):
        memory_ledger.add(INCOME_TABLE, 'u1', 10000.0, date(2025, 1, 1), is_zakatable=False)

        result = _engine(memory_ledger, clock).calculate('u1', debts=2000.0)

        assert result.total_zakatable_wealth == 8000.0
        assert result.is_above_nisab is True
        assert result.zakat_due == 200.0
        assert result.amount_to_reach_nisab == 0.0

    def test_zakatable_income_is_added_on_top_of_savings(self, memory_ledger, clock):
        memory_ledger.add(INCOME_TABLE, 'u1', 3000.0, date(2025, 1, 1), is_zakatable=True)

        result = _engine(memory_ledger, clock).calculate('u1')

        assert result.current_savings == 3000.0
        assert result.zakatable_income == 3000.0
        assert result.total_zakatable_wealth == 6000.0
        assert result.zakat_due == 150.0

    def test_exactly_at_nisab_is_above(self, memory_ledger, clock):
        memory_ledger.add(INCOME_TABLE, 'u1', 4000.0, date(2025, 1, 1), is_zakatable=False)
        result = _engine(memory_ledger, clock).calculate('u1')
        assert result.is_above_nisab is True
        assert result.zakat_due == 100.0

    def test_fallback_threshold_marks_degraded(self, memory_ledger, clock):
        result = _engine(memory_ledger, clock, nisab=FixedNisab(5686.2, degraded=True)).calculate('u1')
        assert result.degraded is True
        assert result.nisab_threshold == 5686.2

    def test_ledger_failure_gives_degraded_zero_result(self, memory_ledger, clock):
        memory_ledger.add(INCOME_TABLE, 'u1', 9000.0, date(2025, 1, 1), is_zakatable=True)
        memory_ledger.fail_on = EXPENSE_TABLE

        result = _engine(memory_ledger, clock, nisab=FixedNisab(5000.0)).calculate('u1', debts=10.0)

        assert result.degraded is True
        assert result.current_savings == 0.0
        assert result.zakatable_income == 0.0
        assert result.total_zakatable_wealth == 0.0
        assert result.nisab_threshold == 5000.0
        assert result.amount_to_reach_nisab == 5000.0
        assert result.zakat_due == 0.0

    def test_nisab_failure_uses_fixed_fallback(self, memory_ledger, clock):
        result = _engine(memory_ledger, clock, nisab=FixedNisab(error=RuntimeError('down'))).calculate('u1')
        assert result.degraded is True
        assert result.nisab_threshold == 4000.0
        assert result.amount_to_reach_nisab == 4000.0

    def test_to_dict(self):
        data = build_calculation(1000.0, 0.0, 0.0, 4000.0).to_dict()
        assert data['amount_to_reach_nisab'] == 3000.0
        assert data['zakat_rate'] == 0.025
        assert data['degraded'] is False


@pytest.mark.parametrize('savings,income,debts,threshold', [
    (0.0, 0.0, 0.0, 4000.0),
    (5000.0, 1000.0, 500.0, 4000.0),
    (100.0, 50.0, 1000.0, 4000.0),
    (4000.0, 0.0, 0.0, 4000.0),
])
def test_calculation_invariants(savings, income, debts, threshold):
    result = build_calculation(savings, income, debts, threshold)
    assert result.total_zakatable_wealth == savings + income - debts
    assert result.amount_to_reach_nisab == max(0.0, threshold - result.total_zakatable_wealth)
    if result.total_zakatable_wealth >= threshold:
        assert result.zakat_due == pytest.approx(0.025 * result.total_zakatable_wealth)
    else:
        assert result.zakat_due == 0.0


class TestAnniversary:
    """Next anniversary and Hawl window."""

    def test_upcoming_this_year(self):
        today = HijriDate(1447, 7, 10)
        assert next_anniversary(HijriDate(1440, 9, 1), today) == HijriDate(1447, 9, 1)

    def test_passed_this_year(self):
        today = HijriDate(1447, 10, 2)
        assert next_anniversary(HijriDate(1440, 9, 1), today) == HijriDate(1448, 9, 1)

    def test_today_is_anniversary_rolls_to_next_year(self):
        today = HijriDate(1447, 9, 1)
        assert next_anniversary(HijriDate(1446, 9, 1), today) == HijriDate(1448, 9, 1)

    def test_window_spans_one_hijri_year(self):
        start, end = hawl_window(HijriDate(1440, 9, 1), HijriDate(1447, 7, 10))
        assert (start, end) == (HijriDate(1446, 9, 1), HijriDate(1447, 9, 1))


class TestEvaluateEligibility:
    """Hawl-based eligibility."""

    def test_no_anchor(self, memory_ledger, clock):
        memory_ledger.add(INCOME_TABLE, 'u1', 99999.0, date(2025, 6, 1), is_zakatable=True)

        result = _engine(memory_ledger, clock).evaluate_eligibility('u1')

        assert result.is_obligatory is False
        assert result.annual_savings == 0.0
        assert result.days_until_zakat_date is None
        assert result.next_zakat_date_hijri is None
        assert result.next_zakat_date_gregorian is None
        assert result.nisab_threshold == 4000.0

    def test_upcoming_anchor_above_nisab(self, memory_ledger, clock):
        anchor = hijri_calendar.to_hijri(TODAY + timedelta(days=10))
        profiles = StaticProfiles({'u1': UserProfile('u1', anchor, 'USD')})
        memory_ledger.add(INCOME_TABLE, 'u1', 6000.0, TODAY - timedelta(days=30), is_zakatable=False)
        memory_ledger.add(EXPENSE_TABLE, 'u1', 1000.0, TODAY - timedelta(days=5))
        # Before the window starts
        memory_ledger.add(INCOME_TABLE, 'u1', 50000.0, TODAY - timedelta(days=800), is_zakatable=False)

        result = _engine(memory_ledger, clock, profiles=profiles).evaluate_eligibility('u1')

        assert result.annual_savings == 5000.0
        assert result.has_maintained_nisab is True
        assert result.is_obligatory is True
        assert result.zakat_amount_due == 125.0
        assert result.next_zakat_date_hijri == anchor
        assert result.next_zakat_date_gregorian == TODAY + timedelta(days=10)
        assert result.days_until_zakat_date == 10

    def test_below_nisab_not_obligatory(self, memory_ledger, clock):
        anchor = hijri_calendar.to_hijri(TODAY + timedelta(days=10))
        profiles = StaticProfiles({'u1': UserProfile('u1', anchor, 'USD')})
        memory_ledger.add(INCOME_TABLE, 'u1', 3999.0, TODAY - timedelta(days=30), is_zakatable=False)

        result = _engine(memory_ledger, clock, profiles=profiles).evaluate_eligibility('u1')

        assert result.is_obligatory is False
        assert result.zakat_amount_due == 0.0
        assert result.days_until_zakat_date == 10

    def test_passed_anchor_counts_to_next_year(self, memory_ledger, clock):
        anchor = hijri_calendar.to_hijri(TODAY - timedelta(days=20))
        profiles = StaticProfiles({'u1': UserProfile('u1', anchor, 'USD')})

        result = _engine(memory_ledger, clock, profiles=profiles).evaluate_eligibility('u1')

        expected_hijri = hijri_calendar.add_hijri_years(anchor, 1)
        expected = hijri_calendar.to_gregorian(expected_hijri)
        assert result.next_zakat_date_hijri == expected_hijri
        assert result.days_until_zakat_date == (expected - TODAY).days
        assert 330 < result.days_until_zakat_date < 340

    def test_anchor_today_never_reports_zero_days(self, memory_ledger, clock):
        anchor = hijri_calendar.to_hijri(TODAY)
        profiles = StaticProfiles({'u1': UserProfile('u1', anchor, 'USD')})

        result = _engine(memory_ledger, clock, profiles=profiles).evaluate_eligibility('u1')

        assert result.days_until_zakat_date in (354, 355)

    def test_old_anchor_year_is_projected_forward(self, memory_ledger, clock):
        current = hijri_calendar.to_hijri(TODAY + timedelta(days=10))
        anchor = HijriDate(current.year - 5, current.month, min(current.day, 29))
        profiles = StaticProfiles({'u1': UserProfile('u1', anchor, 'USD')})

        result = _engine(memory_ledger, clock, profiles=profiles).evaluate_eligibility('u1')

        assert result.next_zakat_date_hijri.year == current.year
        assert result.next_zakat_date_hijri.month == current.month

    def test_currency_defaults_to_profile(self, memory_ledger, clock):
        seen = []

        class RecordingNisab(FixedNisab):
            def resolve(self, currency):
                seen.append(currency)
                return super().resolve(currency)

        profiles = StaticProfiles({'u1': UserProfile('u1', None, 'EUR')})
        _engine(memory_ledger, clock, nisab=RecordingNisab(), profiles=profiles).evaluate_eligibility('u1')
        assert seen == ['EUR']

    def test_ledger_failure_is_degraded(self, memory_ledger, clock):
        anchor = hijri_calendar.to_hijri(TODAY + timedelta(days=10))
        profiles = StaticProfiles({'u1': UserProfile('u1', anchor, 'USD')})
        memory_ledger.fail_on = INCOME_TABLE

        result = _engine(memory_ledger, clock, profiles=profiles).evaluate_eligibility('u1')

        assert result.degraded is True
        assert result.is_obligatory is False
        assert result.nisab_threshold == 4000.0

    def test_to_dict_serialises_dates(self, memory_ledger, clock):
        anchor = hijri_calendar.to_hijri(TODAY + timedelta(days=10))
        profiles = StaticProfiles({'u1': UserProfile('u1', anchor, 'USD')})

        data = _engine(memory_ledger, clock, profiles=profiles).evaluate_eligibility('u1').to_dict()

        assert data['next_zakat_date_gregorian'] == (TODAY + timedelta(days=10)).isoformat()
        assert data['next_zakat_date_hijri'] == anchor.to_dict()
