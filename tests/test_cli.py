"""Tests for flask CLI commands."""
import json
from datetime import timedelta

from zakat_tracker.services import hijri_calendar
from zakat_tracker.services.container import get_services


def test_init_db(app):
    result = app.test_cli_runner().invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'Initialized database' in result.output


def test_update_nisab(app):
    runner = app.test_cli_runner()

    first = runner.invoke(args=['update-nisab', '--currency', 'usd'])
    second = runner.invoke(args=['update-nisab', '--currency', 'USD'])

    assert first.exit_code == 0
    assert 'Stored Nisab for 2026-01-15 USD' in first.output
    assert 'already stored' in second.output


def test_import_income_csv(app, tmp_path):
    csv_path = tmp_path / 'income.csv'
    csv_path.write_text(
        'user_id,amount,date,category,notes,is_zakatable\n'
        'u1,5000,2025-01-15,salary,January,1\n'
        'u1,250.5,2025-02-01,gift,,0\n'
        'u1,abc,2025-02-02,gift,,0\n'
        ',10,2025-02-03,gift,,0\n'
        'u1,inf,2025-02-04,gift,,1\n'
    )

    result = app.test_cli_runner().invoke(args=['import-income-csv', str(csv_path)])

    assert result.exit_code == 0
    assert 'Imported 2 income entries' in result.output
    assert '(3 skipped)' in result.output
    with app.app_context():
        wealth = get_services().wealth
        assert wealth.zakatable_income('u1') == 5000.0
        assert wealth.current_savings('u1') == 5250.5


def test_import_expenses_csv(app, tmp_path):
    csv_path = tmp_path / 'expenses.csv'
    csv_path.write_text(
        'user_id,amount,date,category,notes\n'
        'u1,1200,2025-01-20,rent,\n'
        'u1,30,2025-13-01,food,\n'
    )

    result = app.test_cli_runner().invoke(args=['import-expenses-csv', str(csv_path)])

    assert 'Imported 1 expense entries' in result.output
    with app.app_context():
        assert get_services().wealth.current_savings('u1') == -1200.0


def test_check_reminders(app, frozen_today):
    with app.app_context():
        profiles = get_services().profiles
        profiles.set_hawl_anchor('soon', hijri_calendar.to_hijri(frozen_today + timedelta(days=12)))
        profiles.set_hawl_anchor('later', hijri_calendar.to_hijri(frozen_today + timedelta(days=90)))

    result = app.test_cli_runner().invoke(args=['check-reminders', '--json'])

    assert result.exit_code == 0
    reminders = json.loads(result.output)
    assert [r['user_id'] for r in reminders] == ['soon']
    assert reminders[0]['days_until'] == 12


def test_check_reminders_none_due(app):
    result = app.test_cli_runner().invoke(args=['check-reminders', '--window-days', '5'])
    assert 'No Zakat dates within 5 days' in result.output
