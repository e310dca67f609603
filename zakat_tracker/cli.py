"""Flask CLI commands for database management, ledger import and daily jobs."""
import csv
import json
import math
from datetime import date

import click
from flask import current_app
from flask.cli import with_appcontext

from zakat_tracker.constants import EXPENSE_TABLE, INCOME_TABLE
from zakat_tracker.db import get_db_path, init_db
from zakat_tracker.services.container import get_services
from zakat_tracker.services.reminders import check_reminders

TRUTHY = ('1', 'true', 'yes', 'y')


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Initialize the SQLite database with schema."""
    init_db()
    click.echo(f'Initialized database at {get_db_path()}')


@click.command('update-nisab')
@click.option('--currency', default=None, help='Currency code (default: DEFAULT_CURRENCY)')
@with_appcontext
def update_nisab_command(currency):
    """Store today's Nisab snapshot unless it already exists."""
    currency = (currency or current_app.config['DEFAULT_CURRENCY']).upper()
    result = get_services().nisab.update_today(currency)
    if not result['success']:
        raise click.ClickException(result['error'] or 'Nisab update failed')
    if result['created']:
        data = result['data']
        click.echo(
            f"Stored Nisab for {data['date']} {currency}: "
            f"gold {data['gold_based']:.2f}, silver {data['silver_based']:.2f} ({data['source']})"
        )
    else:
        click.echo(f'Nisab for today already stored for {currency}')


@click.command('import-income-csv')
@click.argument('csv_path', type=click.Path(exists=True))
@with_appcontext
def import_income_csv_command(csv_path):
    """Import income entries from CSV file.

    CSV format: user_id,amount,date,category,notes,is_zakatable
    Example: u1,5000,2025-01-15,salary,January,1
    """
    count, skipped = import_ledger_csv(csv_path, INCOME_TABLE)
    click.echo(f'Imported {count} income entries from {csv_path} ({skipped} skipped)')


@click.command('import-expenses-csv')
@click.argument('csv_path', type=click.Path(exists=True))
@with_appcontext
def import_expenses_csv_command(csv_path):
    """Import expense entries from CSV file.

    CSV format: user_id,amount,date,category,notes
    Example: u1,1200,2025-01-20,rent,
    """
    count, skipped = import_ledger_csv(csv_path, EXPENSE_TABLE)
    click.echo(f'Imported {count} expense entries from {csv_path} ({skipped} skipped)')


@click.command('check-reminders')
@click.option('--window-days', type=int, default=None, help='Days ahead to look (default: REMINDER_WINDOW_DAYS)')
@click.option('--json', 'as_json', is_flag=True, help='Print reminders as JSON')
@with_appcontext
def check_reminders_command(window_days, as_json):
    """List users whose Zakat date is coming up."""
    if window_days is None:
        window_days = current_app.config['REMINDER_WINDOW_DAYS']
    services = get_services()
    reminders = check_reminders(services.engine, services.profiles, window_days)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in reminders], indent=2))
        return
    if not reminders:
        click.echo(f'No Zakat dates within {window_days} days')
        return
    for reminder in reminders:
        click.echo(f'{reminder.user_id}: {reminder.title}')
        click.echo(f'  {reminder.message}')


def _parse_row(row: dict, table: str) -> dict:
    """Validate one CSV row into ledger insert values. Raises ValueError."""
    user_id = (row.get('user_id') or '').strip()
    if not user_id:
        raise ValueError('user_id is required')
    amount = float(row['amount'])
    if not math.isfinite(amount) or amount < 0:
        raise ValueError(f'invalid amount {amount}')
    values = {
        'user_id': user_id,
        'amount': amount,
        'date': date.fromisoformat(row['date'].strip()),
        'category': (row.get('category') or 'other').strip() or 'other',
        'notes': row.get('notes') or None,
    }
    if table == INCOME_TABLE:
        values['is_zakatable'] = (row.get('is_zakatable') or '').strip().lower() in TRUTHY
    return values


def import_ledger_csv(csv_path: str, table: str) -> tuple[int, int]:
    """Import ledger rows from a CSV file. Returns (imported, skipped)."""
    ledger = get_services().ledger
    count = 0
    skipped = 0

    with open(csv_path, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for line_no, row in enumerate(reader, start=2):
            try:
                values = _parse_row(row, table)
            except (KeyError, TypeError, ValueError) as e:
                click.echo(f'  Skipping line {line_no}: {e}')
                skipped += 1
                continue
            ledger.insert(table, values)
            count += 1

    return count, skipped


def register_cli(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(init_db_command)
    app.cli.add_command(update_nisab_command)
    app.cli.add_command(import_income_csv_command)
    app.cli.add_command(import_expenses_csv_command)
    app.cli.add_command(check_reminders_command)
