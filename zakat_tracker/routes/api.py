"""API routes for Nisab, Zakat obligations, payments and the Hijri calendar."""
import math
from datetime import datetime, timezone
from flask import Blueprint, jsonify, request, current_app

from zakat_tracker.constants import NISAB_GOLD_GRAMS, NISAB_SILVER_GRAMS, ZAKAT_RATE
from zakat_tracker.data.currencies import get_ordered_currencies, is_valid_currency
from zakat_tracker.services import hijri_calendar
from zakat_tracker.services.container import get_services
from zakat_tracker.services.hijri_calendar import HijriDate
from zakat_tracker.services.config import get_app_config
from zakat_tracker.services.providers.registry import get_provider_status
from zakat_tracker.services.time_provider import get_today

api_bp = Blueprint('api', __name__)


def _parse_date(value: str):
    return datetime.strptime(value, '%Y-%m-%d').date()


def _currency_arg() -> tuple[str | None, tuple | None]:
    """Read ?currency=, returning (currency, error_response)."""
    currency = request.args.get('currency', current_app.config['DEFAULT_CURRENCY']).upper()
    if not is_valid_currency(currency):
        return None, (jsonify({'error': f'Invalid currency: {currency}'}), 400)
    return currency, None


def _hijri_arg(name: str = 'hijri') -> HijriDate:
    """Parse a Hijri date from ?hijri=YYYY-MM-DD or ?year=&month=&day=."""
    value = request.args.get(name)
    if value:
        return HijriDate.parse(value)
    return HijriDate(
        int(request.args['year']),
        int(request.args['month']),
        int(request.args['day']),
    )


@api_bp.route('/currencies')
def currencies():
    """Return supported currencies, those with fallback prices first."""
    currency_list = get_ordered_currencies()
    return jsonify({
        'currencies': currency_list,
        'default': current_app.config['DEFAULT_CURRENCY'],
        'count': len(currency_list),
    })


@api_bp.route('/prices')
def prices():
    """Return today's per-gram gold and silver prices.

    Query Parameters:
        currency: Currency code (default: DEFAULT_CURRENCY)
    """
    currency, error = _currency_arg()
    if error:
        return error

    services = get_services()
    quote = services.prices.get_prices(currency)
    return jsonify({
        **quote.to_dict(),
        'provider': services.prices.provider_name,
        'providers': get_provider_status(),
    })


@api_bp.route('/nisab')
def nisab():
    """Return today's Nisab threshold.

    The gold-based value is the one used for obligation decisions; the
    silver-based value is reported alongside it.

    Query Parameters:
        currency: Currency code (default: DEFAULT_CURRENCY)
    """
    currency, error = _currency_arg()
    if error:
        return error

    resolution = get_services().nisab.resolve(currency)
    return jsonify({
        **resolution.threshold.to_dict(),
        'threshold': round(resolution.value, 2),
        'zakat_rate': ZAKAT_RATE,
        'degraded': resolution.degraded,
    })


@api_bp.route('/nisab/latest')
def nisab_latest():
    """Return the most recent stored Nisab snapshot, 404 if none."""
    currency, error = _currency_arg()
    if error:
        return error

    threshold = get_services().nisab.latest(currency)
    if threshold is None:
        return jsonify({'error': f'No Nisab snapshot stored for {currency}'}), 404
    return jsonify(threshold.to_dict())


@api_bp.route('/nisab/update-daily', methods=['POST'])
def nisab_update_daily():
    """Create today's Nisab snapshot unless it already exists.

    Intended for a daily cron job. When NISAB_UPDATE_SECRET is set the request
    must carry 'Authorization: Bearer <secret>'.

    Request body (optional):
    {
        "currency": "USD"
    }
    """
    secret = current_app.config.get('NISAB_UPDATE_SECRET')
    if secret and request.headers.get('Authorization') != f'Bearer {secret}':
        return jsonify({'error': 'Unauthorized'}), 401

    body = request.get_json(silent=True) or {}
    currency = str(body.get('currency') or current_app.config['DEFAULT_CURRENCY']).upper()
    if not is_valid_currency(currency):
        return jsonify({'error': f'Invalid currency: {currency}'}), 400

    result = get_services().nisab.update_today(currency)
    status = 200 if result['success'] else 500
    return jsonify({
        **result,
        'message': 'Nisab prices updated successfully' if result['created'] else 'Nisab prices already up to date',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }), status


@api_bp.route('/users/<user_id>/zakat')
def user_zakat(user_id):
    """Point-in-time Zakat calculation.

    Query Parameters:
        debts: Outstanding debts to deduct (default: 0, must be >= 0)
        currency: Currency code (default: DEFAULT_CURRENCY)
    """
    currency, error = _currency_arg()
    if error:
        return error

    try:
        debts = float(request.args.get('debts', 0))
    except ValueError:
        return jsonify({'error': 'debts must be a number'}), 400
    if not math.isfinite(debts):
        return jsonify({'error': 'debts must be a finite number'}), 400
    if debts < 0:
        return jsonify({'error': 'debts must not be negative'}), 400

    result = get_services().engine.calculate(user_id, debts, currency)
    return jsonify({**result.to_dict(), 'currency': currency})


@api_bp.route('/users/<user_id>/eligibility')
def user_eligibility(user_id):
    """Hawl-based Zakat eligibility.

    Query Parameters:
        currency: Currency code (default: the user's preferred currency)
    """
    currency = request.args.get('currency')
    if currency is not None:
        currency = currency.upper()
        if not is_valid_currency(currency):
            return jsonify({'error': f'Invalid currency: {currency}'}), 400

    services = get_services()
    result = services.engine.evaluate_eligibility(user_id, currency)
    payload = result.to_dict()
    if result.next_zakat_date_gregorian is not None:
        payload['next_zakat_date_display'] = hijri_calendar.format_dual_date(result.next_zakat_date_gregorian)
    return jsonify(payload)


@api_bp.route('/users/<user_id>/profile')
def user_profile(user_id):
    """Return the user's Hawl anchor and preferred currency."""
    return jsonify(get_services().profiles.get(user_id).to_dict())


@api_bp.route('/users/<user_id>/hawl-anchor', methods=['PUT'])
def set_hawl_anchor(user_id):
    """Set or clear the user's Zakat anniversary.

    Request body:
    {
        "hijri": "1446-09-01",   // or {"year": 1446, "month": 9, "day": 1}; null clears
        "currency": "USD"        // optional preferred currency
    }
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or 'hijri' not in body:
        return jsonify({'error': 'hijri is required'}), 400

    value = body['hijri']
    anchor = None
    if value is not None:
        try:
            if isinstance(value, dict):
                anchor = HijriDate(int(value['year']), int(value['month']), int(value['day']))
            else:
                anchor = HijriDate.parse(str(value))
        except (KeyError, TypeError, ValueError) as e:
            return jsonify({'error': f'Invalid Hijri date: {e}'}), 400

    currency = body.get('currency')
    if currency is not None and not (isinstance(currency, str) and is_valid_currency(currency)):
        return jsonify({'error': f'Invalid currency: {currency}'}), 400

    profiles = get_services().profiles
    profiles.set_hawl_anchor(user_id, anchor)
    if currency is not None:
        profiles.set_preferred_currency(user_id, currency)
    return jsonify(profiles.get(user_id).to_dict())


@api_bp.route('/users/<user_id>/payments', methods=['GET'])
def list_payments(user_id):
    """Zakat payment history, newest first, with Hijri paid dates."""
    payments = get_services().payments
    history = payments.list_history(user_id)
    return jsonify({
        'payments': [p.to_dict() for p in history],
        'count': len(history),
        'total_paid': round(payments.total_paid(user_id), 2),
    })


@api_bp.route('/users/<user_id>/payments', methods=['POST'])
def record_payment(user_id):
    """Record a Zakat payment.

    Request body:
    {
        "amount": 250.0,
        "paid_date": "2025-03-20",   // optional, default: today
        "notes": "Ramadan"           // optional
    }
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({'error': 'JSON body required'}), 400

    try:
        amount = float(body.get('amount'))
    except (TypeError, ValueError):
        return jsonify({'error': 'amount must be a number'}), 400
    if not math.isfinite(amount):
        return jsonify({'error': 'amount must be a finite number'}), 400

    paid_date_str = body.get('paid_date')
    if paid_date_str:
        try:
            paid_date = _parse_date(paid_date_str)
        except (TypeError, ValueError):
            return jsonify({'error': 'Invalid date format. Use YYYY-MM-DD'}), 400
        try:
            hijri_calendar.to_hijri(paid_date)
        except ValueError:
            return jsonify({'error': 'paid_date is outside the supported calendar range'}), 400
    else:
        paid_date = get_today(current_app.config.get('TIME_PROVIDER'))

    result = get_services().payments.record_payment(user_id, amount, paid_date, body.get('notes') or '')
    if not result.success:
        return jsonify(result.to_dict()), 400
    return jsonify(result.to_dict()), 201


@api_bp.route('/users/<user_id>/payments/yearly')
def yearly_comparison(user_id):
    """Savings against Nisab per Gregorian year, newest first."""
    currency, error = _currency_arg()
    if error:
        return error

    rows = get_services().payments.yearly_comparison(user_id, currency)
    return jsonify({'currency': currency, 'years': [row.to_dict() for row in rows]})


@api_bp.route('/users/<user_id>/income')
def list_income(user_id):
    """Income entries, newest first.

    Query Parameters:
        zakatable: 1 to list only entries flagged zakatable
    """
    zakatable_only = request.args.get('zakatable', '0').lower() in ('1', 'true', 'yes')
    wealth = get_services().wealth
    entries = wealth.list_income(user_id, zakatable_only)
    return jsonify({
        'income': [entry.to_dict() for entry in entries],
        'count': len(entries),
        'zakatable_total': round(wealth.zakatable_income(user_id), 2),
    })


@api_bp.route('/users/<user_id>/income/<int:income_id>', methods=['PATCH'])
def update_income(user_id, income_id):
    """Toggle the zakatable flag on an income entry.

    Request body:
    {
        "is_zakatable": true
    }
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or not isinstance(body.get('is_zakatable'), bool):
        return jsonify({'error': 'is_zakatable must be true or false'}), 400

    result = get_services().wealth.set_zakatable(user_id, income_id, body['is_zakatable'])
    if not result.success:
        status = 404 if result.error == 'Income entry not found' else 500
        return jsonify(result.to_dict()), status
    return jsonify(result.to_dict())


@api_bp.route('/calendar/convert')
def calendar_convert():
    """Convert between Gregorian and Hijri.

    Query Parameters (one of):
        date: Gregorian YYYY-MM-DD
        hijri: Hijri YYYY-MM-DD
    """
    if request.args.get('date'):
        try:
            gregorian = _parse_date(request.args['date'])
            hijri = hijri_calendar.to_hijri(gregorian)
        except ValueError as e:
            return jsonify({'error': f'Invalid date: {e}'}), 400
    elif request.args.get('hijri'):
        try:
            hijri = HijriDate.parse(request.args['hijri'])
            gregorian = hijri_calendar.to_gregorian(hijri)
        except ValueError as e:
            return jsonify({'error': f'Invalid Hijri date: {e}'}), 400
    else:
        return jsonify({'error': 'date or hijri is required'}), 400

    return jsonify({
        'gregorian': gregorian.isoformat(),
        'hijri': hijri.to_dict(),
        'hijri_month_name': hijri_calendar.hijri_month_name(hijri.month),
        'display': hijri_calendar.format_dual_date(gregorian),
        'holiday': hijri_calendar.is_holiday(hijri).to_dict(),
    })


@api_bp.route('/calendar/month-length')
def calendar_month_length():
    """Length and Gregorian bounds of a Hijri month (?year=&month=)."""
    try:
        year = int(request.args['year'])
        month = int(request.args['month'])
        days = hijri_calendar.days_in_hijri_month(year, month)
        start, end = hijri_calendar.hijri_month_range(year, month)
    except KeyError:
        return jsonify({'error': 'year and month are required'}), 400
    except ValueError as e:
        return jsonify({'error': f'Invalid Hijri month: {e}'}), 400

    return jsonify({
        'year': year,
        'month': month,
        'month_name': hijri_calendar.hijri_month_name(month),
        'days': days,
        'gregorian_start': start.isoformat(),
        'gregorian_end': end.isoformat(),
    })


@api_bp.route('/calendar/holiday')
def calendar_holiday():
    """Islamic holiday on a Hijri date (?hijri= or ?year=&month=&day=)."""
    try:
        hijri = _hijri_arg()
    except KeyError:
        return jsonify({'error': 'hijri or year, month and day are required'}), 400
    except ValueError as e:
        return jsonify({'error': f'Invalid Hijri date: {e}'}), 400

    return jsonify({'hijri': hijri.to_dict(), **hijri_calendar.is_holiday(hijri).to_dict()})


@api_bp.route('/config')
def config_status():
    """Nisab constants, runtime settings and provider status."""
    return jsonify({
        'nisab_gold_grams': NISAB_GOLD_GRAMS,
        'nisab_silver_grams': NISAB_SILVER_GRAMS,
        'zakat_rate': ZAKAT_RATE,
        'settings': get_app_config(),
        'providers': get_provider_status(),
    })
