"""Health check endpoint."""
import sqlite3

from flask import Blueprint, current_app, jsonify

from zakat_tracker.db import get_db

health_bp = Blueprint('health', __name__)


@health_bp.route('/healthz')
def healthz():
    """Return health status, 503 when the database is unreachable."""
    try:
        get_db().execute('SELECT 1').fetchone()
    except sqlite3.Error as e:
        current_app.logger.warning(f"Health check database query failed: {e}")
        return jsonify({'status': 'error', 'database': 'unavailable'}), 503
    return jsonify({'status': 'ok', 'database': 'ok'})
