"""Flask application factory for the Zakat Tracker."""
import logging
import os
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


logger = logging.getLogger('zakat_tracker')


def create_app(config: dict | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary to override defaults.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Trust X-Forwarded-For from reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    from zakat_tracker.services.config import (
        get_data_dir,
        get_default_currency,
        get_nisab_update_secret,
        get_reminder_window_days,
    )

    # Default configuration
    app.config.update(
        SECRET_KEY='dev-secret-key-change-in-production',
        JSON_SORT_KEYS=False,
        DATA_DIR=get_data_dir(),
        DEFAULT_CURRENCY=get_default_currency(),
        NISAB_UPDATE_SECRET=get_nisab_update_secret(),
        REMINDER_WINDOW_DAYS=get_reminder_window_days(),
        # Price cache backend: 'memory' or 'file'
        PRICE_CACHE_BACKEND=os.environ.get('PRICE_CACHE_BACKEND', 'file'),
    )

    # Override with provided config
    if config:
        app.config.update(config)

    # Initialize database
    from zakat_tracker import db
    db.init_app(app)

    # Register CLI commands
    from zakat_tracker import cli
    cli.register_cli(app)

    # Register blueprints
    from zakat_tracker.routes.health import health_bp
    from zakat_tracker.routes.api import api_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp, url_prefix='/api/v1')

    logger.debug(f"Application created with DATA_DIR={app.config['DATA_DIR']}")
    return app
