"""Configuration service for price providers and app settings."""
import os


def get_data_dir() -> str:
    """Directory holding the SQLite database and the price cache file."""
    return os.environ.get('DATA_DIR', os.path.join(os.path.dirname(__file__), '..', '..', 'data'))


def get_default_currency() -> str:
    """Currency used when a request or profile does not name one."""
    return os.environ.get('DEFAULT_CURRENCY', 'USD').upper()


def get_user_agent() -> str:
    """Get the User-Agent string for provider HTTP requests."""
    default_ua = 'ZakatTracker/1.0'
    return os.environ.get('PRICING_USER_AGENT', default_ua)


def get_price_api_timeout() -> float:
    """Timeout for a single spot-price request.

    Controlled by PRICE_API_TIMEOUT_SECONDS env var (default: 10).
    """
    return float(os.environ.get('PRICE_API_TIMEOUT_SECONDS', '10'))


def get_price_cache_ttl() -> int:
    """How long a resolved price quote stays cached.

    Controlled by PRICE_CACHE_TTL_SECONDS env var (default: 86400 = 24 hours).
    """
    return int(os.environ.get('PRICE_CACHE_TTL_SECONDS', '86400'))


def get_reminder_window_days() -> int:
    """Days before the Zakat anniversary at which reminders start.

    Controlled by REMINDER_WINDOW_DAYS env var (default: 30).
    """
    return int(os.environ.get('REMINDER_WINDOW_DAYS', '30'))


def get_nisab_update_secret() -> str | None:
    """Bearer token required by the daily Nisab update endpoint, if set."""
    return os.environ.get('NISAB_UPDATE_SECRET') or None


# Provider API key getters
def get_metals_api_key() -> str | None:
    """Get metals.live API key if configured."""
    return os.environ.get('METALS_API_KEY')


def get_goldapi_key() -> str | None:
    """Get GoldAPI key if configured."""
    return os.environ.get('GOLDAPI_KEY')


def get_provider_keys_status() -> dict:
    """Get status of configured provider API keys."""
    return {
        'metals-live': bool(get_metals_api_key()),
        'goldapi': bool(get_goldapi_key()),
    }


def get_app_config() -> dict:
    """Get complete configuration status."""
    return {
        'default_currency': get_default_currency(),
        'price_api_timeout_seconds': get_price_api_timeout(),
        'price_cache_ttl_seconds': get_price_cache_ttl(),
        'reminder_window_days': get_reminder_window_days(),
        'provider_keys': get_provider_keys_status(),
        'user_agent': get_user_agent(),
    }
