"""Currencies accepted for Nisab and Zakat amounts.

Ordered so the currencies with a static fallback price come first, then the
remaining ones alphabetically.
"""
from zakat_tracker.data.metals import has_fallback_currency

DEFAULT_CURRENCY = 'USD'

# Format: code -> (name, minor_unit)
SUPPORTED_CURRENCIES: dict[str, tuple[str, int]] = {
    'AED': ('UAE Dirham', 2),
    'AUD': ('Australian Dollar', 2),
    'BDT': ('Bangladeshi Taka', 2),
    'BHD': ('Bahraini Dinar', 3),
    'CAD': ('Canadian Dollar', 2),
    'CHF': ('Swiss Franc', 2),
    'EGP': ('Egyptian Pound', 2),
    'EUR': ('Euro', 2),
    'GBP': ('British Pound', 2),
    'IDR': ('Indonesian Rupiah', 2),
    'INR': ('Indian Rupee', 2),
    'JOD': ('Jordanian Dinar', 3),
    'KWD': ('Kuwaiti Dinar', 3),
    'MAD': ('Moroccan Dirham', 2),
    'MYR': ('Malaysian Ringgit', 2),
    'NGN': ('Nigerian Naira', 2),
    'OMR': ('Omani Rial', 3),
    'PKR': ('Pakistani Rupee', 2),
    'QAR': ('Qatari Riyal', 2),
    'SAR': ('Saudi Riyal', 2),
    'SGD': ('Singapore Dollar', 2),
    'TRY': ('Turkish Lira', 2),
    'USD': ('US Dollar', 2),
}


def get_ordered_currencies() -> list[dict]:
    """Return currencies with fallback prices first, then alphabetical.

    Returns:
        List of dicts with keys: code, name, minor_unit, has_fallback
    """
    codes = sorted(SUPPORTED_CURRENCIES, key=lambda c: (not has_fallback_currency(c), c))
    return [
        {
            'code': code,
            'name': SUPPORTED_CURRENCIES[code][0],
            'minor_unit': SUPPORTED_CURRENCIES[code][1],
            'has_fallback': has_fallback_currency(code),
        }
        for code in codes
    ]


def is_valid_currency(code: str) -> bool:
    """Check if a currency code is supported."""
    return bool(code) and code.upper() in SUPPORTED_CURRENCIES
