"""Precious metals used for the Nisab threshold and their fallback prices."""
from zakat_tracker.constants import NISAB_GOLD_GRAMS, NISAB_SILVER_GRAMS

# Metals with a traditional Nisab weight
SUPPORTED_METALS = {
    'gold': {
        'name': 'Gold',
        'symbol': 'XAU',
        'nisab_grams': NISAB_GOLD_GRAMS,
    },
    'silver': {
        'name': 'Silver',
        'symbol': 'XAG',
        'nisab_grams': NISAB_SILVER_GRAMS,
    },
}

# Approximate per-gram prices used when no provider answers.
# These are last-resort values and drift from the market over time.
FALLBACK_PRICES_PER_GRAM = {
    'gold': {
        'USD': 65.0,
        'EUR': 60.0,
        'GBP': 52.0,
        'AED': 240.0,
        'SAR': 245.0,
        'EGP': 3200.0,
    },
    'silver': {
        'USD': 0.85,
        'EUR': 0.78,
        'GBP': 0.68,
        'AED': 3.12,
        'SAR': 3.19,
        'EGP': 42.0,
    },
}

FALLBACK_BASE_CURRENCY = 'USD'


def get_fallback_price(metal: str, currency: str) -> float:
    """Static per-gram price for a metal, USD when the currency is unknown."""
    table = FALLBACK_PRICES_PER_GRAM[metal.lower()]
    return table.get(currency.upper(), table[FALLBACK_BASE_CURRENCY])


def has_fallback_currency(currency: str) -> bool:
    """Whether the fallback table carries prices in this currency."""
    return currency.upper() in FALLBACK_PRICES_PER_GRAM['gold']


def is_valid_metal(metal_id: str) -> bool:
    """Check if a metal ID is valid."""
    return metal_id.lower() in SUPPORTED_METALS


def get_symbol(metal_id: str) -> str:
    """Market symbol (XAU/XAG) for a metal."""
    return SUPPORTED_METALS[metal_id.lower()]['symbol']
