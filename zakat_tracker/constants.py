"""Shared constants for Nisab and Zakat calculation."""

# Nisab weights in grams (about 3 troy ounces of gold, 21 of silver)
NISAB_GOLD_GRAMS = 87.48
NISAB_SILVER_GRAMS = 612.36

# Zakat rate (2.5%)
ZAKAT_RATE = 0.025

# Conversion constant: troy ounce to grams
TROY_OZ_TO_GRAMS = 31.1035

# Threshold reported when no price or snapshot can be resolved at all
FALLBACK_NISAB_THRESHOLD = 4000.0

# Price quote sources
SOURCE_API = 'api'
SOURCE_FALLBACK = 'fallback'

# Ledger tables readable through the ledger store
INCOME_TABLE = 'income_entries'
EXPENSE_TABLE = 'expense_entries'
ZAKAT_PAYMENTS_TABLE = 'zakat_payments'

# Yearly comparison always covers this many trailing Gregorian years
YEARLY_COMPARISON_TRAILING_YEARS = 5
