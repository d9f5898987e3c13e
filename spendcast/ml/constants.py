"""
Static catalogs and thresholds used by the forecasting components.
"""

from typing import Dict, List, Tuple

from spendcast.ml.models import HolidayConfig

# High-spending calendar windows, matched by (month, day) only
HOLIDAYS: Tuple[HolidayConfig, ...] = (
    HolidayConfig(name="Christmas Season", month=12, start_day=20, end_day=31, default_multiplier=1.8),
    HolidayConfig(name="Black Friday / Cyber Monday", month=11, start_day=25, end_day=30, default_multiplier=2.0),
    HolidayConfig(name="New Year", month=1, start_day=1, end_day=7, default_multiplier=1.3),
    HolidayConfig(name="Singles Day", month=11, start_day=11, end_day=11, default_multiplier=1.5),
    HolidayConfig(name="Valentine's Day", month=2, start_day=12, end_day=14, default_multiplier=1.3),
    HolidayConfig(name="Back to School", month=8, start_day=15, end_day=31, default_multiplier=1.4),
    HolidayConfig(name="Back to School (Sept)", month=9, start_day=1, end_day=10, default_multiplier=1.3),
)

# Merchant name fragments that indicate a recurring bill (matched case-insensitively)
FIXED_EXPENSE_PATTERNS: List[str] = [
    # Rent
    "chexy",
    "rent",
    "landlord",
    "property management",
    # Streaming & entertainment
    "netflix",
    "spotify",
    "disney",
    "hulu",
    "apple music",
    "youtube premium",
    "amazon prime",
    "hbo",
    "crave",
    # Tech subscriptions
    "apple.com",
    "google storage",
    "icloud",
    "microsoft 365",
    "dropbox",
    "adobe",
    # Utilities
    "hydro",
    "electricity",
    "gas company",
    "water utility",
    "enbridge",
    # Insurance
    "insurance",
    "manulife",
    "sun life",
    "great west",
    # Internet & phone
    "rogers",
    "bell",
    "telus",
    "shaw",
    "freedom mobile",
    "fido",
    "koodo",
    "virgin mobile",
    # Gym & fitness
    "goodlife",
    "fitness",
    "gym",
    "equinox",
    # Other subscriptions
    "subscription",
    "patreon",
    "substack",
    "medium",
    "linkedin premium",
]

FIXED_EXPENSE_MCC_CODES: frozenset = frozenset({
    "4900",  # Electric, gas, water, sanitary utilities
    "4814",  # Telecommunication services
    "4899",  # Cable, satellite, pay TV/radio
    "6300",  # Insurance sales, underwriting
    "7941",  # Athletic fields, sports clubs
    "4816",  # Computer network/information services
    "5968",  # Direct marketing, continuity/subscription merchants
})

FIXED_EXPENSE_THRESHOLDS = {
    "AMOUNT_CV_MAX": 0.10,
    "DAY_TOLERANCE": 3,
    "MIN_OCCURRENCES": 2,
}

# Confidence a merchant group needs before it is accepted as fixed,
# keyed by whether the merchant matched a known recurring pattern
FIXED_ACCEPTANCE_THRESHOLDS: Dict[bool, float] = {
    True: 0.30,
    False: 0.60,
}

FIXED_CONFIDENCE_WEIGHTS = {
    "AMOUNT_CONSISTENT": 0.35,
    "TIMING_CONSISTENT": 0.35,
    "PATTERN_MATCH": 0.30,
    "THREE_PLUS_OCCURRENCES": 0.10,
    "SIX_PLUS_OCCURRENCES": 0.10,
}

PROFILE_THRESHOLDS = {
    "MIN_TRANSACTIONS": 20,
    "FRONT_LOADER": 0.50,
    "BACK_LOADER": 0.50,
    "STEADY_MAX_DEVIATION": 0.15,
    "PAYDAY_SPIKE_MULTIPLIER": 2.5,
}

# (center day, +/- range)
PAYDAY_WINDOWS: List[Tuple[int, int]] = [(1, 3), (15, 3)]

DAYS_IN_CURVE = 31
CURVE_DECAY_RATE = 0.08
PAYDAY_PEAK_DAYS = (1, 15)
PAYDAY_PEAK_WEIGHT = 3.0
PAYDAY_NEAR_PEAK_WEIGHT = 1.5
PAYDAY_NEAR_PEAK_RANGE = 2
PAYDAY_BASELINE_WEIGHT = 0.8

# Used when there is no history (Sunday first)
DEFAULT_DAY_OF_WEEK_FACTORS: Tuple[float, ...] = (1.3, 0.85, 0.9, 0.95, 1.0, 1.1, 1.4)

WEEKEND_DAYS = frozenset({0, 6})  # Sunday, Saturday

CONFIDENCE_WEIGHTS = {
    "DATA_QUANTITY": 0.30,
    "PATTERN_CONSISTENCY": 0.30,
    "FIXED_EXPENSE_DETECTION": 0.20,
    "PROFILE_CLARITY": 0.20,
}

DATA_CONFIDENCE_LEVELS = {
    "NO_HISTORY": 0.20,
    "LESS_THAN_ONE_MONTH": 0.40,
    "ONE_TO_TWO_MONTHS": 0.60,
    "TWO_TO_THREE_MONTHS": 0.80,
    "THREE_PLUS_MONTHS": 0.95,
}

# A forecast needs this much history before patterns are trusted
MIN_HISTORY_TRANSACTIONS = 10
MIN_HISTORY_DAYS = 14

DAYS_PER_MONTH = 30
