"""
Tax constants for equity scenario calculations.

This module consolidates all tax-related constants used throughout the equity
scenario calculator. Federal values are indexed by tax year and filing status;
California values are current-year only.

Accessor functions raise UnsupportedTaxYearError for a year that has no table.
Callers that must never fail (form-driven call sites) go through
resolve_tax_year() first, which falls back to the most recent year.

Example:
    get_federal_brackets(2024, 'single')
    get_amt_parameters(2025, 'married_filing_jointly')
"""

import logging
from typing import Dict, List, Optional, Tuple

from calculators.validation import UnsupportedTaxYearError

logger = logging.getLogger(__name__)

Bracket = Tuple[float, float, float]

SINGLE = 'single'
MARRIED_FILING_JOINTLY = 'married_filing_jointly'

FILING_STATUS_ALIASES = {
    'single': SINGLE,
    'married': MARRIED_FILING_JOINTLY,
    'married_filing_jointly': MARRIED_FILING_JOINTLY,
    'mfj': MARRIED_FILING_JOINTLY,
    'joint': MARRIED_FILING_JOINTLY,
}

# Default tax year for calculations
DEFAULT_TAX_YEAR = 2025

# ===== FEDERAL TAX CONSTANTS =====

# Federal Tax Brackets
# Format: (lower_bound, upper_bound, rate); each bracket starts where the previous ends
FEDERAL_TAX_BRACKETS_BY_YEAR: Dict[int, Dict[str, List[Bracket]]] = {
    2023: {
        SINGLE: [
            (0, 11000, 0.10),
            (11000, 44725, 0.12),
            (44725, 95375, 0.22),
            (95375, 182100, 0.24),
            (182100, 231250, 0.32),
            (231250, 578125, 0.35),
            (578125, float('inf'), 0.37)
        ],
        MARRIED_FILING_JOINTLY: [
            (0, 22000, 0.10),
            (22000, 89450, 0.12),
            (89450, 190750, 0.22),
            (190750, 364200, 0.24),
            (364200, 462500, 0.32),
            (462500, 693750, 0.35),
            (693750, float('inf'), 0.37)
        ]
    },
    2024: {
        SINGLE: [
            (0, 11600, 0.10),
            (11600, 47150, 0.12),
            (47150, 100525, 0.22),
            (100525, 191950, 0.24),
            (191950, 243725, 0.32),
            (243725, 609350, 0.35),
            (609350, float('inf'), 0.37)
        ],
        MARRIED_FILING_JOINTLY: [
            (0, 23200, 0.10),
            (23200, 94300, 0.12),
            (94300, 201050, 0.22),
            (201050, 383900, 0.24),
            (383900, 487450, 0.32),
            (487450, 731200, 0.35),
            (731200, float('inf'), 0.37)
        ]
    },
    2025: {
        SINGLE: [
            (0, 11925, 0.10),
            (11925, 48475, 0.12),
            (48475, 103350, 0.22),
            (103350, 197300, 0.24),
            (197300, 250525, 0.32),
            (250525, 626350, 0.35),
            (626350, float('inf'), 0.37)
        ],
        MARRIED_FILING_JOINTLY: [
            (0, 23850, 0.10),
            (23850, 96950, 0.12),
            (96950, 206700, 0.22),
            (206700, 394600, 0.24),
            (394600, 501050, 0.32),
            (501050, 751600, 0.35),
            (751600, float('inf'), 0.37)
        ]
    }
}

# Federal Standard Deductions
FEDERAL_STANDARD_DEDUCTION_BY_YEAR = {
    2023: {SINGLE: 13850, MARRIED_FILING_JOINTLY: 27700},
    2024: {SINGLE: 14600, MARRIED_FILING_JOINTLY: 29200},
    2025: {SINGLE: 15000, MARRIED_FILING_JOINTLY: 30000},
}

# Federal Long-Term Capital Gains Brackets
# Thresholds apply to taxable income with the gain stacked on top of ordinary income
FEDERAL_LTCG_BRACKETS_BY_YEAR: Dict[int, Dict[str, List[Bracket]]] = {
    2023: {
        SINGLE: [
            (0, 44625, 0.00),
            (44625, 492300, 0.15),
            (492300, float('inf'), 0.20)
        ],
        MARRIED_FILING_JOINTLY: [
            (0, 89250, 0.00),
            (89250, 553850, 0.15),
            (553850, float('inf'), 0.20)
        ]
    },
    2024: {
        SINGLE: [
            (0, 47025, 0.00),
            (47025, 518900, 0.15),
            (518900, float('inf'), 0.20)
        ],
        MARRIED_FILING_JOINTLY: [
            (0, 94050, 0.00),
            (94050, 583750, 0.15),
            (583750, float('inf'), 0.20)
        ]
    },
    2025: {
        SINGLE: [
            (0, 48350, 0.00),
            (48350, 533400, 0.15),
            (533400, float('inf'), 0.20)
        ],
        MARRIED_FILING_JOINTLY: [
            (0, 96700, 0.00),
            (96700, 600050, 0.15),
            (600050, float('inf'), 0.20)
        ]
    }
}

# ===== AMT CONSTANTS =====

AMT_EXEMPTION_AMOUNT_BY_YEAR = {
    2023: {SINGLE: 81300, MARRIED_FILING_JOINTLY: 126500},
    2024: {SINGLE: 85700, MARRIED_FILING_JOINTLY: 133300},
    2025: {SINGLE: 88100, MARRIED_FILING_JOINTLY: 137000},
}

AMT_PHASEOUT_THRESHOLD_BY_YEAR = {
    2023: {SINGLE: 578150, MARRIED_FILING_JOINTLY: 1156300},
    2024: {SINGLE: 609350, MARRIED_FILING_JOINTLY: 1218700},
    2025: {SINGLE: 626350, MARRIED_FILING_JOINTLY: 1252700},
}

# Breakpoint between the 26% and 28% AMT rates
AMT_THRESHOLD_BY_YEAR = {
    2023: 220700,
    2024: 232600,
    2025: 239100,
}

# AMT Phaseout Rate
AMT_PHASEOUT_RATE = 0.25  # 25 cents per dollar of income above threshold

# AMT Tax Rates
AMT_RATE_LOW = 0.26
AMT_RATE_HIGH = 0.28

# ===== CALIFORNIA STATE TAX CONSTANTS =====

# California Tax Brackets (current year)
CALIFORNIA_TAX_BRACKETS = {
    SINGLE: [
        (0, 10412, 0.01),
        (10412, 24684, 0.02),
        (24684, 38959, 0.04),
        (38959, 54081, 0.06),
        (54081, 68350, 0.08),
        (68350, 349137, 0.093),
        (349137, 418961, 0.103),
        (418961, 698271, 0.113),
        (698271, float('inf'), 0.123)
    ],
    MARRIED_FILING_JOINTLY: [
        (0, 20824, 0.01),
        (20824, 49368, 0.02),
        (49368, 77918, 0.04),
        (77918, 108162, 0.06),
        (108162, 136700, 0.08),
        (136700, 698274, 0.093),
        (698274, 837922, 0.103),
        (837922, 1396542, 0.113),
        (1396542, float('inf'), 0.123)
    ]
}

CALIFORNIA_STANDARD_DEDUCTION = {
    SINGLE: 5809,
    MARRIED_FILING_JOINTLY: 11618
}

# Additional 1% tax on income over $1 million
CALIFORNIA_MENTAL_HEALTH_TAX_THRESHOLD = 1000000
CALIFORNIA_MENTAL_HEALTH_TAX_RATE = 0.01

# California has no preferential LTCG rates

CALIFORNIA_AMT_EXEMPTION = {
    SINGLE: 85084,
    MARRIED_FILING_JOINTLY: 109288
}

CALIFORNIA_AMT_RATE = 0.07

CALIFORNIA_AMT_PHASEOUT_START = {
    SINGLE: 328049,
    MARRIED_FILING_JOINTLY: 437381
}

CALIFORNIA_AMT_PHASEOUT_RATE = 0.25

# ===== OTHER STATES =====

# Flat approximations of top marginal rates for states without a bracket table
STATE_FLAT_TAX_RATES = {
    'NY': 0.107,
    'NJ': 0.1075,
    'OR': 0.099,
    'MA': 0.05,
    'IL': 0.0495,
    'CO': 0.044,
    'TX': 0.0,
    'FL': 0.0,
    'WA': 0.0,
    'NV': 0.0,
    'SD': 0.0,
    'WY': 0.0,
    'AK': 0.0,
    'TN': 0.0,
    'NH': 0.0,
}

DEFAULT_STATE_TAX_RATE = 0.05

STATE_NAME_TO_CODE = {
    'california': 'CA',
    'new york': 'NY',
    'new jersey': 'NJ',
    'oregon': 'OR',
    'massachusetts': 'MA',
    'illinois': 'IL',
    'colorado': 'CO',
    'texas': 'TX',
    'florida': 'FL',
    'washington': 'WA',
    'nevada': 'NV',
    'south dakota': 'SD',
    'wyoming': 'WY',
    'alaska': 'AK',
    'tennessee': 'TN',
    'new hampshire': 'NH',
}

# ===== OTHER TAX CONSTANTS =====

# Net Investment Income Tax (NIIT); thresholds are not inflation indexed
NIIT_RATE = 0.038
NIIT_THRESHOLD = {
    SINGLE: 200000,
    MARRIED_FILING_JOINTLY: 250000
}

# ===== SIMPLIFIED CALCULATOR RATES =====

# Flat rates used by the simplified ("quick") calculator mode
SIMPLIFIED_TAX_RATES = {
    'federal_long_term': 0.20,
    'federal_short_term': 0.37,
    'state': 0.13,
}

# ===== HOLDING PERIOD CONSTANTS =====

# Days required for long-term capital gains treatment
LTCG_HOLDING_PERIOD_DAYS = 366  # More than 365 days (366+ days)

# ISO qualifying disposition requirements
ISO_QUALIFYING_DISPOSITION_YEARS_FROM_GRANT = 2
ISO_QUALIFYING_DISPOSITION_YEARS_FROM_EXERCISE = 1

SUPPORTED_TAX_YEARS = tuple(sorted(FEDERAL_TAX_BRACKETS_BY_YEAR))


def normalize_filing_status(filing_status: str) -> str:
    """Map a filing status or accepted alias to its canonical table key.

    Raises:
        ValueError: If the filing status is not recognized
    """
    key = str(filing_status).strip().lower().replace(' ', '_') if filing_status else ''
    if key not in FILING_STATUS_ALIASES:
        raise ValueError(
            f"Unknown filing status '{filing_status}'. "
            f"Expected one of: {', '.join(sorted(FILING_STATUS_ALIASES))}"
        )
    return FILING_STATUS_ALIASES[key]


def resolve_tax_year(tax_year: Optional[int]) -> int:
    """Return tax_year if a table exists for it, otherwise the most recent year."""
    if tax_year in FEDERAL_TAX_BRACKETS_BY_YEAR:
        return tax_year
    latest = SUPPORTED_TAX_YEARS[-1]
    if tax_year is not None:
        logger.warning("No tax tables for %s; falling back to %s", tax_year, latest)
    return latest


def _lookup_year(table: Dict[int, dict], tax_year: int, name: str):
    if tax_year not in table:
        raise UnsupportedTaxYearError(tax_year, SUPPORTED_TAX_YEARS, table_name=name)
    return table[tax_year]


def get_federal_brackets(tax_year: int = DEFAULT_TAX_YEAR, filing_status: str = SINGLE) -> List[Bracket]:
    """Get federal ordinary income brackets for a specific year and filing status."""
    by_status = _lookup_year(FEDERAL_TAX_BRACKETS_BY_YEAR, tax_year, 'federal brackets')
    return by_status[normalize_filing_status(filing_status)]


def get_ltcg_brackets(tax_year: int = DEFAULT_TAX_YEAR, filing_status: str = SINGLE) -> List[Bracket]:
    """Get federal long-term capital gains brackets for a specific year and filing status."""
    by_status = _lookup_year(FEDERAL_LTCG_BRACKETS_BY_YEAR, tax_year, 'LTCG brackets')
    return by_status[normalize_filing_status(filing_status)]


def get_standard_deduction(tax_year: int = DEFAULT_TAX_YEAR, filing_status: str = SINGLE) -> float:
    """Get the federal standard deduction for a specific year and filing status."""
    by_status = _lookup_year(FEDERAL_STANDARD_DEDUCTION_BY_YEAR, tax_year, 'standard deduction')
    return by_status[normalize_filing_status(filing_status)]


def get_amt_parameters(tax_year: int = DEFAULT_TAX_YEAR, filing_status: str = SINGLE) -> Dict[str, float]:
    """Get AMT exemption, phaseout threshold and rate breakpoint for a year."""
    status = normalize_filing_status(filing_status)
    return {
        'exemption': _lookup_year(AMT_EXEMPTION_AMOUNT_BY_YEAR, tax_year, 'AMT exemption')[status],
        'phaseout_threshold': _lookup_year(AMT_PHASEOUT_THRESHOLD_BY_YEAR, tax_year, 'AMT phaseout')[status],
        'rate_threshold': _lookup_year(AMT_THRESHOLD_BY_YEAR, tax_year, 'AMT rate threshold'),
        'phaseout_rate': AMT_PHASEOUT_RATE,
        'rate_low': AMT_RATE_LOW,
        'rate_high': AMT_RATE_HIGH,
    }


def normalize_state(state_of_residence: Optional[str]) -> str:
    """Return a two-letter state code for a state name or code ('' when unknown)."""
    if not state_of_residence:
        return ''
    value = str(state_of_residence).strip()
    if len(value) == 2:
        return value.upper()
    return STATE_NAME_TO_CODE.get(value.lower(), value.upper())
