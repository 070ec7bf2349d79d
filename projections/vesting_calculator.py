"""
Vested share calculation.

Vesting after the cliff is computed from fractional months, where a month
is AVERAGE_DAYS_PER_MONTH days rather than a calendar month. The result is a
non-decreasing step function of the as-of date, jumping to the
cliff-proportional amount on the cliff date and reaching the full grant on
the vesting end date.
"""

import logging
import math
from datetime import date
from typing import Any, Optional

from calculators.tax_utils import resolve_reference_date
from calculators.validation import GrantValidationError
from loaders.grant_loader import coerce_grant, precomputed_vested_shares
from projections.grant_state import Grant

logger = logging.getLogger(__name__)

# Existing stored schedules were computed with this month length; changing it
# shifts vested counts on dates between periods.
AVERAGE_DAYS_PER_MONTH = 30.44


def months_between(start: date, end: date) -> float:
    """Fractional months between two dates using the average month length."""
    return (end - start).days / AVERAGE_DAYS_PER_MONTH


def calculate_vested_shares_strict(grant: Grant, as_of_date: date) -> int:
    """
    Calculate shares vested as of a date for a validated grant.

    Args:
        grant: Grant with all three vesting dates
        as_of_date: Reference date

    Returns:
        Whole number of vested shares in [0, grant.shares]

    Raises:
        GrantValidationError: If the grant has no vesting dates or no shares
    """
    if not grant.has_vesting_dates:
        raise GrantValidationError("vesting start and end dates are required", grant.grant_id)
    if grant.shares <= 0:
        raise GrantValidationError("shares must be positive to vest", grant.grant_id)

    if as_of_date < grant.effective_cliff_date:
        return 0
    if as_of_date >= grant.vesting_end_date:
        return grant.shares

    total_months = months_between(grant.vesting_start_date, grant.vesting_end_date)
    if total_months <= 0:
        return 0

    elapsed_months = months_between(grant.vesting_start_date, as_of_date)
    vested = math.floor(elapsed_months / total_months * grant.shares)
    return max(0, min(grant.shares, vested))


def calculate_vested_shares(grant: Any, as_of_date: Any = None) -> int:
    """
    Calculate vested shares for a grant row, never raising.

    Args:
        grant: Grant, grant row mapping, or None
        as_of_date: date, datetime or ISO string; defaults to today

    Returns:
        Vested shares. A usable precomputed vested_shares on the row wins,
        capped at the grant size; missing or invalid grants yield 0.

    Example:
        >>> row = {'shares': 1000, 'grant_type': 'ISO', 'vesting_start_date': '2023-01-01',
        ...        'vesting_cliff_date': '2024-01-01', 'vesting_end_date': '2027-01-01'}
        >>> calculate_vested_shares(row, '2024-01-02')
        250
    """
    precomputed = precomputed_vested_shares(grant)
    if precomputed is not None:
        return precomputed

    grant = coerce_grant(grant)
    if grant is None:
        return 0

    reference = resolve_reference_date(as_of_date)
    if reference is None:
        return 0

    try:
        return calculate_vested_shares_strict(grant, reference)
    except GrantValidationError as e:
        logger.debug("Vested shares defaulted to 0: %s", e)
        return 0
