"""
Utility functions shared across the calculators.

Holding-period rules for capital gains and ISO dispositions, plus the input
coercion used by every lenient (form-facing) calculation: numbers pass
through, numeric strings parse, anything else is treated as missing.
"""

import logging
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from calculators.tax_constants import (
    ISO_QUALIFYING_DISPOSITION_YEARS_FROM_EXERCISE,
    ISO_QUALIFYING_DISPOSITION_YEARS_FROM_GRANT,
    LTCG_HOLDING_PERIOD_DAYS,
    normalize_state,
)

logger = logging.getLogger(__name__)


def coerce_number(value: Any) -> Optional[float]:
    """
    Convert a form or database value to a finite float.

    Args:
        value: int, float, Decimal or numeric string

    Returns:
        The float value, or None when the value is missing, non-numeric,
        NaN or infinite. Booleans are not treated as numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(',', '')
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce a value to float, returning default for anything unusable."""
    number = coerce_number(value)
    return default if number is None else number


def to_share_count(value: Any, default: int = 0) -> int:
    """Coerce a value to a whole share count (fractions truncate toward zero)."""
    number = coerce_number(value)
    return default if number is None else int(number)


def coerce_date(value: Any) -> Optional[date]:
    """
    Convert a date, datetime or ISO-8601 string to a date.

    Returns:
        The date, or None when the value is missing or unparseable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date_parser.isoparse(value.strip()).date()
        except (ValueError, OverflowError):
            return None
    return None


def resolve_reference_date(value: Any, label: str = 'as-of date') -> Optional[date]:
    """
    Resolve the reference date of a calculation.

    Returns today when value is None and the parsed date otherwise. An
    unparseable value is logged and returns None.
    """
    if value is None:
        return date.today()
    parsed = coerce_date(value)
    if parsed is None:
        logger.warning("Unparseable %s %r", label, value)
    return parsed


def calculate_iso_qualifying_disposition_date(grant_date: date, exercise_date: date) -> date:
    """
    Calculate when ISO shares become eligible for qualifying disposition.

    For a disposition of ISO shares to be "qualifying" (and thus eligible for
    long-term capital gains treatment on the entire gain), the shares must be
    held at least 2 years from the grant date and at least 1 year from the
    exercise date. The qualifying date is the later of the two.

    relativedelta clamps Feb 29 anniversaries to Feb 28 in non-leap years.

    Example:
        >>> calculate_iso_qualifying_disposition_date(date(2023, 1, 1), date(2024, 6, 1))
        datetime.date(2025, 6, 1)
    """
    from_grant = grant_date + relativedelta(years=ISO_QUALIFYING_DISPOSITION_YEARS_FROM_GRANT)
    from_exercise = exercise_date + relativedelta(years=ISO_QUALIFYING_DISPOSITION_YEARS_FROM_EXERCISE)
    return max(from_grant, from_exercise)


def is_iso_qualifying_disposition(
    grant_date: date,
    exercise_date: date,
    sale_date: date
) -> bool:
    """Determine if an ISO sale is a qualifying disposition."""
    qualifying_date = calculate_iso_qualifying_disposition_date(grant_date, exercise_date)
    return sale_date >= qualifying_date


def calculate_holding_period_days(
    acquisition_date: date,
    disposition_date: date
) -> int:
    """Calculate the number of days between acquisition and disposition."""
    return (disposition_date - acquisition_date).days


def is_long_term_capital_gain(
    acquisition_date: date,
    disposition_date: date
) -> bool:
    """
    Determine if a disposition qualifies for long-term capital gains treatment.

    Long-term treatment requires holding the asset for more than 365 days.
    """
    holding_days = calculate_holding_period_days(acquisition_date, disposition_date)
    return holding_days >= LTCG_HOLDING_PERIOD_DAYS


def normalize_state_allocation(allocation: Any) -> Optional[Tuple[Tuple[str, float], ...]]:
    """
    Normalize a state income allocation to (state code, fraction) pairs.

    Weights may be percentages, fractions or workday counts; they are scaled
    to sum to 1. Non-numeric and non-positive weights are dropped.

    Returns:
        Pairs sorted by state code, or None when no usable weight remains

    Example:
        >>> normalize_state_allocation({'California': 150, 'TX': 50})
        (('CA', 0.75), ('TX', 0.25))
    """
    if not allocation:
        return None
    items = allocation.items() if isinstance(allocation, Mapping) else allocation

    weights: Dict[str, float] = {}
    try:
        for state, weight in items:
            code = normalize_state(state)
            value = coerce_number(weight)
            if not code or value is None or value <= 0:
                logger.warning("Ignoring state allocation entry %r: %r", state, weight)
                continue
            weights[code] = weights.get(code, 0.0) + value
    except (TypeError, ValueError):
        logger.warning("Unreadable state allocation %r", allocation)
        return None

    total = sum(weights.values())
    if total <= 0:
        return None
    return tuple((code, weights[code] / total) for code in sorted(weights))
