"""
Monetary primitives for equity positions.

Every function here is form-facing: inputs may be numbers, numeric strings
or junk, and junk yields 0 instead of an exception or NaN. Share counts are
multiplied as given; callers that need whole shares truncate before calling.
"""

from typing import Any

from calculators.tax_utils import coerce_number


def calculate_exercise_cost(shares: Any, strike_price: Any) -> float:
    """
    Cost to exercise options.

    Returns 0 when either input is missing, zero or non-numeric.

    Example:
        >>> calculate_exercise_cost('200', '1.5')
        300.0
    """
    count = coerce_number(shares)
    price = coerce_number(strike_price)
    if not count or not price:
        return 0.0
    return count * price


def calculate_gross_proceeds(shares: Any, exit_price: Any) -> float:
    """Proceeds from selling shares at exit_price, before costs and taxes."""
    count = coerce_number(shares)
    price = coerce_number(exit_price)
    if not count or not price:
        return 0.0
    return count * price


def calculate_current_value(shares: Any, fair_market_value: Any) -> float:
    """Value of shares at the current fair market value."""
    count = coerce_number(shares)
    fmv = coerce_number(fair_market_value)
    if count is None or fmv is None:
        return 0.0
    return count * fmv


def calculate_vesting_percentage(vested_shares: Any, total_shares: Any) -> float:
    """Percentage of the grant vested; the denominator is floored at 1."""
    vested = coerce_number(vested_shares)
    total = coerce_number(total_shares)
    if vested is None or total is None:
        return 0.0
    return vested / max(total, 1) * 100


def calculate_return_percentage(current_price: Any, cost_basis: Any) -> float:
    """Percentage return of current_price over cost_basis; the basis is floored at 1."""
    price = coerce_number(current_price)
    basis = coerce_number(cost_basis)
    if price is None or basis is None:
        return 0.0
    return (price / max(basis, 1) - 1) * 100
