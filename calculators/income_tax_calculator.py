"""
Ordinary income, capital gains and state tax calculations.

Income recognized by an equity event is always stacked on top of the
taxpayer's other income, so each function returns the tax caused by the
event rather than the taxpayer's whole-year liability.
"""

from typing import Tuple

from calculators.amt_calculator import calculate_tax_from_brackets
from calculators.components import StateTaxShare
from calculators.tax_constants import (
    CALIFORNIA_MENTAL_HEALTH_TAX_RATE,
    CALIFORNIA_MENTAL_HEALTH_TAX_THRESHOLD,
    CALIFORNIA_STANDARD_DEDUCTION,
    CALIFORNIA_TAX_BRACKETS,
    DEFAULT_STATE_TAX_RATE,
    DEFAULT_TAX_YEAR,
    NIIT_RATE,
    NIIT_THRESHOLD,
    STATE_FLAT_TAX_RATES,
    get_federal_brackets,
    get_ltcg_brackets,
    normalize_filing_status,
    normalize_state,
)
from calculators.tax_utils import normalize_state_allocation


def calculate_ordinary_income_tax(gain: float, total_income: float, flat_rate: float) -> float:
    """
    Simplified ordinary income tax: a single flat rate on the gain.

    total_income is accepted for signature parity with the bracket-based
    calculation and does not affect the result.
    """
    if gain <= 0:
        return 0.0
    return gain * flat_rate


def calculate_marginal_ordinary_tax(
    gain: float,
    total_income: float,
    filing_status: str = 'single',
    tax_year: int = DEFAULT_TAX_YEAR
) -> float:
    """
    Progressive ordinary income tax on gain stacked above total_income.

    Args:
        gain: Ordinary income recognized by the event
        total_income: Taxable income before the event (after deductions)
        filing_status: 'single' or 'married_filing_jointly'
        tax_year: Year selecting the bracket table

    Returns:
        Tax on the gain at the marginal rates it falls into
    """
    if gain <= 0:
        return 0.0
    brackets = get_federal_brackets(tax_year, filing_status)
    base = max(0.0, total_income)
    return calculate_tax_from_brackets(base + gain, brackets) - calculate_tax_from_brackets(base, brackets)


def calculate_stacked_bracket_tax(amount: float, stacked_on: float, brackets: list) -> float:
    """Tax on amount occupying the income band [stacked_on, stacked_on + amount)."""
    if amount <= 0:
        return 0.0
    start = max(0.0, stacked_on)
    end = start + amount
    tax = 0.0
    for lower, upper, rate in brackets:
        overlap = min(end, upper) - max(start, lower)
        if overlap > 0:
            tax += overlap * rate
    return tax


def calculate_capital_gains_tax(
    gain: float,
    total_income: float,
    is_long_term: bool,
    filing_status: str = 'single',
    tax_year: int = DEFAULT_TAX_YEAR
) -> float:
    """
    Federal capital gains tax on a gain stacked above total_income.

    Long-term gains use the 0%/15%/20% brackets; short-term gains are taxed
    as ordinary income. Losses produce no tax (and no offset).
    """
    if gain <= 0:
        return 0.0
    if is_long_term:
        return calculate_stacked_bracket_tax(gain, total_income, get_ltcg_brackets(tax_year, filing_status))
    return calculate_marginal_ordinary_tax(gain, total_income, filing_status, tax_year)


def calculate_net_investment_income_tax(
    investment_income: float,
    modified_agi: float,
    filing_status: str = 'single'
) -> float:
    """
    3.8% NIIT on the lesser of investment income and MAGI above the threshold.

    modified_agi must already include investment_income.
    """
    if investment_income <= 0:
        return 0.0
    threshold = NIIT_THRESHOLD[normalize_filing_status(filing_status)]
    return NIIT_RATE * min(investment_income, max(0.0, modified_agi - threshold))


def calculate_state_tax(
    equity_income: float,
    other_income: float,
    state_of_residence: str,
    filing_status: str = 'single'
) -> float:
    """
    State income tax attributable to equity income.

    California applies its progressive brackets (no preferential capital
    gains rate) and the mental health surcharge; other states use a flat
    approximation.

    Args:
        equity_income: Ordinary income plus capital gains from the event
        other_income: Income before the event (before state deductions)
        state_of_residence: State name or two-letter code
        filing_status: 'single' or 'married_filing_jointly'
    """
    if equity_income <= 0:
        return 0.0

    state = normalize_state(state_of_residence)
    if state != 'CA':
        return equity_income * STATE_FLAT_TAX_RATES.get(state, DEFAULT_STATE_TAX_RATE)

    filing_status = normalize_filing_status(filing_status)
    base = max(0.0, other_income - CALIFORNIA_STANDARD_DEDUCTION[filing_status])
    brackets = CALIFORNIA_TAX_BRACKETS[filing_status]
    bracket_tax = calculate_tax_from_brackets(base + equity_income, brackets) - calculate_tax_from_brackets(base, brackets)
    mental_health_tax = calculate_stacked_bracket_tax(
        equity_income,
        base,
        [(CALIFORNIA_MENTAL_HEALTH_TAX_THRESHOLD, float('inf'), CALIFORNIA_MENTAL_HEALTH_TAX_RATE)]
    )
    return bracket_tax + mental_health_tax


def calculate_multi_state_tax(
    equity_income: float,
    other_income: float,
    state_allocation,
    filing_status: str = 'single'
) -> Tuple[float, Tuple[StateTaxShare, ...]]:
    """
    State tax when equity income is sourced to several states.

    Each state taxes its share of the equity income (for example the share
    of workdays spent there during vesting) with the same rules as
    calculate_state_tax.

    Args:
        equity_income: Ordinary income plus capital gains from the event
        other_income: Income before the event (before state deductions)
        state_allocation: Mapping of state to weight, or normalized
            (state code, fraction) pairs as held by TaxSettings
        filing_status: 'single' or 'married_filing_jointly'

    Returns:
        Tuple of (total state tax, per-state breakdown)

    Example:
        >>> total, shares = calculate_multi_state_tax(100000, 0, {'NY': 50, 'TX': 50})
        >>> round(total, 2)
        5350.0
    """
    allocation = normalize_state_allocation(state_allocation)
    if not allocation or equity_income <= 0:
        return 0.0, ()

    breakdown = []
    for state, share in allocation:
        allocated_income = equity_income * share
        breakdown.append(StateTaxShare(
            state=state,
            allocation=share,
            allocated_income=allocated_income,
            state_tax=calculate_state_tax(allocated_income, other_income, state, filing_status),
        ))
    return sum(s.state_tax for s in breakdown), tuple(breakdown)
