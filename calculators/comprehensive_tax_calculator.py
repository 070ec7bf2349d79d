"""
Comprehensive tax calculation for a single equity event, and the tax strategies
the scenario evaluator can plug in.

The comprehensive calculation applies grant-type specific treatment:

- ISO, qualifying disposition: the whole gain (exit - strike) is long-term
  capital gain; the exercise spread (FMV - strike) is an AMT preference item.
- ISO, disqualifying disposition: ordinary income on the lesser of the gain
  and the spread, the remainder is a capital gain.
- NSO: ordinary income on the spread, capital gain on exit - FMV.
- RSU: ordinary income on the FMV at vesting, capital gain on exit - FMV.

Federal tax uses progressive brackets stacked on the taxpayer's other income,
plus NIIT; state tax uses California brackets or a flat approximation, split
across states when the settings carry a state allocation; AMT is the
incremental federal (and California) AMT caused by the ISO spread.
"""

import logging
from enum import Enum
from typing import Any, Optional

from calculators.amt_calculator import calculate_amt_liability, calculate_california_amt, calculate_tax_from_brackets
from calculators.components import TaxResult
from calculators.income_tax_calculator import (
    calculate_capital_gains_tax,
    calculate_marginal_ordinary_tax,
    calculate_multi_state_tax,
    calculate_net_investment_income_tax,
    calculate_ordinary_income_tax,
    calculate_state_tax,
)
from calculators.tax_constants import (
    CALIFORNIA_STANDARD_DEDUCTION,
    CALIFORNIA_TAX_BRACKETS,
    SIMPLIFIED_TAX_RATES,
    get_federal_brackets,
    get_standard_deduction,
    resolve_tax_year,
)
from calculators.tax_utils import coerce_number, to_share_count
from loaders.grant_loader import coerce_grant
from projections.grant_state import Grant, GrantType, TaxSettings

logger = logging.getLogger(__name__)


def _event_income(grant: Grant, strike_price: float, exit_price: float, shares: int, settings: TaxSettings):
    """Split the event into (ordinary, short_term, long_term, amt_preference)."""
    fmv = grant.current_fair_market_value
    ordinary = short_term = long_term = amt_preference = 0.0

    if grant.grant_type == GrantType.ISO:
        gain = (exit_price - strike_price) * shares
        spread = max(0.0, fmv - strike_price) * shares
        if settings.resolve_iso_qualifying(grant.grant_date):
            long_term = gain
            if settings.use_amt:
                amt_preference = spread
        else:
            ordinary = max(0.0, min(gain, spread))
            remainder = gain - ordinary
            if settings.resolve_long_term(settings.exercise_date):
                long_term = remainder
            else:
                short_term = remainder

    elif grant.grant_type == GrantType.NSO:
        ordinary = max(0.0, fmv - strike_price) * shares
        appreciation = (exit_price - fmv) * shares
        if settings.resolve_long_term(settings.exercise_date):
            long_term = appreciation
        else:
            short_term = appreciation

    else:  # RSU
        ordinary = fmv * shares
        appreciation = (exit_price - fmv) * shares
        if settings.resolve_long_term(settings.vesting_date):
            long_term = appreciation
        else:
            short_term = appreciation

    return ordinary, short_term, long_term, amt_preference


def calculate_comprehensive_tax(
    grant: Any,
    strike_price: Any,
    exit_price: Any,
    shares: Any,
    settings: Optional[TaxSettings] = None
) -> TaxResult:
    """
    Calculate total tax on exercising (or vesting) and selling shares.

    Args:
        grant: Grant or grant row; supplies the grant type, FMV and grant date
        strike_price: Strike price per share (falls back to the grant's)
        exit_price: Sale price per share
        shares: Number of shares sold
        settings: Tax context; defaults to TaxSettings()

    Returns:
        TaxResult with federal, state and AMT components. Malformed inputs
        produce a zeroed result rather than an exception.
    """
    settings = settings or TaxSettings()
    tax_year = resolve_tax_year(settings.tax_year)

    grant = coerce_grant(grant)
    exit_value = coerce_number(exit_price)
    share_count = to_share_count(shares)
    if grant is None or exit_value is None or share_count <= 0:
        logger.debug("Comprehensive tax skipped: grant=%r exit_price=%r shares=%r", grant, exit_price, shares)
        return TaxResult(tax_year=tax_year, strategy='comprehensive')

    strike = coerce_number(strike_price)
    if strike is None:
        strike = grant.strike_price

    ordinary, short_term, long_term, amt_preference = _event_income(
        grant, strike, exit_value, share_count, settings
    )
    status = settings.filing_status
    base_income = max(0.0, settings.ordinary_income)

    # Federal: ordinary and short-term on top of wages, long-term on top of both
    base_taxable = max(0.0, base_income - get_standard_deduction(tax_year, status))
    ordinary_like = ordinary + max(0.0, short_term)
    federal_tax = calculate_marginal_ordinary_tax(ordinary_like, base_taxable, status, tax_year)
    federal_tax += calculate_capital_gains_tax(long_term, base_taxable + ordinary_like, True, status, tax_year)

    investment_income = max(0.0, short_term) + max(0.0, long_term)
    niit = calculate_net_investment_income_tax(
        investment_income, base_income + ordinary + investment_income, status
    )
    federal_tax += niit

    # AMT on the ISO spread: only the increase over the taxpayer's existing AMT position
    amt_liability = 0.0
    state_amt = 0.0
    if amt_preference > 0:
        regular_base = calculate_tax_from_brackets(base_taxable, get_federal_brackets(tax_year, status))
        amt_liability = max(0.0, (
            calculate_amt_liability(base_income + amt_preference, regular_base, status, tax_year)
            - calculate_amt_liability(base_income, regular_base, status, tax_year)
        ))
        california_share = settings.state_share('CA')
        if california_share > 0:
            california_regular = calculate_tax_from_brackets(
                max(0.0, base_income - CALIFORNIA_STANDARD_DEDUCTION[status]), CALIFORNIA_TAX_BRACKETS[status]
            )
            state_amt = california_share * calculate_california_amt(
                base_income, amt_preference, california_regular, status
            )
        amt_liability += state_amt

    state_breakdown = ()
    if settings.state_allocation:
        state_tax, state_breakdown = calculate_multi_state_tax(
            ordinary + investment_income, base_income, settings.state_allocation, status
        )
    else:
        state_tax = calculate_state_tax(
            ordinary + investment_income, base_income, settings.state_of_residence, status
        )

    return TaxResult.from_components(
        federal_tax=federal_tax,
        state_tax=state_tax,
        amt_liability=amt_liability,
        ordinary_income=ordinary,
        short_term_gains=short_term,
        long_term_gains=long_term,
        amt_preference=amt_preference,
        net_investment_income_tax=niit,
        state_amt_liability=state_amt,
        tax_year=tax_year,
        strategy='comprehensive',
        state_breakdown=state_breakdown,
    )


class TaxStrategyType(Enum):
    SIMPLIFIED = "simplified"
    COMPREHENSIVE = "comprehensive"


class TaxStrategy:
    """Interface for computing the tax on one exercise-and-sell scenario."""

    name = ""

    def calculate(self, grant: Grant, exit_price: float, shares: int) -> TaxResult:
        raise NotImplementedError


class SimplifiedTaxStrategy(TaxStrategy):
    """
    Flat-rate approximation: 37% short-term, 20% long-term, 13% state.

    ISO gains are treated as long-term; NSO spread and RSU vesting value are
    taxed as ordinary income and later appreciation as long-term.
    """

    name = TaxStrategyType.SIMPLIFIED.value

    def __init__(self, rates=None):
        self.rates = dict(SIMPLIFIED_TAX_RATES, **(rates or {}))

    def calculate(self, grant: Grant, exit_price: float, shares: int) -> TaxResult:
        short_rate = self.rates['federal_short_term']
        long_rate = self.rates['federal_long_term']
        state_rate = self.rates['state']
        fmv = grant.current_fair_market_value

        if grant.grant_type == GrantType.ISO:
            ordinary = 0.0
            long_term = (exit_price - grant.strike_price) * shares
        elif grant.grant_type == GrantType.NSO:
            ordinary = max(0.0, fmv - grant.strike_price) * shares
            long_term = (exit_price - fmv) * shares
        elif grant.grant_type == GrantType.RSU:
            ordinary = fmv * shares
            long_term = (exit_price - fmv) * shares
        else:
            return TaxResult(strategy=self.name)

        federal_tax = (calculate_ordinary_income_tax(ordinary, 0.0, short_rate)
                       + calculate_ordinary_income_tax(long_term, 0.0, long_rate))
        state_tax = calculate_ordinary_income_tax(ordinary + max(0.0, long_term), 0.0, state_rate)

        return TaxResult.from_components(
            federal_tax=federal_tax,
            state_tax=state_tax,
            amt_liability=0.0,
            ordinary_income=ordinary,
            long_term_gains=long_term,
            strategy=self.name,
        )


class ComprehensiveTaxStrategy(TaxStrategy):
    """Bracket-based strategy driven by the user's TaxSettings."""

    name = TaxStrategyType.COMPREHENSIVE.value

    def __init__(self, settings: Optional[TaxSettings] = None):
        self.settings = settings or TaxSettings()

    def calculate(self, grant: Grant, exit_price: float, shares: int) -> TaxResult:
        return calculate_comprehensive_tax(grant, grant.strike_price, exit_price, shares, self.settings)


def create_tax_strategy(strategy_type=TaxStrategyType.SIMPLIFIED, settings: Optional[TaxSettings] = None) -> TaxStrategy:
    """
    Select a tax strategy.

    Args:
        strategy_type: TaxStrategyType or its string value
        settings: Required context for the comprehensive strategy

    Raises:
        ValueError: If strategy_type is unknown
    """
    if not isinstance(strategy_type, TaxStrategyType):
        strategy_type = TaxStrategyType(str(strategy_type).strip().lower())
    if strategy_type == TaxStrategyType.COMPREHENSIVE:
        return ComprehensiveTaxStrategy(settings)
    return SimplifiedTaxStrategy()
