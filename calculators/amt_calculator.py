"""
Alternative Minimum Tax (AMT) calculator module.

This module provides centralized AMT calculation functions. It handles
exemption phaseouts, the two-tier AMT rate structure and California's flat
AMT, all keyed by tax year and filing status.
"""

from dataclasses import dataclass

from calculators.tax_constants import (
    CALIFORNIA_AMT_EXEMPTION,
    CALIFORNIA_AMT_PHASEOUT_RATE,
    CALIFORNIA_AMT_PHASEOUT_START,
    CALIFORNIA_AMT_RATE,
    DEFAULT_TAX_YEAR,
    get_amt_parameters,
    get_federal_brackets,
    get_standard_deduction,
    normalize_filing_status,
)


@dataclass
class AMTCalculationResult:
    """Result of AMT calculation with all relevant components."""
    regular_tax: float
    amt_income: float
    amt_exemption: float
    amt_taxable_income: float
    amt_tax: float  # Tentative minimum tax
    is_amt: bool
    amt_liability: float  # Excess of tentative minimum tax over regular tax
    effective_amt_on_adjustment: float  # Additional tax due to the AMT adjustment (e.g., ISO bargain element)


def calculate_tax_from_brackets(taxable_income: float, brackets: list) -> float:
    """
    Calculate tax using progressive tax brackets.

    Args:
        taxable_income: Income subject to tax
        brackets: List of (lower, upper, rate) tuples

    Returns:
        Total tax owed
    """
    if taxable_income <= 0:
        return 0.0

    tax = 0.0

    for lower, upper, rate in brackets:
        if taxable_income > lower:
            taxable_in_bracket = min(upper, taxable_income) - lower
            tax += taxable_in_bracket * rate
            if taxable_income <= upper:
                break

    return tax


def calculate_amt_exemption(
    amt_income: float,
    filing_status: str = 'single',
    tax_year: int = DEFAULT_TAX_YEAR
) -> float:
    """
    Calculate AMT exemption amount with phaseout.

    The exemption phases out at 25 cents per dollar of AMT income above the
    threshold and never goes below zero.

    Args:
        amt_income: Alternative Minimum Taxable Income (AMTI)
        filing_status: 'single' or 'married_filing_jointly' ('married' accepted)
        tax_year: Year selecting the exemption table

    Returns:
        AMT exemption amount after phaseout

    Raises:
        UnsupportedTaxYearError: If no AMT table exists for tax_year
    """
    params = get_amt_parameters(tax_year, filing_status)
    exemption = params['exemption']
    phaseout = max(0.0, amt_income - params['phaseout_threshold']) * params['phaseout_rate']
    return max(exemption - phaseout, 0.0)


def calculate_amt_tax(amt_taxable_income: float, tax_year: int = DEFAULT_TAX_YEAR) -> float:
    """
    Calculate tentative minimum tax using the two-tier rate structure.

    26% applies up to the year's rate threshold, 28% above it.
    """
    if amt_taxable_income <= 0:
        return 0.0

    params = get_amt_parameters(tax_year)
    threshold = params['rate_threshold']

    if amt_taxable_income <= threshold:
        return amt_taxable_income * params['rate_low']
    return threshold * params['rate_low'] + (amt_taxable_income - threshold) * params['rate_high']


def calculate_amt_liability(
    amt_income: float,
    regular_tax: float,
    filing_status: str = 'single',
    tax_year: int = DEFAULT_TAX_YEAR
) -> float:
    """
    AMT owed on top of regular tax.

    AMT only applies when the tentative minimum tax exceeds regular tax, so
    the result is never negative.
    """
    exemption = calculate_amt_exemption(amt_income, filing_status, tax_year)
    tentative_minimum_tax = calculate_amt_tax(max(0.0, amt_income - exemption), tax_year)
    return max(0.0, tentative_minimum_tax - regular_tax)


def calculate_federal_amt(
    ordinary_income: float,
    amt_adjustments: float = 0.0,
    capital_gains: float = 0.0,
    filing_status: str = 'single',
    tax_year: int = DEFAULT_TAX_YEAR
) -> AMTCalculationResult:
    """
    Calculate federal AMT with all components.

    Args:
        ordinary_income: Wages + other ordinary income (before deductions)
        amt_adjustments: AMT preference items (e.g., ISO bargain element)
        capital_gains: Capital gains included in both regular and AMT income
        filing_status: 'single' or 'married_filing_jointly'
        tax_year: Year selecting brackets and AMT parameters

    Returns:
        AMTCalculationResult with all calculation components
    """
    filing_status = normalize_filing_status(filing_status)

    # Regular tax (without AMT adjustments)
    agi = ordinary_income + capital_gains
    taxable_income = max(0.0, agi - get_standard_deduction(tax_year, filing_status))
    regular_tax = calculate_tax_from_brackets(
        taxable_income,
        get_federal_brackets(tax_year, filing_status)
    )

    # AMT income includes the adjustments and gets no standard deduction
    amt_income = agi + amt_adjustments
    amt_exemption = calculate_amt_exemption(amt_income, filing_status, tax_year)
    amt_taxable_income = max(0.0, amt_income - amt_exemption)
    amt_tax = calculate_amt_tax(amt_taxable_income, tax_year)

    is_amt = amt_tax > regular_tax
    amt_liability = max(0.0, amt_tax - regular_tax)

    # Portion of AMT caused by the adjustment alone
    effective_amt_on_adjustment = 0.0
    if amt_adjustments > 0 and is_amt:
        liability_without = calculate_amt_liability(agi, regular_tax, filing_status, tax_year)
        effective_amt_on_adjustment = amt_liability - liability_without

    return AMTCalculationResult(
        regular_tax=regular_tax,
        amt_income=amt_income,
        amt_exemption=amt_exemption,
        amt_taxable_income=amt_taxable_income,
        amt_tax=amt_tax,
        is_amt=is_amt,
        amt_liability=amt_liability,
        effective_amt_on_adjustment=effective_amt_on_adjustment
    )


def calculate_california_amt(
    income: float,
    iso_bargain_element: float,
    regular_tax: float,
    filing_status: str = 'single'
) -> float:
    """
    California AMT attributable to an ISO bargain element.

    California AMT is a flat 7% on AMTI above a phased-out exemption. Only the
    increase caused by the bargain element is returned, so a taxpayer already
    paying California AMT is not charged twice.
    """
    filing_status = normalize_filing_status(filing_status)

    def excess_amt(amti: float) -> float:
        exemption = CALIFORNIA_AMT_EXEMPTION[filing_status]
        start = CALIFORNIA_AMT_PHASEOUT_START[filing_status]
        if amti > start:
            exemption = max(0.0, exemption - (amti - start) * CALIFORNIA_AMT_PHASEOUT_RATE)
        return max(0.0, max(0.0, amti - exemption) * CALIFORNIA_AMT_RATE - regular_tax)

    if iso_bargain_element <= 0:
        return 0.0
    return max(0.0, excess_amt(income + iso_bargain_element) - excess_amt(income))
