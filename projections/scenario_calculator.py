"""
Exit scenario evaluation.

Combines the monetary primitives with a tax strategy to produce the exercise
cost, proceeds, tax and ROI of exercising and selling shares at one exit
price. The simplified strategy backs the calculator's simple mode and the
comprehensive strategy its enhanced mode.
"""

import logging
from typing import Any, Iterable, List, Optional

from calculators.components import ScenarioResult
from calculators.comprehensive_tax_calculator import SimplifiedTaxStrategy, TaxStrategy
from calculators.equity_value_calculator import calculate_exercise_cost, calculate_gross_proceeds
from calculators.tax_utils import coerce_number, to_number, to_share_count
from loaders.grant_loader import coerce_grant

logger = logging.getLogger(__name__)

# Exit price multipliers applied to the current FMV
COMMON_SCENARIOS = [
    ('IPO - Conservative', 10),
    ('IPO - Moderate', 25),
    ('IPO - Optimistic', 50),
    ('Acquisition - Conservative', 5),
    ('Acquisition - Moderate', 15),
    ('Acquisition - Optimistic', 30),
]


def calculate_scenario_result(
    grant: Any,
    exit_price: Any,
    shares_to_exercise: Any,
    scenario_name: str,
    tax_strategy: Optional[TaxStrategy] = None
) -> ScenarioResult:
    """
    Evaluate exercising and selling shares at an exit price.

    Args:
        grant: Grant or grant row
        exit_price: Sale price per share
        shares_to_exercise: Shares exercised and sold
        scenario_name: Label carried into the result
        tax_strategy: Tax strategy; defaults to SimplifiedTaxStrategy

    Returns:
        ScenarioResult where net_proceeds = gross_proceeds - exercise_cost -
        tax_liability. A missing or invalid grant yields a zeroed result that
        still carries scenario_name and exit_value.

    Example:
        >>> result = calculate_scenario_result(
        ...     {'grant_type': 'ISO', 'strike_price': 2.5, 'current_fmv': 10}, 15, 500, 'Test')
        >>> result.exercise_cost, result.gross_proceeds
        (1250.0, 7500.0)
    """
    exit_value = to_number(exit_price)
    grant = coerce_grant(grant)
    if grant is None:
        return ScenarioResult(scenario_name=scenario_name, exit_value=exit_value)

    shares = to_share_count(shares_to_exercise)
    if shares <= 0 or coerce_number(exit_price) is None:
        logger.debug("Scenario '%s' has no shares or exit price; returning zeroed result", scenario_name)
        return ScenarioResult(scenario_name=scenario_name, exit_value=exit_value)

    exercise_cost = calculate_exercise_cost(shares, grant.strike_price)
    gross_proceeds = calculate_gross_proceeds(shares, exit_value)

    tax_strategy = tax_strategy or SimplifiedTaxStrategy()
    tax_result = tax_strategy.calculate(grant, exit_value, shares)
    tax_liability = tax_result.total_tax

    net_proceeds = gross_proceeds - exercise_cost - tax_liability
    roi_percentage = net_proceeds / max(exercise_cost, 1) * 100

    return ScenarioResult(
        scenario_name=scenario_name,
        exit_value=exit_value,
        shares_exercised=shares,
        exercise_cost=exercise_cost,
        gross_proceeds=gross_proceeds,
        tax_liability=tax_liability,
        net_proceeds=net_proceeds,
        roi_percentage=roi_percentage,
        tax_result=tax_result,
    )


def generate_common_scenarios(
    grant: Any,
    shares_to_exercise: Any,
    tax_strategy: Optional[TaxStrategy] = None
) -> List[ScenarioResult]:
    """Evaluate the standard IPO and acquisition multipliers of the grant's current FMV."""
    parsed = coerce_grant(grant)
    if parsed is None:
        return []
    fmv = parsed.current_fair_market_value
    return [
        calculate_scenario_result(parsed, fmv * multiplier, shares_to_exercise, name, tax_strategy)
        for name, multiplier in COMMON_SCENARIOS
    ]


def find_best_scenario(results: Iterable[ScenarioResult]) -> Optional[ScenarioResult]:
    """Scenario with the highest net proceeds (first wins on ties)."""
    best = None
    for result in results:
        if best is None or result.net_proceeds > best.net_proceeds:
            best = result
    return best
