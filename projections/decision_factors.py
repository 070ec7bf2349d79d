"""
Exercise-decision scoring model.

Four independent heuristics, each clamped to [0, 1] on its own:

- financial_capacity: available cash relative to the exercise cost
- company_outlook: company stage and revenue growth
- tax_efficiency: option type, penalized by income and AMT exposure
- timing: urgency as the expiration date approaches
"""

import logging
from typing import Any, Mapping, Union

from calculators.components import DecisionFactors
from calculators.tax_constants import DEFAULT_TAX_YEAR, get_amt_parameters, normalize_state
from calculators.tax_utils import coerce_number, to_number
from projections.grant_state import CompanyStage, DecisionInputs, GrantType

logger = logging.getLogger(__name__)

COMPANY_STAGE_BASE_SCORES = {
    CompanyStage.SEED: 0.1,
    CompanyStage.EARLY: 0.2,
    CompanyStage.GROWTH: 0.4,
    CompanyStage.LATE: 0.6,
    CompanyStage.PRE_IPO: 0.7,
    CompanyStage.PUBLIC: 0.8,
}

FINANCING_ADJUSTMENTS = {'strong': 0.1, 'moderate': 0.0, 'weak': -0.1}

# Income at which the tax-efficiency income penalty is fully applied
HIGH_INCOME_REFERENCE = 600000
HIGH_TAX_STATES = {'CA', 'NY', 'NJ', 'OR', 'MN', 'HI'}
HIGH_TAX_STATE_PENALTY = 0.05
EXPIRATION_HORIZON_YEARS = 10.0


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def calculate_financial_capacity(exercise_cost: float, available_cash: float) -> float:
    """ratio / (1 + ratio) where ratio = cash / cost; 1.0 when nothing needs paying."""
    if exercise_cost <= 0:
        return 1.0
    ratio = max(0.0, available_cash) / exercise_cost
    return _clamp(ratio / (1 + ratio))


def calculate_company_outlook(stage: CompanyStage, growth_rate: float, financing_history: str = 'moderate') -> float:
    base = COMPANY_STAGE_BASE_SCORES[stage]
    growth = _clamp(growth_rate / 100) * 0.2
    financing = FINANCING_ADJUSTMENTS.get(str(financing_history).lower(), 0.0)
    return _clamp(base + growth + financing)


def calculate_tax_efficiency(
    option_type: GrantType,
    current_income: float,
    state_of_residence: str,
    exercise_spread: float = 0.0
) -> float:
    """
    ISOs score above NSOs for the same inputs; both lose ground as income
    rises, and ISOs also lose ground as income plus spread approaches the
    AMT exemption phaseout.
    """
    income_factor = _clamp(current_income / HIGH_INCOME_REFERENCE)
    nso_score = 0.6 - 0.3 * income_factor

    if option_type == GrantType.ISO:
        amt = get_amt_parameters(DEFAULT_TAX_YEAR)
        amt_exposure = _clamp(
            (current_income + exercise_spread - amt['exemption']) / amt['phaseout_threshold']
        )
        score = nso_score + 0.3 - 0.15 * amt_exposure
    elif option_type == GrantType.NSO:
        score = nso_score
    else:
        score = 0.4 - 0.2 * income_factor

    if normalize_state(state_of_residence) in HIGH_TAX_STATES:
        score -= HIGH_TAX_STATE_PENALTY
    return _clamp(score)


def calculate_timing_score(time_to_expiration: float) -> float:
    """Urgency: 1.0 at expiration, 0.0 at ten or more years out."""
    return _clamp(1 - time_to_expiration / EXPIRATION_HORIZON_YEARS)


def _coerce_inputs(inputs: Union[DecisionInputs, Mapping[str, Any]]) -> DecisionInputs:
    if isinstance(inputs, DecisionInputs):
        return inputs
    inputs = inputs or {}

    def pick(*keys, default=None):
        for key in keys:
            if inputs.get(key) is not None:
                return inputs[key]
        return default

    try:
        stage = CompanyStage.parse(pick('company_stage', 'companyStage', default='growth'))
    except ValueError:
        logger.warning("Unknown company stage %r; using growth", pick('company_stage', 'companyStage'))
        stage = CompanyStage.GROWTH
    try:
        option_type = GrantType.parse(pick('option_type', 'optionType', default='ISO'))
    except ValueError:
        logger.warning("Unknown option type %r; using NSO", pick('option_type', 'optionType'))
        option_type = GrantType.NSO

    return DecisionInputs(
        strike_price=to_number(pick('strike_price', 'strikePrice')),
        vested_shares=int(to_number(pick('vested_shares', 'vestedShares'))),
        available_cash=to_number(pick('available_cash', 'availableCash')),
        current_income=to_number(pick('current_income', 'currentIncome')),
        company_stage=stage,
        growth_rate=to_number(pick('growth_rate', 'growthRate')),
        option_type=option_type,
        state_of_residence=pick('state_of_residence', 'stateOfResidence', default='California'),
        time_to_expiration=to_number(pick('time_to_expiration', 'timeToExpiration'), default=10.0),
        current_fair_market_value=coerce_number(pick('current_fair_market_value', 'currentFairMarketValue')),
        financing_history=pick('financing_history', 'financingHistory', default='moderate'),
    )


def calculate_decision_factors(inputs: Union[DecisionInputs, Mapping[str, Any]]) -> DecisionFactors:
    """
    Score an exercise decision.

    Args:
        inputs: DecisionInputs or a mapping with the same fields

    Returns:
        DecisionFactors with each score in [0, 1]
    """
    inputs = _coerce_inputs(inputs)

    spread = 0.0
    if inputs.current_fair_market_value is not None:
        spread = max(0.0, inputs.current_fair_market_value - inputs.strike_price) * max(0, inputs.vested_shares)

    return DecisionFactors(
        financial_capacity=calculate_financial_capacity(inputs.exercise_cost, inputs.available_cash),
        company_outlook=calculate_company_outlook(
            inputs.company_stage, inputs.growth_rate, inputs.financing_history
        ),
        tax_efficiency=calculate_tax_efficiency(
            inputs.option_type, inputs.current_income, inputs.state_of_residence, spread
        ),
        timing=calculate_timing_score(inputs.time_to_expiration),
    )
