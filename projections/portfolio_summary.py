"""Portfolio-level aggregation across a user's grants."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

from calculators.equity_value_calculator import calculate_current_value, calculate_exercise_cost
from loaders.grant_loader import coerce_grant
from projections.grant_state import GrantType
from projections.vesting_calculator import calculate_vested_shares

logger = logging.getLogger(__name__)


@dataclass
class PortfolioSummary:
    """Totals across grants as of one date. Values use the current FMV."""
    grant_count: int = 0
    total_shares: int = 0
    vested_shares: int = 0
    unvested_shares: int = 0
    current_value: float = 0.0  # Value of vested shares
    exercise_cost: float = 0.0  # Cost to exercise vested options
    potential_gain: float = 0.0  # current_value - exercise_cost
    value_by_grant_type: Dict[str, float] = field(default_factory=dict)
    value_by_company: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'grant_count': self.grant_count,
            'total_shares': self.total_shares,
            'vested_shares': self.vested_shares,
            'unvested_shares': self.unvested_shares,
            'current_value': self.current_value,
            'exercise_cost': self.exercise_cost,
            'potential_gain': self.potential_gain,
            'value_by_grant_type': dict(self.value_by_grant_type),
            'value_by_company': dict(self.value_by_company),
        }


def summarize_portfolio(grants: Iterable[Any], as_of_date: Any = None) -> PortfolioSummary:
    """
    Aggregate vested shares and value across grants.

    Rows that cannot be read as grants are skipped with a warning. RSUs have
    no exercise cost.
    """
    summary = PortfolioSummary()

    for raw in grants or []:
        grant = coerce_grant(raw)
        if grant is None:
            logger.warning("Skipping unreadable grant row in portfolio summary")
            continue

        vested = calculate_vested_shares(grant, as_of_date)
        value = calculate_current_value(vested, grant.current_fair_market_value)
        cost = 0.0 if grant.grant_type == GrantType.RSU else calculate_exercise_cost(vested, grant.strike_price)

        summary.grant_count += 1
        summary.total_shares += grant.shares
        summary.vested_shares += vested
        summary.unvested_shares += max(0, grant.shares - vested)
        summary.current_value += value
        summary.exercise_cost += cost

        type_key = grant.grant_type.value
        summary.value_by_grant_type[type_key] = summary.value_by_grant_type.get(type_key, 0.0) + value
        company = grant.company_name or 'Unknown'
        summary.value_by_company[company] = summary.value_by_company.get(company, 0.0) + value

    summary.potential_gain = summary.current_value - summary.exercise_cost
    return summary
