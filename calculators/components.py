"""
Result data structures produced by the calculators.

These dataclasses are the boundary records handed to presentation and export
collaborators. Field names are the attribute names used across the boundary,
and to_dict() emits exactly those keys.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class StateTaxShare:
    """Equity income sourced to one state and the tax that state charges on it."""
    state: str
    allocation: float  # Fraction of equity income, 0-1
    allocated_income: float
    state_tax: float

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class TaxResult:
    """Tax owed on one equity event under a single tax strategy."""
    federal_tax: float = 0.0
    state_tax: float = 0.0
    amt_liability: float = 0.0
    total_tax: float = 0.0
    effective_tax_rate: float = 0.0

    # Breakdown
    ordinary_income: float = 0.0
    short_term_gains: float = 0.0
    long_term_gains: float = 0.0
    amt_preference: float = 0.0  # ISO bargain element counted for AMT only
    net_investment_income_tax: float = 0.0  # Included in federal_tax
    state_amt_liability: float = 0.0  # Included in amt_liability
    tax_year: Optional[int] = None
    strategy: str = ""
    state_breakdown: Tuple[StateTaxShare, ...] = ()  # Set when income is split across states

    def __post_init__(self):
        """Validate invariants."""
        if self.total_tax < 0:
            raise ValueError("Total tax cannot be negative")

    @property
    def taxable_gain(self) -> float:
        """Income recognized by the event (the effective-rate denominator)."""
        return self.ordinary_income + self.short_term_gains + self.long_term_gains

    @classmethod
    def from_components(
        cls,
        federal_tax: float,
        state_tax: float,
        amt_liability: float,
        **breakdown
    ) -> 'TaxResult':
        """Build a result, deriving total_tax and effective_tax_rate."""
        federal_tax = max(0.0, federal_tax)
        state_tax = max(0.0, state_tax)
        amt_liability = max(0.0, amt_liability)
        total_tax = federal_tax + state_tax + amt_liability
        gain = (breakdown.get('ordinary_income', 0.0)
                + breakdown.get('short_term_gains', 0.0)
                + breakdown.get('long_term_gains', 0.0))
        return cls(
            federal_tax=federal_tax,
            state_tax=state_tax,
            amt_liability=amt_liability,
            total_tax=total_tax,
            effective_tax_rate=total_tax / gain if gain > 0 else 0.0,
            **breakdown
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['state_breakdown'] = [share.to_dict() for share in self.state_breakdown]
        return data


@dataclass(frozen=True)
class ScenarioResult:
    """Outcome of exercising and selling shares at one exit price."""
    scenario_name: str
    exit_value: float
    shares_exercised: int = 0
    exercise_cost: float = 0.0
    gross_proceeds: float = 0.0
    tax_liability: float = 0.0
    net_proceeds: float = 0.0
    roi_percentage: float = 0.0
    tax_result: Optional[TaxResult] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for export (tax breakdown excluded)."""
        return {
            'scenario_name': self.scenario_name,
            'exit_value': self.exit_value,
            'shares_exercised': self.shares_exercised,
            'exercise_cost': self.exercise_cost,
            'gross_proceeds': self.gross_proceeds,
            'tax_liability': self.tax_liability,
            'net_proceeds': self.net_proceeds,
            'roi_percentage': self.roi_percentage,
        }


# Weights for the combined exercise opportunity score
DECISION_FACTOR_WEIGHTS = {
    'financial_capacity': 0.3,
    'company_outlook': 0.3,
    'tax_efficiency': 0.2,
    'timing': 0.2,
}

STRONG_GUIDANCE_THRESHOLD = 0.7
MODERATE_GUIDANCE_THRESHOLD = 0.5


@dataclass(frozen=True)
class DecisionFactors:
    """Four independent exercise-decision scores, each in [0, 1]."""
    financial_capacity: float
    company_outlook: float
    tax_efficiency: float
    timing: float

    def __post_init__(self):
        for f in fields(self):
            object.__setattr__(self, f.name, _clamp_unit(getattr(self, f.name)))

    @property
    def overall_score(self) -> float:
        """Weighted exercise opportunity score in [0, 1]."""
        return sum(getattr(self, name) * weight for name, weight in DECISION_FACTOR_WEIGHTS.items())

    @property
    def guidance(self) -> str:
        """'strong', 'moderate' or 'weak' based on the unweighted average."""
        average = (self.financial_capacity + self.company_outlook + self.tax_efficiency + self.timing) / 4
        if average >= STRONG_GUIDANCE_THRESHOLD:
            return 'strong'
        if average >= MODERATE_GUIDANCE_THRESHOLD:
            return 'moderate'
        return 'weak'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'financial_capacity': self.financial_capacity,
            'company_outlook': self.company_outlook,
            'tax_efficiency': self.tax_efficiency,
            'timing': self.timing,
            'overall_score': self.overall_score,
            'guidance': self.guidance,
        }
