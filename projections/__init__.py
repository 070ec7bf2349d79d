"""Grant records and projections for the equity scenario calculator."""

from .grant_state import (
    CompanyStage,
    DecisionInputs,
    Grant,
    GrantType,
    TaxSettings,
    VestingSchedule,
)

__all__ = [
    'CompanyStage',
    'DecisionInputs',
    'Grant',
    'GrantType',
    'TaxSettings',
    'VestingSchedule',
]
