"""
Input records for equity scenario calculations.

This module defines the grant, tax-settings and decision-input records the
calculators derive values from. All records are immutable; the calculators
never modify them.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from calculators.tax_constants import DEFAULT_TAX_YEAR, normalize_filing_status, normalize_state
from calculators.tax_utils import (
    coerce_date,
    coerce_number,
    is_iso_qualifying_disposition,
    is_long_term_capital_gain,
    normalize_state_allocation,
    to_number,
)
from calculators.validation import GrantValidationError


class GrantType(Enum):
    """Types of equity awards."""
    ISO = "ISO"
    NSO = "NSO"
    RSU = "RSU"

    @classmethod
    def parse(cls, value) -> 'GrantType':
        """Parse a grant type case-insensitively ('iso', 'NSO', GrantType.RSU)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown grant type '{value}'. Expected ISO, NSO or RSU")


class VestingSchedule(Enum):
    """Period granularity for incremental vesting after the cliff."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def months_per_period(self) -> int:
        return {'monthly': 1, 'quarterly': 3, 'yearly': 12}[self.value]

    @classmethod
    def parse(cls, value) -> 'VestingSchedule':
        if isinstance(value, cls):
            return value
        if value is None or value == '':
            return cls.MONTHLY
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown vesting schedule '{value}'. Expected monthly, quarterly or yearly")


class CompanyStage(Enum):
    """Company maturity, ordered from earliest to latest."""
    SEED = "seed"
    EARLY = "early"
    GROWTH = "growth"
    LATE = "late"
    PRE_IPO = "pre_ipo"
    PUBLIC = "public"

    @property
    def ordinal(self) -> int:
        return list(CompanyStage).index(self)

    @classmethod
    def parse(cls, value) -> 'CompanyStage':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().replace('-', '_').replace(' ', '_'))
        except ValueError:
            raise ValueError(f"Unknown company stage '{value}'")


@dataclass(frozen=True)
class Grant:
    """One equity award.

    Vesting dates are optional so that a grant can describe an exercise
    scenario without a schedule; vesting calculations require all three.
    """
    shares: int
    grant_type: GrantType
    strike_price: float = 0.0  # Meaningless for RSUs but still carried
    current_fair_market_value: float = 0.0
    vesting_start_date: Optional[date] = None
    vesting_cliff_date: Optional[date] = None  # Defaults to vesting_start_date (no cliff)
    vesting_end_date: Optional[date] = None
    vesting_schedule: VestingSchedule = VestingSchedule.MONTHLY

    # Supplemental row fields
    grant_id: Optional[str] = None
    company_name: Optional[str] = None
    grant_date: Optional[date] = None
    expiration_date: Optional[date] = None
    vested_shares: Optional[int] = None  # Precomputed upstream; overrides the vesting calculation
    liquidity_event_only: bool = False  # Double-trigger RSU

    def __post_init__(self):
        """Validate Grant constraints after initialization."""
        if self.shares < 0:
            raise GrantValidationError("shares cannot be negative", self.grant_id)
        if self.strike_price < 0:
            raise GrantValidationError("strike price cannot be negative", self.grant_id)
        if self.current_fair_market_value < 0:
            raise GrantValidationError("fair market value cannot be negative", self.grant_id)

        start, cliff, end = self.vesting_start_date, self.vesting_cliff_date, self.vesting_end_date
        if start and end and end < start:
            raise GrantValidationError(
                f"vesting end date {end} is before vesting start date {start}", self.grant_id
            )
        if cliff and start and cliff < start:
            raise GrantValidationError(
                f"vesting cliff date {cliff} is before vesting start date {start}", self.grant_id
            )
        if cliff and end and cliff > end:
            raise GrantValidationError(
                f"vesting cliff date {cliff} is after vesting end date {end}", self.grant_id
            )

    @property
    def effective_cliff_date(self) -> Optional[date]:
        """Cliff date, or the vesting start date for grants without a cliff."""
        return self.vesting_cliff_date or self.vesting_start_date

    @property
    def has_vesting_dates(self) -> bool:
        return self.vesting_start_date is not None and self.vesting_end_date is not None


@dataclass(frozen=True)
class TaxSettings:
    """User tax context for comprehensive tax calculations."""
    filing_status: str = 'single'
    state_of_residence: str = 'California'
    ordinary_income: float = 0.0  # Annual income excluding the equity event
    use_amt: bool = True
    tax_year: int = DEFAULT_TAX_YEAR

    # Holding period context; is_long_term wins over dates when set
    is_long_term: Optional[bool] = None
    exercise_date: Optional[date] = None
    sale_date: Optional[date] = None
    vesting_date: Optional[date] = None

    # Share of equity income sourced to each state, as (state code, fraction)
    # pairs. Accepts a mapping of percentages, fractions or workdays.
    state_allocation: Optional[Tuple[Tuple[str, float], ...]] = None

    def __post_init__(self):
        """Normalize form values; malformed numbers fall back to defaults."""
        object.__setattr__(self, 'filing_status', normalize_filing_status(self.filing_status))
        object.__setattr__(self, 'ordinary_income', to_number(self.ordinary_income))
        tax_year = coerce_number(self.tax_year)
        object.__setattr__(self, 'tax_year', int(tax_year) if tax_year is not None else DEFAULT_TAX_YEAR)
        object.__setattr__(self, 'state_allocation', normalize_state_allocation(self.state_allocation))
        for name in ('exercise_date', 'sale_date', 'vesting_date'):
            object.__setattr__(self, name, coerce_date(getattr(self, name)))

    def state_share(self, state_code: str) -> float:
        """Fraction of equity income taxed by state_code."""
        if self.state_allocation:
            return dict(self.state_allocation).get(state_code, 0.0)
        return 1.0 if normalize_state(self.state_of_residence) == state_code else 0.0

    def resolve_long_term(self, acquisition_date: Optional[date]) -> bool:
        """Whether a sale of shares acquired on acquisition_date is long-term.

        Without an explicit flag or both dates the shares are assumed to be
        held past the one-year mark.
        """
        if self.is_long_term is not None:
            return self.is_long_term
        if acquisition_date and self.sale_date:
            return is_long_term_capital_gain(acquisition_date, self.sale_date)
        return True

    def resolve_iso_qualifying(self, grant_date: Optional[date]) -> bool:
        """Whether an ISO sale meets both qualifying-disposition holding periods."""
        if grant_date and self.exercise_date and self.sale_date:
            return is_iso_qualifying_disposition(grant_date, self.exercise_date, self.sale_date)
        return self.resolve_long_term(self.exercise_date)


@dataclass(frozen=True)
class DecisionInputs:
    """Inputs to the exercise-decision scoring model."""
    strike_price: float
    vested_shares: int
    available_cash: float
    current_income: float
    company_stage: CompanyStage = CompanyStage.GROWTH
    growth_rate: float = 0.0  # Annual revenue growth, percent
    option_type: GrantType = GrantType.ISO
    state_of_residence: str = 'California'
    time_to_expiration: float = 10.0  # Years
    current_fair_market_value: Optional[float] = None
    financing_history: str = 'moderate'  # strong, moderate or weak

    @property
    def exercise_cost(self) -> float:
        return max(0.0, self.strike_price) * max(0, self.vested_shares)
