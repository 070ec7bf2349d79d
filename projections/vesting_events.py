"""
Vesting schedule and event data structures.

Schedule points are sampled from calculate_vested_shares_strict() so the
schedule, the upcoming-event list and the combined multi-grant view always
agree with the vested share count for the same date.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from calculators.equity_value_calculator import calculate_vesting_percentage
from calculators.tax_utils import coerce_date, resolve_reference_date, to_number
from loaders.grant_loader import coerce_grant
from projections.grant_state import Grant, GrantType
from projections.vesting_calculator import calculate_vested_shares_strict

logger = logging.getLogger(__name__)


@dataclass
class VestingEvent:
    """One point on a grant's vesting schedule."""

    vest_date: date
    shares_vested: int  # Newly vested on this date
    cumulative_shares: int
    event_type: str  # 'start', 'cliff', 'periodic' or 'final'
    grant_id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for CSV export."""
        return {
            'vest_date': self.vest_date.isoformat(),
            'shares_vested': self.shares_vested,
            'cumulative_shares': self.cumulative_shares,
            'event_type': self.event_type,
            'grant_id': self.grant_id,
        }


@dataclass
class VestingDetail:
    """Vesting status of one grant as of a reference date."""

    total_shares: int
    vested_shares: int
    unvested_shares: int
    vesting_percentage: float
    cliff_passed: bool
    fully_vested: bool
    next_vesting_date: Optional[date] = None
    next_vesting_shares: int = 0
    days_until_next_vesting: Optional[int] = None
    is_double_trigger: bool = False
    time_vested_shares: int = 0  # Differs from vested_shares only for double-trigger RSUs
    schedule: List[VestingEvent] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'total_shares': self.total_shares,
            'vested_shares': self.vested_shares,
            'unvested_shares': self.unvested_shares,
            'vesting_percentage': self.vesting_percentage,
            'cliff_passed': self.cliff_passed,
            'fully_vested': self.fully_vested,
            'next_vesting_date': self.next_vesting_date.isoformat() if self.next_vesting_date else None,
            'next_vesting_shares': self.next_vesting_shares,
            'days_until_next_vesting': self.days_until_next_vesting,
            'is_double_trigger': self.is_double_trigger,
            'time_vested_shares': self.time_vested_shares,
        }


@dataclass
class VestingDetailLine:
    """One grant's contribution to a month of the combined schedule."""

    grant_id: Optional[str]
    company_name: Optional[str]
    grant_type: GrantType
    shares: int
    value: float


@dataclass
class MonthlyVesting:
    """Shares vesting across all grants in one calendar month."""

    month: date  # First day of the month
    shares: int = 0
    value: float = 0.0
    cumulative_shares: int = 0
    cumulative_value: float = 0.0
    details: List[VestingDetailLine] = field(default_factory=list)

    @property
    def month_key(self) -> str:
        return self.month.strftime('%Y-%m')

    def to_dict(self) -> dict:
        return {
            'month': self.month_key,
            'shares': self.shares,
            'value': self.value,
            'cumulative_shares': self.cumulative_shares,
            'cumulative_value': self.cumulative_value,
        }


@dataclass
class DoubleTriggerResult:
    """Shares released by a liquidity event for a double-trigger RSU."""

    applicable: bool
    unvested_before_event: int = 0
    time_vested_shares: int = 0
    released_shares: int = 0
    release_value: float = 0.0
    remaining_unvested_shares: int = 0

    @property
    def taxable_income(self) -> float:
        """Released RSUs are ordinary income at the event price."""
        return self.release_value


def _vesting_grant(grant: Any) -> Optional[Grant]:
    grant = coerce_grant(grant)
    if grant is None or not grant.has_vesting_dates or grant.shares <= 0:
        return None
    return grant


def _schedule_dates(grant: Grant) -> List[date]:
    """Cliff date, then one date per schedule period after it, ending on the end date."""
    step = relativedelta(months=grant.vesting_schedule.months_per_period)
    cliff = grant.effective_cliff_date
    end = grant.vesting_end_date

    dates = [cliff] if cliff > grant.vesting_start_date else []
    period = 1
    current = cliff + step
    while current < end:
        dates.append(current)
        period += 1
        current = cliff + step * period
    if not dates or dates[-1] != end:
        dates.append(end)
    return dates


def generate_vesting_schedule(grant: Any) -> List[VestingEvent]:
    """
    Build the full vesting schedule for a grant.

    Returns:
        Ordered events starting with a zero 'start' event; empty when the
        grant has no usable vesting dates
    """
    grant = _vesting_grant(grant)
    if grant is None:
        return []

    events = [VestingEvent(grant.vesting_start_date, 0, 0, 'start', grant.grant_id)]
    previous = 0
    cliff = grant.effective_cliff_date
    for vest_date in _schedule_dates(grant):
        cumulative = calculate_vested_shares_strict(grant, vest_date)
        newly_vested = cumulative - previous
        if vest_date == grant.vesting_end_date:
            event_type = 'final'
        elif vest_date == cliff and cliff > grant.vesting_start_date:
            event_type = 'cliff'
        else:
            event_type = 'periodic'
        if newly_vested > 0 or event_type == 'final':
            events.append(VestingEvent(vest_date, newly_vested, cumulative, event_type, grant.grant_id))
        previous = cumulative
    return events


def calculate_detailed_vesting(grant: Any, as_of_date: Any = None) -> VestingDetail:
    """
    Calculate detailed vesting status including the next vesting event.

    Double-trigger RSUs (liquidity_event_only) report no vested shares until
    the liquidity event; time_vested_shares still tracks the time condition.
    An unparseable as_of_date yields the same zeroed detail as an unusable grant.
    """
    reference = resolve_reference_date(as_of_date)
    grant = _vesting_grant(grant)
    if grant is None or reference is None:
        return VestingDetail(0, 0, 0, 0.0, False, False)

    schedule = generate_vesting_schedule(grant)
    time_vested = calculate_vested_shares_strict(grant, reference)
    is_double_trigger = grant.grant_type == GrantType.RSU and grant.liquidity_event_only
    vested = 0 if is_double_trigger else time_vested

    upcoming = next((e for e in schedule if e.vest_date > reference and e.shares_vested > 0), None)

    return VestingDetail(
        total_shares=grant.shares,
        vested_shares=vested,
        unvested_shares=grant.shares - vested,
        vesting_percentage=calculate_vesting_percentage(vested, grant.shares),
        cliff_passed=reference >= grant.effective_cliff_date,
        fully_vested=time_vested >= grant.shares,
        next_vesting_date=upcoming.vest_date if upcoming else None,
        next_vesting_shares=upcoming.shares_vested if upcoming else 0,
        days_until_next_vesting=(upcoming.vest_date - reference).days if upcoming else None,
        is_double_trigger=is_double_trigger,
        time_vested_shares=time_vested,
        schedule=schedule,
    )


def get_upcoming_vesting_events(grant: Any, months_ahead: int = 6, as_of_date: Any = None) -> List[VestingEvent]:
    """Schedule events after as_of_date and within months_ahead calendar months."""
    reference = resolve_reference_date(as_of_date)
    if reference is None:
        return []
    horizon = reference + relativedelta(months=months_ahead)
    return [
        event for event in generate_vesting_schedule(grant)
        if reference < event.vest_date <= horizon and event.shares_vested > 0
    ]


def calculate_combined_vesting_schedule(
    grants: Iterable[Any],
    start_date: Any = None,
    months_ahead: int = 36
) -> List[MonthlyVesting]:
    """
    Aggregate vesting across grants by calendar month.

    Args:
        grants: Grants or grant rows; unusable rows are skipped
        start_date: First day of the window; defaults to today
            (an unparseable date yields no months)
        months_ahead: Window length in calendar months

    Returns:
        Months that have vesting events, in order, with running totals
    """
    start = resolve_reference_date(start_date, 'start date')
    if start is None:
        return []
    end = start + relativedelta(months=months_ahead)
    months = {}

    for raw in grants or []:
        grant = _vesting_grant(raw)
        if grant is None:
            logger.debug("Skipping grant without a vesting schedule: %r", raw)
            continue
        for event in generate_vesting_schedule(grant):
            if not (start <= event.vest_date <= end) or event.shares_vested <= 0:
                continue
            month = event.vest_date.replace(day=1)
            entry = months.setdefault(month, MonthlyVesting(month=month))
            value = event.shares_vested * grant.current_fair_market_value
            entry.shares += event.shares_vested
            entry.value += value
            entry.details.append(VestingDetailLine(
                grant_id=grant.grant_id,
                company_name=grant.company_name,
                grant_type=grant.grant_type,
                shares=event.shares_vested,
                value=value,
            ))

    combined = [months[m] for m in sorted(months)]
    cumulative_shares = 0
    cumulative_value = 0.0
    for entry in combined:
        cumulative_shares += entry.shares
        cumulative_value += entry.value
        entry.cumulative_shares = cumulative_shares
        entry.cumulative_value = cumulative_value
    return combined


def handle_double_trigger_rsu(grant: Any, liquidity_event_date: Any, share_price: Any) -> DoubleTriggerResult:
    """
    Shares released when a liquidity event satisfies the second trigger.

    Only shares that have met the time-based condition by the event date are
    released; the rest keep vesting on schedule.
    """
    grant = _vesting_grant(grant)
    event_date = coerce_date(liquidity_event_date)
    if grant is None or event_date is None:
        return DoubleTriggerResult(applicable=False)
    if grant.grant_type != GrantType.RSU or not grant.liquidity_event_only:
        return DoubleTriggerResult(applicable=False)

    released = calculate_vested_shares_strict(grant, event_date)
    return DoubleTriggerResult(
        applicable=True,
        unvested_before_event=grant.shares,
        time_vested_shares=released,
        released_shares=released,
        release_value=released * to_number(share_price),
        remaining_unvested_shares=grant.shares - released,
    )
