"""
Exit strategy analysis for IPO, acquisition and secondary-sale events.

Each analysis evaluates a handful of exercise-and-sale timings for the vested
shares of every grant, using the comprehensive tax strategy with exercise
and sale dates placed relative to the event. Dates drive the holding-period
tests, so an early exercise can turn a disqualifying ISO sale into a
qualifying one. analyze_exit_strategies() runs all three and recommends the
exit with the highest net proceeds.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from calculators.components import ScenarioResult
from calculators.comprehensive_tax_calculator import ComprehensiveTaxStrategy
from calculators.tax_utils import coerce_number, resolve_reference_date, to_number
from loaders.grant_loader import coerce_grant
from projections.grant_state import Grant, GrantType, TaxSettings
from projections.scenario_calculator import calculate_scenario_result
from projections.vesting_calculator import calculate_vested_shares

logger = logging.getLogger(__name__)

# Default exit prices as multiples of each grant's current FMV
IPO_MULTIPLIER = 10
ACQUISITION_MULTIPLIER = 8
SECONDARY_MULTIPLIER = 5

DEFAULT_LOCKUP_DAYS = 180

# (months before the IPO, fraction of vested shares); the last batch takes the remainder
IPO_STAGGERED_EXERCISE = ((12, 0.3), (6, 0.3), (2, 0.4))

# (months after the first sale, fraction of shares sold, price factor)
SECONDARY_STAGGERED_SALES = ((0, 0.4, 1.0), (4, 0.3, 1.05), (8, 0.3, 1.10))

# Earnout payments are taxed when received; deferral is discounted over three years at 5%
EARNOUT_DISCOUNT_RATE = 0.05
EARNOUT_DEFERRAL_YEARS = 3

MARKET_CONDITION_SCORES = {'favorable': 1, 'neutral': 2, 'unfavorable': 3}


@dataclass
class ExitStrategyOutcome:
    """Totals for one exercise/sale strategy across all grants."""
    strategy: str
    shares: int = 0
    exercise_cost: float = 0.0
    gross_proceeds: float = 0.0
    total_tax: float = 0.0
    net_proceeds: float = 0.0
    scenarios: List[ScenarioResult] = field(default_factory=list)

    def add(self, result: ScenarioResult) -> None:
        self.shares += result.shares_exercised
        self.exercise_cost += result.exercise_cost
        self.gross_proceeds += result.gross_proceeds
        self.total_tax += result.tax_liability
        self.net_proceeds += result.net_proceeds
        self.scenarios.append(result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strategy': self.strategy,
            'shares': self.shares,
            'exercise_cost': self.exercise_cost,
            'gross_proceeds': self.gross_proceeds,
            'total_tax': self.total_tax,
            'net_proceeds': self.net_proceeds,
            'scenarios': [s.to_dict() for s in self.scenarios],
        }


@dataclass
class ExitAnalysis:
    """Strategy outcomes for one exit type and the strategy that nets the most."""
    exit_type: str
    exit_date: Optional[date]  # None when the event date could not be parsed
    outcomes: Dict[str, ExitStrategyOutcome] = field(default_factory=dict)
    optimal_strategy: str = ''
    optimal_net_proceeds: float = 0.0
    advantage_over_next: float = 0.0  # Net proceeds over the runner-up strategy
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exit_type': self.exit_type,
            'exit_date': self.exit_date.isoformat() if self.exit_date else None,
            'outcomes': {name: o.to_dict() for name, o in self.outcomes.items()},
            'optimal_strategy': self.optimal_strategy,
            'optimal_net_proceeds': self.optimal_net_proceeds,
            'advantage_over_next': self.advantage_over_next,
            'details': dict(self.details),
        }


@dataclass(frozen=True)
class RiskAssessment:
    """Exit risk scores from 1 (low) to 3 (high)."""
    timing_score: int
    concentration_score: int
    market_score: int
    notes: Tuple[str, ...] = ()

    @property
    def overall_score(self) -> float:
        return (self.timing_score + self.concentration_score + self.market_score) / 3

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timing_score': self.timing_score,
            'concentration_score': self.concentration_score,
            'market_score': self.market_score,
            'overall_score': self.overall_score,
            'notes': list(self.notes),
        }


@dataclass(frozen=True)
class ExitRecommendation:
    exit_type: str
    strategy: str
    net_proceeds: float
    advantage_over_next: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exit_type': self.exit_type,
            'strategy': self.strategy,
            'net_proceeds': self.net_proceeds,
            'advantage_over_next': self.advantage_over_next,
        }


@dataclass
class ExitStrategyReport:
    """Combined IPO, acquisition and secondary analyses."""
    ipo: ExitAnalysis
    acquisition: ExitAnalysis
    secondary: ExitAnalysis
    risk: RiskAssessment
    recommendation: ExitRecommendation

    def analyses(self) -> List[ExitAnalysis]:
        return [self.ipo, self.acquisition, self.secondary]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ipo': self.ipo.to_dict(),
            'acquisition': self.acquisition.to_dict(),
            'secondary': self.secondary.to_dict(),
            'risk': self.risk.to_dict(),
            'recommendation': self.recommendation.to_dict(),
        }


def _parse_grants(grants: Optional[Iterable[Any]]) -> List[Grant]:
    parsed = [coerce_grant(g) for g in (grants or [])]
    return [g for g in parsed if g is not None]


def _exit_price(grant: Grant, exit_price: Any, multiplier: float) -> float:
    price = coerce_number(exit_price)
    if price is None:
        return grant.current_fair_market_value * multiplier
    return price


def _evaluate(
    grant: Grant,
    price: float,
    shares: int,
    name: str,
    settings: TaxSettings,
    exercise_date: date,
    sale_date: date,
) -> ScenarioResult:
    dated = replace(settings, exercise_date=exercise_date, sale_date=sale_date, is_long_term=None)
    return calculate_scenario_result(grant, price, shares, name, ComprehensiveTaxStrategy(dated))


def _select_optimal(analysis: ExitAnalysis) -> ExitAnalysis:
    """Pick the strategy with the highest net proceeds; the first listed wins ties."""
    ranked = sorted(
        (o for o in analysis.outcomes.values() if o.shares > 0),
        key=lambda o: o.net_proceeds,
        reverse=True,
    )
    if not ranked:
        return analysis
    analysis.optimal_strategy = ranked[0].strategy
    analysis.optimal_net_proceeds = ranked[0].net_proceeds
    if len(ranked) > 1:
        analysis.advantage_over_next = ranked[0].net_proceeds - ranked[1].net_proceeds
    return analysis


def _split_shares(shares: int, fractions: Sequence[float]) -> List[int]:
    """Floor each batch; the last batch takes whatever is left."""
    batches = [int(shares * f) for f in fractions[:-1]]
    batches.append(shares - sum(batches))
    return batches


def analyze_ipo_exit(
    grants: Iterable[Any],
    settings: Optional[TaxSettings] = None,
    exit_price: Any = None,
    ipo_date: Any = None,
    lockup_days: int = DEFAULT_LOCKUP_DAYS,
) -> ExitAnalysis:
    """
    Compare option exercise timings ahead of an IPO.

    Strategies, all selling when the lockup ends:
        early_exercise: exercise twelve months before the IPO
        exercise_at_exit: exercise on the IPO date
        staggered_exercise: 30/30/40% batches at twelve, six and two months before

    Only option grants are analysed; RSUs have nothing to exercise.

    Args:
        grants: Grants or grant rows
        settings: Tax context; exercise and sale dates are replaced per strategy
        exit_price: Price per share at the IPO; defaults to 10x each grant's FMV
        ipo_date: IPO date; defaults to today
        lockup_days: Days after the IPO before shares can be sold
    """
    settings = settings or TaxSettings()
    event = resolve_reference_date(ipo_date, 'IPO date')
    outcomes = {name: ExitStrategyOutcome(name) for name in
                ('early_exercise', 'exercise_at_exit', 'staggered_exercise')}
    analysis = ExitAnalysis(exit_type='IPO', exit_date=event, outcomes=outcomes)
    if event is None:
        return analysis
    lockup_end = event + relativedelta(days=int(to_number(lockup_days, DEFAULT_LOCKUP_DAYS)))
    analysis.details['lockup_end_date'] = lockup_end.isoformat()

    for grant in _parse_grants(grants):
        if grant.grant_type == GrantType.RSU:
            continue
        vested = calculate_vested_shares(grant, event)
        if vested <= 0:
            continue
        price = _exit_price(grant, exit_price, IPO_MULTIPLIER)

        outcomes['early_exercise'].add(_evaluate(
            grant, price, vested, 'IPO - early exercise', settings, event - relativedelta(months=12), lockup_end))
        outcomes['exercise_at_exit'].add(_evaluate(
            grant, price, vested, 'IPO - exercise at IPO', settings, event, lockup_end))

        batches = _split_shares(vested, [fraction for _, fraction in IPO_STAGGERED_EXERCISE])
        for (months_before, _), batch in zip(IPO_STAGGERED_EXERCISE, batches):
            if batch > 0:
                outcomes['staggered_exercise'].add(_evaluate(
                    grant, price, batch, f'IPO - staggered exercise ({months_before} months before)',
                    settings, event - relativedelta(months=months_before), lockup_end))

    return _select_optimal(analysis)


def analyze_acquisition_exit(
    grants: Iterable[Any],
    settings: Optional[TaxSettings] = None,
    exit_price: Any = None,
    acquisition_date: Any = None,
    earnout_percentage: Any = 0,
) -> ExitAnalysis:
    """
    Compare exercising a year before an acquisition with exercising at close.

    Shares are sold at close. When part of the price is paid as an earnout,
    details['earnout'] compares the tax on that part paid now with the same
    tax deferred and discounted to today.

    Args:
        grants: Grants or grant rows
        settings: Tax context; exercise and sale dates are replaced per strategy
        exit_price: Price per share; defaults to 8x each grant's FMV
        acquisition_date: Closing date; defaults to today
        earnout_percentage: Percent of the price paid later as an earnout
    """
    settings = settings or TaxSettings()
    event = resolve_reference_date(acquisition_date, 'acquisition date')
    outcomes = {name: ExitStrategyOutcome(name) for name in ('early_exercise', 'exercise_at_close')}
    analysis = ExitAnalysis(exit_type='Acquisition', exit_date=event, outcomes=outcomes)
    if event is None:
        return analysis

    for grant in _parse_grants(grants):
        vested = calculate_vested_shares(grant, event)
        if vested <= 0:
            continue
        price = _exit_price(grant, exit_price, ACQUISITION_MULTIPLIER)
        outcomes['early_exercise'].add(_evaluate(
            grant, price, vested, 'Acquisition - early exercise', settings, event - relativedelta(years=1), event))
        outcomes['exercise_at_close'].add(_evaluate(
            grant, price, vested, 'Acquisition - exercise at close', settings, event, event))

    _select_optimal(analysis)

    earnout = min(max(to_number(earnout_percentage), 0.0), 100.0)
    if earnout > 0 and analysis.optimal_strategy:
        immediate = outcomes[analysis.optimal_strategy].total_tax * earnout / 100
        deferred = immediate / (1 + EARNOUT_DISCOUNT_RATE) ** EARNOUT_DEFERRAL_YEARS
        analysis.details['earnout'] = {
            'percentage': earnout,
            'immediate_tax': immediate,
            'deferred_tax_present_value': deferred,
            'tax_savings': immediate - deferred,
        }
    return analysis


def analyze_secondary_sale(
    grants: Iterable[Any],
    settings: Optional[TaxSettings] = None,
    exit_price: Any = None,
    discount_percentage: Any = 20,
    sale_percentage: Any = 25,
    sale_date: Any = None,
) -> ExitAnalysis:
    """
    Compare selling vested shares in a secondary transaction.

    Shares are exercised a year before the first sale. Strategies:
        sell_all: all vested shares at once
        sell_partial: sale_percentage of the vested shares
        staggered_sales: 40/30/30% now, in four months and in eight months,
            at prices rising 5% per step

    Args:
        grants: Grants or grant rows
        settings: Tax context; exercise and sale dates are replaced per strategy
        exit_price: Secondary price per share; defaults to each grant's FMV
            less discount_percentage
        discount_percentage: Discount to FMV buyers demand, percent
        sale_percentage: Share of vested shares sold by sell_partial, percent
        sale_date: Date of the first sale; defaults to today
    """
    settings = settings or TaxSettings()
    event = resolve_reference_date(sale_date, 'sale date')
    outcomes = {name: ExitStrategyOutcome(name) for name in ('sell_all', 'sell_partial', 'staggered_sales')}
    analysis = ExitAnalysis(exit_type='Secondary', exit_date=event, outcomes=outcomes)
    if event is None:
        return analysis
    exercise_date = event - relativedelta(years=1)
    discount = min(max(to_number(discount_percentage), 0.0), 100.0)
    partial = min(max(to_number(sale_percentage), 0.0), 100.0)
    value_loss = 0.0

    for grant in _parse_grants(grants):
        vested = calculate_vested_shares(grant, event)
        if vested <= 0:
            continue
        price = coerce_number(exit_price)
        if price is None:
            price = grant.current_fair_market_value * (1 - discount / 100)
        value_loss += max(0.0, grant.current_fair_market_value - price) * vested

        outcomes['sell_all'].add(_evaluate(
            grant, price, vested, 'Secondary - sell all', settings, exercise_date, event))
        outcomes['sell_partial'].add(_evaluate(
            grant, price, int(vested * partial / 100), 'Secondary - sell partial', settings, exercise_date, event))

        batches = _split_shares(vested, [fraction for _, fraction, _ in SECONDARY_STAGGERED_SALES])
        for (months_after, _, factor), batch in zip(SECONDARY_STAGGERED_SALES, batches):
            if batch > 0:
                outcomes['staggered_sales'].add(_evaluate(
                    grant, price * factor, batch, f'Secondary - staggered sale (+{months_after} months)',
                    settings, exercise_date, event + relativedelta(months=months_after)))

    analysis.details.update(discount_percentage=discount, value_loss=value_loss)
    return _select_optimal(analysis)


def assess_exit_risk(
    grants: Iterable[Any],
    as_of_date: Any = None,
    net_worth: Any = 500000,
    value_multiplier: float = IPO_MULTIPLIER,
    market_conditions: str = 'neutral',
) -> RiskAssessment:
    """
    Score timing, concentration and market risk of an exit.

    Timing risk falls as more of the equity vests (below 50% is high, below
    75% medium). Concentration compares the equity's value at
    value_multiplier x FMV with net worth (above 80% is high, above 50%
    medium). Market conditions are 'favorable', 'neutral' or 'unfavorable'.
    """
    parsed = _parse_grants(grants)
    event = resolve_reference_date(as_of_date)
    notes = []

    total_shares = sum(g.shares for g in parsed)
    vested_shares = sum(calculate_vested_shares(g, event) for g in parsed) if event else 0
    vested_fraction = vested_shares / total_shares if total_shares > 0 else 0.0
    if vested_fraction < 0.5:
        timing = 3
        notes.append("Less than 50% of the equity is vested.")
    elif vested_fraction < 0.75:
        timing = 2
        notes.append("Between 50% and 75% of the equity is vested.")
    else:
        timing = 1

    equity_value = sum(g.shares * g.current_fair_market_value * value_multiplier for g in parsed)
    worth = to_number(net_worth)
    if worth > 0:
        ratio = equity_value / worth
    else:
        ratio = 1.0 if equity_value > 0 else 0.0
    if ratio > 0.8:
        concentration = 3
        notes.append("Equity is over 80% of net worth.")
    elif ratio > 0.5:
        concentration = 2
        notes.append("Equity is over 50% of net worth.")
    else:
        concentration = 1

    condition = str(market_conditions or 'neutral').strip().lower()
    if condition not in MARKET_CONDITION_SCORES:
        logger.warning("Unknown market conditions %r; assuming neutral", market_conditions)
        condition = 'neutral'
    market = MARKET_CONDITION_SCORES[condition]
    if market == 3:
        notes.append("Market conditions are unfavorable for exits.")

    return RiskAssessment(timing, concentration, market, tuple(notes))


def analyze_exit_strategies(
    grants: Iterable[Any],
    settings: Optional[TaxSettings] = None,
    exit_date: Any = None,
    ipo_multiplier: float = IPO_MULTIPLIER,
    acquisition_multiplier: float = ACQUISITION_MULTIPLIER,
    secondary_multiplier: float = SECONDARY_MULTIPLIER,
    lockup_days: int = DEFAULT_LOCKUP_DAYS,
    earnout_percentage: Any = 0,
    secondary_discount: Any = 20,
    secondary_sale_percentage: Any = 25,
    net_worth: Any = 500000,
    market_conditions: str = 'neutral',
) -> ExitStrategyReport:
    """
    Run the IPO, acquisition and secondary analyses and recommend one.

    Exit prices are the multipliers applied to the first grant's FMV (the
    secondary price is further discounted). The recommendation is the exit
    with the highest optimal net proceeds; ties go to IPO, then acquisition.
    """
    parsed = _parse_grants(grants)
    settings = settings or TaxSettings()
    when = resolve_reference_date(exit_date, 'exit date') or exit_date
    fmv = parsed[0].current_fair_market_value if parsed else 0.0

    ipo = analyze_ipo_exit(parsed, settings, fmv * ipo_multiplier, when, lockup_days)
    acquisition = analyze_acquisition_exit(
        parsed, settings, fmv * acquisition_multiplier, when, earnout_percentage)
    discount = min(max(to_number(secondary_discount), 0.0), 100.0)
    secondary = analyze_secondary_sale(
        parsed, settings, fmv * secondary_multiplier * (1 - discount / 100), discount,
        secondary_sale_percentage, when)

    risk = assess_exit_risk(parsed, when, net_worth, ipo_multiplier, market_conditions)

    best = None
    for analysis in (ipo, acquisition, secondary):
        if not analysis.optimal_strategy:
            continue
        if best is None or analysis.optimal_net_proceeds > best.optimal_net_proceeds:
            best = analysis

    if best is None:
        recommendation = ExitRecommendation('', '', 0.0, 0.0)
    else:
        recommendation = ExitRecommendation(
            best.exit_type, best.optimal_strategy, best.optimal_net_proceeds, best.advantage_over_next)
    logger.info("Recommended exit: %s / %s", recommendation.exit_type or 'none', recommendation.strategy or 'none')

    return ExitStrategyReport(ipo, acquisition, secondary, risk, recommendation)
