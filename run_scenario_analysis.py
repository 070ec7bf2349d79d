#!/usr/bin/env python3
"""
Scenario Analysis - CLI for exit scenario and exercise decision analysis.

Loads the user profile (or demo data), then prints vesting status, exit
scenarios and decision factors for each grant.
"""

import logging
import os
import sys

# Add current directory to path for imports
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from calculators.comprehensive_tax_calculator import TaxStrategyType, create_tax_strategy
from calculators.tax_utils import coerce_date
from loaders.profile_loader import ProfileLoader, build_decision_inputs, build_tax_settings, load_grants
from projections.decision_factors import calculate_decision_factors
from projections.exit_strategies import analyze_exit_strategies
from projections.portfolio_summary import summarize_portfolio
from projections.scenario_calculator import (
    calculate_scenario_result,
    find_best_scenario,
    generate_common_scenarios,
)
from projections.vesting_events import calculate_combined_vesting_schedule, calculate_detailed_vesting


def print_vesting_status(grant, detail):
    """Print vesting status for one grant."""
    print(f"\n{'='*80}")
    print(f"GRANT: {grant.grant_id or 'unnamed'} ({grant.grant_type.value}, {grant.company_name or 'Unknown'})")
    print(f"{'='*80}")
    print(f"  {'Total Shares':<28} {detail.total_shares:>13,}")
    print(f"  {'Vested Shares':<28} {detail.vested_shares:>13,}")
    print(f"  {'Unvested Shares':<28} {detail.unvested_shares:>13,}")
    print(f"  {'Vested':<28} {detail.vesting_percentage:>12.1f}%")
    if detail.is_double_trigger:
        print(f"  {'Time-Vested (double trigger)':<28} {detail.time_vested_shares:>13,}")
    if detail.next_vesting_date:
        print(f"  {'Next Vesting':<28} {detail.next_vesting_date.isoformat():>13} "
              f"(+{detail.next_vesting_shares:,} shares in {detail.days_until_next_vesting} days)")


def print_scenario_table(results):
    """Print exit scenarios as an accounting table."""
    print(f"\n  {'SCENARIO':<28} {'EXIT':>9} {'COST':>12} {'TAX':>12} {'NET':>14} {'ROI':>10}")
    print(f"  {'-'*90}")
    for r in results:
        print(f"  {r.scenario_name:<28} ${r.exit_value:>8,.2f} ${r.exercise_cost:>11,.0f} "
              f"${r.tax_liability:>11,.0f} ${r.net_proceeds:>13,.0f} {r.roi_percentage:>9,.0f}%")


def print_decision_factors(factors):
    """Print decision factor scores."""
    print("\n  DECISION FACTORS:")
    for name, value in factors.to_dict().items():
        label = name.replace('_', ' ').title()
        if isinstance(value, float):
            print(f"    {label:<24} {value:>6.2f}")
        else:
            print(f"    {label:<24} {value:>6}")


def print_portfolio_summary(summary, combined):
    """Print portfolio totals and upcoming monthly vesting."""
    print(f"\n{'='*80}")
    print("PORTFOLIO SUMMARY")
    print(f"{'='*80}")
    print(f"  {'Grants':<28} {summary.grant_count:>13}")
    print(f"  {'Vested Shares':<28} {summary.vested_shares:>13,}")
    print(f"  {'Current Value (vested)':<28} ${summary.current_value:>12,.0f}")
    print(f"  {'Exercise Cost (vested)':<28} ${summary.exercise_cost:>12,.0f}")
    print(f"  {'Potential Gain':<28} ${summary.potential_gain:>12,.0f}")

    if combined:
        print("\n  UPCOMING VESTING BY MONTH:")
        for month in combined:
            print(f"    {month.month_key}  {month.shares:>8,} shares  ${month.value:>11,.0f}  "
                  f"(cumulative {month.cumulative_shares:,})")


def print_exit_report(report):
    """Print the IPO, acquisition and secondary comparison and the recommendation."""
    print(f"\n{'='*80}")
    print("EXIT STRATEGY ANALYSIS")
    print(f"{'='*80}")
    for analysis in report.analyses():
        print(f"\n  {analysis.exit_type.upper()} ({analysis.exit_date.isoformat()})")
        for outcome in analysis.outcomes.values():
            marker = '*' if outcome.strategy == analysis.optimal_strategy else ' '
            print(f"   {marker}{outcome.strategy:<24} {outcome.shares:>9,} shares  tax ${outcome.total_tax:>11,.0f}  "
                  f"net ${outcome.net_proceeds:>13,.0f}")

    risk = report.risk
    print(f"\n  RISK: timing {risk.timing_score}, concentration {risk.concentration_score}, "
          f"market {risk.market_score} (overall {risk.overall_score:.1f})")
    for note in risk.notes:
        print(f"    - {note}")

    rec = report.recommendation
    if rec.exit_type:
        print(f"\n  Recommended: {rec.exit_type} / {rec.strategy} (net ${rec.net_proceeds:,.0f}, "
              f"+${rec.advantage_over_next:,.0f} over the next strategy)")


def run_analysis(mode='simple', exit_price=None, multiplier=None, shares=None, grant_id=None,
                 as_of=None, use_demo=False, months_ahead=12, exit_analysis=False):
    """Load the profile and print the analysis for each selected grant."""
    loader = ProfileLoader()
    profile_data, is_real_data = loader.load_profile(verbose=True, force_demo=use_demo)

    settings = build_tax_settings(profile_data)
    grants = load_grants(profile_data)
    if grant_id:
        grants = [g for g in grants if g.grant_id == grant_id]
        if not grants:
            print(f"\nNo grant with id '{grant_id}' in profile")
            return

    as_of_date = coerce_date(as_of) if as_of else None
    strategy_type = TaxStrategyType.COMPREHENSIVE if mode == 'enhanced' else TaxStrategyType.SIMPLIFIED
    strategy = create_tax_strategy(strategy_type, settings)

    print(f"\nTax mode: {strategy.name} | Filing: {settings.filing_status} | "
          f"State: {settings.state_of_residence} | Tax year: {settings.tax_year}")

    for grant in grants:
        detail = calculate_detailed_vesting(grant, as_of_date)
        print_vesting_status(grant, detail)

        shares_to_exercise = shares if shares is not None else detail.time_vested_shares
        if exit_price is not None or multiplier is not None:
            price = exit_price if exit_price is not None else grant.current_fair_market_value * multiplier
            results = [calculate_scenario_result(grant, price, shares_to_exercise, 'Custom Exit', strategy)]
        else:
            results = generate_common_scenarios(grant, shares_to_exercise, strategy)
        print_scenario_table(results)

        best = find_best_scenario(results)
        if best is not None and best.tax_result is not None:
            print(f"\n  Best: {best.scenario_name} (effective tax rate "
                  f"{best.tax_result.effective_tax_rate:.1%})")

        inputs = build_decision_inputs(profile_data, grant, detail.time_vested_shares)
        print_decision_factors(calculate_decision_factors(inputs))

    summary = summarize_portfolio(grants, as_of_date)
    combined = calculate_combined_vesting_schedule(grants, as_of_date, months_ahead)
    print_portfolio_summary(summary, combined)

    if exit_analysis:
        report = analyze_exit_strategies(grants, settings, exit_date=as_of_date)
        print_exit_report(report)

    if not is_real_data:
        print("\nNote: results use demo data. Copy data/user_profile_template.json to "
              "data/user_profile.json to analyze your own grants.")


def main():
    """Main entry point for scenario analysis."""
    import argparse

    parser = argparse.ArgumentParser(
        description='Evaluate exit scenarios and exercise decisions for equity grants',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --demo
  %(prog)s --mode enhanced --multiplier 10
  %(prog)s --grant ISO-2023-001 --exit-price 25 --shares 5000
  %(prog)s --as-of 2026-01-01 --verbose
  %(prog)s --exit-analysis --as-of 2026-06-01
        """
    )

    parser.add_argument('--mode', default='simple', choices=['simple', 'enhanced'],
                       help='simple uses flat tax rates; enhanced uses brackets, AMT and state tax (default: simple)')
    price = parser.add_mutually_exclusive_group()
    price.add_argument('--exit-price', type=float, help='Exit price per share')
    price.add_argument('--multiplier', type=float, help='Exit price as a multiple of current FMV')
    parser.add_argument('--shares', type=int, help='Shares to exercise (default: vested shares)')
    parser.add_argument('--grant', help='Only analyze the grant with this id')
    parser.add_argument('--as-of', help='Reference date (YYYY-MM-DD, default: today)')
    parser.add_argument('--months', type=int, default=12,
                       help='Months of upcoming vesting to show (default: 12)')
    parser.add_argument('--exit-analysis', action='store_true',
                       help='Compare IPO, acquisition and secondary exit strategies')
    parser.add_argument('--demo', action='store_true',
                       help='Force use of demo data (safe example data)')
    parser.add_argument('--verbose', action='store_true',
                       help='Show debug logging from the calculators')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    run_analysis(
        mode=args.mode,
        exit_price=args.exit_price,
        multiplier=args.multiplier,
        shares=args.shares,
        grant_id=args.grant,
        as_of=args.as_of,
        use_demo=args.demo,
        months_ahead=args.months,
        exit_analysis=args.exit_analysis,
    )


if __name__ == "__main__":
    main()
