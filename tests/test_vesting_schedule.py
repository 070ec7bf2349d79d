#!/usr/bin/env python3
"""
Test vesting schedule generation, detailed vesting status, upcoming events,
the combined multi-grant schedule and double-trigger RSU release.
"""

import sys
import os
import unittest
from datetime import date

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from projections.grant_state import Grant, GrantType, VestingSchedule
from projections.vesting_calculator import calculate_vested_shares
from projections.vesting_events import (
    calculate_combined_vesting_schedule,
    calculate_detailed_vesting,
    generate_vesting_schedule,
    get_upcoming_vesting_events,
    handle_double_trigger_rsu,
)


def make_grant(**overrides):
    fields = dict(
        shares=1200,
        grant_type=GrantType.ISO,
        strike_price=1.0,
        current_fair_market_value=5.0,
        vesting_start_date=date(2023, 1, 1),
        vesting_cliff_date=date(2024, 1, 1),
        vesting_end_date=date(2027, 1, 1),
        grant_id='G-1',
        company_name='Acme',
    )
    fields.update(overrides)
    return Grant(**fields)


class TestGenerateVestingSchedule(unittest.TestCase):

    def test_monthly_schedule_shape(self):
        schedule = generate_vesting_schedule(make_grant())
        # start + cliff + 35 monthly events + final
        self.assertEqual(len(schedule), 38)
        self.assertEqual(schedule[0].event_type, 'start')
        self.assertEqual(schedule[0].cumulative_shares, 0)
        self.assertEqual(schedule[1].event_type, 'cliff')
        self.assertEqual(schedule[1].vest_date, date(2024, 1, 1))
        self.assertEqual(schedule[2].vest_date, date(2024, 2, 1))
        self.assertEqual(schedule[-1].event_type, 'final')
        self.assertEqual(schedule[-1].vest_date, date(2027, 1, 1))
        self.assertEqual(schedule[-1].cumulative_shares, 1200)

    def test_quarterly_schedule_shape(self):
        grant = make_grant(vesting_schedule=VestingSchedule.QUARTERLY)
        schedule = generate_vesting_schedule(grant)
        # start + cliff + 11 quarterly events + final
        self.assertEqual(len(schedule), 14)
        self.assertEqual(schedule[2].vest_date, date(2024, 4, 1))

    def test_schedule_agrees_with_vested_shares(self):
        grant = make_grant()
        schedule = generate_vesting_schedule(grant)
        for event in schedule[1:]:
            self.assertEqual(event.cumulative_shares, calculate_vested_shares(grant, event.vest_date))
        self.assertEqual(sum(e.shares_vested for e in schedule), grant.shares)

    def test_cliff_equal_to_end_has_single_final_event(self):
        grant = make_grant(vesting_cliff_date=date(2027, 1, 1))
        schedule = generate_vesting_schedule(grant)
        self.assertEqual([e.event_type for e in schedule], ['start', 'final'])
        self.assertEqual(schedule[-1].shares_vested, 1200)

    def test_invalid_grant_has_no_schedule(self):
        self.assertEqual(generate_vesting_schedule(None), [])
        self.assertEqual(generate_vesting_schedule({'grant_type': 'ISO', 'shares': 100}), [])

    def test_to_dict(self):
        event = generate_vesting_schedule(make_grant())[1]
        self.assertEqual(event.to_dict()['vest_date'], '2024-01-01')
        self.assertEqual(event.to_dict()['grant_id'], 'G-1')


class TestDetailedVesting(unittest.TestCase):

    def test_mid_schedule_detail(self):
        grant = make_grant()
        detail = calculate_detailed_vesting(grant, date(2025, 7, 1))
        vested = calculate_vested_shares(grant, date(2025, 7, 1))
        self.assertEqual(detail.vested_shares, vested)
        self.assertEqual(detail.unvested_shares, 1200 - vested)
        self.assertTrue(detail.cliff_passed)
        self.assertFalse(detail.fully_vested)
        self.assertEqual(detail.next_vesting_date, date(2025, 8, 1))
        self.assertEqual(detail.days_until_next_vesting, 31)
        self.assertGreater(detail.next_vesting_shares, 0)

    def test_before_cliff_next_event_is_cliff(self):
        detail = calculate_detailed_vesting(make_grant(), date(2023, 6, 1))
        self.assertEqual(detail.vested_shares, 0)
        self.assertFalse(detail.cliff_passed)
        self.assertEqual(detail.next_vesting_date, date(2024, 1, 1))

    def test_fully_vested_has_no_next_event(self):
        detail = calculate_detailed_vesting(make_grant(), date(2028, 1, 1))
        self.assertTrue(detail.fully_vested)
        self.assertEqual(detail.vesting_percentage, 100.0)
        self.assertIsNone(detail.next_vesting_date)
        self.assertIsNone(detail.days_until_next_vesting)

    def test_double_trigger_rsu_reports_nothing_vested(self):
        grant = make_grant(grant_type=GrantType.RSU, liquidity_event_only=True)
        detail = calculate_detailed_vesting(grant, date(2025, 7, 1))
        self.assertTrue(detail.is_double_trigger)
        self.assertEqual(detail.vested_shares, 0)
        self.assertEqual(detail.unvested_shares, 1200)
        self.assertGreater(detail.time_vested_shares, 0)

    def test_invalid_grant_detail_is_zeroed(self):
        detail = calculate_detailed_vesting(None, date(2025, 7, 1))
        self.assertEqual(detail.total_shares, 0)
        self.assertEqual(detail.schedule, [])


class TestUpcomingAndCombined(unittest.TestCase):

    def test_upcoming_events_window(self):
        events = get_upcoming_vesting_events(make_grant(), months_ahead=6, as_of_date=date(2025, 7, 1))
        self.assertEqual([e.vest_date for e in events], [
            date(2025, 8, 1), date(2025, 9, 1), date(2025, 10, 1),
            date(2025, 11, 1), date(2025, 12, 1), date(2026, 1, 1),
        ])

    def test_combined_schedule_by_month(self):
        monthly = make_grant()
        quarterly = make_grant(grant_id='G-2', shares=800, vesting_schedule=VestingSchedule.QUARTERLY)
        combined = calculate_combined_vesting_schedule(
            [monthly, quarterly, None], start_date=date(2025, 7, 1), months_ahead=3
        )
        self.assertEqual([m.month_key for m in combined], ['2025-07', '2025-08', '2025-09', '2025-10'])
        self.assertEqual(len(combined[0].details), 2)
        self.assertEqual(len(combined[1].details), 1)

        running = 0
        for month in combined:
            running += month.shares
            self.assertEqual(month.cumulative_shares, running)
            self.assertAlmostEqual(month.value, month.shares * 5.0)

    def test_combined_schedule_empty(self):
        self.assertEqual(calculate_combined_vesting_schedule([], start_date=date(2025, 1, 1)), [])


class TestUnparseableReferenceDates(unittest.TestCase):
    """A date that cannot be read reports nothing instead of silently using today."""

    def test_detailed_vesting_is_zeroed(self):
        with self.assertLogs('calculators.tax_utils', level='WARNING'):
            detail = calculate_detailed_vesting(make_grant(), 'someday')
        self.assertEqual(detail.vested_shares, 0)
        self.assertEqual(detail.total_shares, 0)
        self.assertIsNone(detail.next_vesting_date)
        self.assertEqual(detail.vested_shares, calculate_vested_shares(make_grant(), 'someday'))

    def test_upcoming_events_empty(self):
        with self.assertLogs('calculators.tax_utils', level='WARNING'):
            self.assertEqual(get_upcoming_vesting_events(make_grant(), as_of_date='13/45/2025'), [])

    def test_combined_schedule_empty(self):
        with self.assertLogs('calculators.tax_utils', level='WARNING'):
            self.assertEqual(calculate_combined_vesting_schedule([make_grant()], start_date='soon'), [])

    def test_missing_date_still_means_today(self):
        grant = make_grant(vesting_start_date=date(2020, 1, 1), vesting_cliff_date=date(2021, 1, 1),
                           vesting_end_date=date(2024, 1, 1))
        detail = calculate_detailed_vesting(grant)
        self.assertEqual(detail.vested_shares, 1200)
        self.assertTrue(detail.fully_vested)


class TestDoubleTriggerRelease(unittest.TestCase):

    def test_release_at_liquidity_event(self):
        grant = make_grant(grant_type=GrantType.RSU, strike_price=0.0, liquidity_event_only=True)
        result = handle_double_trigger_rsu(grant, '2025-07-01', 20)
        released = calculate_vested_shares(grant, date(2025, 7, 1))
        self.assertTrue(result.applicable)
        self.assertEqual(result.released_shares, released)
        self.assertEqual(result.release_value, released * 20)
        self.assertEqual(result.taxable_income, result.release_value)
        self.assertEqual(result.remaining_unvested_shares, 1200 - released)

    def test_not_applicable_to_single_trigger(self):
        self.assertFalse(handle_double_trigger_rsu(make_grant(), '2025-07-01', 20).applicable)
        self.assertFalse(handle_double_trigger_rsu(None, '2025-07-01', 20).applicable)


if __name__ == '__main__':
    unittest.main()
