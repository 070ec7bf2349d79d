#!/usr/bin/env python3
"""
Test portfolio aggregation across grants.
"""

import sys
import os
import unittest
from datetime import date

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from projections.portfolio_summary import summarize_portfolio

GRANTS = [
    {
        'company_name': 'Acme',
        'grant_type': 'ISO',
        'shares': 1000,
        'strike_price': 1.0,
        'current_fmv': 5.0,
        'vested_shares': 400,
    },
    {
        'company_name': 'Acme',
        'grant_type': 'RSU',
        'shares': 200,
        'strike_price': 0,
        'current_fmv': 5.0,
        'vested_shares': 200,
    },
    {
        'grant_type': 'NSO',
        'shares': 1000,
        'strike_price': 2.0,
        'current_fmv': 3.0,
        'vesting_start_date': '2024-01-01',
        'vesting_cliff_date': '2025-01-01',
        'vesting_end_date': '2028-01-01',
    },
]


class TestPortfolioSummary(unittest.TestCase):

    def test_totals(self):
        # The NSO grant is 25% vested one year in
        summary = summarize_portfolio(GRANTS, date(2025, 1, 1))
        self.assertEqual(summary.grant_count, 3)
        self.assertEqual(summary.total_shares, 2200)
        self.assertEqual(summary.vested_shares, 400 + 200 + 250)
        self.assertEqual(summary.unvested_shares, 600 + 0 + 750)
        self.assertEqual(summary.current_value, 2000 + 1000 + 750)
        self.assertEqual(summary.exercise_cost, 400 + 500)
        self.assertEqual(summary.potential_gain, summary.current_value - summary.exercise_cost)

    def test_rsus_have_no_exercise_cost(self):
        summary = summarize_portfolio([dict(GRANTS[1], strike_price=3.0)])
        self.assertEqual(summary.exercise_cost, 0)
        self.assertEqual(summary.current_value, 1000)

    def test_groupings(self):
        summary = summarize_portfolio(GRANTS, date(2025, 1, 1))
        self.assertEqual(summary.value_by_grant_type, {'ISO': 2000, 'RSU': 1000, 'NSO': 750})
        self.assertEqual(summary.value_by_company, {'Acme': 3000, 'Unknown': 750})

    def test_invalid_rows_skipped(self):
        with self.assertLogs('projections.portfolio_summary', level='WARNING'):
            summary = summarize_portfolio([GRANTS[0], {'grant_type': 'warrant'}, None])
        self.assertEqual(summary.grant_count, 1)

    def test_empty(self):
        summary = summarize_portfolio([])
        self.assertEqual(summary.grant_count, 0)
        self.assertEqual(summary.to_dict()['potential_gain'], 0)


if __name__ == '__main__':
    unittest.main()
