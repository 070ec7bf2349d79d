#!/usr/bin/env python3
"""
Test ordinary income, capital gains, NIIT and state tax calculations.

LTCG uses the 0%/15%/20% brackets with the gain stacked on top of other
income, so the same gain can be taxed at different rates depending on where
it lands.
"""

import sys
import os
import unittest

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from calculators.income_tax_calculator import (
    calculate_capital_gains_tax,
    calculate_marginal_ordinary_tax,
    calculate_multi_state_tax,
    calculate_net_investment_income_tax,
    calculate_ordinary_income_tax,
    calculate_state_tax,
)


class TestOrdinaryIncomeTax(unittest.TestCase):

    def test_flat_rate(self):
        self.assertAlmostEqual(calculate_ordinary_income_tax(50000, 100000, 0.35), 17500)
        self.assertEqual(calculate_ordinary_income_tax(0, 100000, 0.35), 0)
        self.assertEqual(calculate_ordinary_income_tax(-500, 100000, 0.35), 0)

    def test_marginal_brackets(self):
        # 3350 at 22% + 46650 at 24%
        self.assertAlmostEqual(calculate_marginal_ordinary_tax(50000, 100000, 'single', 2025), 11933)


class TestCapitalGainsTax(unittest.TestCase):

    def test_zero_percent_bracket(self):
        self.assertEqual(calculate_capital_gains_tax(10000, 30000, True, 'single', 2025), 0)

    def test_fifteen_percent_bracket(self):
        self.assertAlmostEqual(calculate_capital_gains_tax(50000, 150000, True, 'single', 2025), 7500)

    def test_twenty_percent_bracket(self):
        self.assertAlmostEqual(calculate_capital_gains_tax(100000, 600000, True, 'single', 2025), 20000)

    def test_gain_spanning_brackets(self):
        # 33400 at 15% + 66600 at 20%
        self.assertAlmostEqual(calculate_capital_gains_tax(100000, 500000, True, 'single', 2025), 18330)

    def test_short_term_is_ordinary(self):
        self.assertAlmostEqual(
            calculate_capital_gains_tax(50000, 100000, False, 'single', 2025),
            calculate_marginal_ordinary_tax(50000, 100000, 'single', 2025)
        )

    def test_losses_produce_no_tax(self):
        self.assertEqual(calculate_capital_gains_tax(-10000, 100000, True), 0)
        self.assertEqual(calculate_capital_gains_tax(-10000, 100000, False), 0)

    def test_married_brackets_are_wider(self):
        single = calculate_capital_gains_tax(50000, 60000, True, 'single', 2025)
        married = calculate_capital_gains_tax(50000, 60000, True, 'married', 2025)
        self.assertLess(married, single)


class TestNetInvestmentIncomeTax(unittest.TestCase):

    def test_above_threshold(self):
        # 3.8% of the lesser of 100000 and 250000 - 200000
        self.assertAlmostEqual(calculate_net_investment_income_tax(100000, 250000, 'single'), 1900)

    def test_below_threshold(self):
        self.assertEqual(calculate_net_investment_income_tax(50000, 150000, 'single'), 0)


class TestStateTax(unittest.TestCase):

    def test_no_income_tax_state(self):
        self.assertEqual(calculate_state_tax(100000, 50000, 'Texas'), 0)
        self.assertEqual(calculate_state_tax(100000, 50000, 'WA'), 0)

    def test_flat_rate_state(self):
        self.assertAlmostEqual(calculate_state_tax(100000, 50000, 'New York'), 10700)

    def test_unknown_state_uses_default_rate(self):
        self.assertAlmostEqual(calculate_state_tax(100000, 50000, 'Atlantis'), 5000)

    def test_california_brackets(self):
        self.assertAlmostEqual(calculate_state_tax(100000, 0, 'California'), 5952.85, places=2)
        self.assertAlmostEqual(
            calculate_state_tax(100000, 0, 'CA'), calculate_state_tax(100000, 0, 'California')
        )

    def test_california_mental_health_surcharge(self):
        # The second million is taxed at 12.3% plus the 1% surcharge
        difference = calculate_state_tax(2000000, 0, 'CA') - calculate_state_tax(1000000, 0, 'CA')
        self.assertAlmostEqual(difference, 133000, places=2)

    def test_no_equity_income(self):
        self.assertEqual(calculate_state_tax(0, 100000, 'CA'), 0)


class TestMultiStateTax(unittest.TestCase):

    def test_split_between_flat_and_no_tax_states(self):
        total, breakdown = calculate_multi_state_tax(100000, 0, {'NY': 50, 'TX': 50})
        self.assertAlmostEqual(total, 5350)
        self.assertEqual([(s.state, s.allocation, s.allocated_income) for s in breakdown],
                         [('NY', 0.5, 50000), ('TX', 0.5, 50000)])
        self.assertEqual(breakdown[1].state_tax, 0)

    def test_single_state_matches_state_tax(self):
        total, breakdown = calculate_multi_state_tax(100000, 50000, {'California': 1})
        self.assertAlmostEqual(total, calculate_state_tax(100000, 50000, 'CA'))
        self.assertEqual(len(breakdown), 1)

    def test_california_share_uses_brackets_on_its_portion(self):
        total, _ = calculate_multi_state_tax(200000, 0, {'CA': 120, 'WA': 120})
        self.assertAlmostEqual(total, calculate_state_tax(100000, 0, 'CA'))

    def test_empty_allocation_or_income(self):
        self.assertEqual(calculate_multi_state_tax(100000, 0, None), (0.0, ()))
        self.assertEqual(calculate_multi_state_tax(100000, 0, {}), (0.0, ()))
        self.assertEqual(calculate_multi_state_tax(0, 0, {'NY': 1}), (0.0, ()))


if __name__ == '__main__':
    unittest.main()
