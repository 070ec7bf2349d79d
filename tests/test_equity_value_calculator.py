#!/usr/bin/env python3
"""
Test the monetary primitives: exercise cost, proceeds, value and percentages.

Every primitive must accept form input (numeric strings, None, junk) and
never return NaN or infinity.
"""

import math
import sys
import os
import unittest

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from calculators.equity_value_calculator import (
    calculate_exercise_cost,
    calculate_gross_proceeds,
    calculate_current_value,
    calculate_vesting_percentage,
    calculate_return_percentage,
)

JUNK_VALUES = [None, '', 'abc', float('nan'), float('inf'), [], {}]


class TestExerciseCost(unittest.TestCase):

    def test_basic_exercise_cost(self):
        self.assertEqual(calculate_exercise_cost(100, 2.5), 250)

    def test_string_inputs(self):
        self.assertEqual(calculate_exercise_cost('200', '1.5'), 300)

    def test_zero_and_missing_inputs(self):
        self.assertEqual(calculate_exercise_cost(0, 10), 0)
        self.assertEqual(calculate_exercise_cost(100, 0), 0)
        self.assertEqual(calculate_exercise_cost(None, 10), 0)
        self.assertEqual(calculate_exercise_cost(100, None), 0)

    def test_fractional_shares_are_not_truncated(self):
        self.assertEqual(calculate_exercise_cost(0.5, 10), 5.0)
        self.assertEqual(calculate_exercise_cost('2.5', '4'), 10.0)
        self.assertEqual(calculate_gross_proceeds(1.5, 10), 15.0)
        self.assertEqual(calculate_current_value(0.25, 8), 2.0)


class TestProceedsAndValue(unittest.TestCase):

    def test_gross_proceeds(self):
        self.assertEqual(calculate_gross_proceeds(500, 15), 7500)
        self.assertEqual(calculate_gross_proceeds('500', 'x'), 0)

    def test_current_value(self):
        self.assertEqual(calculate_current_value(100, 10), 1000)
        self.assertEqual(calculate_current_value('200', '15'), 3000)
        self.assertEqual(calculate_current_value(None, 10), 0)


class TestPercentages(unittest.TestCase):

    def test_vesting_percentage(self):
        self.assertEqual(calculate_vesting_percentage(250, 1000), 25.0)
        self.assertEqual(calculate_vesting_percentage(None, 1000), 0)

    def test_vesting_percentage_denominator_floored_at_one(self):
        self.assertEqual(calculate_vesting_percentage(5, 0), 500.0)

    def test_return_percentage(self):
        self.assertEqual(calculate_return_percentage(15, 10), 50.0)
        self.assertEqual(calculate_return_percentage('x', 10), 0)

    def test_return_percentage_basis_floored_at_one(self):
        self.assertEqual(calculate_return_percentage(10, 0), 900.0)


def test_primitives_never_return_nan_or_infinity():
    """Junk in any argument position yields a finite number."""
    primitives = [
        calculate_exercise_cost,
        calculate_gross_proceeds,
        calculate_current_value,
        calculate_vesting_percentage,
        calculate_return_percentage,
    ]
    for fn in primitives:
        for junk in JUNK_VALUES:
            for args in [(junk, 10), (10, junk), (junk, junk)]:
                result = fn(*args)
                assert math.isfinite(result), f"{fn.__name__}{args} returned {result}"
                assert result == 0, f"{fn.__name__}{args} returned {result}"


if __name__ == '__main__':
    test_primitives_never_return_nan_or_infinity()
    unittest.main()
