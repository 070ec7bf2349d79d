#!/usr/bin/env python3
"""
Test holding period rules and the holding-period context on TaxSettings.
"""

import unittest
from datetime import date, datetime
import sys
import os

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from calculators.tax_utils import (
    calculate_iso_qualifying_disposition_date,
    is_iso_qualifying_disposition,
    calculate_holding_period_days,
    is_long_term_capital_gain,
    coerce_date,
    coerce_number,
    normalize_state_allocation,
    resolve_reference_date,
    to_share_count,
)
from projections.grant_state import TaxSettings


class TestISOQualifyingDate(unittest.TestCase):
    """Test ISO qualifying disposition date calculations."""

    def test_exercise_date_controls(self):
        # 2 years from grant: Jan 1, 2025; 1 year from exercise: Jun 1, 2025
        qualifying_date = calculate_iso_qualifying_disposition_date(date(2023, 1, 1), date(2024, 6, 1))
        self.assertEqual(qualifying_date, date(2025, 6, 1))

    def test_leap_day_exercise_clamps_to_feb_28(self):
        qualifying_date = calculate_iso_qualifying_disposition_date(date(2019, 1, 1), date(2020, 2, 29))
        self.assertEqual(qualifying_date, date(2021, 2, 28))

    def test_same_grant_and_exercise_date(self):
        qualifying = calculate_iso_qualifying_disposition_date(date(2023, 1, 1), date(2023, 1, 1))
        self.assertEqual(qualifying, date(2025, 1, 1))

    def test_is_qualifying_disposition(self):
        grant_date = date(2023, 1, 1)
        exercise_date = date(2024, 1, 1)
        self.assertFalse(is_iso_qualifying_disposition(grant_date, exercise_date, date(2024, 12, 31)))
        self.assertTrue(is_iso_qualifying_disposition(grant_date, exercise_date, date(2025, 1, 1)))


class TestLongTermHolding(unittest.TestCase):
    """Test long-term capital gain determination."""

    def test_holding_period_days(self):
        self.assertEqual(calculate_holding_period_days(date(2023, 1, 1), date(2024, 1, 1)), 365)
        self.assertEqual(calculate_holding_period_days(date(2024, 1, 1), date(2025, 1, 1)), 366)

    def test_more_than_one_year_required(self):
        acquisition = date(2023, 1, 1)
        self.assertFalse(is_long_term_capital_gain(acquisition, date(2024, 1, 1)))
        self.assertTrue(is_long_term_capital_gain(acquisition, date(2024, 1, 2)))


class TestTaxSettingsHoldingContext(unittest.TestCase):
    """TaxSettings resolves long-term and qualifying status from flags or dates."""

    def test_explicit_flag_wins_over_dates(self):
        settings = TaxSettings(is_long_term=False, exercise_date=date(2020, 1, 1), sale_date=date(2025, 1, 1))
        self.assertFalse(settings.resolve_long_term(settings.exercise_date))

    def test_dates_decide_without_flag(self):
        settings = TaxSettings(exercise_date=date(2024, 1, 1), sale_date=date(2024, 6, 1))
        self.assertFalse(settings.resolve_long_term(settings.exercise_date))

    def test_defaults_to_long_term(self):
        self.assertTrue(TaxSettings().resolve_long_term(None))

    def test_iso_qualifying_uses_grant_date(self):
        settings = TaxSettings(exercise_date=date(2024, 6, 1), sale_date=date(2025, 7, 1))
        # 1 year from exercise is met, 2 years from grant is not
        self.assertFalse(settings.resolve_iso_qualifying(date(2024, 1, 1)))
        self.assertTrue(settings.resolve_iso_qualifying(date(2023, 1, 1)))

    def test_filing_status_alias_normalized(self):
        self.assertEqual(TaxSettings(filing_status='married').filing_status, 'married_filing_jointly')

    def test_unknown_filing_status_rejected(self):
        with self.assertRaises(ValueError):
            TaxSettings(filing_status='head_of_spaceship')


class TestInputCoercion(unittest.TestCase):
    """Form values coerce to numbers and dates or to None."""

    def test_coerce_number(self):
        self.assertEqual(coerce_number('1,250.50'), 1250.5)
        self.assertEqual(coerce_number(7), 7.0)
        self.assertIsNone(coerce_number('abc'))
        self.assertIsNone(coerce_number(float('nan')))
        self.assertIsNone(coerce_number(float('inf')))
        self.assertIsNone(coerce_number(True))
        self.assertIsNone(coerce_number(''))

    def test_share_count_truncates(self):
        self.assertEqual(to_share_count('99.9'), 99)
        self.assertEqual(to_share_count(None), 0)

    def test_coerce_date(self):
        self.assertEqual(coerce_date('2024-01-02'), date(2024, 1, 2))
        self.assertEqual(coerce_date(datetime(2024, 1, 2, 15, 30)), date(2024, 1, 2))
        self.assertEqual(coerce_date(date(2024, 1, 2)), date(2024, 1, 2))
        self.assertIsNone(coerce_date('not a date'))
        self.assertIsNone(coerce_date(20240102))

    def test_reference_date(self):
        self.assertEqual(resolve_reference_date(None), date.today())
        self.assertEqual(resolve_reference_date('2024-01-02'), date(2024, 1, 2))
        with self.assertLogs('calculators.tax_utils', level='WARNING'):
            self.assertIsNone(resolve_reference_date('soon'))


class TestStateAllocationNormalization(unittest.TestCase):

    def test_percentages_and_names(self):
        self.assertEqual(normalize_state_allocation({'California': 150, 'TX': 50}),
                         (('CA', 0.75), ('TX', 0.25)))

    def test_pairs_and_duplicate_states_are_merged(self):
        self.assertEqual(normalize_state_allocation([('ny', '1'), ('New York', 1), ('WA', 2)]),
                         (('NY', 0.5), ('WA', 0.5)))

    def test_normalized_pairs_are_unchanged(self):
        pairs = (('CA', 0.75), ('TX', 0.25))
        self.assertEqual(normalize_state_allocation(pairs), pairs)

    def test_unusable_allocations(self):
        self.assertIsNone(normalize_state_allocation(None))
        self.assertIsNone(normalize_state_allocation({}))
        with self.assertLogs('calculators.tax_utils', level='WARNING'):
            self.assertIsNone(normalize_state_allocation({'CA': -1, 'TX': 'abc'}))
        with self.assertLogs('calculators.tax_utils', level='WARNING'):
            self.assertIsNone(normalize_state_allocation(42))


if __name__ == '__main__':
    unittest.main()
