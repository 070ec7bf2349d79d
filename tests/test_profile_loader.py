#!/usr/bin/env python3
"""
Test profile loading with demo fallback, and building typed inputs from it.
"""

import copy
import json
import os
import sys
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loaders.profile_loader import (
    ProfileLoader,
    build_decision_inputs,
    build_tax_settings,
    load_grants,
)
from projections.grant_state import CompanyStage, GrantType

MINIMAL_PROFILE = {
    'metadata': {'profile_version': '1.0'},
    'tax_settings': {
        'filing_status': 'married',
        'state_of_residence': 'New York',
        'ordinary_income': 250000,
    },
    'grants': [
        {'grant_id': 'A', 'grant_type': 'ISO', 'shares': 1000, 'strike_price': 1.0, 'current_fmv': 4.0},
    ],
}


class TestProfileLoading(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        (self.root / 'data').mkdir()

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, relative_path, data):
        with open(self.root / relative_path, 'w') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)

    def test_demo_fallback(self):
        self.write(ProfileLoader.DEMO_PROFILE_PATH, MINIMAL_PROFILE)
        profile, is_real = ProfileLoader(self.root).load_profile(verbose=False)
        self.assertFalse(is_real)
        self.assertEqual(profile['tax_settings']['ordinary_income'], 250000)

    def test_user_profile_preferred(self):
        user = copy.deepcopy(MINIMAL_PROFILE)
        user['tax_settings']['ordinary_income'] = 99
        self.write(ProfileLoader.DEMO_PROFILE_PATH, MINIMAL_PROFILE)
        self.write(ProfileLoader.USER_PROFILE_PATH, user)

        profile, is_real = ProfileLoader(self.root).load_profile(verbose=False)
        self.assertTrue(is_real)
        self.assertEqual(profile['tax_settings']['ordinary_income'], 99)

        profile, is_real = ProfileLoader(self.root).load_profile(verbose=False, force_demo=True)
        self.assertFalse(is_real)

    def test_invalid_user_profile_falls_back_to_demo(self):
        self.write(ProfileLoader.DEMO_PROFILE_PATH, MINIMAL_PROFILE)
        self.write(ProfileLoader.USER_PROFILE_PATH, '{not json')
        with self.assertLogs('loaders.profile_loader', level='WARNING'):
            profile, is_real = ProfileLoader(self.root).load_profile(verbose=False)
        self.assertFalse(is_real)

    def test_missing_profiles_raise(self):
        with self.assertRaises(FileNotFoundError):
            ProfileLoader(self.root).load_profile(verbose=False)

    def test_validation_errors(self):
        loader = ProfileLoader(self.root)
        for broken in (
            {k: v for k, v in MINIMAL_PROFILE.items() if k != 'grants'},
            dict(MINIMAL_PROFILE, metadata={'profile_version': '0.1'}),
            dict(MINIMAL_PROFILE, tax_settings={'filing_status': 'single'}),
            dict(MINIMAL_PROFILE, grants={'not': 'a list'}),
        ):
            with self.assertRaises(ValueError):
                loader._validate_profile_data(copy.deepcopy(broken))

    def test_optional_defaults_added(self):
        self.write(ProfileLoader.DEMO_PROFILE_PATH, MINIMAL_PROFILE)
        profile, _ = ProfileLoader(self.root).load_profile(verbose=False)
        self.assertTrue(profile['tax_settings']['use_amt'])
        self.assertEqual(profile['decision_inputs']['company_stage'], 'growth')


class TestBuildingInputs(unittest.TestCase):

    def test_build_from_minimal_profile(self):
        profile = copy.deepcopy(MINIMAL_PROFILE)
        ProfileLoader()._validate_profile_data(profile)

        settings = build_tax_settings(profile)
        self.assertEqual(settings.filing_status, 'married_filing_jointly')
        self.assertEqual(settings.tax_year, 2025)

        grants = load_grants(profile)
        self.assertEqual(grants[0].grant_type, GrantType.ISO)

        inputs = build_decision_inputs(profile, grants[0], vested_shares=400)
        self.assertEqual(inputs.exercise_cost, 400)
        self.assertEqual(inputs.current_income, 250000)
        self.assertEqual(inputs.company_stage, CompanyStage.GROWTH)

    def test_form_strings_and_state_allocation(self):
        profile = copy.deepcopy(MINIMAL_PROFILE)
        profile['tax_settings'].update(ordinary_income='180000', tax_year='2024',
                                       state_allocation={'New York': 200, 'Washington': 50})
        ProfileLoader()._validate_profile_data(profile)
        settings = build_tax_settings(profile)
        self.assertEqual(settings.ordinary_income, 180000.0)
        self.assertEqual(settings.tax_year, 2024)
        self.assertEqual(settings.state_allocation, (('NY', 0.8), ('WA', 0.2)))

    def test_rsu_scored_as_nso(self):
        profile = copy.deepcopy(MINIMAL_PROFILE)
        profile['grants'][0]['grant_type'] = 'RSU'
        ProfileLoader()._validate_profile_data(profile)
        inputs = build_decision_inputs(profile, load_grants(profile)[0], 0)
        self.assertEqual(inputs.option_type, GrantType.NSO)

    def test_bundled_demo_profile_loads(self):
        profile, is_real = ProfileLoader().load_profile(verbose=False, force_demo=True)
        self.assertFalse(is_real)
        grants = load_grants(profile)
        self.assertEqual({g.grant_type for g in grants}, {GrantType.ISO, GrantType.NSO, GrantType.RSU})
        self.assertTrue(any(g.liquidity_event_only for g in grants))
        build_tax_settings(profile)


if __name__ == '__main__':
    unittest.main()
