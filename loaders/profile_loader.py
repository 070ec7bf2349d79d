"""
Profile Loader - Loads the user's tax context and grants with fallback to demo data.

This module loads user profiles with automatic fallback to demo data when
personal data is not available. This ensures:
1. Personal data stays private (user_profile.json is git-ignored)
2. The calculator works out-of-the-box with demo data
3. Clear messaging about which data source is being used
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

from calculators.tax_constants import DEFAULT_TAX_YEAR
from calculators.tax_utils import coerce_date, to_number
from loaders.grant_loader import load_grant
from projections.grant_state import CompanyStage, DecisionInputs, Grant, GrantType, TaxSettings

logger = logging.getLogger(__name__)

PROFILE_VERSION = "1.0"


class ProfileLoader:
    """Profile loader with automatic fallback to demo data."""

    # Standard profile file paths relative to project root
    USER_PROFILE_PATH = "data/user_profile.json"
    DEMO_PROFILE_PATH = "data/demo_profile.json"
    TEMPLATE_PROFILE_PATH = "data/user_profile_template.json"

    REQUIRED_SECTIONS = ['metadata', 'tax_settings', 'grants']

    def __init__(self, project_root: str = None):
        """Initialize profile loader.

        Args:
            project_root: Path to project root directory. If None, auto-detects.
        """
        if project_root is None:
            # Assumes this file is in the loaders/ subdirectory
            self.project_root = Path(__file__).parent.parent
        else:
            self.project_root = Path(project_root)

    def load_profile(self, verbose: bool = True, force_demo: bool = False) -> Tuple[Dict[str, Any], bool]:
        """Load the user profile, falling back to the demo profile.

        Args:
            verbose: Whether to print which data source is used
            force_demo: If True, use demo data even when user_profile.json exists

        Returns:
            Tuple of (profile_data, is_real_data)

        Raises:
            FileNotFoundError: If neither user profile nor demo profile exists
            ValueError: If the demo profile is invalid
        """
        if force_demo:
            if verbose:
                print("Using demo data from demo_profile.json (forced)")
        else:
            user_profile_path = self.project_root / self.USER_PROFILE_PATH
            if user_profile_path.exists():
                try:
                    profile_data = self._load_json_file(user_profile_path)
                    self._validate_profile_data(profile_data)
                    if verbose:
                        print("Using personal data from user_profile.json")
                    return profile_data, True
                except (json.JSONDecodeError, ValueError) as e:
                    logger.warning("Error loading user_profile.json: %s. Falling back to demo data", e)

        demo_profile_path = self.project_root / self.DEMO_PROFILE_PATH
        if not demo_profile_path.exists():
            raise FileNotFoundError(
                f"Neither {self.USER_PROFILE_PATH} nor {self.DEMO_PROFILE_PATH} found. "
                f"Copy {self.TEMPLATE_PROFILE_PATH} to {self.USER_PROFILE_PATH} and fill in your data."
            )

        try:
            profile_data = self._load_json_file(demo_profile_path)
            self._validate_profile_data(profile_data)
        except (json.JSONDecodeError, ValueError) as e:
            raise ValueError(f"Error loading demo profile: {e}")

        if verbose:
            print("Using demo data from demo_profile.json")
            print("   To use your real data: copy user_profile_template.json to user_profile.json")
        return profile_data, False

    def _load_json_file(self, file_path: Path) -> Dict[str, Any]:
        with open(file_path, 'r') as f:
            return json.load(f)

    def _validate_profile_data(self, profile_data: Dict[str, Any]) -> None:
        """Validate required structure and add defaults for optional sections."""
        for section in self.REQUIRED_SECTIONS:
            if section not in profile_data:
                raise ValueError(f"Profile missing required section: '{section}'")

        version = profile_data['metadata'].get('profile_version')
        if version != PROFILE_VERSION:
            raise ValueError(f"Profile version '{version}' not supported. Expected '{PROFILE_VERSION}'")

        if not isinstance(profile_data['grants'], list):
            raise ValueError("Profile section 'grants' must be a list")

        tax = profile_data['tax_settings']
        for field_name in ('filing_status', 'state_of_residence', 'ordinary_income'):
            if field_name not in tax:
                raise ValueError(f"Profile missing required field 'tax_settings.{field_name}'")

        self._add_optional_section_defaults(profile_data)

    def _add_optional_section_defaults(self, profile_data: Dict[str, Any]) -> None:
        tax = profile_data['tax_settings']
        tax.setdefault('use_amt', True)
        tax.setdefault('tax_year', DEFAULT_TAX_YEAR)

        decision = profile_data.setdefault('decision_inputs', {})
        decision.setdefault('available_cash', 0)
        decision.setdefault('company_stage', CompanyStage.GROWTH.value)
        decision.setdefault('growth_rate', 0)
        decision.setdefault('time_to_expiration', 10)
        decision.setdefault('financing_history', 'moderate')

    def get_profile_status(self) -> Dict[str, Any]:
        """Get status of available profile files."""
        user_profile_path = self.project_root / self.USER_PROFILE_PATH
        demo_profile_path = self.project_root / self.DEMO_PROFILE_PATH
        template_profile_path = self.project_root / self.TEMPLATE_PROFILE_PATH

        return {
            'user_profile_exists': user_profile_path.exists(),
            'demo_profile_exists': demo_profile_path.exists(),
            'template_profile_exists': template_profile_path.exists(),
            'is_using_real_data': user_profile_path.exists(),
        }


def build_tax_settings(profile_data: Dict[str, Any]) -> TaxSettings:
    """Create TaxSettings from a validated profile's tax_settings section."""
    tax = profile_data['tax_settings']
    return TaxSettings(
        filing_status=tax['filing_status'],
        state_of_residence=tax['state_of_residence'],
        ordinary_income=tax['ordinary_income'],
        use_amt=bool(tax.get('use_amt', True)),
        tax_year=tax.get('tax_year', DEFAULT_TAX_YEAR),
        is_long_term=tax.get('is_long_term'),
        exercise_date=coerce_date(tax.get('exercise_date')),
        sale_date=coerce_date(tax.get('sale_date')),
        vesting_date=coerce_date(tax.get('vesting_date')),
        state_allocation=tax.get('state_allocation'),
    )


def load_grants(profile_data: Dict[str, Any]) -> List[Grant]:
    """Create Grants from the profile's grants section.

    Raises:
        GrantValidationError: If any grant row is invalid
    """
    return [load_grant(row) for row in profile_data['grants']]


def build_decision_inputs(profile_data: Dict[str, Any], grant: Grant, vested_shares: int) -> DecisionInputs:
    """Create DecisionInputs for one grant from the profile's decision_inputs section."""
    decision = profile_data.get('decision_inputs', {})
    tax = profile_data['tax_settings']
    option_type = grant.grant_type if grant.grant_type != GrantType.RSU else GrantType.NSO
    return DecisionInputs(
        strike_price=grant.strike_price,
        vested_shares=vested_shares,
        available_cash=to_number(decision.get('available_cash')),
        current_income=to_number(tax['ordinary_income']),
        company_stage=CompanyStage.parse(decision.get('company_stage', 'growth')),
        growth_rate=to_number(decision.get('growth_rate')),
        option_type=option_type,
        state_of_residence=tax['state_of_residence'],
        time_to_expiration=to_number(decision.get('time_to_expiration'), 10.0),
        current_fair_market_value=grant.current_fair_market_value,
        financing_history=decision.get('financing_history', 'moderate'),
    )


def load_user_profile(project_root: str = None, verbose: bool = True, force_demo: bool = False) -> Tuple[Dict[str, Any], bool]:
    """Convenience function to load user profile with fallback.

    Returns:
        Tuple of (profile_data, is_real_data)
    """
    loader = ProfileLoader(project_root)
    return loader.load_profile(verbose=verbose, force_demo=force_demo)
