"""
Grant loader that maps raw grant rows to Grant records.

Rows come from a database or a form: field values may be strings, some keys
use the storage names (current_fmv, vesting_cliff), and required fields may
be missing. load_grant() is strict and raises; coerce_grant() is the lenient
adapter used by form-facing calculations and returns None instead.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from calculators.tax_utils import coerce_date, coerce_number, to_number
from calculators.validation import GrantValidationError
from projections.grant_state import Grant, GrantType, VestingSchedule

logger = logging.getLogger(__name__)

# Storage/form field names accepted for each Grant attribute, in priority order
FIELD_ALIASES = {
    'shares': ('shares', 'total_shares', 'total_options'),
    'grant_type': ('grant_type', 'grantType', 'option_type', 'type'),
    'strike_price': ('strike_price', 'strikePrice', 'exercise_price'),
    'current_fair_market_value': (
        'current_fair_market_value', 'currentFairMarketValue', 'current_fmv', 'currentFMV', 'fmv'
    ),
    'vesting_start_date': ('vesting_start_date', 'vestingStartDate'),
    'vesting_cliff_date': ('vesting_cliff_date', 'vestingCliffDate', 'cliff_date'),
    'vesting_end_date': ('vesting_end_date', 'vestingEndDate'),
    'vesting_schedule': ('vesting_schedule', 'vestingSchedule'),
    'grant_id': ('grant_id', 'grantId', 'id'),
    'company_name': ('company_name', 'companyName', 'company'),
    'grant_date': ('grant_date', 'grantDate'),
    'expiration_date': ('expiration_date', 'expirationDate'),
    'vested_shares': ('vested_shares', 'vestedShares'),
    'liquidity_event_only': ('liquidity_event_only', 'liquidityEventOnly'),
}

GrantRecord = Union[Grant, Mapping[str, Any]]


def _field(record: Mapping[str, Any], name: str) -> Any:
    for key in FIELD_ALIASES[name]:
        if key in record and record[key] is not None:
            return record[key]
    return None


def precomputed_vested_shares(record: Optional[GrantRecord]) -> Optional[int]:
    """
    Return an upstream vested_shares value if the record carries a usable one.

    Numeric strings are parsed like any other row field. NaN, infinite and
    negative values are ignored so the caller recomputes from the schedule.
    The value is capped at the grant's share count when that is known.
    """
    if isinstance(record, Grant):
        value, total = record.vested_shares, record.shares
    elif isinstance(record, Mapping):
        value, total = _field(record, 'vested_shares'), coerce_number(_field(record, 'shares'))
    else:
        return None

    vested = coerce_number(value)
    if vested is None or vested < 0:
        if value is not None:
            logger.debug("Ignoring unusable precomputed vested_shares %r", value)
        return None
    vested = int(vested)
    if total is not None and total > 0:
        vested = min(vested, int(total))
    return vested


def load_grant(record: GrantRecord) -> Grant:
    """
    Build a Grant from a raw row.

    Args:
        record: A Grant (returned unchanged) or a mapping of row fields

    Returns:
        Grant with coerced numeric, date and enum fields

    Raises:
        GrantValidationError: If the row is unusable or describes an invalid grant
    """
    if isinstance(record, Grant):
        return record
    if not isinstance(record, Mapping):
        raise GrantValidationError(f"expected a grant mapping, got {type(record).__name__}")

    grant_id = _field(record, 'grant_id')
    grant_id = str(grant_id) if grant_id is not None else None

    raw_type = _field(record, 'grant_type')
    if raw_type is None:
        raise GrantValidationError("missing grant_type", grant_id)
    try:
        grant_type = GrantType.parse(raw_type)
        schedule = VestingSchedule.parse(_field(record, 'vesting_schedule'))
    except ValueError as e:
        raise GrantValidationError(str(e), grant_id) from e

    shares = coerce_number(_field(record, 'shares'))
    vested = coerce_number(_field(record, 'vested_shares'))

    return Grant(
        shares=int(shares) if shares is not None else 0,
        grant_type=grant_type,
        strike_price=to_number(_field(record, 'strike_price')),
        current_fair_market_value=to_number(_field(record, 'current_fair_market_value')),
        vesting_start_date=coerce_date(_field(record, 'vesting_start_date')),
        vesting_cliff_date=coerce_date(_field(record, 'vesting_cliff_date')),
        vesting_end_date=coerce_date(_field(record, 'vesting_end_date')),
        vesting_schedule=schedule,
        grant_id=grant_id,
        company_name=_field(record, 'company_name'),
        grant_date=coerce_date(_field(record, 'grant_date')),
        expiration_date=coerce_date(_field(record, 'expiration_date')),
        vested_shares=int(vested) if vested is not None else None,
        liquidity_event_only=bool(_field(record, 'liquidity_event_only')),
    )


def coerce_grant(record: Optional[GrantRecord]) -> Optional[Grant]:
    """Lenient form of load_grant(): returns None for missing or unusable rows."""
    if not record:
        return None
    try:
        return load_grant(record)
    except GrantValidationError as e:
        logger.warning("Ignoring invalid grant: %s", e)
        return None


def load_grants_from_json(path: Union[str, Path]) -> List[Grant]:
    """
    Load a JSON file holding a list of grant rows (or {'grants': [...]}).

    Raises:
        GrantValidationError: If any row is invalid
    """
    with open(path, 'r') as f:
        data = json.load(f)
    rows: List[Dict[str, Any]] = data.get('grants', []) if isinstance(data, dict) else data
    return [load_grant(row) for row in rows]
