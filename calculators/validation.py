"""
Validation errors raised by the strict calculation layer.

Public calculation functions degrade malformed input to documented defaults.
These errors are reserved for typed inputs that describe an impossible
domain state (negative shares, vesting end before start) or a request the
tax tables cannot answer (unknown tax year).
"""

from typing import Iterable, Optional


class GrantValidationError(ValueError):
    """A grant describes an invalid domain state."""

    def __init__(self, message: str, grant_id: Optional[str] = None):
        self.grant_id = grant_id
        if grant_id:
            message = f"Grant {grant_id}: {message}"
        super().__init__(message)


class UnsupportedTaxYearError(ValueError):
    """No tax table exists for the requested year."""

    def __init__(self, tax_year, supported_years: Iterable[int], table_name: str = 'tax tables'):
        self.tax_year = tax_year
        self.supported_years = tuple(supported_years)
        super().__init__(
            f"No {table_name} for tax year {tax_year}. "
            f"Supported years: {', '.join(str(y) for y in self.supported_years)}"
        )
