"""Compliance validation package."""

from swiss_bookkeeping.validation.validator import (
    ComplianceValidator,
    is_valid_date_format,
    is_valid_swiss_account_number,
)

__all__ = [
    "ComplianceValidator",
    "is_valid_date_format",
    "is_valid_swiss_account_number",
]
