"""Input validation package."""

from fintrack.validation.validator import (
    AccountValidator,
    TransactionValidator,
    ValidationError,
    parse_positive_id,
)

__all__ = [
    "AccountValidator",
    "TransactionValidator",
    "ValidationError",
    "parse_positive_id",
]
