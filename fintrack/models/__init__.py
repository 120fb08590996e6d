"""
Data Models Package

This package contains all Pydantic models used in Fintrack.
All data flowing through the system must conform to these schemas.
"""

from fintrack.models.transaction import (
    CategoryRecord,
    FilterResult,
    LedgerSummary,
    SortField,
    SortOrder,
    TransactionInput,
    TransactionList,
    TransactionQuery,
    TransactionRecord,
    TransactionType,
)
from fintrack.models.user import (
    ProfileInput,
    SignUpInput,
    UserFilter,
    UserPublic,
    UserRecord,
)
from fintrack.models.validation import ValidationIssue
from fintrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CategoryRecord",
    "FilterResult",
    "LedgerSummary",
    "SortField",
    "SortOrder",
    "TransactionInput",
    "TransactionList",
    "TransactionQuery",
    "TransactionRecord",
    "TransactionType",
    # Account models
    "ProfileInput",
    "SignUpInput",
    "UserFilter",
    "UserPublic",
    "UserRecord",
    # Validation models
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
