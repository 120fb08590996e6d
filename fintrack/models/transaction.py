"""
Core Ledger Models for Fintrack

These models define the strict schemas for all ledger data flowing
through the system. They are designed to:
1. Enforce type safety at runtime
2. Keep money as Decimal from request to storage and back
3. Serialize to the camelCase JSON the frontend expects

DESIGN DECISION: Amounts are Decimal everywhere inside the system and only
become JSON numbers at the very edge (serialization). This avoids
floating-point drift across add -> read.
"""

import datetime as dt
import re
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Decimal inside, JSON number outside
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. Also the type of the category it creates."""
    INCOME = "income"
    EXPENSE = "expense"


class SortField(str, Enum):
    """Fields a transaction listing may be ordered by."""
    DATE = "date"
    AMOUNT = "amount"
    TYPE = "type"
    ID = "id"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# INPUT MODELS
# =============================================================================

class TransactionInput(BaseModel):
    """
    A validated transaction write (add or update).

    The category is carried by name; the ledger resolves it to an id.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=12,
        decimal_places=2,
        description="Positive amount, at most two decimal places"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name, created on first use"
    )
    date: dt.date

    @field_validator('description')
    @classmethod
    def empty_description_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator('date', mode='before')
    @classmethod
    def require_iso_date(cls, v: Any) -> Any:
        """Only YYYY-MM-DD strings (or real dates) are accepted."""
        if isinstance(v, dt.datetime):
            return v.date()
        if isinstance(v, dt.date):
            return v
        if isinstance(v, str) and ISO_DATE_PATTERN.match(v.strip()):
            return v.strip()
        raise ValueError("Date must use the YYYY-MM-DD format")


# =============================================================================
# RECORD MODELS
# =============================================================================

class CategoryRecord(BaseModel):
    """A stored category row."""

    id: int
    name: str
    type: TransactionType


class TransactionRecord(_CamelModel):
    """
    A transaction as read back from storage, joined with its category name.
    """

    id: int
    type: TransactionType
    amount: Money
    description: Optional[str] = None
    date: dt.date
    category: str


class LedgerSummary(_CamelModel):
    """Aggregates derived from a set of transactions. Never stored."""

    count: int = Field(ge=0)
    total_income: Money = Decimal("0")
    total_expense: Money = Decimal("0")
    balance: Money = Decimal("0")

    @classmethod
    def from_transactions(cls, transactions: list[TransactionRecord]) -> "LedgerSummary":
        total_income = sum(
            (t.amount for t in transactions if t.type == TransactionType.INCOME),
            Decimal("0"),
        )
        total_expense = sum(
            (t.amount for t in transactions if t.type == TransactionType.EXPENSE),
            Decimal("0"),
        )
        return cls(
            count=len(transactions),
            total_income=total_income,
            total_expense=total_expense,
            balance=total_income - total_expense,
        )


class TransactionList(_CamelModel):
    """A listing plus the summary computed over exactly these rows."""

    transactions: list[TransactionRecord] = Field(default_factory=list)
    summary: LedgerSummary


class FilterResult(_CamelModel):
    """Result of a filtered listing."""

    count: int = Field(ge=0)
    transactions: list[TransactionRecord] = Field(default_factory=list)


# =============================================================================
# QUERY MODELS
# =============================================================================

class TransactionQuery(BaseModel):
    """
    A fully validated read against the ledger.

    Sort field and direction are enums, so nothing caller-typed can
    reach the query text. The query builder turns this into SQL.
    """

    user_id: int = Field(..., ge=1)
    order_by: SortField = SortField.DATE
    order: SortOrder = SortOrder.DESC
    limit: Optional[int] = Field(default=None, ge=1, le=1000)

    # Filters
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None
