"""
Transaction Query Builder

DESIGN DECISION: Query construction is ALLOW-LIST ONLY.
Callers choose a sort field and direction by name, but those names are
only ever used as keys into the fixed tables below. The SQL text is built
from Column objects and SQLAlchemy's asc()/desc(); every filter value
travels as a bound parameter.

Unknown sort fields and directions are not errors: they fall back to
date / desc, which is what the frontend shows by default.
"""

from typing import Optional

from sqlalchemy import Select, asc, desc, select

from fintrack.models.transaction import (
    SortField,
    SortOrder,
    TransactionQuery,
)
from fintrack.schema import categories, transactions


# Accepted spellings for each sort field
SORT_FIELD_NAMES = {
    "date": SortField.DATE,
    "amount": SortField.AMOUNT,
    "type": SortField.TYPE,
    "id": SortField.ID,
    "id_transaction": SortField.ID,
}

ORDER_BY_COLUMNS = {
    SortField.DATE: transactions.c.date,
    SortField.AMOUNT: transactions.c.amount,
    SortField.TYPE: transactions.c.type,
    SortField.ID: transactions.c.id_transaction,
}

DIRECTIONS = {
    SortOrder.ASC: asc,
    SortOrder.DESC: desc,
}


def parse_sort_field(value: Optional[str]) -> SortField:
    """Map a caller-supplied sort field onto the allow-list."""
    if not value:
        return SortField.DATE
    return SORT_FIELD_NAMES.get(value.strip().lower(), SortField.DATE)


def parse_sort_order(value: Optional[str]) -> SortOrder:
    """Anything that is not 'asc' sorts descending."""
    if value and value.strip().lower() == SortOrder.ASC.value:
        return SortOrder.ASC
    return SortOrder.DESC


def build_listing_query(
    user_id: int,
    order_by: Optional[str] = None,
    order: Optional[str] = None,
    limit: Optional[int] = None,
) -> TransactionQuery:
    """Build a validated listing query from raw caller input."""
    return TransactionQuery(
        user_id=user_id,
        order_by=parse_sort_field(order_by),
        order=parse_sort_order(order),
        limit=limit,
    )


def _transaction_columns() -> Select:
    return select(
        transactions.c.id_transaction.label("id"),
        transactions.c.type,
        transactions.c.amount,
        transactions.c.description,
        transactions.c.date,
        categories.c.name.label("category"),
    ).select_from(
        transactions.join(
            categories,
            transactions.c.category_id == categories.c.id_category,
        )
    )


def filter_clauses(query: TransactionQuery) -> list:
    """WHERE clauses for a query, owner first."""
    clauses = [transactions.c.user_id == query.user_id]

    if query.start_date is not None and query.end_date is not None:
        clauses.append(transactions.c.date.between(query.start_date, query.end_date))
    if query.type is not None:
        clauses.append(transactions.c.type == query.type.value)
    if query.category:
        clauses.append(categories.c.name == query.category)

    return clauses


def select_transactions(query: TransactionQuery) -> Select:
    """
    SELECT for a listing or filter query.

    Rows come back ordered by the chosen column, then by id in the same
    direction so equal dates or amounts have a stable order.
    """
    direction = DIRECTIONS[query.order]
    column = ORDER_BY_COLUMNS[query.order_by]

    stmt = _transaction_columns().where(*filter_clauses(query))
    stmt = stmt.order_by(direction(column))
    if query.order_by != SortField.ID:
        stmt = stmt.order_by(direction(transactions.c.id_transaction))

    if query.limit is not None:
        stmt = stmt.limit(query.limit)

    return stmt


def select_transaction_by_id(transaction_id: int) -> Select:
    return _transaction_columns().where(
        transactions.c.id_transaction == transaction_id
    )
