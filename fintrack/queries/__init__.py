"""Query construction package."""

from fintrack.queries.builder import (
    build_listing_query,
    parse_sort_field,
    parse_sort_order,
    select_transaction_by_id,
    select_transactions,
)

__all__ = [
    "build_listing_query",
    "parse_sort_field",
    "parse_sort_order",
    "select_transaction_by_id",
    "select_transactions",
]
