"""Tests for the allow-listed query builder."""

from datetime import date

from sqlalchemy.dialects import sqlite

from fintrack.models.transaction import (
    SortField,
    SortOrder,
    TransactionQuery,
    TransactionType,
)
from fintrack.queries import (
    build_listing_query,
    parse_sort_field,
    parse_sort_order,
    select_transaction_by_id,
    select_transactions,
)


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=sqlite.dialect()))


class TestSortParsing:
    """Caller-supplied sort names map onto fixed enums."""

    def test_known_fields(self):
        assert parse_sort_field("amount") == SortField.AMOUNT
        assert parse_sort_field("TYPE") == SortField.TYPE
        assert parse_sort_field("id_transaction") == SortField.ID

    def test_unknown_field_falls_back_to_date(self):
        assert parse_sort_field("password") == SortField.DATE
        assert parse_sort_field(None) == SortField.DATE
        assert parse_sort_field("") == SortField.DATE

    def test_order(self):
        assert parse_sort_order("asc") == SortOrder.ASC
        assert parse_sort_order(" ASC ") == SortOrder.ASC
        assert parse_sort_order("desc") == SortOrder.DESC
        assert parse_sort_order("sideways") == SortOrder.DESC
        assert parse_sort_order(None) == SortOrder.DESC


class TestSelectTransactions:
    """Tests for the generated SELECT statements."""

    def test_injection_attempt_never_reaches_sql(self):
        """Test that a hostile sort name is replaced, not interpolated."""
        query = build_listing_query(
            1,
            order_by="date; DROP TABLE users; --",
            order="desc; DELETE FROM transactions",
        )
        sql = _sql(select_transactions(query))

        assert "DROP" not in sql
        assert "DELETE" not in sql
        assert "ORDER BY transactions.date DESC" in sql

    def test_orders_by_chosen_column_then_id(self):
        query = build_listing_query(1, order_by="amount", order="asc")
        sql = _sql(select_transactions(query))
        assert "ORDER BY transactions.amount ASC" in sql
        assert sql.count(" ASC") == 2

    def test_id_ordering_has_no_duplicate_key(self):
        query = build_listing_query(1, order_by="id", order="desc")
        sql = _sql(select_transactions(query))
        assert sql.count(" DESC") == 1

    def test_limit(self):
        query = build_listing_query(1, limit=5)
        assert "LIMIT" in _sql(select_transactions(query))

    def test_no_limit_by_default(self):
        query = build_listing_query(1)
        assert "LIMIT" not in _sql(select_transactions(query))

    def test_filter_values_are_bound_parameters(self):
        """Test that filter values travel as parameters."""
        query = TransactionQuery(
            user_id=1,
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 31),
            type=TransactionType.EXPENSE,
            category="Food' OR '1'='1",
        )
        compiled = select_transactions(query).compile(dialect=sqlite.dialect())
        sql = str(compiled)

        assert "Food" not in sql
        assert "BETWEEN" in sql
        assert "Food' OR '1'='1" in compiled.params.values()

    def test_joins_category_name(self):
        sql = _sql(select_transaction_by_id(3))
        assert "JOIN categories" in sql
        assert "categories.name AS category" in sql
