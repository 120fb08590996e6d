"""Tests for input validation."""

import pytest
from datetime import date
from decimal import Decimal

from fintrack.config import SecuritySettings
from fintrack.models.transaction import SortField, SortOrder, TransactionType
from fintrack.validation import (
    AccountValidator,
    TransactionValidator,
    ValidationError,
    parse_positive_id,
)


@pytest.fixture
def transaction_validator():
    return TransactionValidator()


@pytest.fixture
def account_validator():
    return AccountValidator(SecuritySettings(password_min_length=8))


class TestParsePositiveId:

    def test_accepts_int_and_digit_string(self):
        assert parse_positive_id(4, "userId") == 4
        assert parse_positive_id(" 12 ", "userId") == 12

    def test_missing(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_positive_id(None, "userId")
        assert exc_info.value.message == "userId is required"

    def test_rejects_garbage(self):
        for value in ("abc", 0, -3, True, "1.5"):
            with pytest.raises(ValidationError) as exc_info:
                parse_positive_id(value, "transactionId")
            assert exc_info.value.issues[0].field == "transactionId"


class TestTransactionValidator:
    """Tests for add/update payload validation."""

    def test_valid_payload(self, transaction_validator):
        data = transaction_validator.validate_transaction(
            "expense", 30, "Lunch", "Food", "2024-01-02"
        )
        assert data.type == TransactionType.EXPENSE
        assert data.amount == Decimal("30")
        assert data.date == date(2024, 1, 2)

    def test_missing_fields_reported_together(self, transaction_validator):
        with pytest.raises(ValidationError) as exc_info:
            transaction_validator.validate_transaction(None, None, None, "", "2024-01-01")

        error = exc_info.value
        assert error.message.startswith("Missing required fields")
        assert error.issues[0].field == "type,amount,category"

    def test_unknown_type(self, transaction_validator):
        with pytest.raises(ValidationError) as exc_info:
            transaction_validator.validate_transaction("transfer", 5, None, "Food", "2024-01-01")
        assert exc_info.value.message == (
            "Transaction type must be either 'income' or 'expense'"
        )

    def test_collects_every_field_issue(self, transaction_validator):
        """Test that a bad amount and a bad date are both reported."""
        with pytest.raises(ValidationError) as exc_info:
            transaction_validator.validate_transaction("income", -5, None, "Salary", "01/01/2024")

        fields = {issue.field for issue in exc_info.value.issues}
        assert fields == {"amount", "date"}

    def test_non_numeric_amount(self, transaction_validator):
        with pytest.raises(ValidationError):
            transaction_validator.validate_transaction("income", "lots", None, "Salary", "2024-01-01")


class TestFilterValidation:
    """Tests for filter parameters."""

    def test_no_filters(self, transaction_validator):
        query = transaction_validator.validate_filter("1")
        assert query.user_id == 1
        assert query.order_by == SortField.DATE
        assert query.order == SortOrder.DESC
        assert query.start_date is None

    def test_date_range(self, transaction_validator):
        query = transaction_validator.validate_filter(
            1, start_date="2024-01-01", end_date="2024-01-31"
        )
        assert query.start_date == date(2024, 1, 1)
        assert query.end_date == date(2024, 1, 31)

    def test_dates_required_together(self, transaction_validator):
        with pytest.raises(ValidationError) as exc_info:
            transaction_validator.validate_filter(1, start_date="2024-01-01")
        assert exc_info.value.message == "startDate and endDate must be provided together"

    def test_bad_date_format(self, transaction_validator):
        with pytest.raises(ValidationError) as exc_info:
            transaction_validator.validate_filter(
                1, start_date="2024/01/01", end_date="2024-01-31"
            )
        assert exc_info.value.message == "Invalid date format. Use YYYY-MM-DD"

    def test_reversed_range(self, transaction_validator):
        with pytest.raises(ValidationError):
            transaction_validator.validate_filter(
                1, start_date="2024-02-01", end_date="2024-01-01"
            )

    def test_unknown_type(self, transaction_validator):
        with pytest.raises(ValidationError) as exc_info:
            transaction_validator.validate_filter(1, type="refund")
        assert "Invalid transaction type" in exc_info.value.message

    def test_empty_strings_are_ignored(self, transaction_validator):
        query = transaction_validator.validate_filter(1, start_date="", end_date="", type="", category=" ")
        assert query.type is None
        assert query.category is None


class TestAccountValidator:
    """Tests for account validation and the password policy."""

    def test_sign_up_normalizes_email(self, account_validator):
        data = account_validator.validate_sign_up(" Ada ", "  Ada@Example.COM ", "pw")
        assert data.name == "Ada"
        assert data.email == "ada@example.com"

    def test_sign_up_keeps_password_whitespace(self, account_validator):
        data = account_validator.validate_sign_up("Ada", "ada@example.com", " pass word ")
        assert data.password == " pass word "

    def test_sign_up_rejects_blank(self, account_validator):
        with pytest.raises(ValidationError) as exc_info:
            account_validator.validate_sign_up("Ada", "   ", "secret")
        assert exc_info.value.message == "Name, email, and password cannot be empty."

    def test_sign_up_rejects_bad_email(self, account_validator):
        with pytest.raises(ValidationError) as exc_info:
            account_validator.validate_sign_up("Ada", "not-an-email", "secret")
        assert exc_info.value.message == "Invalid email format"

    def test_sign_in_requires_both(self, account_validator):
        with pytest.raises(ValidationError):
            account_validator.validate_sign_in("ada@example.com", "")

    def test_profile_rejects_bad_email(self, account_validator):
        with pytest.raises(ValidationError):
            account_validator.validate_profile("Ada", "ada@")

    def test_password_policy(self, account_validator):
        assert account_validator.validate_new_password("abcdef12") == "abcdef12"
        assert account_validator.validate_new_password("pass word 1!") == "pass word 1!"

        for weak in ("short1", "onlyletters", "12345678"):
            with pytest.raises(ValidationError) as exc_info:
                account_validator.validate_new_password(weak)
            assert exc_info.value.issues[0].issue_type == "weak_password"

    def test_non_string_values_rejected(self, account_validator):
        checks = [
            lambda: account_validator.validate_sign_up(12345, "ada@example.com", "secret"),
            lambda: account_validator.validate_sign_up("Ada", ["ada@example.com"], "secret"),
            lambda: account_validator.validate_sign_in("ada@example.com", 12345678),
            lambda: account_validator.validate_profile("Ada", {"email": "ada@example.com"}),
            lambda: account_validator.validate_new_password(123456789),
        ]
        for check in checks:
            with pytest.raises(ValidationError) as exc_info:
                check()
            assert exc_info.value.issues[0].issue_type == "invalid_type"

    def test_non_string_field_named(self, account_validator):
        with pytest.raises(ValidationError) as exc_info:
            account_validator.validate_sign_up("Ada", "ada@example.com", 12345678)
        assert exc_info.value.message == "password must be a string"
        assert [issue.field for issue in exc_info.value.issues] == ["password"]

    def test_user_filter_allow_list(self, account_validator):
        filters = account_validator.validate_user_filter({"email": "ADA@example.com"})
        assert filters.email == "ada@example.com"

        with pytest.raises(ValidationError) as exc_info:
            account_validator.validate_user_filter({"password": "x"})
        assert exc_info.value.message == "Users can only be filtered by id or email"
