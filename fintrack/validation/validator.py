"""
Input Validation

DESIGN DECISION: Validation collects every issue before reporting.
A caller that sends three bad fields hears about all three at once,
as a list of ValidationIssue, plus one summary message for display.

Two validators:
- TransactionValidator: ledger writes and filters
- AccountValidator: sign-up, sign-in, profile, password policy

IMPORTANT: Validation NEVER silently fixes values. It trims surrounding
whitespace and lower-cases emails; anything else is reported.
"""

import datetime as dt
import re
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from fintrack.config import SecuritySettings, get_settings
from fintrack.models.transaction import (
    ISO_DATE_PATTERN,
    SortField,
    SortOrder,
    TransactionInput,
    TransactionQuery,
    TransactionType,
)
from fintrack.models.user import ProfileInput, SignUpInput, UserFilter
from fintrack.models.validation import ValidationIssue


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TRANSACTION_TYPES = {t.value for t in TransactionType}


class ValidationError(Exception):
    """Malformed or missing input."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.message = message
        self.issues = issues or []


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _issues_from_pydantic(error: PydanticValidationError) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            field=".".join(str(part) for part in err["loc"]) or "body",
            issue_type=err["type"],
            message=err["msg"],
        )
        for err in error.errors()
    ]


def _raise_if_issues(issues: list[ValidationIssue]) -> None:
    errors = [issue for issue in issues if issue.severity == "error"]
    if errors:
        raise ValidationError(errors[0].message, issues)


def _require_strings(**fields: Any) -> None:
    """JSON numbers, lists or objects where text belongs are rejected."""
    issues = [
        ValidationIssue(
            field=name,
            issue_type="invalid_type",
            message=f"{name} must be a string",
        )
        for name, value in fields.items()
        if not isinstance(value, str)
    ]
    _raise_if_issues(issues)


def parse_positive_id(value: Any, field: str) -> int:
    """Accept a positive int (or its string form) as a row id."""
    if isinstance(value, bool):
        value = None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        missing = _is_blank(value)
        message = f"{field} is required" if missing else f"{field} must be a positive integer"
        raise ValidationError(
            message,
            [ValidationIssue(
                field=field,
                issue_type="missing" if missing else "invalid_value",
                message=message,
            )],
        )
    return value


def parse_iso_date(value: str) -> Optional[dt.date]:
    """YYYY-MM-DD and a real calendar date, or None."""
    value = value.strip()
    if not ISO_DATE_PATTERN.match(value):
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        return None


class TransactionValidator:
    """Validates ledger writes and filter parameters."""

    def validate_transaction(
        self,
        type: Any,
        amount: Any,
        description: Any,
        category: Any,
        date: Any,
    ) -> TransactionInput:
        """
        Validate an add/update payload.

        Returns:
            The validated TransactionInput

        Raises:
            ValidationError: With one issue per bad field
        """
        issues = []

        missing = [
            name for name, value in (
                ("type", type),
                ("amount", amount),
                ("category", category),
                ("date", date),
            )
            if _is_blank(value)
        ]
        if missing:
            issues.append(ValidationIssue(
                field=",".join(missing),
                issue_type="missing",
                message=(
                    "Missing required fields. Type, amount, category, "
                    "date, and userId are required."
                ),
                suggested_fix=f"Provide: {', '.join(missing)}",
            ))
            _raise_if_issues(issues)

        if not isinstance(type, str) or type.strip() not in TRANSACTION_TYPES:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message="Transaction type must be either 'income' or 'expense'",
            ))
            _raise_if_issues(issues)

        try:
            return TransactionInput(
                type=type.strip(),
                amount=amount,
                description=description,
                category=category,
                date=date,
            )
        except PydanticValidationError as e:
            issues.extend(_issues_from_pydantic(e))

        _raise_if_issues(issues)

    def validate_filter(
        self,
        user_id: Any,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        type: Optional[str] = None,
        category: Optional[str] = None,
    ) -> TransactionQuery:
        """
        Validate filter parameters into a query ordered by date, newest first.

        Empty strings count as "not given".
        """
        user_id = parse_positive_id(user_id, "userId")
        issues = []

        start_date = None if _is_blank(start_date) else start_date
        end_date = None if _is_blank(end_date) else end_date
        type = None if _is_blank(type) else type.strip()
        category = None if _is_blank(category) else category.strip()

        start = end = None
        if (start_date is None) != (end_date is None):
            issues.append(ValidationIssue(
                field="startDate" if start_date is None else "endDate",
                issue_type="missing",
                message="startDate and endDate must be provided together",
            ))
        elif start_date is not None:
            start = parse_iso_date(start_date)
            end = parse_iso_date(end_date)
            if start is None or end is None:
                issues.append(ValidationIssue(
                    field="startDate" if start is None else "endDate",
                    issue_type="invalid_format",
                    message="Invalid date format. Use YYYY-MM-DD",
                ))
            elif start > end:
                issues.append(ValidationIssue(
                    field="startDate",
                    issue_type="invalid_range",
                    message="startDate must not be after endDate",
                ))

        if type is not None and type not in TRANSACTION_TYPES:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message="Invalid transaction type. Must be 'income' or 'expense'",
            ))

        _raise_if_issues(issues)

        return TransactionQuery(
            user_id=user_id,
            order_by=SortField.DATE,
            order=SortOrder.DESC,
            start_date=start,
            end_date=end,
            type=TransactionType(type) if type else None,
            category=category,
        )


class AccountValidator:
    """Validates account payloads and the password policy."""

    def __init__(self, settings: Optional[SecuritySettings] = None):
        self._settings = settings or get_settings().security

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    def _check_email(self, email: str, issues: list[ValidationIssue]) -> None:
        if not EMAIL_PATTERN.match(email):
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message="Invalid email format",
            ))

    def validate_sign_up(self, name: Any, email: Any, password: Any) -> SignUpInput:
        if _is_blank(name) or _is_blank(email) or _is_blank(password):
            raise ValidationError(
                "Name, email, and password cannot be empty.",
                [ValidationIssue(
                    field="name,email,password",
                    issue_type="missing",
                    message="Name, email, and password cannot be empty.",
                )],
            )

        _require_strings(name=name, email=email, password=password)
        issues = []
        email = self._normalize_email(email)
        self._check_email(email, issues)
        _raise_if_issues(issues)

        try:
            return SignUpInput(name=name.strip(), email=email, password=password)
        except PydanticValidationError as e:
            issues.extend(_issues_from_pydantic(e))
        _raise_if_issues(issues)

    def validate_sign_in(self, email: Any, password: Any) -> tuple[str, str]:
        if _is_blank(email) or _is_blank(password):
            raise ValidationError(
                "Email and password are required.",
                [ValidationIssue(
                    field="email,password",
                    issue_type="missing",
                    message="Email and password are required.",
                )],
            )
        _require_strings(email=email, password=password)
        return self._normalize_email(email), password

    def validate_profile(self, name: Any, email: Any) -> ProfileInput:
        if _is_blank(name) or _is_blank(email):
            raise ValidationError(
                "User ID, name, and email are required",
                [ValidationIssue(
                    field="name,email",
                    issue_type="missing",
                    message="User ID, name, and email are required",
                )],
            )

        _require_strings(name=name, email=email)
        issues = []
        email = self._normalize_email(email)
        self._check_email(email, issues)
        _raise_if_issues(issues)

        try:
            return ProfileInput(name=name, email=email)
        except PydanticValidationError as e:
            issues.extend(_issues_from_pydantic(e))
        _raise_if_issues(issues)

    def validate_new_password(self, password: Any) -> str:
        """
        Password policy: minimum length, at least one letter and one digit.
        """
        if _is_blank(password):
            raise ValidationError(
                "User ID and new password are required",
                [ValidationIssue(
                    field="password",
                    issue_type="missing",
                    message="User ID and new password are required",
                )],
            )

        _require_strings(password=password)
        min_length = self._settings.password_min_length
        if (
            len(password) < min_length
            or not re.search(r"[A-Za-z]", password)
            or not re.search(r"\d", password)
        ):
            message = (
                f"Password must be at least {min_length} characters long "
                "and contain at least one letter and one number"
            )
            raise ValidationError(
                message,
                [ValidationIssue(
                    field="password",
                    issue_type="weak_password",
                    message=message,
                )],
            )
        return password

    def validate_user_filter(self, params: dict[str, Any]) -> UserFilter:
        """Only allow-listed keys; anything else is rejected, not ignored."""
        params = {k: v for k, v in params.items() if not _is_blank(v)}
        try:
            filters = UserFilter(**params)
        except PydanticValidationError as e:
            issues = _issues_from_pydantic(e)
            raise ValidationError(
                "Users can only be filtered by id or email",
                issues,
            )
        if filters.email is not None:
            filters.email = self._normalize_email(filters.email)
        return filters
