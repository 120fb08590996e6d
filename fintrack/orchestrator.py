"""
Main Orchestrator for Fintrack

This module ties together all the components and defines the
end-to-end flows for:
1. The transaction ledger (validate → resolve category → persist → shape)
2. Accounts (sign-up, sign-in, profile, password)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches storage without passing validation
- Writes to a transaction are scoped to its owner
- Every write is audited

This is the "glue" between the HTTP layer and storage. Errors are raised
here and translated to HTTP responses by the API, never swallowed.
"""

from typing import Any, Optional
from uuid import UUID

from fintrack.audit import AuditLogger
from fintrack.categories import CategoryResolver
from fintrack.config import AppSettings, DatabaseSettings, SecuritySettings, get_settings
from fintrack.models.audit import AuditEventBuilder
from fintrack.models.transaction import (
    FilterResult,
    LedgerSummary,
    TransactionList,
    TransactionRecord,
)
from fintrack.models.user import UserPublic
from fintrack.queries import build_listing_query
from fintrack.services.security import PasswordHasher
from fintrack.services.storage import (
    CategoryStorageInterface,
    ConflictError,
    NotFoundError,
    SqlCategoryStorage,
    SqlClient,
    SqlTransactionStorage,
    SqlUserStorage,
    TransactionStorageInterface,
    UserStorageInterface,
)
from fintrack.validation import (
    AccountValidator,
    TransactionValidator,
    parse_positive_id,
)


class AuthError(Exception):
    """Credentials did not match."""
    pass


INVALID_CREDENTIALS = "Invalid email or password."


class TransactionLedger:
    """
    Orchestrates the transaction ledger.

    Write flow:
    1. Validate → TransactionInput
    2. Resolve category → category id (created on first use)
    3. Persist
    4. Audit

    Read flow:
    1. Validate / allow-list → TransactionQuery
    2. Fetch
    3. Summarize (count, income, expense, balance) over exactly the rows fetched
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        category_storage: CategoryStorageInterface,
        validator: Optional[TransactionValidator] = None,
        category_resolver: Optional[CategoryResolver] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = transaction_storage
        self._validator = validator or TransactionValidator()
        self._resolver = category_resolver or CategoryResolver(
            category_storage, audit_logger
        )
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app

    async def add_transaction(
        self,
        user_id: Any,
        type: Any,
        amount: Any,
        category: Any,
        date: Any,
        description: Any = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Record a new transaction.

        Returns:
            The new transaction id

        Raises:
            ValidationError: Malformed input
            StorageError: Persistence failed
        """
        data = self._validator.validate_transaction(type, amount, description, category, date)
        user_id = parse_positive_id(user_id, "userId")

        category_id = await self._resolver.resolve(
            data.category, data.type, correlation_id=correlation_id
        )
        transaction_id = await self._storage.insert_transaction(user_id, category_id, data)

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.transaction_added(
                    transaction_id=transaction_id,
                    user_id=user_id,
                    transaction_type=data.type.value,
                    amount=str(data.amount),
                    correlation_id=correlation_id,
                )
            )
        return transaction_id

    async def update_transaction(
        self,
        transaction_id: Any,
        user_id: Any,
        type: Any,
        amount: Any,
        category: Any,
        date: Any,
        description: Any = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Replace every mutable field of a transaction the user owns.

        Raises:
            NotFoundError: No such transaction, or it belongs to someone else.
                The two cases are deliberately indistinguishable.
        """
        transaction_id = parse_positive_id(transaction_id, "transactionId")
        data = self._validator.validate_transaction(type, amount, description, category, date)
        user_id = parse_positive_id(user_id, "userId")

        # Checked before resolving so a rejected update never creates a category
        if await self._storage.get_transaction_owner(transaction_id) != user_id:
            raise NotFoundError("Transaction not found or not authorized")

        category_id = await self._resolver.resolve(
            data.category, data.type, correlation_id=correlation_id
        )
        updated = await self._storage.update_transaction(
            transaction_id, user_id, category_id, data
        )
        if not updated:
            raise NotFoundError("Transaction not found or not authorized")

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.transaction_updated(
                    transaction_id=transaction_id,
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            )
        return transaction_id

    async def delete_transaction(
        self,
        transaction_id: Any,
        user_id: Any,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Delete a transaction the user owns.

        Raises:
            ValidationError: Missing userId
            NotFoundError: No such transaction, or it belongs to someone else
        """
        transaction_id = parse_positive_id(transaction_id, "transactionId")
        user_id = parse_positive_id(user_id, "userId")

        deleted = await self._storage.delete_transaction(transaction_id, user_id)
        if not deleted:
            raise NotFoundError("Transaction not found or not authorized")

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.transaction_deleted(
                    transaction_id=transaction_id,
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            )
        return transaction_id

    async def get_transaction(self, transaction_id: Any) -> TransactionRecord:
        """Full detail of one transaction, including its description."""
        transaction_id = parse_positive_id(transaction_id, "transactionId")
        transaction = await self._storage.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        return transaction

    async def list_transactions(
        self,
        user_id: Any,
        order_by: Optional[str] = None,
        order: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionList:
        """Every transaction of the user, sorted, with the summary."""
        return await self._list(
            "list_all", user_id, order_by, order, None, correlation_id
        )

    async def list_recent_transactions(
        self,
        user_id: Any,
        order_by: Optional[str] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionList:
        """
        The first `limit` transactions after sorting (newest first by default).

        The summary covers only the returned rows.
        """
        limit = limit or self._settings.recent_transactions_limit
        return await self._list(
            "list_recent", user_id, order_by, order, limit, correlation_id
        )

    async def filter_transactions(
        self,
        user_id: Any,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        type: Optional[str] = None,
        category: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> FilterResult:
        """
        Transactions inside an inclusive date range and/or of one type
        and/or in one category, newest first.
        """
        query = self._validator.validate_filter(
            user_id,
            start_date=start_date,
            end_date=end_date,
            type=type,
            category=category,
        )
        rows = await self._storage.list_transactions(query)
        await self._audit_query("filter", query.user_id, len(rows), correlation_id)
        return FilterResult(count=len(rows), transactions=rows)

    async def _list(
        self,
        query_type: str,
        user_id: Any,
        order_by: Optional[str],
        order: Optional[str],
        limit: Optional[int],
        correlation_id: Optional[UUID],
    ) -> TransactionList:
        user_id = parse_positive_id(user_id, "userId")
        query = build_listing_query(user_id, order_by=order_by, order=order, limit=limit)

        rows = await self._storage.list_transactions(query)
        await self._audit_query(query_type, user_id, len(rows), correlation_id)

        return TransactionList(
            transactions=rows,
            summary=LedgerSummary.from_transactions(rows),
        )

    async def _audit_query(
        self,
        query_type: str,
        user_id: int,
        result_count: int,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.query_executed(
                    query_type=query_type,
                    user_id=user_id,
                    result_count=result_count,
                    correlation_id=correlation_id,
                )
            )


class AccountManager:
    """
    Orchestrates account operations.

    CRITICAL: Passwords are hashed before they reach storage and hashes
    never leave this class. Sign-in failures look identical whether the
    email is unknown or the password is wrong.
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        hasher: Optional[PasswordHasher] = None,
        validator: Optional[AccountValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = user_storage
        self._hasher = hasher or PasswordHasher()
        self._validator = validator or AccountValidator()
        self._audit_logger = audit_logger

    async def sign_up(
        self,
        name: Any,
        email: Any,
        password: Any,
        correlation_id: Optional[UUID] = None,
    ) -> UserPublic:
        """
        Register a user.

        Raises:
            ValidationError: Empty fields or malformed email
            ConflictError: Email already registered
        """
        data = self._validator.validate_sign_up(name, email, password)
        password_hash = self._hasher.hash_password(data.password)

        try:
            user_id = await self._storage.create_user(data.name, data.email, password_hash)
        except ConflictError as e:
            raise ConflictError("Email already exists.") from e

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.user_signed_up(user_id, correlation_id)
            )
        return UserPublic(id=user_id, name=data.name, email=data.email)

    async def sign_in(
        self,
        email: Any,
        password: Any,
        correlation_id: Optional[UUID] = None,
    ) -> UserPublic:
        """
        Authenticate a user.

        Raises:
            ValidationError: Empty email or password
            AuthError: Unknown email or wrong password (same message)
        """
        email, password = self._validator.validate_sign_in(email, password)

        user = await self._storage.get_user_by_email(email)
        if user is None or not self._hasher.verify_password(password, user.password_hash):
            if self._audit_logger:
                await self._audit_logger.log(
                    AuditEventBuilder.sign_in_failed(
                        reason="unknown_email" if user is None else "wrong_password",
                        correlation_id=correlation_id,
                    )
                )
            raise AuthError(INVALID_CREDENTIALS)

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.user_signed_in(user.id, correlation_id)
            )
        return user.to_public()

    async def update_profile(
        self,
        user_id: Any,
        name: Any,
        email: Any,
        correlation_id: Optional[UUID] = None,
    ) -> UserPublic:
        """
        Change name and email.

        Raises:
            NotFoundError: No such user
            ConflictError: Email belongs to another user
        """
        user_id = parse_positive_id(user_id, "userId")
        data = self._validator.validate_profile(name, email)

        try:
            updated = await self._storage.update_profile(user_id, data.name, data.email)
        except ConflictError as e:
            raise ConflictError("Email already in use.") from e
        if not updated:
            raise NotFoundError("User not found.")

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.profile_updated(user_id, correlation_id)
            )
        return UserPublic(id=user_id, name=data.name, email=data.email)

    async def change_password(
        self,
        user_id: Any,
        new_password: Any,
        current_password: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Set a new password.

        If current_password is given it must match first; without it the
        password is replaced unconditionally.

        Raises:
            ValidationError: New password fails the policy
            AuthError: current_password does not match
            NotFoundError: No such user
        """
        user_id = parse_positive_id(user_id, "userId")
        new_password = self._validator.validate_new_password(new_password)

        verified = bool(current_password)
        if verified:
            user = await self._storage.get_user_by_id(user_id)
            if user is None:
                raise NotFoundError("User not found")
            if not self._hasher.verify_password(current_password, user.password_hash):
                raise AuthError("Current password is incorrect.")

        updated = await self._storage.update_password(
            user_id, self._hasher.hash_password(new_password)
        )
        if not updated:
            raise NotFoundError("User not found")

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.password_changed(user_id, verified, correlation_id)
            )
        return user_id

    async def list_users(
        self,
        filters: Optional[dict[str, Any]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[UserPublic]:
        """
        Users matching allow-listed equality filters (id, email).

        Raises:
            ValidationError: A filter key outside the allow-list
        """
        user_filter = self._validator.validate_user_filter(filters or {})
        users = await self._storage.list_users(user_filter)

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.users_listed(
                    filters=sorted(user_filter.model_dump(exclude_none=True)),
                    result_count=len(users),
                    correlation_id=correlation_id,
                )
            )
        return [user.to_public() for user in users]


def create_app_components(
    database_settings: Optional[DatabaseSettings] = None,
    security_settings: Optional[SecuritySettings] = None,
    app_settings: Optional[AppSettings] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> tuple[TransactionLedger, AccountManager, SqlClient]:
    """
    Factory function to create all application components.

    One SqlClient (one connection pool) is created here and shared by
    every storage object. Settings not passed in come from the environment.

    Returns:
        (transaction_ledger, account_manager, sql_client)
    """
    settings = get_settings()
    database_settings = database_settings or settings.database
    security_settings = security_settings or settings.security
    app_settings = app_settings or settings.app
    audit_logger = audit_logger or AuditLogger()

    sql_client = SqlClient(database_settings)

    ledger = TransactionLedger(
        transaction_storage=SqlTransactionStorage(sql_client),
        category_storage=SqlCategoryStorage(sql_client),
        audit_logger=audit_logger,
        settings=app_settings,
    )

    accounts = AccountManager(
        user_storage=SqlUserStorage(sql_client),
        hasher=PasswordHasher(security_settings),
        validator=AccountValidator(security_settings),
        audit_logger=audit_logger,
    )

    return ledger, accounts, sql_client
