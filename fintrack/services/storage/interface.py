"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the SQL backend without touching business logic
2. Use fakes in tests where a database is overkill
3. Keep the ledger and account flows decoupled from SQLAlchemy

The interface is intentionally simple - we're not building a full ORM.
Just the operations the ledger and account flows need.
"""

from abc import ABC, abstractmethod
from typing import Optional

from fintrack.models.transaction import (
    CategoryRecord,
    TransactionInput,
    TransactionQuery,
    TransactionRecord,
    TransactionType,
)
from fintrack.models.user import UserFilter, UserRecord


class CategoryStorageInterface(ABC):
    """Storage operations for categories. Categories are never updated or deleted."""

    @abstractmethod
    async def get_category_by_name(self, name: str) -> Optional[CategoryRecord]:
        """
        Look up a category by exact name.

        Returns:
            The category if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_category(
        self,
        name: str,
        category_type: TransactionType,
    ) -> int:
        """
        Insert a new category.

        Returns:
            The new category id

        Raises:
            ConflictError: If a category with this name already exists
            StorageError: If the insert fails for any other reason
        """
        pass


class TransactionStorageInterface(ABC):
    """Storage operations for ledger transactions."""

    @abstractmethod
    async def insert_transaction(
        self,
        user_id: int,
        category_id: int,
        data: TransactionInput,
    ) -> int:
        """
        Insert a transaction.

        Returns:
            The new transaction id
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        transaction_id: int,
        user_id: int,
        category_id: int,
        data: TransactionInput,
    ) -> bool:
        """
        Replace all mutable fields of a transaction owned by user_id.

        Returns:
            True if a row was updated, False if no row matched
            both the id and the owner
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: int, user_id: int) -> bool:
        """
        Delete a transaction owned by user_id.

        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: int) -> Optional[TransactionRecord]:
        """Retrieve one transaction joined with its category name."""
        pass

    @abstractmethod
    async def get_transaction_owner(self, transaction_id: int) -> Optional[int]:
        """The owning user id, or None if the transaction does not exist."""
        pass

    @abstractmethod
    async def list_transactions(self, query: TransactionQuery) -> list[TransactionRecord]:
        """
        List transactions matching a validated query.

        Ordering, limit and filters all come from the query.
        """
        pass


class UserStorageInterface(ABC):
    """Storage operations for users. Users are never deleted."""

    @abstractmethod
    async def create_user(self, name: str, email: str, password_hash: str) -> int:
        """
        Insert a user.

        Raises:
            ConflictError: If the email is already registered
        """
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def update_profile(self, user_id: int, name: str, email: str) -> bool:
        """
        Update name and email.

        Returns:
            True if the user exists

        Raises:
            ConflictError: If the email belongs to another user
        """
        pass

    @abstractmethod
    async def update_password(self, user_id: int, password_hash: str) -> bool:
        """Returns True if the user exists."""
        pass

    @abstractmethod
    async def list_users(self, filters: UserFilter) -> list[UserRecord]:
        """List users matching every non-empty field of the filter."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage (or not visible to the caller)."""
    pass


class ConflictError(StorageError):
    """A uniqueness constraint rejected the write."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
