"""Services package."""

from fintrack.services.security import PasswordHasher
from fintrack.services.storage import (
    CategoryStorageInterface,
    ConflictError,
    ConnectionError,
    NotFoundError,
    SqlCategoryStorage,
    SqlClient,
    SqlTransactionStorage,
    SqlUserStorage,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)

__all__ = [
    # Security
    "PasswordHasher",
    # Storage services
    "CategoryStorageInterface",
    "ConflictError",
    "ConnectionError",
    "NotFoundError",
    "SqlCategoryStorage",
    "SqlClient",
    "SqlTransactionStorage",
    "SqlUserStorage",
    "StorageError",
    "TransactionStorageInterface",
    "UserStorageInterface",
]
