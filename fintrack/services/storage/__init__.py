"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements SQLAlchemy (any SQL database), but designed to be swappable.
"""

from fintrack.services.storage.interface import (
    CategoryStorageInterface,
    ConflictError,
    ConnectionError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)
from fintrack.services.storage.sql import (
    SqlCategoryStorage,
    SqlClient,
    SqlTransactionStorage,
    SqlUserStorage,
)

__all__ = [
    # Interfaces
    "CategoryStorageInterface",
    "TransactionStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "ConflictError",
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # SQL implementation
    "SqlCategoryStorage",
    "SqlClient",
    "SqlTransactionStorage",
    "SqlUserStorage",
]
