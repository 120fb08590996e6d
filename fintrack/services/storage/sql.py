"""
SQL Storage Implementation

DESIGN DECISION: SQLAlchemy Core over a single process-wide Engine.
1. The Engine is the connection pool; SqlClient owns it and is handed to
   every storage object explicitly (no module-level engine)
2. Every operation checks a connection out with a context manager, so it
   goes back to the pool on success and on every error path
3. Statements are built from Table objects with bound parameters only

The storage methods are async. Their bodies are blocking DBAPI calls, so
each one runs in a worker thread and the event loop keeps serving other
requests meanwhile.

Driver errors are translated once, in SqlClient.begin()/connect():
IntegrityError becomes ConflictError, everything else StorageError.
"""

import asyncio
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import Connection, Engine, create_engine, delete, insert, select, text, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from tenacity import retry, stop_after_attempt, wait_exponential

from fintrack.config import DatabaseSettings, get_settings
from fintrack.models.transaction import (
    CategoryRecord,
    TransactionInput,
    TransactionQuery,
    TransactionRecord,
    TransactionType,
)
from fintrack.models.user import UserFilter, UserRecord
from fintrack.queries import select_transaction_by_id, select_transactions
from fintrack.schema import categories, metadata, transactions, users
from fintrack.services.storage.interface import (
    CategoryStorageInterface,
    ConflictError,
    ConnectionError,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)


# Columns the user listing may filter on
USER_FILTER_COLUMNS = {
    "id": users.c.id_user,
    "email": users.c.email,
}


class SqlClient:
    """
    Owner of the SQLAlchemy Engine (and therefore the connection pool).

    Create one per process and pass it to the storage classes.
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        self._settings = settings or get_settings().database
        self._engine: Optional[Engine] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        options = {
            "echo": self._settings.echo,
            "pool_pre_ping": self._settings.pool_pre_ping,
            "pool_recycle": self._settings.pool_recycle,
        }
        if self._settings.is_sqlite:
            # Connections are used from worker threads
            options["connect_args"] = {"check_same_thread": False}
        else:
            options["pool_size"] = self._settings.pool_size
            options["max_overflow"] = self._settings.max_overflow

        try:
            return create_engine(self._settings.url, **options)
        except (SQLAlchemyError, ValueError) as e:
            raise ConnectionError(f"Invalid database configuration: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def create_schema(self) -> None:
        """Create missing tables. Existing tables are left untouched."""
        try:
            metadata.create_all(self.engine)
        except OperationalError as e:
            raise ConnectionError(f"Failed to connect to database: {e}") from e

    def ping(self) -> bool:
        """Round-trip a trivial statement."""
        try:
            with self.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except StorageError:
            return False

    def dispose(self) -> None:
        """Close every pooled connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    @contextmanager
    def begin(self) -> Iterator[Connection]:
        """A connection inside a transaction that commits on success."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except IntegrityError as e:
            raise ConflictError(str(e.orig)) from e
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """A connection for reads."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e


class SqlCategoryStorage(CategoryStorageInterface):
    """Categories table access."""

    def __init__(self, client: SqlClient):
        self._client = client

    async def get_category_by_name(self, name: str) -> Optional[CategoryRecord]:
        return await asyncio.to_thread(self._get_category_by_name, name)

    async def create_category(
        self,
        name: str,
        category_type: TransactionType,
    ) -> int:
        return await asyncio.to_thread(self._create_category, name, category_type)

    def _get_category_by_name(self, name: str) -> Optional[CategoryRecord]:
        with self._client.connect() as conn:
            row = conn.execute(
                select(categories).where(categories.c.name == name)
            ).first()

        if row is None:
            return None
        return CategoryRecord(id=row.id_category, name=row.name, type=row.type)

    def _create_category(self, name: str, category_type: TransactionType) -> int:
        with self._client.begin() as conn:
            result = conn.execute(
                insert(categories).values(name=name, type=category_type.value)
            )
            return result.inserted_primary_key[0]


class SqlTransactionStorage(TransactionStorageInterface):
    """Transactions table access. Reads always join the category name."""

    def __init__(self, client: SqlClient):
        self._client = client

    async def insert_transaction(
        self,
        user_id: int,
        category_id: int,
        data: TransactionInput,
    ) -> int:
        return await asyncio.to_thread(self._insert, user_id, category_id, data)

    async def update_transaction(
        self,
        transaction_id: int,
        user_id: int,
        category_id: int,
        data: TransactionInput,
    ) -> bool:
        return await asyncio.to_thread(
            self._update, transaction_id, user_id, category_id, data
        )

    async def delete_transaction(self, transaction_id: int, user_id: int) -> bool:
        return await asyncio.to_thread(self._delete, transaction_id, user_id)

    async def get_transaction(self, transaction_id: int) -> Optional[TransactionRecord]:
        return await asyncio.to_thread(self._get, transaction_id)

    async def get_transaction_owner(self, transaction_id: int) -> Optional[int]:
        return await asyncio.to_thread(self._get_owner, transaction_id)

    async def list_transactions(self, query: TransactionQuery) -> list[TransactionRecord]:
        return await asyncio.to_thread(self._list, query)

    @staticmethod
    def _values(category_id: int, data: TransactionInput) -> dict:
        return {
            "type": data.type.value,
            "amount": data.amount,
            "description": data.description,
            "category_id": category_id,
            "date": data.date,
        }

    @staticmethod
    def _row_to_transaction(row) -> TransactionRecord:
        return TransactionRecord(**row._mapping)

    def _insert(self, user_id: int, category_id: int, data: TransactionInput) -> int:
        try:
            with self._client.begin() as conn:
                result = conn.execute(
                    insert(transactions).values(
                        user_id=user_id,
                        **self._values(category_id, data),
                    )
                )
                return result.inserted_primary_key[0]
        except ConflictError as e:
            # Only foreign keys can fail here; it is not a duplicate
            raise StorageError(f"Failed to insert transaction: {e}") from e

    def _update(
        self,
        transaction_id: int,
        user_id: int,
        category_id: int,
        data: TransactionInput,
    ) -> bool:
        with self._client.begin() as conn:
            result = conn.execute(
                update(transactions)
                .where(transactions.c.id_transaction == transaction_id)
                .where(transactions.c.user_id == user_id)
                .values(**self._values(category_id, data))
            )
            return result.rowcount > 0

    def _delete(self, transaction_id: int, user_id: int) -> bool:
        with self._client.begin() as conn:
            result = conn.execute(
                delete(transactions)
                .where(transactions.c.id_transaction == transaction_id)
                .where(transactions.c.user_id == user_id)
            )
            return result.rowcount > 0

    def _get(self, transaction_id: int) -> Optional[TransactionRecord]:
        with self._client.connect() as conn:
            row = conn.execute(select_transaction_by_id(transaction_id)).first()
        return self._row_to_transaction(row) if row is not None else None

    def _get_owner(self, transaction_id: int) -> Optional[int]:
        with self._client.connect() as conn:
            return conn.execute(
                select(transactions.c.user_id)
                .where(transactions.c.id_transaction == transaction_id)
            ).scalar()

    def _list(self, query: TransactionQuery) -> list[TransactionRecord]:
        with self._client.connect() as conn:
            rows = conn.execute(select_transactions(query)).all()
        return [self._row_to_transaction(row) for row in rows]


class SqlUserStorage(UserStorageInterface):
    """Users table access."""

    def __init__(self, client: SqlClient):
        self._client = client

    async def create_user(self, name: str, email: str, password_hash: str) -> int:
        return await asyncio.to_thread(self._create, name, email, password_hash)

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return await asyncio.to_thread(self._get_one, users.c.email == email)

    async def get_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        return await asyncio.to_thread(self._get_one, users.c.id_user == user_id)

    async def update_profile(self, user_id: int, name: str, email: str) -> bool:
        return await asyncio.to_thread(
            self._update, user_id, {"name": name, "email": email}
        )

    async def update_password(self, user_id: int, password_hash: str) -> bool:
        return await asyncio.to_thread(
            self._update, user_id, {"password": password_hash}
        )

    async def list_users(self, filters: UserFilter) -> list[UserRecord]:
        return await asyncio.to_thread(self._list, filters)

    @staticmethod
    def _row_to_user(row) -> UserRecord:
        return UserRecord(
            id=row.id_user,
            name=row.name,
            email=row.email,
            password_hash=row.password,
        )

    def _create(self, name: str, email: str, password_hash: str) -> int:
        with self._client.begin() as conn:
            result = conn.execute(
                insert(users).values(name=name, email=email, password=password_hash)
            )
            return result.inserted_primary_key[0]

    def _get_one(self, clause) -> Optional[UserRecord]:
        with self._client.connect() as conn:
            row = conn.execute(select(users).where(clause)).first()
        return self._row_to_user(row) if row is not None else None

    def _update(self, user_id: int, values: dict) -> bool:
        with self._client.begin() as conn:
            result = conn.execute(
                update(users).where(users.c.id_user == user_id).values(**values)
            )
            return result.rowcount > 0

    def _list(self, filters: UserFilter) -> list[UserRecord]:
        stmt = select(users).order_by(users.c.id_user)
        for field, value in filters.model_dump(exclude_none=True).items():
            stmt = stmt.where(USER_FILTER_COLUMNS[field] == value)

        with self._client.connect() as conn:
            rows = conn.execute(stmt).all()
        return [self._row_to_user(row) for row in rows]
