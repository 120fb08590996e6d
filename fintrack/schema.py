"""
Relational schema.

Column names follow the existing database (id_user, id_category,
id_transaction) so the service can run against it unchanged.
"""

from sqlalchemy import (
    Column,
    Date,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)


metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id_user", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), unique=True, nullable=False),
    Column("password", String(255), nullable=False),
)

categories = Table(
    "categories",
    metadata,
    Column("id_category", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), unique=True, nullable=False),
    Column("type", String(10), nullable=False),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id_transaction", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id_user"), nullable=False, index=True),
    Column("type", String(10), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("description", Text),
    Column("category_id", Integer, ForeignKey("categories.id_category"), nullable=False),
    Column("date", Date, nullable=False),
)
