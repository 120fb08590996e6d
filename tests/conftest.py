"""
Shared fixtures.

Every test gets its own SQLite file under tmp_path, so tests never see
each other's rows and nothing touches a real database.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from fintrack.audit import AuditLogger
from fintrack.config import AppSettings, CorsSettings, DatabaseSettings, SecuritySettings
from fintrack.orchestrator import create_app_components


@pytest.fixture
def database_settings(tmp_path):
    return DatabaseSettings(url=f"sqlite:///{tmp_path / 'fintrack.db'}")


@pytest.fixture
def security_settings():
    return SecuritySettings(password_min_length=8)


@pytest.fixture
def app_settings():
    return AppSettings(recent_transactions_limit=5)


@pytest.fixture
def audit_logger():
    return AuditLogger(keep_history=200)


@pytest.fixture
def components(database_settings, security_settings, app_settings, audit_logger):
    ledger, accounts, sql_client = create_app_components(
        database_settings=database_settings,
        security_settings=security_settings,
        app_settings=app_settings,
        audit_logger=audit_logger,
    )
    sql_client.create_schema()
    yield ledger, accounts, sql_client
    sql_client.dispose()


@pytest.fixture
def ledger(components):
    return components[0]


@pytest.fixture
def accounts(components):
    return components[1]


@pytest.fixture
def sql_client(components):
    return components[2]


@pytest.fixture
def user_id(accounts):
    """A registered user to own transactions."""
    user = asyncio.run(accounts.sign_up("Ada Lovelace", "ada@example.com", "engine123"))
    return user.id


@pytest.fixture
def other_user_id(accounts):
    user = asyncio.run(accounts.sign_up("Charles Babbage", "charles@example.com", "diff3rence"))
    return user.id


@pytest.fixture
def client(database_settings, security_settings, app_settings, audit_logger):
    app = create_app(
        database_settings=database_settings,
        security_settings=security_settings,
        app_settings=app_settings,
        cors_settings=CorsSettings(allow_origins="http://localhost:3000"),
        audit_logger=audit_logger,
    )
    with TestClient(app) as test_client:
        yield test_client
