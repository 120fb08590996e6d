"""End-to-end tests for the HTTP API."""

import json
import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from app.main import create_app, get_ledger
from fintrack.services.storage import StorageError


def sign_up(client, name="Ada", email="ada@example.com", password="engine123"):
    response = client.post(
        "/users/signup", json={"name": name, "email": email, "password": password}
    )
    assert response.status_code == 201, response.text
    return response.json()["user"]


def add_transaction(client, user_id, **overrides):
    payload = {
        "type": "expense",
        "amount": 30,
        "category": "Food",
        "date": "2024-01-02",
        "userId": user_id,
    }
    payload.update(overrides)
    return client.post("/users/transactions", json=payload)


@pytest.fixture
def user(client):
    return sign_up(client)


class TestService:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Server is running"}

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] is True

    def test_cors_preflight(self, client):
        response = client.options(
            "/users/signin",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


class TestAccountsApi:
    """Tests for the /users account routes."""

    def test_sign_up(self, client):
        response = client.post(
            "/users/signup",
            json={"name": "Ada", "email": "ada@example.com", "password": "engine123"},
        )
        body = response.json()

        assert response.status_code == 201
        assert body["message"] == "User created successfully."
        assert body["user"]["email"] == "ada@example.com"
        assert "password" not in body["user"]

    def test_sign_up_duplicate(self, client, user):
        response = client.post(
            "/users/signup",
            json={"name": "Ada", "email": "ada@example.com", "password": "engine123"},
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Email already exists."

    def test_sign_up_missing_field(self, client):
        response = client.post("/users/signup", json={"name": "Ada", "email": "ada@example.com"})
        assert response.status_code == 400
        assert response.json()["message"] == "Name, email, and password cannot be empty."

    def test_sign_in(self, client, user):
        response = client.post(
            "/users/signin", json={"email": "ada@example.com", "password": "engine123"}
        )
        assert response.status_code == 200
        assert response.json() == {"user": user}

    def test_sign_in_failures_identical(self, client, user):
        wrong_password = client.post(
            "/users/signin", json={"email": "ada@example.com", "password": "wrong123"}
        )
        unknown_email = client.post(
            "/users/signin", json={"email": "nobody@example.com", "password": "engine123"}
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()

    def test_update_profile(self, client, user):
        response = client.put(
            f"/users/{user['id']}", json={"name": "Augusta", "email": "augusta@example.com"}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Profile updated successfully."
        assert response.json()["user"]["name"] == "Augusta"

    def test_update_profile_unknown_user(self, client):
        response = client.put("/users/77", json={"name": "Ghost", "email": "ghost@example.com"})
        assert response.status_code == 404

    def test_update_profile_taken_email(self, client, user):
        other = sign_up(client, name="Charles", email="charles@example.com")
        response = client.put(
            f"/users/{other['id']}", json={"name": "Charles", "email": "ada@example.com"}
        )
        assert response.status_code == 409

    def test_change_password(self, client, user):
        response = client.put(
            f"/users/{user['id']}/change-password",
            json={"password": "analytical9", "currentPassword": "engine123"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "message": "Password changed successfully",
            "userId": user["id"],
        }

    def test_change_password_wrong_current(self, client, user):
        response = client.put(
            f"/users/{user['id']}/change-password",
            json={"password": "analytical9", "currentPassword": "nope1234"},
        )
        assert response.status_code == 401

    def test_change_password_weak(self, client, user):
        response = client.put(
            f"/users/{user['id']}/change-password", json={"password": "short"}
        )
        assert response.status_code == 400
        assert response.json()["issues"][0]["issue_type"] == "weak_password"

    def test_non_string_fields_rejected(self, client, user):
        """Test that numbers where text belongs are a 400, not a server error."""
        attempts = [
            ("/users/signup", {"name": 12345, "email": "bob@example.com", "password": "engine123"}),
            ("/users/signup", {"name": "Bob", "email": 12345, "password": "engine123"}),
            ("/users/signup", {"name": "Bob", "email": "bob@example.com", "password": 12345678}),
            ("/users/signin", {"email": "ada@example.com", "password": 12345678}),
        ]
        for path, payload in attempts:
            response = client.post(path, json=payload)
            assert response.status_code == 400, payload
            assert response.json()["issues"][0]["issue_type"] == "invalid_type"

        response = client.put(
            f"/users/{user['id']}/change-password", json={"password": 123456789}
        )
        assert response.status_code == 400
        assert response.json()["issues"][0]["issue_type"] == "invalid_type"

        response = client.put(
            f"/users/{user['id']}", json={"name": ["Ada"], "email": "ada@example.com"}
        )
        assert response.status_code == 400
        assert response.json()["issues"][0]["issue_type"] == "invalid_type"

    def test_list_users(self, client, user):
        response = client.get("/users", params={"email": "ada@example.com"})
        assert response.status_code == 200
        assert response.json() == [user]

    def test_list_users_rejects_unknown_filter(self, client, user):
        response = client.get("/users", params={"password": "engine123"})
        assert response.status_code == 400


class TestTransactionsApi:
    """Tests for the /users/transactions routes."""

    def test_add_and_get(self, client, user):
        response = add_transaction(
            client, user["id"], type="income", amount=100, category="Salary", date="2024-01-01"
        )
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Transaction added successfully"

        fetched = client.get(f"/users/transactions/{body['transactionId']}")
        assert fetched.status_code == 200
        transaction = fetched.json()["transaction"]
        assert transaction["type"] == "income"
        assert transaction["amount"] == 100
        assert transaction["category"] == "Salary"
        assert transaction["date"] == "2024-01-01"

    def test_add_missing_fields(self, client, user):
        response = client.post("/users/transactions", json={"userId": user["id"], "type": "expense"})
        assert response.status_code == 400
        assert response.json()["message"].startswith("Missing required fields")

    def test_add_bad_type(self, client, user):
        response = add_transaction(client, user["id"], type="transfer")
        assert response.status_code == 400

    def test_get_missing(self, client):
        response = client.get("/users/transactions/9999")
        assert response.status_code == 404
        assert response.json() == {"message": "Transaction not found"}

    def test_get_non_numeric_id(self, client):
        response = client.get("/users/transactions/abc")
        assert response.status_code == 400

    def test_balance_scenario(self, client, user):
        add_transaction(client, user["id"], type="income", amount=100, category="Salary", date="2024-01-01")
        add_transaction(client, user["id"], type="expense", amount=30, category="Food", date="2024-01-02")

        response = client.get("/users/transactions/all", params={"userId": user["id"]})
        body = response.json()

        assert response.status_code == 200
        assert body["summary"] == {
            "count": 2,
            "totalIncome": 100,
            "totalExpense": 30,
            "balance": 70,
        }
        assert [t["date"] for t in body["transactions"]] == ["2024-01-02", "2024-01-01"]

    def test_recent_is_limited_with_top_level_balance(self, client, user):
        for day in range(1, 8):
            add_transaction(client, user["id"], type="income", amount=10, date=f"2024-01-0{day}")

        response = client.get("/users/transactions", params={"userId": user["id"]})
        body = response.json()

        assert len(body["transactions"]) == 5
        assert body["balance"] == 50
        assert body["summary"]["balance"] == 50

    def test_listing_requires_user(self, client):
        response = client.get("/users/transactions/all")
        assert response.status_code == 400
        assert response.json()["message"] == "userId is required"

    def test_filter(self, client, user):
        add_transaction(client, user["id"], type="income", amount=100, category="Salary", date="2024-01-01")
        add_transaction(client, user["id"], type="expense", amount=30, category="Food", date="2024-01-02")
        add_transaction(client, user["id"], type="expense", amount=5, category="Food", date="2024-03-01")

        response = client.get(
            "/users/transactions/filter",
            params={
                "userId": user["id"],
                "type": "expense",
                "startDate": "2024-01-01",
                "endDate": "2024-01-31",
            },
        )
        body = response.json()

        assert response.status_code == 200
        assert body["count"] == 1
        assert body["transactions"][0]["amount"] == 30

    def test_filter_bad_date(self, client, user):
        response = client.get(
            "/users/transactions/filter",
            params={"userId": user["id"], "startDate": "01-01-2024", "endDate": "2024-01-31"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid date format. Use YYYY-MM-DD"

    def test_update(self, client, user):
        transaction_id = add_transaction(client, user["id"]).json()["transactionId"]

        response = client.put(
            f"/users/transactions/{transaction_id}",
            json={
                "type": "expense",
                "amount": 42.5,
                "category": "Dining",
                "date": "2024-01-05",
                "userId": user["id"],
            },
        )
        assert response.status_code == 200
        assert response.json() == {
            "message": "Transaction updated successfully",
            "transactionId": transaction_id,
        }

        transaction = client.get(f"/users/transactions/{transaction_id}").json()["transaction"]
        assert transaction["amount"] == 42.5
        assert transaction["category"] == "Dining"

    def test_update_by_non_owner(self, client, user):
        other = sign_up(client, name="Charles", email="charles@example.com")
        transaction_id = add_transaction(client, user["id"]).json()["transactionId"]

        response = client.put(
            f"/users/transactions/{transaction_id}",
            json={
                "type": "income",
                "amount": 1,
                "category": "Food",
                "date": "2024-01-01",
                "userId": other["id"],
            },
        )
        assert response.status_code == 404

        transaction = client.get(f"/users/transactions/{transaction_id}").json()["transaction"]
        assert transaction["type"] == "expense"

    def test_delete(self, client, user):
        transaction_id = add_transaction(client, user["id"]).json()["transactionId"]

        response = client.delete(
            f"/users/transactions/{transaction_id}", params={"userId": user["id"]}
        )
        assert response.status_code == 200
        assert response.json() == {
            "message": "Transaction deleted successfully",
            "deletedId": transaction_id,
        }
        again = client.delete(
            f"/users/transactions/{transaction_id}", params={"userId": user["id"]}
        )
        assert again.status_code == 404

    def test_delete_requires_user(self, client, user):
        transaction_id = add_transaction(client, user["id"]).json()["transactionId"]

        response = client.delete(f"/users/transactions/{transaction_id}")
        assert response.status_code == 400
        assert response.json()["message"] == "userId is required"
        assert client.get(f"/users/transactions/{transaction_id}").status_code == 200

    def test_delete_by_non_owner(self, client, user):
        other = sign_up(client, name="Charles", email="charles@example.com")
        transaction_id = add_transaction(client, user["id"]).json()["transactionId"]

        response = client.delete(
            f"/users/transactions/{transaction_id}", params={"userId": other["id"]}
        )
        assert response.status_code == 404
        assert client.get(f"/users/transactions/{transaction_id}").status_code == 200

    def test_request_id_is_used_as_correlation_id(self, client, user, audit_logger):
        request_id = uuid.uuid4()
        client.post(
            "/users/transactions",
            json={
                "type": "expense",
                "amount": 3,
                "category": "Coffee",
                "date": "2024-01-01",
                "userId": user["id"],
            },
            headers={"X-Request-ID": str(request_id)},
        )

        correlated = [e for e in audit_logger.events if e.correlation_id == request_id]
        assert {e.event_type.value for e in correlated} >= {
            "category_created",
            "transaction_added",
        }


class TestServerLogging:
    """Tests that the HTTP layer logs structured JSON events."""

    def _events(self, caplog):
        return [json.loads(r.getMessage()) for r in caplog.records if r.name == "app.main"]

    def test_startup_logged(self, caplog, database_settings, audit_logger):
        app = create_app(database_settings=database_settings, audit_logger=audit_logger)

        with caplog.at_level(logging.INFO, logger="app.main"):
            with TestClient(app):
                pass

        assert "database_schema_ready" in [e["event"] for e in self._events(caplog)]

    def test_storage_failure_logged(self, caplog, client):
        def broken_ledger():
            raise StorageError("database unavailable")

        client.app.dependency_overrides[get_ledger] = broken_ledger
        with caplog.at_level(logging.INFO, logger="app.main"):
            response = client.get("/users/transactions/1")

        assert response.status_code == 500
        event = next(e for e in self._events(caplog) if e["event"] == "storage_failure")
        assert event["path"] == "/users/transactions/1"
        assert event["error"] == "database unavailable"
        assert event["level"] == "error"
