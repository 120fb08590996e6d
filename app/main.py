"""
HTTP API for Fintrack

This is the surface the browser frontend talks to. Every route is a thin
adapter: pull the fields out of the request, call the ledger or the
account manager, shape the JSON.

DESIGN PRINCIPLES:
1. No business rules here (they live in fintrack.orchestrator)
2. Errors are translated to HTTP exactly once, in the exception handlers
3. Every request carries a correlation id for the audit trail
4. Passwords and hashes never appear in a response

Run with:
    uvicorn app.main:app --port 3400
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
import structlog

from fintrack.audit import AuditLogger, create_correlation_id
from fintrack.config import (
    AppSettings,
    CorsSettings,
    DatabaseSettings,
    SecuritySettings,
    get_settings,
    validate_all_settings,
)
from fintrack.models.validation import ValidationIssue
from fintrack.orchestrator import (
    AccountManager,
    AuthError,
    TransactionLedger,
    create_app_components,
)
from fintrack.services.storage import ConflictError, NotFoundError, StorageError
from fintrack.validation import ValidationError


logger = structlog.get_logger(__name__)


# =============================================================================
# REQUEST BODIES
# =============================================================================
# Fields are loose on purpose: the orchestrator's validators produce the
# user-facing messages, so a missing field must reach them as None.

class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignUpBody(_Body):
    name: Any = None
    email: Any = None
    password: Any = None


class SignInBody(_Body):
    email: Any = None
    password: Any = None


class TransactionBody(_Body):
    type: Any = None
    amount: Any = None
    description: Any = None
    category: Any = None
    date: Any = None
    user_id: Any = None


class ProfileBody(_Body):
    name: Any = None
    email: Any = None


class ChangePasswordBody(_Body):
    password: Any = None
    current_password: Optional[str] = None


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_ledger(request: Request) -> TransactionLedger:
    return request.app.state.ledger


def get_accounts(request: Request) -> AccountManager:
    return request.app.state.accounts


def get_correlation_id(
    x_request_id: Optional[str] = Header(default=None),
) -> UUID:
    """Reuse the caller's X-Request-ID when it is a UUID, else mint one."""
    if x_request_id:
        try:
            return UUID(x_request_id)
        except ValueError:
            pass
    return create_correlation_id()


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


# =============================================================================
# ROUTES
# =============================================================================

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
async def list_users(
    request: Request,
    accounts: AccountManager = Depends(get_accounts),
    correlation_id: UUID = Depends(get_correlation_id),
):
    users = await accounts.list_users(
        dict(request.query_params), correlation_id=correlation_id
    )
    return [_dump(user) for user in users]


@router.post("/signup", status_code=201)
async def sign_up(
    body: SignUpBody,
    accounts: AccountManager = Depends(get_accounts),
    correlation_id: UUID = Depends(get_correlation_id),
):
    user = await accounts.sign_up(
        body.name, body.email, body.password, correlation_id=correlation_id
    )
    return {"message": "User created successfully.", "user": _dump(user)}


@router.post("/signin")
async def sign_in(
    body: SignInBody,
    accounts: AccountManager = Depends(get_accounts),
    correlation_id: UUID = Depends(get_correlation_id),
):
    user = await accounts.sign_in(
        body.email, body.password, correlation_id=correlation_id
    )
    return {"user": _dump(user)}


@router.get("/transactions")
async def recent_transactions(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    order_by: Optional[str] = Query(default=None, alias="orderBy"),
    order: Optional[str] = Query(default=None),
    ledger: TransactionLedger = Depends(get_ledger),
    correlation_id: UUID = Depends(get_correlation_id),
):
    result = await ledger.list_recent_transactions(
        user_id, order_by=order_by, order=order, correlation_id=correlation_id
    )
    payload = _dump(result)
    payload["balance"] = payload["summary"]["balance"]
    return payload


@router.get("/transactions/all")
async def all_transactions(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    order_by: Optional[str] = Query(default=None, alias="orderBy"),
    order: Optional[str] = Query(default=None),
    ledger: TransactionLedger = Depends(get_ledger),
    correlation_id: UUID = Depends(get_correlation_id),
):
    result = await ledger.list_transactions(
        user_id, order_by=order_by, order=order, correlation_id=correlation_id
    )
    return _dump(result)


@router.get("/transactions/filter")
async def filter_transactions(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    type: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    ledger: TransactionLedger = Depends(get_ledger),
    correlation_id: UUID = Depends(get_correlation_id),
):
    result = await ledger.filter_transactions(
        user_id,
        start_date=start_date,
        end_date=end_date,
        type=type,
        category=category,
        correlation_id=correlation_id,
    )
    return _dump(result)


@router.get("/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    ledger: TransactionLedger = Depends(get_ledger),
):
    transaction = await ledger.get_transaction(transaction_id)
    return {"transaction": _dump(transaction)}


@router.post("/transactions", status_code=201)
async def add_transaction(
    body: TransactionBody,
    ledger: TransactionLedger = Depends(get_ledger),
    correlation_id: UUID = Depends(get_correlation_id),
):
    transaction_id = await ledger.add_transaction(
        body.user_id,
        type=body.type,
        amount=body.amount,
        category=body.category,
        date=body.date,
        description=body.description,
        correlation_id=correlation_id,
    )
    return {"message": "Transaction added successfully", "transactionId": transaction_id}


@router.put("/transactions/{transaction_id}")
async def update_transaction(
    transaction_id: str,
    body: TransactionBody,
    ledger: TransactionLedger = Depends(get_ledger),
    correlation_id: UUID = Depends(get_correlation_id),
):
    updated_id = await ledger.update_transaction(
        transaction_id,
        body.user_id,
        type=body.type,
        amount=body.amount,
        category=body.category,
        date=body.date,
        description=body.description,
        correlation_id=correlation_id,
    )
    return {"message": "Transaction updated successfully", "transactionId": updated_id}


@router.delete("/transactions/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    ledger: TransactionLedger = Depends(get_ledger),
    correlation_id: UUID = Depends(get_correlation_id),
):
    deleted_id = await ledger.delete_transaction(
        transaction_id, user_id, correlation_id=correlation_id
    )
    return {"message": "Transaction deleted successfully", "deletedId": deleted_id}


@router.put("/{user_id}")
async def update_profile(
    user_id: str,
    body: ProfileBody,
    accounts: AccountManager = Depends(get_accounts),
    correlation_id: UUID = Depends(get_correlation_id),
):
    user = await accounts.update_profile(
        user_id, body.name, body.email, correlation_id=correlation_id
    )
    return {"message": "Profile updated successfully.", "user": _dump(user)}


@router.put("/{user_id}/change-password")
async def change_password(
    user_id: str,
    body: ChangePasswordBody,
    accounts: AccountManager = Depends(get_accounts),
    correlation_id: UUID = Depends(get_correlation_id),
):
    changed_id = await accounts.change_password(
        user_id,
        body.password,
        current_password=body.current_password,
        correlation_id=correlation_id,
    )
    return {"message": "Password changed successfully", "userId": changed_id}


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _error_body(
    message: str,
    issues: Optional[list[ValidationIssue]] = None,
    error: Optional[str] = None,
) -> dict:
    body: dict[str, Any] = {"message": message}
    if issues:
        body["issues"] = [issue.model_dump(exclude_none=True) for issue in issues]
    if error:
        body["error"] = error
    return body


def register_exception_handlers(app: FastAPI, audit_logger: AuditLogger) -> None:
    """Map domain errors to status codes. More specific classes win."""

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content=_error_body(exc.message, exc.issues))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        issues = [
            ValidationIssue(
                field=".".join(str(part) for part in err["loc"]),
                issue_type=err["type"],
                message=err["msg"],
            )
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content=_error_body("Invalid request", issues))

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return JSONResponse(status_code=401, content=_error_body(str(exc)))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body(str(exc)))

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(status_code=409, content=_error_body(str(exc)))

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error(
            "storage_failure",
            method=request.method,
            path=request.url.path,
            error=str(exc),
        )
        await audit_logger.log_error(
            error_type=type(exc).__name__,
            error_message=str(exc),
            details={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", error=str(exc)),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(
            "unhandled_error",
            method=request.method,
            path=request.url.path,
        )
        await audit_logger.log_error(
            error_type=type(exc).__name__,
            error_message=str(exc),
            details={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", error=str(exc)),
        )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    database_settings: Optional[DatabaseSettings] = None,
    security_settings: Optional[SecuritySettings] = None,
    app_settings: Optional[AppSettings] = None,
    cors_settings: Optional[CorsSettings] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    The schema is created when the app starts and the connection pool
    is closed when it stops.
    """
    settings = get_settings()
    app_settings = app_settings or settings.app
    cors_settings = cors_settings or settings.cors
    audit_logger = audit_logger or AuditLogger()

    # Output sink for structlog, which renders each event as one JSON line
    logging.basicConfig(
        level=app_settings.log_level,
        format="%(message)s",
    )

    ledger, accounts, sql_client = create_app_components(
        database_settings=database_settings,
        security_settings=security_settings,
        app_settings=app_settings,
        audit_logger=audit_logger,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        status = validate_all_settings()
        for group in ("database", "security", "cors", "app"):
            if not status[group]:
                logger.warning(
                    "invalid_settings_group",
                    group=group,
                    error=status[f"{group}_error"],
                )

        await asyncio.to_thread(sql_client.create_schema)
        logger.info("database_schema_ready")
        yield
        sql_client.dispose()

    app = FastAPI(
        title="Fintrack",
        debug=app_settings.debug_mode,
        lifespan=lifespan,
    )
    app.state.ledger = ledger
    app.state.accounts = accounts
    app.state.sql_client = sql_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_settings.origins_list,
        allow_credentials=cors_settings.allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, audit_logger)

    @app.get("/")
    async def root():
        return {"message": "Server is running"}

    @app.get("/health")
    async def health():
        database_ok = await asyncio.to_thread(sql_client.ping)
        return JSONResponse(
            status_code=200 if database_ok else 503,
            content={"status": "ok" if database_ok else "unavailable", "database": database_ok},
        )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().app.port)
