"""
Custom exception classes and FastAPI exception handlers.

The gateway and service layers raise these domain errors without importing
any HTTP concepts. The handlers at the bottom of this module translate them
into HTTP responses with a consistent body:

    {"detail": "...", "error_type": "..."}

Exception hierarchy:
    BankAPIError (base)
    ├── ValidationError        — malformed identifier or missing/invalid field
    │   └── DuplicateEmailError — registering an email that already exists
    ├── AuthError              — missing/malformed/expired/invalid bearer token
    ├── NotFoundError          — no record at the given key
    ├── ConflictError          — balance compare-and-swap retries exhausted
    └── PersistenceError       — store or bank service failed the request

None of these are retried by the core. They propagate to the immediate
caller, which decides what to do.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BankAPIError(Exception):
    """Base exception for all Ledger API domain errors."""

    error_type = "bank_api_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(BankAPIError):
    """
    Raised when the caller supplied a malformed identifier or field.

    Attributes:
        field: Name of the offending argument, when known.
    """

    error_type = "validation_error"

    def __init__(self, detail: str, field: str | None = None):
        self.field = field
        super().__init__(detail)


class DuplicateEmailError(ValidationError):
    """Raised when attempting to register with an email that's already in use."""

    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered", field="email")


class AuthError(BankAPIError):
    """Raised when the bearer token is absent, malformed, expired or forged."""

    error_type = "auth_error"

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(detail)


class NotFoundError(BankAPIError):
    """
    Raised when no record exists at the requested key.

    Attributes:
        entity: The entity kind, e.g. "BankAccount".
        key: The key that was looked up, as a tuple of its parts.
    """

    error_type = "not_found"

    def __init__(self, entity: str, *key):
        self.entity = entity
        self.key = key
        rendered = ", ".join(str(part) for part in key)
        super().__init__(f"{entity} {rendered} not found")


class ConflictError(BankAPIError):
    """Raised when a balance update keeps losing the compare-and-swap race."""

    error_type = "conflict"


class PersistenceError(BankAPIError):
    """Raised when the store (or the bank service) rejects or fails a request."""

    error_type = "persistence_error"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the domain exception handlers with the FastAPI application.

    Called once from create_app() in main.py.
    """

    def _body(exc: BankAPIError) -> dict:
        return {"detail": exc.detail, "error_type": exc.error_type}

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        # Duplicate registrations are a conflict with existing state, not bad input
        status_code = 409 if isinstance(exc, DuplicateEmailError) else 422
        content = _body(exc)
        if exc.field:
            content["field"] = exc.field
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=_body(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content=_body(exc))

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content=_body(exc))

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(
        request: Request, exc: PersistenceError
    ) -> JSONResponse:
        return JSONResponse(status_code=503, content=_body(exc))
