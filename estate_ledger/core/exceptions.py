"""
Domain exceptions and the FastAPI handlers that render them.

Every error response shares one JSON shape::

    {
        "error": true,
        "message": "<human-readable description>"
    }

Services raise the exceptions defined here instead of FastAPI's
``HTTPException`` so settlement, distribution and listener code can run
outside a request (dispatcher, seed script, tests) without importing the web
framework.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from estate_ledger.core.resilience import CircuitBreakerError

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────────────────
# Domain exceptions  (raised by service layer, caught by handlers below)
# ────────────────────────────────────────────────────────────────────────────


class AppException(Exception):
    """Base exception for all application-level errors."""

    def __init__(
        self,
        status_code: int,
        message: str,
        details: Any = None,
        retry_after: Optional[float] = None,
    ):
        self.status_code = status_code
        self.message = message
        self.details = details
        self.retry_after = retry_after
        super().__init__(message)


class NotFoundException(AppException):
    """Referenced investor, property, organization or wallet does not exist (404)."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            status_code=404,
            message=f"{resource} '{identifier}' not found",
        )


class ConflictException(AppException):
    """Unique-constraint violation such as a duplicate email (409)."""

    def __init__(self, message: str):
        super().__init__(status_code=409, message=message)


class BusinessRuleViolation(AppException):
    """Business rule was violated (422)."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(status_code=422, message=message, details=details)


class InvalidArgument(BusinessRuleViolation):
    """A quantity that must be strictly positive was zero or negative."""


class InsufficientInventory(BusinessRuleViolation):
    """More tokens were requested than the property has available."""

    def __init__(self, requested: Any, available: Any):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Requested {requested} tokens but only {available} are available",
            details={"requested": str(requested), "available": str(available)},
        )


class InsufficientFunds(BusinessRuleViolation):
    """Wallet balance does not cover the settlement amount."""

    def __init__(self, required: Any, balance: Any):
        self.required = required
        self.balance = balance
        super().__init__(
            f"Wallet balance {balance} is below the required {required}",
            details={"required": str(required), "balance": str(balance)},
        )


class NoActiveInvestments(BusinessRuleViolation):
    """A distribution was requested for a property nobody holds."""

    def __init__(self, property_code: str):
        self.property_code = property_code
        super().__init__(f"Property '{property_code}' has no confirmed investments")


class LockTimeout(AppException):
    """
    A row lock could not be acquired within ``LOCK_TIMEOUT_SECONDS`` (503).

    The whole transaction has been rolled back, so the caller may simply
    retry after ``retry_after`` seconds.
    """

    def __init__(self, resource: str, retry_after: float = 1.0):
        self.resource = resource
        super().__init__(
            status_code=503,
            message=f"Timed out waiting for a lock on {resource}; retry shortly",
            retry_after=retry_after,
        )


# ────────────────────────────────────────────────────────────────────────────
# FastAPI exception handler registration
# ────────────────────────────────────────────────────────────────────────────


def _error_body(message: str, details: Any = None) -> dict:
    body: dict = {"error": True, "message": message}
    if details is not None:
        body["details"] = details
    return body


def _retry_headers(retry_after: Optional[float]) -> Optional[dict]:
    if retry_after is None:
        return None
    return {"Retry-After": str(max(1, int(round(retry_after))))}


def add_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI application instance."""

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request, exc: AppException
    ) -> JSONResponse:
        """Handle domain-specific exceptions raised by the service layer."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.details),
            headers=_retry_headers(exc.retry_after),
        )

    @app.exception_handler(CircuitBreakerError)
    async def circuit_breaker_handler(
        request: Request, exc: CircuitBreakerError
    ) -> JSONResponse:
        """The database breaker is open: fail fast with a retry hint."""
        logger.warning(
            "Rejected %s %s: circuit '%s' open",
            request.method,
            request.url.path,
            exc.name,
        )
        return JSONResponse(
            status_code=503,
            content=_error_body("Service temporarily unavailable"),
            headers=_retry_headers(exc.retry_after),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle standard HTTP exceptions (e.g. 404 from path-not-found)."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Return a 422 listing each field that failed validation."""
        errors = []
        for err in exc.errors():
            loc = " -> ".join(str(part) for part in err["loc"])
            errors.append({"field": loc, "message": err["msg"]})
        return JSONResponse(
            status_code=422,
            content=_error_body("Validation failed", errors),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected exceptions; logs the stack and returns 500."""
        logger.exception(
            "Unhandled exception on %s %s", request.method, request.url.path
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal Server Error. Please contact support."),
        )
