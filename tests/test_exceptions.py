"""
Tests for the domain exceptions and the JSON error envelope produced by the
registered handlers.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from estate_ledger.core.exceptions import (
    AppException,
    BusinessRuleViolation,
    ConflictException,
    InsufficientFunds,
    InsufficientInventory,
    InvalidArgument,
    LockTimeout,
    NoActiveInvestments,
    NotFoundException,
    add_exception_handlers,
)
from estate_ledger.core.resilience import CircuitBreakerError


class TestDomainExceptions:
    def test_app_exception_attributes(self):
        exc = AppException(status_code=400, message="bad request", details={"k": "v"})
        assert (exc.status_code, exc.message, exc.details) == (400, "bad request", {"k": "v"})
        assert exc.retry_after is None
        assert str(exc) == "bad request"

    def test_not_found(self):
        exc = NotFoundException("Property", "PROP-000009")
        assert exc.status_code == 404
        assert exc.message == "Property 'PROP-000009' not found"

    def test_conflict(self):
        assert ConflictException("duplicate").status_code == 409

    @pytest.mark.parametrize(
        "exc",
        [
            BusinessRuleViolation("nope"),
            InvalidArgument("tokens must be greater than zero"),
            InsufficientInventory(Decimal("50"), Decimal("10")),
            InsufficientFunds(Decimal("1500"), Decimal("1000")),
            NoActiveInvestments("PROP-000001"),
        ],
    )
    def test_business_rule_family_is_422(self, exc):
        assert isinstance(exc, BusinessRuleViolation)
        assert exc.status_code == 422

    def test_insufficient_inventory_details(self):
        exc = InsufficientInventory(Decimal("50.000000"), Decimal("10.000000"))
        assert exc.details == {"requested": "50.000000", "available": "10.000000"}

    def test_insufficient_funds_details(self):
        exc = InsufficientFunds(Decimal("1500.000000"), Decimal("1000.000000"))
        assert exc.details == {"required": "1500.000000", "balance": "1000.000000"}
        assert "1000.000000" in exc.message

    def test_lock_timeout_is_retryable_503(self):
        exc = LockTimeout("wallet", retry_after=2.0)
        assert exc.status_code == 503
        assert exc.retry_after == 2.0


class TestAddExceptionHandlers:
    def test_five_handlers_registered(self):
        mock_app = MagicMock()
        mock_app.exception_handler = MagicMock(return_value=lambda fn: fn)
        add_exception_handlers(mock_app)
        assert mock_app.exception_handler.call_count == 5


def _app_raising(exc: Exception) -> FastAPI:
    app = FastAPI(debug=False)
    add_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise exc

    return app


async def _call(app: FastAPI, method: str = "GET", path: str = "/boom", **kwargs):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, path, **kwargs)


class TestErrorEnvelope:
    @pytest.mark.asyncio
    async def test_business_rule_carries_details(self):
        resp = await _call(_app_raising(InsufficientFunds(Decimal("10"), Decimal("5"))))
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] is True
        assert body["details"] == {"required": "10", "balance": "5"}

    @pytest.mark.asyncio
    async def test_lock_timeout_sets_retry_after(self):
        resp = await _call(_app_raising(LockTimeout("wallet", retry_after=3.0)))
        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "3"

    @pytest.mark.asyncio
    async def test_open_circuit_returns_503(self):
        resp = await _call(_app_raising(CircuitBreakerError(name="database", retry_after=10.0)))
        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "10"
        assert resp.json()["message"] == "Service temporarily unavailable"

    @pytest.mark.asyncio
    async def test_unhandled_exception_is_generic_500(self):
        resp = await _call(_app_raising(RuntimeError("secret internals")))
        assert resp.status_code == 500
        assert "secret internals" not in resp.text
        assert "Internal Server Error" in resp.json()["message"]

    @pytest.mark.asyncio
    async def test_request_validation_lists_fields(self):
        app = FastAPI()
        add_exception_handlers(app)

        class Body(BaseModel):
            tokens: int

        @app.post("/validate")
        async def validate(body: Body):
            return {"ok": True}

        resp = await _call(app, "POST", "/validate", json={})
        assert resp.status_code == 422
        details = resp.json()["details"]
        assert details[0]["field"] == "body -> tokens"

    @pytest.mark.asyncio
    async def test_unknown_route_uses_envelope(self):
        app = FastAPI()
        add_exception_handlers(app)
        resp = await _call(app, "GET", "/nonexistent")
        assert resp.status_code == 404
        assert resp.json()["error"] is True
