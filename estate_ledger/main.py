"""
Estate Ledger settlement API: application entry-point.

Builds the FastAPI app, registers middleware, exception handlers and routers,
and owns the process-wide pieces with a lifecycle: table creation on startup,
the event bus with its listeners, and the outbox dispatcher task.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text

from estate_ledger.api.v1.api import api_router
from estate_ledger.core.config import settings
from estate_ledger.core.exceptions import add_exception_handlers
from estate_ledger.core.logging import setup_logging
from estate_ledger.core.resilience import db_circuit_breaker, retry_with_backoff
from estate_ledger.db.base import metadata
from estate_ledger.db.session import AsyncSessionLocal, engine
from estate_ledger.events.outbox import OutboxDispatcher
from estate_ledger.events.registry import build_event_bus
from estate_ledger.middleware import RequestIDMiddleware, RequestTimingMiddleware

setup_logging()
logger = logging.getLogger(__name__)


@retry_with_backoff(
    max_retries=4,
    base_delay=2.0,
    max_delay=30.0,
    retryable_exceptions=(Exception,),
)
async def _create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


# ────────────────────────────────────────────────────────────────────────────
# Application lifespan
# ────────────────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:
      - Creates tables and reference-code sequences, retrying with backoff.
        If the database stays unreachable the app starts in degraded mode
        and ``/health`` reports ``database: false``.
      - Builds the event bus and starts the outbox dispatcher.

    Shutdown:
      - Stops the dispatcher (the in-flight batch finishes first), then
        disposes of the connection pool.
    """
    try:
        await _create_tables()
        logger.info("Database tables ready")
    except Exception as exc:
        logger.error(
            "Could not prepare the database; starting in DEGRADED mode. "
            "Database-backed endpoints will fail until it is reachable. Last error: %s",
            exc,
        )

    bus = build_event_bus(AsyncSessionLocal)
    dispatcher = OutboxDispatcher(AsyncSessionLocal, bus)
    app.state.event_bus = bus
    app.state.dispatcher = dispatcher
    if settings.OUTBOX_DISPATCHER_ENABLED:
        dispatcher.start()
    else:
        logger.warning("Outbox dispatcher disabled; staged events will not be delivered")

    yield

    logger.info("Shutting down: stopping outbox dispatcher and disposing connection pool")
    await dispatcher.stop()
    await engine.dispose()


# ────────────────────────────────────────────────────────────────────────────
# FastAPI application instance
# ────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description=(
        "Settlement core for tokenized real-estate investment: wallets, "
        "token purchases, return distributions and their follow-up events."
    ),
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# ── Middleware (the last one added runs outermost) ──
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)


# ── Health check ──


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness / readiness probe.

    Runs ``SELECT 1`` against the database and reports the circuit breaker
    and outbox dispatcher state.
    """
    db_healthy = True
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        db_healthy = False

    dispatcher = getattr(app.state, "dispatcher", None)
    return {
        "status": "ok" if db_healthy else "degraded",
        "version": "1.0.0",
        "database": db_healthy,
        "circuit_breaker": db_circuit_breaker.get_status(),
        "outbox": dispatcher.get_status() if dispatcher is not None else None,
    }
