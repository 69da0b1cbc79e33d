"""
Application configuration module.

Loads settings from environment variables (or .env file) using pydantic-settings.
Credentials and tuning knobs come from the environment; nothing is hardcoded.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Estate Ledger settlement service.

    Environment variables are loaded automatically from .env if present.
    In production, these should be injected via the container orchestrator.
    """

    PROJECT_NAME: str = "Estate Ledger Settlement API"
    API_V1_STR: str = "/api/v1"

    # ── SQLite mode (no external DB required) ──
    # A file database is used rather than ``:memory:`` because concurrent
    # settlements each need their own connection; SQLite serialises them
    # with ``BEGIN IMMEDIATE`` (see ``db/session.py``).
    USE_SQLITE: bool = False
    SQLITE_PATH: str = "estate_ledger.db"

    # ── PostgreSQL connection parameters ──
    POSTGRES_USER: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_SERVER: str = ""
    POSTGRES_DB: str = ""
    POSTGRES_PORT: int = 5432

    @model_validator(mode="after")
    def _require_pg_credentials_unless_sqlite(self) -> "Settings":
        """Fail fast if PostgreSQL credentials are missing in production mode."""
        if not self.USE_SQLITE:
            missing = [
                name
                for name in (
                    "POSTGRES_USER",
                    "POSTGRES_PASSWORD",
                    "POSTGRES_SERVER",
                    "POSTGRES_DB",
                )
                if not getattr(self, name)
            ]
            if missing:
                vars_list = ", ".join(missing)
                raise ValueError(
                    f"PostgreSQL mode requires these environment variables: "
                    f"{vars_list}.\n\n"
                    f"Set them in a .env file or export them before starting:\n"
                    f"       POSTGRES_USER=ledger_user\n"
                    f"       POSTGRES_PASSWORD=ledger_password\n"
                    f"       POSTGRES_SERVER=127.0.0.1\n"
                    f"       POSTGRES_DB=estate_ledger\n\n"
                    f"Or skip PostgreSQL entirely (local SQLite file):\n"
                    f"       USE_SQLITE=true uvicorn estate_ledger.main:app"
                )
        return self

    # ── Connection pool tuning ──
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30  # seconds to wait for a connection from the pool
    DB_POOL_RECYCLE: int = 1800

    # ── Settlement ──
    # Upper bound on waiting for a row lock (wallet / property / organization).
    # Exceeding it surfaces a retryable LockTimeout (HTTP 503).
    LOCK_TIMEOUT_SECONDS: float = 5.0

    # ── Outbox dispatcher ──
    OUTBOX_DISPATCHER_ENABLED: bool = True
    OUTBOX_POLL_INTERVAL_SECONDS: float = 1.0
    OUTBOX_BATCH_SIZE: int = 50
    OUTBOX_MAX_ATTEMPTS: int = 8
    OUTBOX_LEASE_SECONDS: float = 60.0
    OUTBOX_BACKOFF_BASE_SECONDS: float = 2.0
    OUTBOX_BACKOFF_MAX_SECONDS: float = 300.0

    # ── Certificates ──
    CERTIFICATE_LOOKUP_DELAY_SECONDS: float = 1.5
    CERTIFICATE_ROOT: str = "certificates"

    # ── Circuit breaker ──
    CB_FAILURE_THRESHOLD: int = 5
    CB_RECOVERY_TIMEOUT: float = 30.0

    # ── Logging ──
    LOG_LEVEL: str = "INFO"
    LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024
    LOG_FILE_BACKUP_COUNT: int = 5

    # ── CORS ──
    CORS_ORIGINS: str = "*"

    # ── Misc ──
    DEBUG: bool = False

    @property
    def DATABASE_URL(self) -> str:
        """Construct the async database DSN (aiosqlite file or asyncpg)."""
        if self.USE_SQLITE:
            return f"sqlite+aiosqlite:///{self.SQLITE_PATH}"
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
