"""
Generic async repository (data-access layer).

Concrete repositories inherit from ``BaseRepository[T]`` and add the
entity-specific look-ups the services need.

Rules every repository follows:
- Repositories **never commit**. They add and flush inside whatever
  transaction the caller opened (see :class:`UnitOfWork`), because a
  settlement spans wallets, properties, organizations, the transaction log and
  the outbox and must commit or roll back as one.
- ``for_update=True`` reads take a row lock (``SELECT … FOR UPDATE``) and use
  ``populate_existing`` so an instance already in the identity map is
  refreshed with the committed values once the lock is granted. On SQLite the
  clause is not rendered; the ``BEGIN IMMEDIATE`` write lock covers it.
- **IntegrityError** is not caught here; the service that triggered it turns
  it into the right domain error (409 duplicate email, for example).
- Every call goes through the shared ``db_circuit_breaker``.
"""

import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select
from sqlmodel import SQLModel

from estate_ledger.core.resilience import db_circuit_breaker

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository for SQLModel entities.

    Parameters
    ----------
    model : Type[ModelType]
        The SQLModel class this repository manages.
    db : AsyncSession
        The session of the caller's unit of work.
    """

    model: Type[ModelType]

    def __init__(self, db: AsyncSession, model: Optional[Type[ModelType]] = None):
        if model is not None:
            self.model = model
        self.db = db

    # ── Internal helpers ──

    async def _execute_with_circuit_breaker(
        self, func: Any, *args: Any, **kwargs: Any
    ) -> Any:
        return await db_circuit_breaker.call(func, *args, **kwargs)

    @staticmethod
    def _lock(stmt: Select) -> Select:
        return stmt.with_for_update().execution_options(populate_existing=True)

    async def _first(self, stmt: Select, for_update: bool = False) -> Optional[ModelType]:
        if for_update:
            stmt = self._lock(stmt)

        async def _run() -> Optional[ModelType]:
            result = await self.db.execute(stmt)
            return result.scalars().first()

        return await self._execute_with_circuit_breaker(_run)

    async def _all(self, stmt: Select, for_update: bool = False) -> List[ModelType]:
        if for_update:
            stmt = self._lock(stmt)

        async def _run() -> List[ModelType]:
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._execute_with_circuit_breaker(_run)

    # ── Public API ──

    async def get(self, id: Any, for_update: bool = False) -> Optional[ModelType]:
        """Fetch by primary key; ``None`` when absent."""
        if not for_update:

            async def _get() -> Optional[ModelType]:
                return await self.db.get(self.model, id)

            return await self._execute_with_circuit_breaker(_get)
        pk = self.model.__table__.primary_key.columns
        stmt = select(self.model).where(list(pk)[0] == id)
        return await self._first(stmt, for_update=True)

    async def get_by_code(self, code: str, for_update: bool = False) -> Optional[ModelType]:
        """Fetch by the human-readable ``code`` column."""
        stmt = select(self.model).where(self.model.code == code)
        return await self._first(stmt, for_update=for_update)

    async def add(self, entity: ModelType) -> ModelType:
        """
        Stage ``entity`` in the current transaction and flush it.

        Flushing surfaces constraint violations at the call site instead of
        at commit time.
        """

        async def _add() -> ModelType:
            self.db.add(entity)
            await self.db.flush()
            return entity

        return await self._execute_with_circuit_breaker(_add)

    async def flush(self) -> None:
        await self._execute_with_circuit_breaker(self.db.flush)
