"""
Base class for listeners that write to the database.

Each delivery runs in its own session and transaction. The listener's
``ListenerReceipt`` for the event is written in that same transaction, so an
event redelivered by the outbox is recognised and skipped instead of being
applied twice.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from estate_ledger.core.config import settings
from estate_ledger.events.bus import EventBus
from estate_ledger.events.types import DomainEvent, EventType
from estate_ledger.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class TransactionalListener:
    """Subclasses set ``name`` and ``event_types`` and implement :meth:`handle`."""

    name: str = ""
    event_types: Tuple[EventType, ...] = ()

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lock_timeout_seconds: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self._lock_timeout = (
            settings.LOCK_TIMEOUT_SECONDS
            if lock_timeout_seconds is None
            else lock_timeout_seconds
        )

    def register(self, bus: EventBus) -> None:
        for event_type in self.event_types:
            bus.subscribe(event_type, self, name=self.name)

    async def __call__(self, event: DomainEvent) -> None:
        await self.apply(event)

    async def apply(self, event: DomainEvent) -> bool:
        """
        Apply ``event`` once. Returns ``False`` when it had already been applied.
        """
        async with self._session_factory() as session:
            async with UnitOfWork(session, self._lock_timeout) as uow:
                if await uow.receipts.exists(event.event_id, self.name):
                    logger.debug(
                        "%s already applied %s",
                        self.name,
                        event.event_id,
                        extra={"listener": self.name, "event_id": str(event.event_id)},
                    )
                    return False
                await self.handle(uow, event)
                await uow.receipts.record(event.event_id, self.name)
        return True

    async def handle(self, uow: UnitOfWork, event: DomainEvent) -> None:
        raise NotImplementedError
