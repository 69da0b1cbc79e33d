"""
Certificate trigger.

Queues an ownership certificate for every settled investment. The
investor-side transaction is looked up by id; failing that, the newest
completed ``investment`` transaction of the same investor and property is
used, after waiting ``lookup_delay`` seconds outside any transaction. Failures
here are logged and never raised: a missing certificate can be requested
again later without touching the settlement.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from estate_ledger.core.config import settings
from estate_ledger.events.listeners.base import TransactionalListener
from estate_ledger.events.types import EventType, InvestmentCompleted
from estate_ledger.models.transaction import TransactionType
from estate_ledger.repositories.unit_of_work import UnitOfWork
from estate_ledger.services.certificates import queue_certificate

logger = logging.getLogger(__name__)


class _TransactionNotVisible(Exception):
    pass


class DocumentTrigger(TransactionalListener):
    name = "document_trigger"
    event_types = (EventType.INVESTMENT_COMPLETED,)

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lookup_delay: Optional[float] = None,
        certificate_root: Optional[str] = None,
        lock_timeout_seconds: Optional[float] = None,
    ):
        super().__init__(session_factory, lock_timeout_seconds)
        self.lookup_delay = (
            settings.CERTIFICATE_LOOKUP_DELAY_SECONDS if lookup_delay is None else lookup_delay
        )
        self.certificate_root = certificate_root or settings.CERTIFICATE_ROOT

    async def __call__(self, event: InvestmentCompleted) -> None:
        try:
            try:
                await self.apply(event)
            except _TransactionNotVisible:
                await asyncio.sleep(self.lookup_delay)
                try:
                    await self.apply(event)
                except _TransactionNotVisible:
                    logger.warning(
                        "No investment transaction found for %s; certificate not queued",
                        event.investment_code,
                        extra={"listener": self.name, "event_id": str(event.event_id)},
                    )
        except Exception:
            logger.exception(
                "Certificate request for %s failed",
                event.investment_code,
                extra={"listener": self.name, "event_id": str(event.event_id)},
            )

    async def handle(self, uow: UnitOfWork, event: InvestmentCompleted) -> None:
        txn = await uow.transactions.get(event.transaction_id)
        if txn is None:
            txn = await uow.transactions.latest_completed(
                event.investor_id, event.property_id, TransactionType.INVESTMENT
            )
        if txn is None:
            raise _TransactionNotVisible(event.investment_code)

        await queue_certificate(
            uow,
            self.certificate_root,
            event.investment_id,
            event.investment_code,
            txn,
        )
