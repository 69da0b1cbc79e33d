"""Listener receipt repository (delivery de-duplication)."""

from uuid import UUID

from sqlalchemy import select

from estate_ledger.models.outbox import ListenerReceipt
from estate_ledger.repositories.base import BaseRepository


class ReceiptRepository(BaseRepository[ListenerReceipt]):
    model = ListenerReceipt

    async def exists(self, event_id: UUID, listener: str) -> bool:
        stmt = select(ListenerReceipt).where(
            ListenerReceipt.event_id == event_id,
            ListenerReceipt.listener == listener,
        )
        return await self._first(stmt) is not None

    async def record(self, event_id: UUID, listener: str) -> ListenerReceipt:
        return await self.add(ListenerReceipt(event_id=event_id, listener=listener))
