"""
Outbox repository.

``stage`` is called by producers inside their own transaction. The remaining
methods are used by the dispatcher to claim due rows and record delivery
outcomes.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select

from estate_ledger.events.types import DomainEvent
from estate_ledger.models.common import utcnow
from estate_ledger.models.outbox import OutboxEvent, OutboxStatus
from estate_ledger.repositories.base import BaseRepository


class OutboxRepository(BaseRepository[OutboxEvent]):
    model = OutboxEvent

    async def stage(self, event: DomainEvent) -> OutboxEvent:
        """Persist ``event`` as a pending outbox row in the current transaction."""
        row = OutboxEvent(
            event_id=event.event_id,
            event_type=event.event_type.value,
            payload=event.model_dump(mode="json"),
        )
        return await self.add(row)

    async def claim_due(
        self,
        limit: int,
        lease_seconds: float,
        now: Optional[datetime] = None,
    ) -> List[OutboxEvent]:
        """
        Lease up to ``limit`` deliverable rows.

        A row is deliverable when it is ``pending`` and due, or ``in_flight``
        with an expired lease. Claimed rows become ``in_flight`` until
        ``now + lease_seconds`` and their attempt counter is incremented.
        On PostgreSQL ``SKIP LOCKED`` lets several dispatchers claim disjoint
        batches.
        """
        now = now or utcnow()
        stmt = (
            select(OutboxEvent)
            .where(
                OutboxEvent.status.in_([OutboxStatus.PENDING, OutboxStatus.IN_FLIGHT]),
                OutboxEvent.available_at <= now,
            )
            .order_by(OutboxEvent.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        rows = await self._all(stmt)
        lease_until = now + timedelta(seconds=lease_seconds)
        for row in rows:
            row.status = OutboxStatus.IN_FLIGHT
            row.available_at = lease_until
            row.attempts += 1
        await self.flush()
        return rows

    async def mark_dispatched(self, row_id: int) -> None:
        row = await self.get(row_id, for_update=True)
        if row is None:
            return
        row.status = OutboxStatus.DISPATCHED
        row.dispatched_at = utcnow()
        row.last_error = None
        await self.flush()

    async def mark_failed(
        self,
        row_id: int,
        error: str,
        retry_in: Optional[float],
    ) -> Optional[OutboxEvent]:
        """
        Record a failed delivery.

        With ``retry_in`` the row goes back to ``pending`` and becomes due after
        that many seconds; with ``None`` it is dead-lettered as ``failed``.
        """
        row = await self.get(row_id, for_update=True)
        if row is None:
            return None
        row.last_error = error[:2000]
        if retry_in is None:
            row.status = OutboxStatus.FAILED
        else:
            row.status = OutboxStatus.PENDING
            row.available_at = utcnow() + timedelta(seconds=retry_in)
        await self.flush()
        return row
