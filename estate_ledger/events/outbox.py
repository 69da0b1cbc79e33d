"""
Outbox dispatcher.

Producers stage events in ``outbox_events`` inside their own transaction
(:meth:`OutboxRepository.stage`). The dispatcher delivers them afterwards:

1. **Claim**: a short transaction leases a batch of due rows (``in_flight``
   until ``now + lease``) and commits. No lock is held while listeners run,
   so listeners are free to open their own write transactions.
2. **Publish**: each event is decoded and published on the :class:`EventBus`.
3. **Record**: a second short transaction marks the row ``dispatched``, or
   reschedules it with exponential backoff when a listener failed, or
   dead-letters it as ``failed`` after ``max_attempts``.

If the process dies between 1 and 3 the lease expires and the row is claimed
again, so delivery is at-least-once; listeners de-duplicate through
:class:`ListenerReceipt`.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from estate_ledger.core.config import settings
from estate_ledger.core.resilience import backoff_delay
from estate_ledger.events.bus import EventBus
from estate_ledger.events.types import decode_event
from estate_ledger.models.common import utcnow
from estate_ledger.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

ClaimedRow = Tuple[int, str, Dict[str, Any], int]


class OutboxDispatcher:
    """
    Polls the outbox and delivers events to the bus.

    Parameters
    ----------
    session_factory : async_sessionmaker
        Source of sessions for claim / record transactions.
    bus : EventBus
        Where events are published.
    batch_size : int
        Rows claimed per cycle.
    poll_interval : float
        Seconds between polls when nobody calls :meth:`notify`.
    max_attempts : int
        Deliveries before an event is dead-lettered.
    lease_seconds : float
        How long a claimed row stays invisible to other claimers.
    backoff_base, backoff_max : float
        Retry schedule, see :func:`backoff_delay`.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        bus: EventBus,
        batch_size: int = settings.OUTBOX_BATCH_SIZE,
        poll_interval: float = settings.OUTBOX_POLL_INTERVAL_SECONDS,
        max_attempts: int = settings.OUTBOX_MAX_ATTEMPTS,
        lease_seconds: float = settings.OUTBOX_LEASE_SECONDS,
        backoff_base: float = settings.OUTBOX_BACKOFF_BASE_SECONDS,
        backoff_max: float = settings.OUTBOX_BACKOFF_MAX_SECONDS,
    ):
        self._session_factory = session_factory
        self.bus = bus
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.lease_seconds = lease_seconds
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max

        self._wakeup = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._stopping = False

        self._dispatched = 0
        self._retried = 0
        self._dead_lettered = 0
        self._last_cycle_at: Optional[datetime] = None

    # ── Control ──

    def notify(self) -> None:
        """Wake the loop now instead of at the next poll."""
        self._wakeup.set()

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._stopping = False
            self._task = asyncio.create_task(self.run_forever(), name="outbox-dispatcher")
            logger.info(
                "Outbox dispatcher started (batch=%d, poll=%.1fs)",
                self.batch_size,
                self.poll_interval,
            )
        return self._task

    async def stop(self) -> None:
        self._stopping = True
        self._wakeup.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Outbox dispatcher stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Loop ──

    async def run_forever(self) -> None:
        while not self._stopping:
            try:
                processed = await self.run_once()
            except Exception:
                logger.exception("Outbox dispatch cycle failed")
                processed = 0
            if processed >= self.batch_size:
                continue
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()

    async def run_once(self) -> int:
        """Claim, publish and record one batch. Returns the number of rows handled."""
        batch = await self._claim()
        for row in batch:
            await self._deliver(*row)
        self._last_cycle_at = utcnow()
        return len(batch)

    async def _claim(self) -> List[ClaimedRow]:
        async with self._session_factory() as session:
            async with UnitOfWork(session) as uow:
                rows = await uow.outbox.claim_due(self.batch_size, self.lease_seconds)
                return [
                    (row.id, row.event_type, dict(row.payload), row.attempts)
                    for row in rows
                ]

    async def _deliver(
        self, row_id: int, event_type: str, payload: Dict[str, Any], attempts: int
    ) -> None:
        try:
            event = decode_event(event_type, payload)
        except (ValueError, ValidationError) as exc:
            logger.error("Dead-lettering undecodable outbox row %d: %s", row_id, exc)
            await self._record_failure(row_id, f"undecodable: {exc}", retry_in=None)
            self._dead_lettered += 1
            return

        failed = await self.bus.publish(event)
        if not failed:
            async with self._session_factory() as session:
                async with UnitOfWork(session) as uow:
                    await uow.outbox.mark_dispatched(row_id)
            self._dispatched += 1
            return

        error = "listeners failed: " + ", ".join(failed)
        if attempts >= self.max_attempts:
            logger.error(
                "Dead-lettering %s %s after %d attempts (%s)",
                event_type,
                event.event_id,
                attempts,
                error,
                extra={"event_type": event_type, "event_id": str(event.event_id)},
            )
            await self._record_failure(row_id, error, retry_in=None)
            self._dead_lettered += 1
            return

        delay = backoff_delay(attempts, self.backoff_base, self.backoff_max)
        logger.warning(
            "Redelivering %s %s in %.1fs (attempt %d/%d, %s)",
            event_type,
            event.event_id,
            delay,
            attempts,
            self.max_attempts,
            error,
            extra={"event_type": event_type, "event_id": str(event.event_id)},
        )
        await self._record_failure(row_id, error, retry_in=delay)
        self._retried += 1

    async def _record_failure(self, row_id: int, error: str, retry_in: Optional[float]) -> None:
        async with self._session_factory() as session:
            async with UnitOfWork(session) as uow:
                await uow.outbox.mark_failed(row_id, error, retry_in)

    def get_status(self) -> dict:
        """Snapshot for the health endpoint."""
        return {
            "running": self.running,
            "dispatched": self._dispatched,
            "retried": self._retried,
            "dead_lettered": self._dead_lettered,
            "last_cycle_at": self._last_cycle_at.isoformat() if self._last_cycle_at else None,
        }
