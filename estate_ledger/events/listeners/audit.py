"""Writes one structured log line per event (subscribed to every type)."""

import logging

from estate_ledger.events.bus import WILDCARD, EventBus
from estate_ledger.events.types import DomainEvent

logger = logging.getLogger("estate_ledger.audit")


class AuditLogger:
    name = "audit_logger"

    def register(self, bus: EventBus) -> None:
        bus.subscribe(WILDCARD, self, name=self.name)

    async def __call__(self, event: DomainEvent) -> None:
        logger.info(
            "%s %s",
            event.event_type.value,
            event.model_dump_json(exclude={"event_id", "timestamp"}),
            extra={
                "event_type": event.event_type.value,
                "event_id": str(event.event_id),
            },
        )
