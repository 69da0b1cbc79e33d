"""
In-process event bus.

Listeners subscribe to an event type (or ``"*"`` for every type). Publishing
runs all matching handlers concurrently; an exception in one handler is
logged with its stack and does not affect the others or the publisher.
:meth:`EventBus.publish` returns the names of the handlers that failed so the
outbox dispatcher can schedule a redelivery.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Union

from estate_ledger.events.types import DomainEvent, EventType

logger = logging.getLogger(__name__)

WILDCARD = "*"

Handler = Callable[[DomainEvent], Awaitable[None]]


@dataclass(frozen=True)
class Subscription:
    name: str
    event_type: str
    handler: Handler


class EventBus:
    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[Subscription]] = {}

    def subscribe(
        self,
        event_type: Union[EventType, str],
        handler: Handler,
        name: str = "",
    ) -> Subscription:
        key = event_type.value if isinstance(event_type, EventType) else event_type
        sub = Subscription(
            name=name or getattr(handler, "__qualname__", repr(handler)),
            event_type=key,
            handler=handler,
        )
        self._subscriptions.setdefault(key, []).append(sub)
        logger.debug("Subscribed %s to %s", sub.name, key)
        return sub

    def subscriptions_for(self, event_type: str) -> List[Subscription]:
        return self._subscriptions.get(event_type, []) + self._subscriptions.get(
            WILDCARD, []
        )

    async def publish(self, event: DomainEvent) -> List[str]:
        """
        Deliver ``event`` to every matching handler.

        Returns the names of handlers that raised (empty when all succeeded).
        """
        subs = self.subscriptions_for(event.event_type.value)
        if not subs:
            return []

        results = await asyncio.gather(
            *(self._invoke(sub, event) for sub in subs),
        )
        return [sub.name for sub, ok in zip(subs, results) if not ok]

    async def _invoke(self, sub: Subscription, event: DomainEvent) -> bool:
        try:
            await sub.handler(event)
        except Exception:
            logger.exception(
                "Listener %s failed on %s",
                sub.name,
                event.event_type.value,
                extra={
                    "listener": sub.name,
                    "event_type": event.event_type.value,
                    "event_id": str(event.event_id),
                },
            )
            return False
        return True
