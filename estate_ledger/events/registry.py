"""Wires the standard listeners onto a bus."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from estate_ledger.core.config import Settings, settings as default_settings
from estate_ledger.events.bus import EventBus
from estate_ledger.events.listeners.audit import AuditLogger
from estate_ledger.events.listeners.documents import DocumentTrigger
from estate_ledger.events.listeners.payment_methods import PaymentMethodLifecycle
from estate_ledger.events.listeners.portfolio import PortfolioUpdater
from estate_ledger.events.listeners.treasury import TreasuryMirror


def build_event_bus(
    session_factory: async_sessionmaker[AsyncSession],
    config: Optional[Settings] = None,
) -> EventBus:
    config = config or default_settings
    bus = EventBus()
    PortfolioUpdater(session_factory, config.LOCK_TIMEOUT_SECONDS).register(bus)
    TreasuryMirror(session_factory, config.LOCK_TIMEOUT_SECONDS).register(bus)
    DocumentTrigger(
        session_factory,
        lookup_delay=config.CERTIFICATE_LOOKUP_DELAY_SECONDS,
        certificate_root=config.CERTIFICATE_ROOT,
        lock_timeout_seconds=config.LOCK_TIMEOUT_SECONDS,
    ).register(bus)
    PaymentMethodLifecycle(session_factory, config.LOCK_TIMEOUT_SECONDS).register(bus)
    AuditLogger().register(bus)
    return bus
