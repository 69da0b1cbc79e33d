"""Keeps each investor's Portfolio aggregate in step with the ledger."""

import logging

from estate_ledger.events.listeners.base import TransactionalListener
from estate_ledger.events.types import (
    DomainEvent,
    EventType,
    InvestmentCompleted,
    RewardDistributed,
)
from estate_ledger.models.common import utcnow
from estate_ledger.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class PortfolioUpdater(TransactionalListener):
    """
    ``investment.completed``: ``total_invested += amount`` and one more active
    investment. ``reward.distributed``: ``total_rewards`` and ``total_roi``
    both grow by the reward amount.
    """

    name = "portfolio_updater"
    event_types = (EventType.INVESTMENT_COMPLETED, EventType.REWARD_DISTRIBUTED)

    async def handle(self, uow: UnitOfWork, event: DomainEvent) -> None:
        portfolio = await uow.portfolios.get_by_investor(event.investor_id, for_update=True)
        if portfolio is None:
            logger.warning(
                "No portfolio for investor %s; skipping %s",
                event.investor_code,
                event.event_type.value,
            )
            return

        if isinstance(event, InvestmentCompleted):
            portfolio.total_invested = portfolio.total_invested + event.amount
            portfolio.active_investments += 1
        elif isinstance(event, RewardDistributed):
            portfolio.total_rewards = portfolio.total_rewards + event.amount
            portfolio.total_roi = portfolio.total_roi + event.amount
        portfolio.last_updated = utcnow()
        await uow.portfolios.flush()

        logger.info(
            "Portfolio of %s updated for %s",
            event.investor_code,
            event.event_type.value,
            extra={"listener": self.name, "event_id": str(event.event_id)},
        )
