"""
Treasury reconciliation.

Settlement credits the organization and writes the ``inflow`` entry itself.
This listener only checks that the entry exists and, if it does not (for
instance an event staged by an older producer), credits the organization
and writes it.
"""

import logging

from estate_ledger.events.listeners.base import TransactionalListener
from estate_ledger.events.types import EventType, InvestmentCompleted
from estate_ledger.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from estate_ledger.repositories.unit_of_work import UnitOfWork
from estate_ledger.services import reference_codes as codes

logger = logging.getLogger(__name__)


class TreasuryMirror(TransactionalListener):
    name = "treasury_mirror"
    event_types = (EventType.INVESTMENT_COMPLETED,)

    async def handle(self, uow: UnitOfWork, event: InvestmentCompleted) -> None:
        existing = await uow.transactions.find_by_reference(
            event.investment_id, TransactionType.INFLOW
        )
        if existing is not None:
            logger.debug("Inflow %s already recorded", existing.code)
            return

        org = await uow.organizations.get(event.organization_id, for_update=True)
        if org is None:
            logger.error(
                "Organization %s missing; cannot reconcile %s",
                event.organization_code,
                event.investment_code,
            )
            return
        org.liquidity = org.liquidity + event.amount
        inflow = await uow.transactions.add(
            Transaction(
                code=await uow.next_code(codes.TRANSACTION),
                type=TransactionType.INFLOW,
                amount=event.amount,
                status=TransactionStatus.COMPLETED,
                reference_id=event.investment_id,
                investor_id=event.investor_id,
                organization_id=org.id,
                property_id=event.property_id,
                to_entity=org.name,
                description=f"Liquidity inflow from investment {event.investment_code}",
            )
        )
        logger.warning(
            "Reconciled missing inflow for %s as %s",
            event.investment_code,
            inflow.code,
            extra={"listener": self.name, "event_id": str(event.event_id)},
        )
