"""
Payment-method lifecycle.

``user.created`` gives the investor a ``pending`` card placeholder;
``kyc.verified`` promotes pending placeholders to ``verified`` so the client
can ask for card details. Both stage a follow-up event in the outbox.
"""

import logging

from estate_ledger.events.listeners.base import TransactionalListener
from estate_ledger.events.types import (
    DomainEvent,
    EventType,
    KycVerified,
    PaymentMethodCreated,
    PaymentMethodVerified,
    UserCreated,
)
from estate_ledger.models.common import utcnow
from estate_ledger.models.payment_method import (
    PLACEHOLDER_PROVIDER,
    READY_PROVIDER,
    PaymentMethod,
    PaymentMethodStatus,
    PaymentMethodType,
)
from estate_ledger.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class PaymentMethodLifecycle(TransactionalListener):
    name = "payment_method_lifecycle"
    event_types = (EventType.USER_CREATED, EventType.KYC_VERIFIED)

    async def handle(self, uow: UnitOfWork, event: DomainEvent) -> None:
        if isinstance(event, UserCreated):
            await self._create_placeholder(uow, event)
        elif isinstance(event, KycVerified):
            await self._promote_placeholders(uow, event)

    async def _create_placeholder(self, uow: UnitOfWork, event: UserCreated) -> None:
        if await uow.payment_methods.list_for_investor(event.investor_id):
            return
        method = await uow.payment_methods.add(
            PaymentMethod(
                investor_id=event.investor_id,
                type=PaymentMethodType.CARD,
                provider=PLACEHOLDER_PROVIDER,
                status=PaymentMethodStatus.PENDING,
                is_default=True,
            )
        )
        await uow.outbox.stage(
            PaymentMethodCreated(
                payment_method_id=method.id,
                investor_id=event.investor_id,
                investor_code=event.investor_code,
            )
        )
        logger.info("Created placeholder payment method for %s", event.investor_code)

    async def _promote_placeholders(self, uow: UnitOfWork, event: KycVerified) -> None:
        pending = await uow.payment_methods.list_pending(event.investor_id)
        for method in pending:
            method.status = PaymentMethodStatus.VERIFIED
            method.provider = READY_PROVIDER
            method.updated_at = utcnow()
            await uow.outbox.stage(
                PaymentMethodVerified(
                    payment_method_id=method.id,
                    investor_id=event.investor_id,
                    investor_code=event.investor_code,
                )
            )
        if pending:
            logger.info(
                "Verified %d payment method(s) for %s", len(pending), event.investor_code
            )
