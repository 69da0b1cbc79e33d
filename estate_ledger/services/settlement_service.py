"""
Investment settlement: exchange wallet balance for property tokens.

A settlement is one database transaction. Rows are locked in a fixed order,
property then wallet then organization, so two settlements can never wait
on each other in a cycle. Either every write below commits or none does:

1. property inventory decremented
2. wallet balance debited
3. ``Investment`` row (``confirmed`` / payment ``completed``)
4. investor-side ``investment`` transaction
5. organization liquidity credited and its ``inflow`` transaction
6. ``investment.completed`` staged in the outbox

The organization credit in step 5 is the only place treasury liquidity is
increased for a settlement; the treasury listener only repairs a missing
inflow.
"""

import logging
from decimal import Decimal
from typing import Callable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.core.config import settings
from estate_ledger.core.exceptions import (
    InsufficientFunds,
    InsufficientInventory,
    InvalidArgument,
)
from estate_ledger.core.ledger import (
    ZERO,
    ensure_capacity,
    require_positive,
    settlement_amount,
)
from estate_ledger.events.types import InvestmentCompleted
from estate_ledger.models.common import utcnow
from estate_ledger.models.investment import Investment, InvestmentStatus, PaymentStatus
from estate_ledger.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from estate_ledger.repositories.unit_of_work import UnitOfWork
from estate_ledger.services import reference_codes as codes
from estate_ledger.services.resolvers import (
    Reference,
    resolve_investor,
    resolve_organization,
    resolve_property,
    resolve_wallet,
)

logger = logging.getLogger(__name__)

Notifier = Callable[[], None]


class SettlementService:
    """
    Settles token purchases.

    Parameters
    ----------
    session : AsyncSession
        A session with no transaction in progress.
    notify : callable, optional
        Called after a successful commit to wake the outbox dispatcher.
        Failures are logged and never affect the committed settlement.
    lock_timeout_seconds : float, optional
        Upper bound on each row-lock wait (defaults to settings).
    """

    def __init__(
        self,
        session: AsyncSession,
        notify: Optional[Notifier] = None,
        lock_timeout_seconds: Optional[float] = None,
    ):
        self._session = session
        self._notify = notify
        self._lock_timeout = (
            settings.LOCK_TIMEOUT_SECONDS
            if lock_timeout_seconds is None
            else lock_timeout_seconds
        )

    async def settle(
        self,
        investor_ref: Reference,
        property_ref: Reference,
        tokens_requested: Union[Decimal, int, str],
    ) -> Investment:
        """
        Buy ``tokens_requested`` tokens of a property for an investor.

        Raises
        ------
        InvalidArgument
            ``tokens_requested`` is not strictly positive, its charge rounds to
            zero, or the issuer's liquidity would exceed the ledger maximum.
        NotFoundException
            Unknown investor, property, wallet or organization.
        InsufficientInventory
            More tokens requested than available.
        InsufficientFunds
            Wallet balance below ``tokens × price_per_token``.
        LockTimeout
            A row lock was not granted in time; nothing was written.
        """
        tokens = require_positive(tokens_requested, "tokens")

        async with UnitOfWork(self._session, self._lock_timeout) as uow:
            investor = await resolve_investor(uow, investor_ref)

            prop = await resolve_property(uow, property_ref, for_update=True)
            if tokens > prop.available_tokens:
                raise InsufficientInventory(tokens, prop.available_tokens)
            amount = settlement_amount(tokens, prop.price_per_token)
            if amount <= ZERO:
                raise InvalidArgument(
                    f"Charge for {tokens} tokens at {prop.price_per_token} rounds to zero"
                )

            wallet = await resolve_wallet(uow, investor, for_update=True)
            if not wallet.can_cover(amount):
                raise InsufficientFunds(amount, wallet.balance)

            now = utcnow()
            wallet.debit(amount)
            wallet.updated_at = now
            prop.reserve(tokens)
            prop.updated_at = now

            investment = await uow.investments.add(
                Investment(
                    code=await uow.next_code(codes.INVESTMENT),
                    investor_id=investor.id,
                    property_id=prop.id,
                    tokens_purchased=tokens,
                    amount_paid=amount,
                    price_per_token=prop.price_per_token,
                    expected_roi=prop.expected_roi,
                    status=InvestmentStatus.CONFIRMED,
                    payment_status=PaymentStatus.COMPLETED,
                )
            )

            debit = await uow.transactions.add(
                Transaction(
                    code=await uow.next_code(codes.TRANSACTION),
                    type=TransactionType.INVESTMENT,
                    amount=amount,
                    status=TransactionStatus.COMPLETED,
                    reference_id=investment.id,
                    investor_id=investor.id,
                    wallet_id=wallet.id,
                    organization_id=prop.organization_id,
                    property_id=prop.id,
                    from_entity=investor.display_name,
                    to_entity=prop.title,
                    description=f"Investment in {prop.title}",
                )
            )

            org = await resolve_organization(uow, prop.organization_id, for_update=True)
            org.liquidity = ensure_capacity(org.liquidity + amount, "organization liquidity")
            inflow = await uow.transactions.add(
                Transaction(
                    code=await uow.next_code(codes.TRANSACTION),
                    type=TransactionType.INFLOW,
                    amount=amount,
                    status=TransactionStatus.COMPLETED,
                    reference_id=investment.id,
                    investor_id=investor.id,
                    organization_id=org.id,
                    property_id=prop.id,
                    from_entity=investor.display_name,
                    to_entity=org.name,
                    description=f"Liquidity inflow from investment {investment.code}",
                )
            )

            await uow.outbox.stage(
                InvestmentCompleted(
                    investment_id=investment.id,
                    investment_code=investment.code,
                    investor_id=investor.id,
                    investor_code=investor.code,
                    property_id=prop.id,
                    property_code=prop.code,
                    organization_id=org.id,
                    organization_code=org.code,
                    tokens_purchased=tokens,
                    amount=amount,
                    transaction_id=debit.id,
                    transaction_code=debit.code,
                    inflow_transaction_id=inflow.id,
                    inflow_transaction_code=inflow.code,
                )
            )

        logger.info(
            "Settled %s: %s bought %s tokens of %s for %s",
            investment.code,
            investor.code,
            tokens,
            prop.code,
            amount,
        )
        self._notify_dispatcher()
        return investment

    def _notify_dispatcher(self) -> None:
        if self._notify is None:
            return
        try:
            self._notify()
        except Exception:
            logger.exception("Could not notify the outbox dispatcher; it will poll instead")
