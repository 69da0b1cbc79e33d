"""Wallet deposits and balance look-ups."""

import logging
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.core.config import settings
from estate_ledger.core.ledger import ensure_capacity, require_positive
from estate_ledger.events.types import WalletCredited
from estate_ledger.models.common import utcnow
from estate_ledger.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from estate_ledger.models.wallet import Wallet
from estate_ledger.repositories.unit_of_work import UnitOfWork
from estate_ledger.services import reference_codes as codes
from estate_ledger.services.resolvers import Reference, resolve_investor, resolve_wallet
from estate_ledger.services.settlement_service import Notifier

logger = logging.getLogger(__name__)


class WalletService:
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

    async def record_deposit(
        self, investor_ref: Reference, amount: Union[Decimal, int, str]
    ) -> Transaction:
        """
        Credit a settled external deposit to the investor's wallet.

        Locks the wallet, raises ``balance`` and ``total_deposited``, appends a
        ``deposit`` transaction and stages ``wallet.credited``.
        Raises ``InvalidArgument`` when the balance would exceed ``LEDGER_MAX``.
        """
        value = require_positive(amount, "amount")

        async with UnitOfWork(self._session, self._lock_timeout) as uow:
            investor = await resolve_investor(uow, investor_ref)
            wallet = await resolve_wallet(uow, investor, for_update=True)
            ensure_capacity(wallet.balance + value, "wallet balance")
            ensure_capacity(wallet.total_deposited + value, "total_deposited")
            wallet.credit(value)
            wallet.total_deposited = wallet.total_deposited + value
            wallet.updated_at = utcnow()

            txn = await uow.transactions.add(
                Transaction(
                    code=await uow.next_code(codes.TRANSACTION),
                    type=TransactionType.DEPOSIT,
                    amount=value,
                    status=TransactionStatus.COMPLETED,
                    investor_id=investor.id,
                    wallet_id=wallet.id,
                    to_entity=investor.display_name,
                    description="User deposit",
                )
            )
            await uow.outbox.stage(
                WalletCredited(
                    investor_id=investor.id,
                    investor_code=investor.code,
                    wallet_id=wallet.id,
                    amount=value,
                    transaction_id=txn.id,
                    transaction_code=txn.code,
                )
            )

        logger.info("Deposited %s to %s (%s)", value, investor.code, txn.code)
        if self._notify is not None:
            try:
                self._notify()
            except Exception:
                logger.exception("Could not notify the outbox dispatcher; it will poll instead")
        return txn

    async def get_wallet(self, investor_ref: Reference) -> Wallet:
        async with UnitOfWork(self._session) as uow:
            investor = await resolve_investor(uow, investor_ref)
            return await resolve_wallet(uow, investor)
