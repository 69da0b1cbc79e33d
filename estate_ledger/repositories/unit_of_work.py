"""
Unit of work: one database transaction spanning several repositories.

Usage::

    async with UnitOfWork(session, lock_timeout_seconds=5) as uow:
        prop = await uow.properties.get(property_id, for_update=True)
        ...
        await uow.outbox.stage(event)
    # committed here; rolled back instead if the block raised

Everything a settlement touches (inventory, balance, treasury, the
transaction log and the outbox row) therefore commits or rolls back together.
"""

import logging
from typing import Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.core.exceptions import LockTimeout
from estate_ledger.db.session import apply_lock_timeout, is_lock_timeout
from estate_ledger.repositories.certificate_repo import CertificateRepository
from estate_ledger.repositories.investment_repo import InvestmentRepository
from estate_ledger.repositories.investor_repo import InvestorRepository
from estate_ledger.repositories.organization_repo import OrganizationRepository
from estate_ledger.repositories.outbox_repo import OutboxRepository
from estate_ledger.repositories.payment_method_repo import PaymentMethodRepository
from estate_ledger.repositories.portfolio_repo import PortfolioRepository
from estate_ledger.repositories.property_repo import PropertyRepository
from estate_ledger.repositories.receipt_repo import ReceiptRepository
from estate_ledger.repositories.reward_repo import RewardRepository
from estate_ledger.repositories.transaction_repo import TransactionRepository
from estate_ledger.repositories.wallet_repo import WalletRepository
from estate_ledger.services.reference_codes import next_reference_code

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Async context manager owning the transaction of one operation.

    Parameters
    ----------
    session : AsyncSession
        Session to run in. It must not already be inside a transaction.
    lock_timeout_seconds : float, optional
        Bound on row-lock waits for this transaction. A database error caused
        by exceeding it leaves the block as :class:`LockTimeout`.
    """

    def __init__(
        self,
        session: AsyncSession,
        lock_timeout_seconds: Optional[float] = None,
    ):
        self.session = session
        self.lock_timeout_seconds = lock_timeout_seconds

        self.investors = InvestorRepository(session)
        self.wallets = WalletRepository(session)
        self.portfolios = PortfolioRepository(session)
        self.organizations = OrganizationRepository(session)
        self.properties = PropertyRepository(session)
        self.investments = InvestmentRepository(session)
        self.transactions = TransactionRepository(session)
        self.rewards = RewardRepository(session)
        self.payment_methods = PaymentMethodRepository(session)
        self.certificates = CertificateRepository(session)
        self.outbox = OutboxRepository(session)
        self.receipts = ReceiptRepository(session)

    async def __aenter__(self) -> "UnitOfWork":
        if self.lock_timeout_seconds is not None:
            await apply_lock_timeout(self.session, self.lock_timeout_seconds)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            try:
                await self.commit()
            except DBAPIError as commit_exc:
                await self.rollback()
                if is_lock_timeout(commit_exc):
                    raise LockTimeout("commit") from commit_exc
                raise
            return False

        await self.rollback()
        if isinstance(exc, DBAPIError) and is_lock_timeout(exc):
            logger.warning("Lock wait exceeded; transaction rolled back")
            raise LockTimeout("a ledger row") from exc
        return False

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def next_code(self, prefix: str) -> str:
        return await next_reference_code(self.session, prefix)
