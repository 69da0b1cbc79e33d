"""
Read access to the ledger history.

Investors can list their investments, rewards and transactions; issuers can
list the transactions recorded against their organization. Everything here is
read-only and paginated with ``skip`` / ``limit``, newest first.
"""

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.models.investment import Investment
from estate_ledger.models.reward import Reward
from estate_ledger.models.transaction import Transaction
from estate_ledger.repositories.unit_of_work import UnitOfWork
from estate_ledger.services.resolvers import (
    Reference,
    resolve_investor,
    resolve_organization,
)


class HistoryService:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_investments(
        self, investor_ref: Reference, skip: int = 0, limit: int = 100
    ) -> List[Investment]:
        async with UnitOfWork(self._session) as uow:
            investor = await resolve_investor(uow, investor_ref)
            return await uow.investments.list_for_investor(investor.id, skip=skip, limit=limit)

    async def list_rewards(
        self, investor_ref: Reference, skip: int = 0, limit: int = 100
    ) -> List[Reward]:
        async with UnitOfWork(self._session) as uow:
            investor = await resolve_investor(uow, investor_ref)
            return await uow.rewards.list_for_investor(investor.id, skip=skip, limit=limit)

    async def list_transactions(
        self, investor_ref: Reference, skip: int = 0, limit: int = 100
    ) -> List[Transaction]:
        """Deposits, investment debits and rewards of one investor."""
        async with UnitOfWork(self._session) as uow:
            investor = await resolve_investor(uow, investor_ref)
            return await uow.transactions.list_for_investor(investor.id, skip=skip, limit=limit)

    async def list_organization_transactions(
        self, organization_ref: Reference, skip: int = 0, limit: int = 100
    ) -> List[Transaction]:
        """The issuer's ledger: inflows, the matching investor debits and rewards paid."""
        async with UnitOfWork(self._session) as uow:
            org = await resolve_organization(uow, organization_ref)
            return await uow.transactions.list_for_organization(org.id, skip=skip, limit=limit)
