"""
Investment repository: data access for the ``investments`` table.

Adds the property-scoped holdings query used by reward distribution and the
investor-scoped history listing.
"""

from typing import List
from uuid import UUID

from sqlalchemy import select

from estate_ledger.models.investment import Investment, InvestmentStatus
from estate_ledger.repositories.base import BaseRepository


class InvestmentRepository(BaseRepository[Investment]):
    """Concrete repository for :class:`Investment` entities."""

    model = Investment

    async def list_confirmed_for_property(self, property_id: UUID) -> List[Investment]:
        """
        Confirmed investments in ``property_id``, oldest first.

        Served by ``ix_investments_property_status``. The ordering makes
        "first investment per investor" well defined for reward provenance.
        """
        stmt = (
            select(Investment)
            .where(
                Investment.property_id == property_id,
                Investment.status == InvestmentStatus.CONFIRMED,
            )
            .order_by(Investment.created_at, Investment.code)
        )
        return await self._all(stmt)

    async def list_for_investor(
        self, investor_id: UUID, skip: int = 0, limit: int = 100
    ) -> List[Investment]:
        stmt = (
            select(Investment)
            .where(Investment.investor_id == investor_id)
            .order_by(Investment.created_at.desc(), Investment.code.desc())
            .offset(skip)
            .limit(limit)
        )
        return await self._all(stmt)
