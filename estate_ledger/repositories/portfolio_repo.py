"""Portfolio repository."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from estate_ledger.models.portfolio import Portfolio
from estate_ledger.repositories.base import BaseRepository


class PortfolioRepository(BaseRepository[Portfolio]):
    model = Portfolio

    async def get_by_investor(
        self, investor_id: UUID, for_update: bool = False
    ) -> Optional[Portfolio]:
        stmt = select(Portfolio).where(Portfolio.investor_id == investor_id)
        return await self._first(stmt, for_update=for_update)
