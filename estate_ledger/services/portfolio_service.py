"""Read access to investor portfolios."""

from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.core.exceptions import NotFoundException
from estate_ledger.models.portfolio import Portfolio
from estate_ledger.repositories.unit_of_work import UnitOfWork
from estate_ledger.services.resolvers import Reference, resolve_investor


class PortfolioService:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_portfolio(self, investor_ref: Reference) -> Portfolio:
        """
        The investor's aggregate, as last written by the portfolio listener.

        May lag recent settlements by one dispatcher cycle.
        """
        async with UnitOfWork(self._session) as uow:
            investor = await resolve_investor(uow, investor_ref)
            portfolio = await uow.portfolios.get_by_investor(investor.id)
            if portfolio is None:
                raise NotFoundException("Portfolio", investor.code)
            return portfolio
