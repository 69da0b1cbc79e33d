"""
Investor repository: data access for the ``investors`` table.

Adds the email look-up used for duplicate detection at onboarding.
"""

from typing import Optional

from sqlalchemy import select

from estate_ledger.models.investor import Investor
from estate_ledger.repositories.base import BaseRepository


class InvestorRepository(BaseRepository[Investor]):
    """Concrete repository for :class:`Investor` entities."""

    model = Investor

    async def get_by_email(self, email: str) -> Optional[Investor]:
        """
        Look up an investor by email address.

        Checked before insert so the common duplicate case gets a clear 409;
        the unique index still catches the race.
        """
        stmt = select(Investor).where(Investor.email == email)
        return await self._first(stmt)
