"""Organization repository: the issuer treasury store."""

from typing import Optional

from sqlalchemy import select

from estate_ledger.models.organization import Organization
from estate_ledger.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    model = Organization

    async def get_by_name(self, name: str) -> Optional[Organization]:
        stmt = select(Organization).where(Organization.name == name)
        return await self._first(stmt)
