"""Certificate request repository."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from estate_ledger.models.certificate import CertificateRequest
from estate_ledger.repositories.base import BaseRepository


class CertificateRepository(BaseRepository[CertificateRequest]):
    model = CertificateRequest

    async def get_by_investment(self, investment_id: UUID) -> Optional[CertificateRequest]:
        stmt = select(CertificateRequest).where(
            CertificateRequest.investment_id == investment_id
        )
        return await self._first(stmt)
