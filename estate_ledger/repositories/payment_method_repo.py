"""Payment method repository."""

from typing import List
from uuid import UUID

from sqlalchemy import select

from estate_ledger.models.payment_method import PaymentMethod, PaymentMethodStatus
from estate_ledger.repositories.base import BaseRepository


class PaymentMethodRepository(BaseRepository[PaymentMethod]):
    model = PaymentMethod

    async def list_for_investor(self, investor_id: UUID) -> List[PaymentMethod]:
        stmt = (
            select(PaymentMethod)
            .where(PaymentMethod.investor_id == investor_id)
            .order_by(PaymentMethod.created_at)
        )
        return await self._all(stmt)

    async def list_pending(self, investor_id: UUID) -> List[PaymentMethod]:
        stmt = select(PaymentMethod).where(
            PaymentMethod.investor_id == investor_id,
            PaymentMethod.status == PaymentMethodStatus.PENDING,
        )
        return await self._all(stmt, for_update=True)
