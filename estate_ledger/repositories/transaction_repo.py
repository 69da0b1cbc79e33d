"""
Transaction log repository.

Append-only; there is no update path.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from estate_ledger.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from estate_ledger.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    model = Transaction

    async def find_by_reference(
        self, reference_id: UUID, type_: TransactionType
    ) -> Optional[Transaction]:
        stmt = select(Transaction).where(
            Transaction.reference_id == reference_id,
            Transaction.type == type_,
        )
        return await self._first(stmt)

    async def latest_completed(
        self, investor_id: UUID, property_id: UUID, type_: TransactionType
    ) -> Optional[Transaction]:
        """Newest completed ``type_`` transaction of an investor in a property."""
        stmt = (
            select(Transaction)
            .where(
                Transaction.investor_id == investor_id,
                Transaction.property_id == property_id,
                Transaction.type == type_,
                Transaction.status == TransactionStatus.COMPLETED,
            )
            .order_by(Transaction.created_at.desc(), Transaction.code.desc())
            .limit(1)
        )
        return await self._first(stmt)

    async def list_for_investor(
        self, investor_id: UUID, skip: int = 0, limit: int = 100
    ) -> List[Transaction]:
        """Investor-side ledger entries, newest first; issuer ``inflow`` rows are excluded."""
        stmt = (
            select(Transaction)
            .where(
                Transaction.investor_id == investor_id,
                Transaction.type != TransactionType.INFLOW,
            )
            .order_by(Transaction.created_at.desc(), Transaction.code.desc())
            .offset(skip)
            .limit(limit)
        )
        return await self._all(stmt)

    async def list_for_organization(
        self, organization_id: UUID, skip: int = 0, limit: int = 100
    ) -> List[Transaction]:
        """
        Every entry touching an issuer: inflows from settlements, the matching
        investor debits and the rewards paid out of its properties.
        """
        stmt = (
            select(Transaction)
            .where(Transaction.organization_id == organization_id)
            .order_by(Transaction.created_at.desc(), Transaction.code.desc())
            .offset(skip)
            .limit(limit)
        )
        return await self._all(stmt)
