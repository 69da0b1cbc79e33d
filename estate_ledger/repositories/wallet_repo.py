"""Wallet repository: the balance store."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from estate_ledger.models.wallet import Wallet
from estate_ledger.repositories.base import BaseRepository


class WalletRepository(BaseRepository[Wallet]):
    model = Wallet

    async def get_by_investor(
        self, investor_id: UUID, for_update: bool = False
    ) -> Optional[Wallet]:
        stmt = select(Wallet).where(Wallet.investor_id == investor_id)
        return await self._first(stmt, for_update=for_update)
