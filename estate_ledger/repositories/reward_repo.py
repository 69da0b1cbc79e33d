"""Reward repository."""

from typing import List
from uuid import UUID

from sqlalchemy import select

from estate_ledger.models.reward import Reward
from estate_ledger.repositories.base import BaseRepository


class RewardRepository(BaseRepository[Reward]):
    model = Reward

    async def list_for_investor(
        self, investor_id: UUID, skip: int = 0, limit: int = 100
    ) -> List[Reward]:
        stmt = (
            select(Reward)
            .where(Reward.investor_id == investor_id)
            .order_by(Reward.created_at.desc(), Reward.code.desc())
            .offset(skip)
            .limit(limit)
        )
        return await self._all(stmt)
