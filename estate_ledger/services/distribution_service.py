"""
Reward distribution: pay a property's return pool to its token holders.

The pool is split in proportion to confirmed token holdings over the
property's full supply (shares of unsold tokens stay with the issuer). An
investor holding several investments in the property gets a single Reward
covering all of them.
"""

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.core.config import settings
from estate_ledger.core.exceptions import NoActiveInvestments, NotFoundException
from estate_ledger.core.ledger import (
    ZERO,
    allocate_pro_rata,
    ensure_capacity,
    require_positive,
)
from estate_ledger.events.types import RewardDistributed
from estate_ledger.models.common import utcnow
from estate_ledger.models.investment import Investment
from estate_ledger.models.reward import Reward, RewardStatus, RewardType
from estate_ledger.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from estate_ledger.repositories.unit_of_work import UnitOfWork
from estate_ledger.services import reference_codes as codes
from estate_ledger.services.resolvers import Reference, resolve_property
from estate_ledger.services.settlement_service import Notifier

logger = logging.getLogger(__name__)


class DistributionService:
    """Distributes returns; see :meth:`distribute`."""

    def __init__(
        self,
        session: AsyncSession,
        notify: Optional[Notifier] = None,
        lock_timeout_seconds: Optional[float] = None,
    ):
        self._session = session
        self._notify = notify
        self._lock_timeout = (
            settings.LOCK_TIMEOUT_SECONDS
            if lock_timeout_seconds is None
            else lock_timeout_seconds
        )

    async def distribute(
        self,
        property_ref: Reference,
        total_return: Union[Decimal, int, str],
    ) -> List[Reward]:
        """
        Credit each holder of ``property_ref`` with their share of ``total_return``.

        Writes, per investor: a wallet credit, one ``Reward``, one ``reward``
        transaction (issuer → investor) and a staged ``reward.distributed``
        event. Wallets are locked in investor-id order after the property.

        Raises ``InvalidArgument`` for a non-positive pool, ``NotFoundException``
        for an unknown property and ``NoActiveInvestments`` when nobody holds
        confirmed tokens; nothing is written in those cases.
        """
        pool = require_positive(total_return, "total_return")

        async with UnitOfWork(self._session, self._lock_timeout) as uow:
            prop = await resolve_property(uow, property_ref, for_update=True)
            investments = await uow.investments.list_confirmed_for_property(prop.id)
            if not investments:
                raise NoActiveInvestments(prop.code)

            holdings, first_investment = _group_by_investor(investments)
            shares = allocate_pro_rata(holdings, prop.total_tokens, pool)

            org = await uow.organizations.get(prop.organization_id)
            issuer_name = org.name if org is not None else "Unknown Organization"

            rewards: List[Reward] = []
            for investor_id in sorted(shares, key=str):
                share = shares[investor_id]
                investor = await uow.investors.get(investor_id)
                wallet = await uow.wallets.get_by_investor(investor_id, for_update=True)
                if investor is None or wallet is None:
                    raise NotFoundException("Wallet", investor_id)

                if share > ZERO:
                    ensure_capacity(wallet.balance + share, "wallet balance")
                    wallet.credit(share)
                    wallet.updated_at = utcnow()
                else:
                    logger.warning(
                        "Share of %s in %s rounds to zero; recording an empty reward",
                        investor.code,
                        prop.code,
                    )

                reward = await uow.rewards.add(
                    Reward(
                        code=await uow.next_code(codes.REWARD),
                        investor_id=investor_id,
                        investment_id=first_investment[investor_id].id,
                        property_id=prop.id,
                        amount=share,
                        type=RewardType.ROI,
                        status=RewardStatus.DISTRIBUTED,
                    )
                )
                txn = await uow.transactions.add(
                    Transaction(
                        code=await uow.next_code(codes.TRANSACTION),
                        type=TransactionType.REWARD,
                        amount=share,
                        status=TransactionStatus.COMPLETED,
                        reference_id=reward.id,
                        investor_id=investor_id,
                        wallet_id=wallet.id,
                        organization_id=prop.organization_id,
                        property_id=prop.id,
                        from_entity=issuer_name,
                        to_entity=investor.display_name,
                        description=f"ROI reward for {prop.title}",
                    )
                )
                await uow.outbox.stage(
                    RewardDistributed(
                        reward_id=reward.id,
                        reward_code=reward.code,
                        investor_id=investor_id,
                        investor_code=investor.code,
                        property_id=prop.id,
                        property_code=prop.code,
                        amount=share,
                        transaction_id=txn.id,
                        transaction_code=txn.code,
                    )
                )
                rewards.append(reward)

        logger.info(
            "Distributed %s of %s across %d investors (%s allocated)",
            pool,
            prop.code,
            len(rewards),
            sum((r.amount for r in rewards), ZERO),
        )
        if self._notify is not None:
            try:
                self._notify()
            except Exception:
                logger.exception("Could not notify the outbox dispatcher; it will poll instead")
        return rewards


def _group_by_investor(investments: List[Investment]):
    """Tokens held per investor, and each investor's earliest investment."""
    holdings: Dict[UUID, Decimal] = OrderedDict()
    first: Dict[UUID, Investment] = {}
    for inv in investments:
        holdings[inv.investor_id] = holdings.get(inv.investor_id, ZERO) + inv.tokens_purchased
        first.setdefault(inv.investor_id, inv)
    return holdings, first
