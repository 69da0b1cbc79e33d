"""
Onboarding: investors, KYC, organizations and property listings.

Duplicate detection:
    ``register_investor`` and ``create_organization`` look for an existing
    row before inserting so the usual duplicate gets a clear 409. Two
    concurrent requests can both pass that check; the unique index then
    rejects the second insert and the resulting ``IntegrityError`` is turned
    into the same 409.
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.core.exceptions import ConflictException, InvalidArgument
from estate_ledger.core.ledger import (
    ensure_capacity,
    price_per_token,
    require_positive,
    to_ledger,
)
from estate_ledger.events.types import KycVerified, UserCreated
from estate_ledger.models.investor import Investor, KycStatus
from estate_ledger.models.organization import Organization
from estate_ledger.models.portfolio import Portfolio
from estate_ledger.models.property import Property, PropertyStatus
from estate_ledger.models.wallet import Wallet
from estate_ledger.repositories.unit_of_work import UnitOfWork
from estate_ledger.services import reference_codes as codes
from estate_ledger.services.resolvers import (
    Reference,
    resolve_investor,
    resolve_organization,
    resolve_property,
)
from estate_ledger.services.settlement_service import Notifier

logger = logging.getLogger(__name__)

Amount = Union[Decimal, int, str]


class OnboardingService:
    """Creates the accounts and listings the settlement core operates on."""

    def __init__(self, session: AsyncSession, notify: Optional[Notifier] = None):
        self._session = session
        self._notify = notify

    def _wake_dispatcher(self) -> None:
        if self._notify is None:
            return
        try:
            self._notify()
        except Exception:
            logger.exception("Could not notify the outbox dispatcher; it will poll instead")

    # ── Investors ──

    async def register_investor(self, full_name: str, email: str) -> Investor:
        """
        Create an investor with a zero wallet and an empty portfolio.

        Stages ``user.created``; the payment-method listener reacts to it.
        Raises :class:`ConflictException` when the email is taken.
        """
        email = email.strip().lower()
        try:
            async with UnitOfWork(self._session) as uow:
                if await uow.investors.get_by_email(email) is not None:
                    raise ConflictException(f"An investor with email '{email}' already exists")

                investor = await uow.investors.add(
                    Investor(
                        code=await uow.next_code(codes.INVESTOR),
                        full_name=full_name.strip(),
                        email=email,
                    )
                )
                await uow.wallets.add(Wallet(investor_id=investor.id))
                await uow.portfolios.add(Portfolio(investor_id=investor.id))
                await uow.outbox.stage(
                    UserCreated(
                        investor_id=investor.id,
                        investor_code=investor.code,
                        email=investor.email,
                    )
                )
        except IntegrityError:
            logger.warning("Duplicate email '%s' rejected by unique index", email)
            raise ConflictException(f"An investor with email '{email}' already exists")

        logger.info("Registered investor %s (%s)", investor.code, investor.email)
        self._wake_dispatcher()
        return investor

    async def verify_kyc(self, investor_ref: Reference) -> Investor:
        """Mark KYC as cleared and stage ``kyc.verified``; a no-op if already verified."""
        async with UnitOfWork(self._session) as uow:
            investor = await resolve_investor(uow, investor_ref)
            if investor.kyc_status == KycStatus.VERIFIED:
                return investor
            investor.kyc_status = KycStatus.VERIFIED
            await uow.investors.flush()
            await uow.outbox.stage(
                KycVerified(investor_id=investor.id, investor_code=investor.code)
            )

        logger.info("KYC verified for %s", investor.code)
        self._wake_dispatcher()
        return investor

    # ── Organizations & properties ──

    async def create_organization(self, name: str) -> Organization:
        name = name.strip()
        try:
            async with UnitOfWork(self._session) as uow:
                if await uow.organizations.get_by_name(name) is not None:
                    raise ConflictException(f"An organization named '{name}' already exists")
                org = await uow.organizations.add(
                    Organization(code=await uow.next_code(codes.ORGANIZATION), name=name)
                )
        except IntegrityError:
            raise ConflictException(f"An organization named '{name}' already exists")

        logger.info("Created organization %s (%s)", org.code, org.name)
        return org

    async def create_property(
        self,
        organization_ref: Reference,
        title: str,
        total_value: Amount,
        total_tokens: Amount,
        expected_roi: Amount = 0,
        status: PropertyStatus = PropertyStatus.ACTIVE,
    ) -> Property:
        """
        List a property with its whole token supply available.

        ``price_per_token`` is fixed here as ``total_value / total_tokens``.
        """
        value = require_positive(total_value, "total_value")
        tokens = require_positive(total_tokens, "total_tokens")
        try:
            roi = to_ledger(expected_roi)
        except (TypeError, ValueError) as exc:
            raise InvalidArgument(f"expected_roi: {exc}") from exc
        if roi < 0:
            raise InvalidArgument("expected_roi must not be negative")
        ensure_capacity(roi, "expected_roi")

        async with UnitOfWork(self._session) as uow:
            org = await resolve_organization(uow, organization_ref)
            prop = await uow.properties.add(
                Property(
                    code=await uow.next_code(codes.PROPERTY),
                    organization_id=org.id,
                    title=title.strip(),
                    status=status,
                    total_value=value,
                    total_tokens=tokens,
                    available_tokens=tokens,
                    price_per_token=price_per_token(value, tokens),
                    expected_roi=roi,
                )
            )

        logger.info(
            "Listed property %s (%s tokens at %s)",
            prop.code,
            prop.total_tokens,
            prop.price_per_token,
        )
        return prop

    async def get_property(self, property_ref: Reference) -> Property:
        async with UnitOfWork(self._session) as uow:
            return await resolve_property(uow, property_ref)
