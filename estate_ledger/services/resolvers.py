"""
Reference resolution.

API callers may identify an investor, property or organization either by its
UUID or by its human-readable code (``USR-000001``, ``PROP-000003``,
``ORG-000002``). Each entity type has exactly one resolver here, and each
service calls it once per operation.
"""

import uuid
from typing import Optional, Tuple, Union

from estate_ledger.core.exceptions import NotFoundException
from estate_ledger.models.investor import Investor
from estate_ledger.models.organization import Organization
from estate_ledger.models.property import Property
from estate_ledger.models.wallet import Wallet
from estate_ledger.repositories.unit_of_work import UnitOfWork

Reference = Union[str, uuid.UUID]


def parse_reference(ref: Reference) -> Tuple[Optional[uuid.UUID], Optional[str]]:
    """Split ``ref`` into ``(uuid, None)`` or ``(None, code)``."""
    if isinstance(ref, uuid.UUID):
        return ref, None
    text = str(ref).strip()
    try:
        return uuid.UUID(text), None
    except ValueError:
        return None, text.upper()


async def resolve_investor(uow: UnitOfWork, ref: Reference) -> Investor:
    entity_id, code = parse_reference(ref)
    if entity_id is not None:
        investor = await uow.investors.get(entity_id)
    else:
        investor = await uow.investors.get_by_code(code)
    if investor is None:
        raise NotFoundException("Investor", ref)
    return investor


async def resolve_property(
    uow: UnitOfWork, ref: Reference, for_update: bool = False
) -> Property:
    entity_id, code = parse_reference(ref)
    if entity_id is not None:
        prop = await uow.properties.get(entity_id, for_update=for_update)
    else:
        prop = await uow.properties.get_by_code(code, for_update=for_update)
    if prop is None:
        raise NotFoundException("Property", ref)
    return prop


async def resolve_organization(
    uow: UnitOfWork, ref: Reference, for_update: bool = False
) -> Organization:
    entity_id, code = parse_reference(ref)
    if entity_id is not None:
        org = await uow.organizations.get(entity_id, for_update=for_update)
    else:
        org = await uow.organizations.get_by_code(code, for_update=for_update)
    if org is None:
        raise NotFoundException("Organization", ref)
    return org


async def resolve_wallet(
    uow: UnitOfWork, investor: Investor, for_update: bool = False
) -> Wallet:
    wallet = await uow.wallets.get_by_investor(investor.id, for_update=for_update)
    if wallet is None:
        raise NotFoundException("Wallet", investor.code)
    return wallet
