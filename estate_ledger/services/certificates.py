"""
Ownership certificates.

Rendering is done by an external document service; this module only decides
where a certificate lives and queues the request for it.
"""

import logging
import posixpath
from typing import Optional

from estate_ledger.models.certificate import CertificateRequest
from estate_ledger.models.transaction import Transaction
from estate_ledger.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def certificate_path(root: str, investment_code: str, transaction_code: str) -> str:
    """``<root>/<INV code>/<TXN code>.pdf``"""
    return posixpath.join(root, investment_code, f"{transaction_code}.pdf")


async def queue_certificate(
    uow: UnitOfWork,
    root: str,
    investment_id,
    investment_code: str,
    transaction: Transaction,
) -> Optional[CertificateRequest]:
    """
    Queue a certificate for an investment unless one is already queued.

    Returns the new request, or ``None`` when it already existed.
    """
    if await uow.certificates.get_by_investment(investment_id) is not None:
        return None
    request = await uow.certificates.add(
        CertificateRequest(
            investment_id=investment_id,
            transaction_id=transaction.id,
            path=certificate_path(root, investment_code, transaction.code),
        )
    )
    logger.info("Queued certificate %s", request.path)
    return request
