"""SQLModel table models; importing this package populates the metadata."""

from estate_ledger.models.certificate import CertificateRequest  # noqa: F401
from estate_ledger.models.investment import Investment  # noqa: F401
from estate_ledger.models.investor import Investor  # noqa: F401
from estate_ledger.models.organization import Organization  # noqa: F401
from estate_ledger.models.outbox import ListenerReceipt, OutboxEvent  # noqa: F401
from estate_ledger.models.payment_method import PaymentMethod  # noqa: F401
from estate_ledger.models.portfolio import Portfolio  # noqa: F401
from estate_ledger.models.property import Property  # noqa: F401
from estate_ledger.models.reference_counter import ReferenceCounter  # noqa: F401
from estate_ledger.models.reward import Reward  # noqa: F401
from estate_ledger.models.transaction import Transaction  # noqa: F401
from estate_ledger.models.wallet import Wallet  # noqa: F401
