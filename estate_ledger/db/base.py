"""
Database model registry.

Importing this module registers every table model (and the reference-code
sequences) with SQLModel's metadata, which ``create_all()`` needs.
"""

from sqlmodel import SQLModel

import estate_ledger.models  # noqa: F401
from estate_ledger.models.reference_counter import SEQUENCES  # noqa: F401

metadata = SQLModel.metadata
