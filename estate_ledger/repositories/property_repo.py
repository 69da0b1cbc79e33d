"""Property repository: the token inventory store."""

from estate_ledger.models.property import Property
from estate_ledger.repositories.base import BaseRepository


class PropertyRepository(BaseRepository[Property]):
    model = Property
