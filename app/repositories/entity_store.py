"""
Entity store interface.

Durable CRUD over the named collections with two interchangeable backings:
a single JSON document (``JsonFileStore``) and relational tables with a JSON
sidecar column (``SqlEntityStore``). Services are written once against this
interface and receive a store instance from the process entry point.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Dict, List, Optional

from app.core.entities import COLLECTIONS
from app.errors import ValidationError
from app.models.base_model import coerce_int

Record = Dict[str, Any]

DEFAULT_SETTINGS: Record = {"manPowerLimit": 50}


def parse_record_id(value: Any, field: str = "id") -> int:
    """
    Turn an incoming id into a positive integer.

    Raises:
        ValidationError: if the value is missing or not numeric
    """
    record_id = coerce_int(value)
    if record_id is None:
        raise ValidationError(f"Missing numeric {field}", {"field": field})
    return record_id


def require_collection(entity: str) -> str:
    if entity not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {entity}")
    return entity


class StoreTransaction(ABC):
    """
    Operations available inside one store transaction.

    Every read returns copies: mutating a returned record never changes the
    stored one until it is passed back through ``update``.
    """

    @abstractmethod
    async def list(self, entity: str) -> List[Record]:
        """All records of a collection in stable order (insertion / primary key)."""

    @abstractmethod
    async def get(self, entity: str, record_id: int) -> Optional[Record]:
        """One record or None."""

    @abstractmethod
    async def create(self, entity: str, payload: Record) -> Record:
        """Insert ``payload`` under a newly assigned integer id (any id in the payload is ignored)."""

    @abstractmethod
    async def update(self, entity: str, record_id: int, payload: Record) -> Optional[Record]:
        """Shallow-merge ``payload`` over the record; ``id`` never changes."""

    @abstractmethod
    async def delete(self, entity: str, record_id: int) -> bool:
        """Remove a record; False when it did not exist."""

    @abstractmethod
    async def get_settings(self) -> Record:
        """The settings singleton merged over its defaults."""

    @abstractmethod
    async def update_settings(self, payload: Record) -> Record:
        """Shallow-merge ``payload`` into the settings singleton."""

    async def lock(self, entity: str, record_id: int) -> Optional[Record]:
        """
        Re-read a record and hold it for the rest of the transaction.

        Backings that already serialize whole transactions just re-read.
        """
        return await self.get(entity, record_id)


class EntityStore(ABC):
    """
    Base class for entity store backings.

    The plain operations below each run as their own one-step transaction;
    callers needing several reads and writes to commit together use
    ``transaction()``.
    """

    backend: str = ""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[StoreTransaction]:
        """Open a transaction; commits on clean exit, discards on error."""

    async def initialize(self) -> None:
        """Create the backing document/tables and seed defaults if empty."""

    async def close(self) -> None:
        """Release backing resources."""

    async def list(self, entity: str) -> List[Record]:
        async with self.transaction() as tx:
            return await tx.list(entity)

    async def get(self, entity: str, record_id: int) -> Optional[Record]:
        async with self.transaction() as tx:
            return await tx.get(entity, record_id)

    async def create(self, entity: str, payload: Record) -> Record:
        async with self.transaction() as tx:
            return await tx.create(entity, payload)

    async def update(self, entity: str, record_id: int, payload: Record) -> Optional[Record]:
        async with self.transaction() as tx:
            return await tx.update(entity, record_id, payload)

    async def delete(self, entity: str, record_id: int) -> bool:
        async with self.transaction() as tx:
            return await tx.delete(entity, record_id)

    async def get_settings(self) -> Record:
        async with self.transaction() as tx:
            return await tx.get_settings()

    async def update_settings(self, payload: Record) -> Record:
        async with self.transaction() as tx:
            return await tx.update_settings(payload)
