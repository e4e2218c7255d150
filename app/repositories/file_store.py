"""
File-backed entity store.

The whole application state lives in one JSON document with top-level arrays
(users, applicants, assignments, manpowerRequests, sessions, auditLogs) and a
settings object. Every committing transaction rewrites the entire document
through a temp file + os.replace, so readers never see a partial write.

Transactions are serialized with an in-process asyncio.Lock. Nothing guards
the file against a second process; run a single instance per data file.
"""

import asyncio
import copy
import json
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from app.core.entities import COLLECTIONS, SETTINGS
from app.errors import StorageFailureError
from app.models.base_model import coerce_int
from app.repositories.entity_store import (
    DEFAULT_SETTINGS,
    EntityStore,
    Record,
    StoreTransaction,
    require_collection,
)

logger = logging.getLogger(__name__)

# High-water mark of issued ids per collection, so deleted ids are not reused
SEQUENCES_KEY = "sequences"


def _max_id(rows: Iterable[Record]) -> int:
    return max((coerce_int(row.get("id")) or 0 for row in rows), default=0)


class DocumentTransaction(StoreTransaction):
    """Store operations applied to an in-memory copy of the document."""

    def __init__(self, document: Dict[str, Any]):
        self._document = document
        self.dirty = False

    @property
    def document(self) -> Dict[str, Any]:
        return self._document

    def _rows(self, entity: str) -> List[Record]:
        return self._document[require_collection(entity)]

    def _index_of(self, rows: List[Record], record_id: int) -> Optional[int]:
        for index, row in enumerate(rows):
            if coerce_int(row.get("id")) == record_id:
                return index
        return None

    async def list(self, entity: str) -> List[Record]:
        return copy.deepcopy(self._rows(entity))

    async def get(self, entity: str, record_id: int) -> Optional[Record]:
        rows = self._rows(entity)
        index = self._index_of(rows, record_id)
        if index is None:
            return None
        return copy.deepcopy(rows[index])

    async def create(self, entity: str, payload: Record) -> Record:
        rows = self._rows(entity)
        sequences = self._document.setdefault(SEQUENCES_KEY, {})
        new_id = max(_max_id(rows), coerce_int(sequences.get(entity)) or 0) + 1

        record = copy.deepcopy(payload)
        record.pop("id", None)
        record["id"] = new_id
        rows.append(record)
        sequences[entity] = new_id
        self.dirty = True
        return copy.deepcopy(record)

    async def update(self, entity: str, record_id: int, payload: Record) -> Optional[Record]:
        rows = self._rows(entity)
        index = self._index_of(rows, record_id)
        if index is None:
            return None
        existing = rows[index]
        merged = {**existing, **copy.deepcopy(payload), "id": existing["id"]}
        rows[index] = merged
        self.dirty = True
        return copy.deepcopy(merged)

    async def delete(self, entity: str, record_id: int) -> bool:
        rows = self._rows(entity)
        index = self._index_of(rows, record_id)
        if index is None:
            return False
        del rows[index]
        self.dirty = True
        return True

    async def get_settings(self) -> Record:
        return copy.deepcopy(self._document[SETTINGS])

    async def update_settings(self, payload: Record) -> Record:
        self._document[SETTINGS] = {**self._document[SETTINGS], **copy.deepcopy(payload)}
        self.dirty = True
        return copy.deepcopy(self._document[SETTINGS])


class JsonFileStore(EntityStore):
    """Entity store persisted as a single JSON document on disk."""

    backend = "file"

    def __init__(
        self,
        path: str | Path,
        initial_users: Optional[List[Record]] = None,
        default_settings: Optional[Record] = None,
    ):
        self.path = Path(path)
        self._initial_users = [copy.deepcopy(user) for user in (initial_users or [])]
        self._default_settings = dict(default_settings or DEFAULT_SETTINGS)
        self._lock = asyncio.Lock()

    def _default_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {name: [] for name in COLLECTIONS}
        document[SETTINGS] = dict(self._default_settings)
        document[SEQUENCES_KEY] = {}
        for user_id, user in enumerate(self._initial_users, start=1):
            document["users"].append({**user, "id": user_id})
        return document

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return self._default_document()

        try:
            raw = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            logger.exception("Store document %s is not valid UTF-8", self.path)
            raise StorageFailureError("Store document is not valid UTF-8") from exc
        except OSError as exc:
            logger.exception("Failed to read store document %s", self.path)
            raise StorageFailureError(f"Could not read store document: {exc.strerror}") from exc

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.exception("Store document %s is not valid JSON", self.path)
            raise StorageFailureError("Store document is not valid JSON") from exc

        if not isinstance(parsed, dict):
            logger.error("Store document %s is not a JSON object", self.path)
            raise StorageFailureError("Store document is not a JSON object")

        defaults = self._default_document()
        document: Dict[str, Any] = dict(parsed)
        for name in COLLECTIONS:
            value = parsed.get(name)
            document[name] = value if isinstance(value, list) else defaults[name]
        for key, value in ((SETTINGS, parsed.get(SETTINGS)), (SEQUENCES_KEY, parsed.get(SEQUENCES_KEY))):
            if value is not None and not isinstance(value, dict):
                logger.error("Store document %s has a malformed %s section", self.path, key)
                raise StorageFailureError(f"Store document section {key} is not a JSON object")
        document[SETTINGS] = {**defaults[SETTINGS], **(parsed.get(SETTINGS) or {})}
        document[SEQUENCES_KEY] = dict(parsed.get(SEQUENCES_KEY) or {})
        return document

    def _write(self, document: Dict[str, Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, default=str)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.exception("Failed to write store document %s", self.path)
            raise StorageFailureError(f"Could not write store document: {exc.strerror}") from exc

    async def initialize(self) -> None:
        async with self._lock:
            if not self.path.exists():
                self._write(self._default_document())
                logger.info("Created store document %s", self.path)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[DocumentTransaction]:
        async with self._lock:
            tx = DocumentTransaction(self._read())
            yield tx
            # Only reached when the body finished without raising
            if tx.dirty:
                self._write(tx.document)
