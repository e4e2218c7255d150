"""
Audit recorder.

Appends an immutable before/after snapshot for every permitted mutation.
Records are never edited or deleted here.
"""

import copy
import logging
from typing import Any, List, Optional, Union

from app.core.entities import AUDIT_LOGS
from app.core.permissions import Roles, raise_if_not_roles
from app.errors import ValidationError
from app.models.base_model import coerce_int
from app.repositories.entity_store import EntityStore, Record, StoreTransaction
from app.utils.time import utc_now_iso

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = ("create", "update", "delete")

# Never copied into a snapshot
REDACTED_FIELDS = ("password",)


def _snapshot(record: Optional[Record]) -> Optional[Record]:
    if record is None:
        return None
    snapshot = copy.deepcopy(record)
    for field in REDACTED_FIELDS:
        snapshot.pop(field, None)
    return snapshot


class AuditRecorder:
    """Writes and lists audit records."""

    def __init__(self, store: EntityStore):
        self.store = store

    async def record(
        self,
        actor: Any,
        action: str,
        entity: str,
        entity_id: Union[int, str],
        before: Optional[Record],
        after: Optional[Record],
        tx: Optional[StoreTransaction] = None,
    ) -> Record:
        """
        Append one audit record.

        Pass ``tx`` to write inside the caller's transaction so the audit
        entry commits (or rolls back) together with the change it describes.
        """
        if action not in AUDIT_ACTIONS:
            raise ValidationError(f"Unknown audit action: {action}")

        entry = {
            "actorUserId": getattr(actor, "id", None),
            "actorEmail": getattr(actor, "email", ""),
            "actorRole": getattr(actor, "role", ""),
            "action": action,
            "entity": entity,
            "entityId": entity_id,
            "beforeData": None if action == "create" else _snapshot(before),
            "afterData": None if action == "delete" else _snapshot(after),
            "createdAt": utc_now_iso(),
        }

        if tx is not None:
            return await tx.create(AUDIT_LOGS, entry)
        return await self.store.create(AUDIT_LOGS, entry)

    async def list_logs(self, user: Optional[Any] = None) -> List[Record]:
        """Most-recent-first; admin-only when a user is given."""
        if user is not None:
            raise_if_not_roles(getattr(user, "role", None), [Roles.ADMIN], "read audit logs")

        records = await self.store.list(AUDIT_LOGS)
        return sorted(records, key=lambda r: coerce_int(r.get("id")) or 0, reverse=True)
