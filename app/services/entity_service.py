"""
Entity service behind the generic data API.

Every call goes through the Authorization Gate (entity-level table, then the
team-lead row policy) and every permitted mutation is audited in the same
transaction as the change.
"""

import logging
from typing import Any, List, Optional

from app.core.config import settings as default_settings
from app.core.email_domain import (
    company_email_error,
    email_local_part,
    is_allowed_company_email,
    normalize_email,
)
from app.core.entities import (
    APPLICANTS,
    ASSIGNMENTS,
    DATA_ENTITIES,
    MANPOWER_REQUESTS,
    SETTINGS,
    USERS,
    ApplicantStatus,
    ManpowerRequestStatus,
)
from app.core.permissions import (
    Roles,
    WriteMethod,
    raise_if_cannot_read,
    raise_if_cannot_write,
    scope_rows,
)
from app.core.security import hash_password, is_password_hash
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.base_model import coerce_int
from app.repositories.entity_store import EntityStore, Record, StoreTransaction, parse_record_id
from app.services.audit_service import AuditRecorder
from app.services.manpower_ledger import ManpowerLedger
from app.utils.time import utc_now_iso

logger = logging.getLogger(__name__)


def public_user(user: Record) -> Record:
    """User record without its password credential."""
    return {key: value for key, value in user.items() if key != "password"}


class EntityService:
    """List/create/update/delete for the data API entities."""

    def __init__(self, store: EntityStore, audit: AuditRecorder, allowed_domains: Optional[List[str]] = None):
        self.store = store
        self.audit = audit
        self.ledger = ManpowerLedger(store)
        self.allowed_domains = allowed_domains or default_settings.ALLOWED_EMAIL_DOMAINS

    def _require_entity(self, entity: str) -> str:
        if entity not in DATA_ENTITIES:
            raise NotFoundError("Unknown entity", {"entity": entity})
        return entity

    async def list_records(self, entity: str, user: Any) -> Any:
        """
        Records of ``entity`` visible to ``user``.

        Manpower requests come back annotated by the ledger; settings is the
        singleton object rather than a list.
        """
        self._require_entity(entity)
        raise_if_cannot_read(entity, user)

        if entity == SETTINGS:
            return await self.store.get_settings()
        if entity == MANPOWER_REQUESTS:
            return await self.ledger.list_with_usage(user)

        records = scope_rows(entity, user, await self.store.list(entity))
        if entity == USERS:
            records = [public_user(r) for r in records]
        return records

    async def create_record(self, entity: str, payload: Record, user: Any) -> Record:
        self._require_entity(entity)
        if entity == SETTINGS:
            raise ValidationError("Use PUT for settings")
        raise_if_cannot_write(entity, user, WriteMethod.CREATE)

        data = dict(payload or {})
        data.pop("id", None)

        async with self.store.transaction() as tx:
            if entity == USERS:
                data = await self._prepare_user(tx, data, user_id=None)
            elif entity == APPLICANTS:
                data.setdefault("status", ApplicantStatus.PENDING)
                data.setdefault("addedDate", utc_now_iso())
            elif entity == MANPOWER_REQUESTS:
                data = self._prepare_manpower_request(data, user)

            created = await tx.create(entity, data)
            await self.audit.record(user, "create", entity, created["id"], None, created, tx=tx)

        logger.info("%s created %s %s", getattr(user, "email", "?"), entity, created["id"])
        return public_user(created) if entity == USERS else created

    async def update_record(self, entity: str, payload: Record, user: Any, record_id: Any = None) -> Record:
        """
        Shallow-merge ``payload`` over an existing record.

        The id comes from ``record_id`` or, failing that, ``payload['id']``.
        Settings takes no id.
        """
        self._require_entity(entity)
        raise_if_cannot_write(entity, user, WriteMethod.UPDATE)
        data = dict(payload or {})

        if entity == SETTINGS:
            data.pop("id", None)
            async with self.store.transaction() as tx:
                before = await tx.get_settings()
                after = await tx.update_settings(data)
                await self.audit.record(user, "update", SETTINGS, 1, before, after, tx=tx)
            return after

        record_id = parse_record_id(record_id if record_id is not None else data.get("id"))
        data.pop("id", None)

        async with self.store.transaction() as tx:
            before = await tx.get(entity, record_id)
            if before is None:
                raise NotFoundError("Not found", {"entity": entity, "id": record_id})

            if entity == USERS:
                data = await self._prepare_user(tx, data, user_id=record_id)
            elif entity == MANPOWER_REQUESTS and "limit" in data:
                data["limit"] = self._validate_limit(data["limit"])
            elif entity == ASSIGNMENTS and "applicantId" in data:
                # An assignment belongs to one applicant for its whole life
                if coerce_int(data["applicantId"]) != coerce_int(before.get("applicantId")):
                    raise ValidationError("applicantId of an assignment cannot be changed")

            after = await tx.update(entity, record_id, data)
            await self.audit.record(user, "update", entity, record_id, before, after, tx=tx)

        return public_user(after) if entity == USERS else after

    async def delete_record(self, entity: str, record_id: Any, user: Any) -> bool:
        """
        Delete one record. Deleting an applicant also deletes its assignments.

        Raises:
            NotFoundError: if the record does not exist
        """
        self._require_entity(entity)
        if entity == SETTINGS:
            raise ValidationError("Cannot delete settings")
        raise_if_cannot_write(entity, user, WriteMethod.DELETE)
        record_id = parse_record_id(record_id)

        async with self.store.transaction() as tx:
            before = await tx.get(entity, record_id)
            if before is None:
                raise NotFoundError("Not found", {"entity": entity, "id": record_id})

            if entity == APPLICANTS:
                for assignment in await tx.list(ASSIGNMENTS):
                    if coerce_int(assignment.get("applicantId")) == record_id:
                        await tx.delete(ASSIGNMENTS, assignment["id"])
                        await self.audit.record(user, "delete", ASSIGNMENTS, assignment["id"], assignment, None, tx=tx)

            await tx.delete(entity, record_id)
            await self.audit.record(user, "delete", entity, record_id, before, None, tx=tx)

        logger.info("%s deleted %s %s", getattr(user, "email", "?"), entity, record_id)
        return True

    async def _prepare_user(self, tx: StoreTransaction, data: Record, user_id: Optional[int]) -> Record:
        creating = user_id is None

        if creating or data.get("email") is not None:
            email = normalize_email(data.get("email"))
            if not is_allowed_company_email(email, self.allowed_domains):
                raise ValidationError(company_email_error(self.allowed_domains))
            taken = any(
                normalize_email(u.get("email")) == email and coerce_int(u.get("id")) != user_id
                for u in await tx.list(USERS)
            )
            if taken:
                raise ConflictError("email_taken", "Email already exists")
            data["email"] = email

        if creating or "role" in data:
            if data.get("role") not in Roles.ALL:
                raise ValidationError(f"Role must be one of: {', '.join(Roles.ALL)}")

        password = data.get("password")
        if password:
            if not is_password_hash(password):
                data["password"] = hash_password(str(password))
        else:
            data.pop("password", None)

        if creating:
            data.setdefault("createdAt", utc_now_iso())
        return data

    def _prepare_manpower_request(self, data: Record, user: Any) -> Record:
        email = normalize_email(getattr(user, "email", ""))
        if getattr(user, "role", None) == Roles.TEAM_LEAD:
            # Team leads always file requests for themselves
            data["teamLeadId"] = getattr(user, "id", None)
            data["teamLeadEmail"] = email
            data["teamLeadName"] = email_local_part(email)
        if not str(data.get("position") or "").strip():
            raise ValidationError("position is required")
        data["status"] = ManpowerRequestStatus.PENDING
        data["limit"] = None
        data.setdefault("requestDate", utc_now_iso())
        return data

    def _validate_limit(self, value: Any) -> Optional[int]:
        if value is None:
            return None
        limit = coerce_int(value)
        if limit is None or limit < 0:
            raise ValidationError("Please enter a valid non-negative limit")
        return limit
