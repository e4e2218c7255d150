"""
Relational entity store.

One table per collection; each row is an autoincrement id plus a JSON
``data`` sidecar (see app.models.base_model). A transaction is one
AsyncSession inside ``session.begin()``: commit on clean exit, rollback on
any error.
"""

import copy
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.db.base import Base
from app.db.session import build_session_maker
from app.errors import ConflictError, StorageFailureError
from app.models import MODEL_BY_ENTITY, AppSetting, User
from app.models.app_setting import SETTINGS_ROW_ID
from app.models.base_model import JsonRecordModel
from app.repositories.entity_store import (
    DEFAULT_SETTINGS,
    EntityStore,
    Record,
    StoreTransaction,
    require_collection,
)

logger = logging.getLogger(__name__)


def _model_for(entity: str) -> type[JsonRecordModel]:
    return MODEL_BY_ENTITY[require_collection(entity)]


class SessionTransaction(StoreTransaction):
    """Store operations bound to one AsyncSession."""

    def __init__(self, session: AsyncSession, default_settings: Record):
        self.session = session
        self._default_settings = default_settings

    async def _row(self, entity: str, record_id: int, for_update: bool = False) -> Optional[JsonRecordModel]:
        model = _model_for(entity)
        query = select(model).where(model.id == record_id)
        if for_update:
            # Ignored by SQLite, SELECT ... FOR UPDATE on PostgreSQL
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list(self, entity: str) -> List[Record]:
        model = _model_for(entity)
        result = await self.session.execute(select(model).order_by(model.id.asc()))
        return [row.to_record() for row in result.scalars().all()]

    async def get(self, entity: str, record_id: int) -> Optional[Record]:
        row = await self._row(entity, record_id)
        return row.to_record() if row else None

    async def lock(self, entity: str, record_id: int) -> Optional[Record]:
        row = await self._row(entity, record_id, for_update=True)
        return row.to_record() if row else None

    async def create(self, entity: str, payload: Record) -> Record:
        row = _model_for(entity)()
        row.set_data(payload)
        self.session.add(row)
        await self.session.flush()
        return row.to_record()

    async def update(self, entity: str, record_id: int, payload: Record) -> Optional[Record]:
        row = await self._row(entity, record_id)
        if not row:
            return None
        row.set_data({**(row.data or {}), **copy.deepcopy(payload)})
        await self.session.flush()
        return row.to_record()

    async def delete(self, entity: str, record_id: int) -> bool:
        row = await self._row(entity, record_id)
        if not row:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True

    async def get_settings(self) -> Record:
        row = await self.session.get(AppSetting, SETTINGS_ROW_ID)
        stored = dict(row.data or {}) if row else {}
        return {**self._default_settings, **stored}

    async def update_settings(self, payload: Record) -> Record:
        current = await self.get_settings()
        merged = {**current, **copy.deepcopy(payload)}
        merged.pop("id", None)
        row = await self.session.get(AppSetting, SETTINGS_ROW_ID)
        if row is None:
            row = AppSetting(id=SETTINGS_ROW_ID)
            self.session.add(row)
        row.set_data(merged)
        await self.session.flush()
        return copy.deepcopy(merged)


class SqlEntityStore(EntityStore):
    """Entity store over SQLAlchemy async tables."""

    backend = "sql"

    def __init__(
        self,
        engine: AsyncEngine,
        initial_users: Optional[List[Record]] = None,
        default_settings: Optional[Record] = None,
        create_tables: bool = True,
    ):
        self.engine = engine
        self._session_maker = build_session_maker(engine)
        self._initial_users = [copy.deepcopy(user) for user in (initial_users or [])]
        self._default_settings = dict(default_settings or DEFAULT_SETTINGS)
        self._create_tables = create_tables

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SessionTransaction]:
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    yield SessionTransaction(session, self._default_settings)
        except IntegrityError as exc:
            logger.info("Write rejected by a database constraint: %s", exc.orig)
            raise ConflictError(
                "unique_violation",
                "Record conflicts with an existing record",
            ) from exc
        except SQLAlchemyError as exc:
            logger.exception("Relational store operation failed")
            raise StorageFailureError(f"Database operation failed: {exc.__class__.__name__}") from exc

    async def initialize(self) -> None:
        try:
            if self._create_tables:
                async with self.engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            logger.exception("Could not create tables")
            raise StorageFailureError(f"Database operation failed: {exc.__class__.__name__}") from exc

        if not self._initial_users:
            return
        async with self.transaction() as tx:
            count = await tx.session.scalar(select(func.count()).select_from(User))
            if count:
                return
            for user in self._initial_users:
                await tx.create("users", user)
            logger.info("Seeded %d default users", len(self._initial_users))

    async def close(self) -> None:
        await self.engine.dispose()
