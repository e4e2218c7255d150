"""
Base model with common fields.

Every entity table has the same shape:
- id (integer autoincrement primary key, never reused)
- data (JSON sidecar holding the record's fields)
- created_at / updated_at timestamps

A few record fields are mirrored into real columns so they can be indexed
and constrained; ``mirrored_fields`` maps column attribute -> record key.
"""

import copy
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional

from sqlalchemy import JSON, DateTime, Integer, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in dev/tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


def coerce_int(value: Any) -> Optional[int]:
    """Best-effort integer view of a stored value; None when not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class JsonRecordModel(Base):
    """
    Abstract base class for all entity tables.

    This is not a real table - it's a template that other models inherit from.
    """

    __abstract__ = True

    mirrored_fields: ClassVar[Dict[str, str]] = {}
    # Mirror columns that hold integers rather than strings
    integer_mirrors: ClassVar[frozenset] = frozenset()

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    data: Mapped[Dict[str, Any]] = mapped_column(
        JsonType,
        nullable=False,
        default=dict,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def set_data(self, data: Dict[str, Any]) -> None:
        """Replace the JSON sidecar and refresh the mirrored columns."""
        clean = copy.deepcopy(data)
        clean.pop("id", None)
        # Assign a new dict so SQLAlchemy sees the change
        self.data = clean
        for column, key in self.mirrored_fields.items():
            value = clean.get(key)
            if column in self.integer_mirrors:
                value = coerce_int(value)
            elif value is not None:
                value = str(value)
            setattr(self, column, value)

    def to_record(self) -> Dict[str, Any]:
        record = copy.deepcopy(self.data or {})
        record["id"] = self.id
        return record
