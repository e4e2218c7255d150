"""
User model.

Staff accounts. Email and role are mirrored out of the JSON sidecar so the
email can carry a unique constraint and lookups by role stay indexed.
"""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base_model import JsonRecordModel


class User(JsonRecordModel):
    """users table - one row per staff account."""

    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    mirrored_fields = {"email": "email", "role": "role"}

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    role: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True,
    )
