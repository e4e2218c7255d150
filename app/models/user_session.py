"""
UserSession model.

Opaque login sessions; the token is mirrored into a unique column for lookup.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base_model import JsonRecordModel


class UserSession(JsonRecordModel):
    """sessions table."""

    __tablename__ = "sessions"
    __table_args__ = {"sqlite_autoincrement": True}

    mirrored_fields = {"token": "token"}

    token: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        unique=True,
    )
