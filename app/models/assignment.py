"""
Assignment model.

The claim record linking one applicant to one team lead. applicant_id and
status are mirrored so that at most one active assignment per applicant can
be enforced by a partial unique index.
"""

from typing import Optional

from sqlalchemy import Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base_model import JsonRecordModel


class Assignment(JsonRecordModel):
    """assignments table."""

    __tablename__ = "assignments"

    mirrored_fields = {"applicant_id": "applicantId", "status": "status"}
    integer_mirrors = frozenset({"applicant_id"})

    applicant_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
    )

    # NULL for legacy rows written before status existed
    status: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
    )

    __table_args__ = (
        Index(
            "uq_assignments_active_applicant",
            "applicant_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        {"sqlite_autoincrement": True},
    )
