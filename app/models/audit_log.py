"""
AuditLog model.

Append-only before/after snapshots of every permitted mutation.
"""

from app.models.base_model import JsonRecordModel


class AuditLog(JsonRecordModel):
    """audit_logs table."""

    __tablename__ = "audit_logs"
    __table_args__ = {"sqlite_autoincrement": True}
