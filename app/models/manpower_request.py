"""
ManpowerRequest model.

A team lead's ask for N hires of a position. assignedCount is never stored
here; it is recomputed from live assignments on every read.
"""

from app.models.base_model import JsonRecordModel


class ManpowerRequest(JsonRecordModel):
    """manpower_requests table."""

    __tablename__ = "manpower_requests"
    __table_args__ = {"sqlite_autoincrement": True}
