"""
Applicant model.

All applicant fields (identity, attachments, status, assignment
back-references) live in the JSON sidecar.
"""

from app.models.base_model import JsonRecordModel


class Applicant(JsonRecordModel):
    """applicants table."""

    __tablename__ = "applicants"
    __table_args__ = {"sqlite_autoincrement": True}
