"""
Claim Pydantic schemas.
"""

from typing import Optional

from pydantic import Field

from app.schemas.base import CamelModel, Record


class ClaimRequest(CamelModel):
    """Request to claim an approved applicant for a team lead."""

    applicant_id: int = Field(alias="applicantId")
    tl_email: Optional[str] = Field(default=None, alias="tlEmail")


class ClaimResponse(CamelModel):
    """The assignment created by a claim and the updated applicant."""

    assignment: Record
    applicant: Record


class AssignmentStatusResponse(CamelModel):
    """An assignment after an administrative status change."""

    assignment: Record
    applicant: Optional[Record] = None
