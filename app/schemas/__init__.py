"""
Schemas package.

Import all schemas here for easy access.
"""

from app.schemas.audit_log import AuditLogRead
from app.schemas.base import CamelModel, Record
from app.schemas.claim import AssignmentStatusResponse, ClaimRequest, ClaimResponse
from app.schemas.user import LoginRequest, LoginResponse, SessionUser

__all__ = [
    "AuditLogRead",
    "CamelModel",
    "Record",
    "AssignmentStatusResponse",
    "ClaimRequest",
    "ClaimResponse",
    "LoginRequest",
    "LoginResponse",
    "SessionUser",
]
