"""
Models package.

Import all models here so they are registered with SQLAlchemy.
This file also makes it easy to import models from one place.
"""

from app.core.entities import (
    APPLICANTS,
    ASSIGNMENTS,
    AUDIT_LOGS,
    MANPOWER_REQUESTS,
    SESSIONS,
    USERS,
)
from app.models.app_setting import AppSetting
from app.models.applicant import Applicant
from app.models.assignment import Assignment
from app.models.audit_log import AuditLog
from app.models.manpower_request import ManpowerRequest
from app.models.user import User
from app.models.user_session import UserSession

# Collection name -> table model
MODEL_BY_ENTITY = {
    USERS: User,
    APPLICANTS: Applicant,
    ASSIGNMENTS: Assignment,
    MANPOWER_REQUESTS: ManpowerRequest,
    SESSIONS: UserSession,
    AUDIT_LOGS: AuditLog,
}

# Export all models
__all__ = [
    "AppSetting",
    "Applicant",
    "Assignment",
    "AuditLog",
    "ManpowerRequest",
    "User",
    "UserSession",
    "MODEL_BY_ENTITY",
]
