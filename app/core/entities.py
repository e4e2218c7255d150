"""
Names of the persisted collections.

These are also the top-level keys of the JSON document used by the file
backing, so they keep the camelCase spelling of the persisted shape.
"""

USERS = "users"
APPLICANTS = "applicants"
ASSIGNMENTS = "assignments"
MANPOWER_REQUESTS = "manpowerRequests"
SESSIONS = "sessions"
AUDIT_LOGS = "auditLogs"
SETTINGS = "settings"

# Array-valued collections (settings is a singleton object)
COLLECTIONS = (USERS, APPLICANTS, ASSIGNMENTS, MANPOWER_REQUESTS, SESSIONS, AUDIT_LOGS)

# Entities reachable through the generic data API
DATA_ENTITIES = (USERS, APPLICANTS, ASSIGNMENTS, MANPOWER_REQUESTS, SETTINGS)


class ApplicantStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ASSIGNED = "assigned"


class AssignmentStatus:
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = [ACTIVE, COMPLETED, CANCELLED]


class ManpowerRequestStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
