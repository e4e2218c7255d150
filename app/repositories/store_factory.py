"""
Build the entity store selected by configuration.

Called once by the process entry point; the returned store is passed to
every service explicitly.
"""

from typing import List

from app.core.config import Settings
from app.core.permissions import Roles
from app.core.security import hash_password
from app.db.session import build_engine
from app.repositories.entity_store import EntityStore, Record
from app.repositories.file_store import JsonFileStore
from app.repositories.sql_store import SqlEntityStore
from app.utils.time import utc_now_iso

# (local part, role, initial password)
DEFAULT_ACCOUNTS = [
    ("boss", Roles.BOSS, "boss123"),
    ("hr", Roles.HR, "hr123"),
    ("tl", Roles.TEAM_LEAD, "tl123"),
    ("admin", Roles.ADMIN, "admin123"),
]


def build_default_users(app_settings: Settings) -> List[Record]:
    """One account per role on the first allowed company domain."""
    domain = app_settings.ALLOWED_EMAIL_DOMAINS[0]
    created_at = utc_now_iso()
    users: List[Record] = []
    for local_part, role, password in DEFAULT_ACCOUNTS:
        user: Record = {
            "email": f"{local_part}@{domain}",
            "password": hash_password(password),
            "role": role,
            "createdAt": created_at,
        }
        if role == Roles.TEAM_LEAD:
            user["tlAssignmentLimit"] = app_settings.DEFAULT_TL_ASSIGNMENT_LIMIT
        users.append(user)
    return users


def create_store(app_settings: Settings) -> EntityStore:
    """
    Construct (but do not initialize) the configured backing.

    Raises:
        ValueError: for an unknown STORE_BACKEND
    """
    initial_users = build_default_users(app_settings) if app_settings.SEED_DEFAULT_USERS else []
    default_settings = {"manPowerLimit": app_settings.DEFAULT_MANPOWER_LIMIT}
    backend = app_settings.STORE_BACKEND.strip().lower()

    if backend == "file":
        return JsonFileStore(
            app_settings.DATA_FILE,
            initial_users=initial_users,
            default_settings=default_settings,
        )

    if backend == "sql":
        engine = build_engine(app_settings.DATABASE_URL, echo=app_settings.DEBUG)
        return SqlEntityStore(
            engine,
            initial_users=initial_users,
            default_settings=default_settings,
            create_tables=app_settings.CREATE_TABLES_ON_STARTUP,
        )

    raise ValueError(f"Unknown STORE_BACKEND: {app_settings.STORE_BACKEND!r} (expected 'file' or 'sql')")
