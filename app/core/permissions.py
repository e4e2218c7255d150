"""
Role-based permission helpers for the HR workflow.

Defines roles, the static role-by-entity-by-method table, and the
row-level scoping applied to team leads.
"""

from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from app.core.entities import (
    APPLICANTS,
    ASSIGNMENTS,
    MANPOWER_REQUESTS,
    SETTINGS,
    USERS,
)
from app.core.email_domain import normalize_email
from app.errors import ForbiddenError


class Roles:
    """Standard roles in the HR workflow."""
    BOSS = "boss"
    HR = "hr"
    TEAM_LEAD = "team-lead"
    ADMIN = "admin"

    # All roles list for validation
    ALL = [BOSS, HR, TEAM_LEAD, ADMIN]

    # Role capabilities
    # admin: manages users, settings, assignments and manpower limits
    # hr: submits applicants, reviews manpower requests
    # boss: approves/rejects applicants
    # team-lead: files manpower requests and claims approved applicants


class WriteMethod:
    CREATE = "POST"
    UPDATE = "PUT"
    DELETE = "DELETE"

    ALL = [CREATE, UPDATE, DELETE]


def _roles(*roles: str) -> FrozenSet[str]:
    return frozenset(roles)


READ_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    USERS: _roles(Roles.ADMIN),
    SETTINGS: _roles(Roles.ADMIN),
    ASSIGNMENTS: _roles(Roles.ADMIN, Roles.HR, Roles.BOSS, Roles.TEAM_LEAD),
    APPLICANTS: _roles(Roles.ADMIN, Roles.HR, Roles.BOSS, Roles.TEAM_LEAD),
    MANPOWER_REQUESTS: _roles(Roles.ADMIN, Roles.HR, Roles.TEAM_LEAD),
}

WRITE_PERMISSIONS: Dict[str, Dict[str, FrozenSet[str]]] = {
    USERS: {
        WriteMethod.CREATE: _roles(Roles.ADMIN),
        WriteMethod.UPDATE: _roles(Roles.ADMIN),
        WriteMethod.DELETE: _roles(Roles.ADMIN),
    },
    SETTINGS: {
        WriteMethod.CREATE: _roles(Roles.ADMIN),
        WriteMethod.UPDATE: _roles(Roles.ADMIN),
        WriteMethod.DELETE: _roles(Roles.ADMIN),
    },
    ASSIGNMENTS: {
        WriteMethod.CREATE: _roles(Roles.ADMIN),
        WriteMethod.UPDATE: _roles(Roles.ADMIN),
        WriteMethod.DELETE: _roles(Roles.ADMIN),
    },
    APPLICANTS: {
        WriteMethod.CREATE: _roles(Roles.ADMIN, Roles.HR),
        WriteMethod.UPDATE: _roles(Roles.ADMIN, Roles.HR, Roles.BOSS),
        WriteMethod.DELETE: _roles(Roles.ADMIN),
    },
    MANPOWER_REQUESTS: {
        WriteMethod.CREATE: _roles(Roles.TEAM_LEAD),
        WriteMethod.UPDATE: _roles(Roles.ADMIN, Roles.HR),
        WriteMethod.DELETE: _roles(Roles.ADMIN, Roles.HR),
    },
}

# Team leads only ever see their own rows of these entities
OWNER_FIELDS: Dict[str, str] = {
    ASSIGNMENTS: "tlEmail",
    MANPOWER_REQUESTS: "teamLeadEmail",
}


def check_role_permission(user_role: Optional[str], allowed_roles: Iterable[str]) -> bool:
    """
    Check if user's role is in the list of allowed roles.

    Args:
        user_role: The user's current role
        allowed_roles: Roles that are permitted

    Returns:
        True if user has permission, False otherwise
    """
    if not user_role or not allowed_roles:
        return False
    return user_role in allowed_roles


def can_read(entity: str, user: Any) -> bool:
    """Entity-level read check. Unknown entities are never readable."""
    return check_role_permission(getattr(user, "role", None), READ_PERMISSIONS.get(entity, ()))


def can_write(entity: str, user: Any, method: str) -> bool:
    """Entity-level write check for POST/PUT/DELETE."""
    by_method = WRITE_PERMISSIONS.get(entity, {})
    return check_role_permission(getattr(user, "role", None), by_method.get(str(method).upper(), ()))


def scope_rows(entity: str, user: Any, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Apply the row-level policy on top of the entity-level table.

    Team leads reading assignments or manpower requests only get the rows
    they own. Every other role/entity combination is returned unchanged.
    """
    owner_field = OWNER_FIELDS.get(entity)
    if owner_field is None or getattr(user, "role", None) != Roles.TEAM_LEAD:
        return rows
    email = normalize_email(getattr(user, "email", ""))
    return [row for row in rows if normalize_email(row.get(owner_field)) == email]


def raise_if_cannot_read(entity: str, user: Any) -> None:
    """
    Raise 403 error if the user may not read the entity.

    Raises:
        ForbiddenError: if the role is not in the read table
    """
    if not can_read(entity, user):
        raise ForbiddenError(f"Role '{getattr(user, 'role', None)}' cannot read {entity}")


def raise_if_cannot_write(entity: str, user: Any, method: str) -> None:
    """
    Raise 403 error if the user may not write the entity with this method.

    Raises:
        ForbiddenError: if the role is not in the write table
    """
    if not can_write(entity, user, method):
        raise ForbiddenError(
            f"Role '{getattr(user, 'role', None)}' cannot {str(method).upper()} {entity}"
        )


def raise_if_not_roles(user_role: Optional[str], allowed_roles: List[str], action: str = "perform this action") -> None:
    """
    Raise 403 error if user doesn't have one of the allowed roles.

    Raises:
        ForbiddenError: if user doesn't have permission
    """
    if not check_role_permission(user_role, allowed_roles):
        raise ForbiddenError(
            f"Insufficient permissions to {action}. Required: {', '.join(allowed_roles)}"
        )
