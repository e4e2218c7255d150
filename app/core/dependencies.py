"""
FastAPI dependencies for the application.
"""

from typing import Optional

from fastapi import Depends, Request

from app.core.config import Settings, settings as default_settings
from app.core.permissions import raise_if_not_roles
from app.repositories.entity_store import EntityStore
from app.schemas.user import SessionUser
from app.services.audit_service import AuditRecorder
from app.services.auth_service import AuthService
from app.services.claim_service import ClaimService
from app.services.entity_service import EntityService
from app.services.manpower_ledger import ManpowerLedger


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", default_settings)


def get_store(request: Request) -> EntityStore:
    """The store built by the application lifespan."""
    return request.app.state.store


def get_session_token(request: Request, app_settings: Settings = Depends(get_app_settings)) -> Optional[str]:
    """
    Session token from the session cookie, or from an
    ``Authorization: Bearer <token>`` header for non-browser clients.
    """
    token = request.cookies.get(app_settings.SESSION_COOKIE_NAME)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def get_auth_service(
    store: EntityStore = Depends(get_store),
    app_settings: Settings = Depends(get_app_settings),
) -> AuthService:
    return AuthService(store, app_settings)


def get_audit_recorder(store: EntityStore = Depends(get_store)) -> AuditRecorder:
    return AuditRecorder(store)


def get_entity_service(
    store: EntityStore = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit_recorder),
    app_settings: Settings = Depends(get_app_settings),
) -> EntityService:
    return EntityService(store, audit, app_settings.ALLOWED_EMAIL_DOMAINS)


def get_claim_service(
    store: EntityStore = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> ClaimService:
    return ClaimService(store, audit)


def get_manpower_ledger(store: EntityStore = Depends(get_store)) -> ManpowerLedger:
    return ManpowerLedger(store)


async def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> SessionUser:
    """
    Resolve the session token into the acting user.

    Raises:
        UnauthorizedError: missing, unknown or expired token
    """
    return await auth_service.require_user(token)


def require_role(*allowed_roles: str):
    """
    Dependency factory to require specific roles.

    Usage:
        @router.post("/", dependencies=[Depends(require_role("admin", "hr"))])
    """
    async def check_role(user: SessionUser = Depends(get_current_user)) -> SessionUser:
        raise_if_not_roles(user.role, list(allowed_roles))
        return user

    return check_role
