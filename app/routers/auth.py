"""
Authentication router: login, logout and the current user.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response

from app.core.config import Settings
from app.core.dependencies import (
    get_app_settings,
    get_auth_service,
    get_current_user,
    get_session_token,
)
from app.schemas.user import LoginRequest, LoginResponse, SessionUser
from app.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    app_settings: Settings = Depends(get_app_settings),
):
    """
    Authenticate with company email + password.

    The session token is set as an HTTP-only cookie and also returned in the
    body for API clients.
    """
    user, session = await auth_service.login(credentials.email, credentials.password)
    response.set_cookie(
        key=app_settings.SESSION_COOKIE_NAME,
        value=session["token"],
        max_age=app_settings.SESSION_TTL_HOURS * 3600,
        httponly=True,
        samesite="lax",
    )
    return LoginResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        token=session["token"],
        expires_at=session.get("expiresAt"),
    )


@router.post("/logout")
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    auth_service: AuthService = Depends(get_auth_service),
    app_settings: Settings = Depends(get_app_settings),
):
    await auth_service.logout(token)
    response.delete_cookie(app_settings.SESSION_COOKIE_NAME)
    return {"ok": True}


@router.get("/me", response_model=SessionUser)
async def me(user: SessionUser = Depends(get_current_user)):
    """The user behind the current session."""
    return user
