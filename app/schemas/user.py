"""
User Pydantic schemas.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr


class SessionUser(BaseModel):
    """
    The acting user as resolved from a session token.

    id is None for actors known only by email, such as a claim made through
    ClaimService.claim without a session.
    """

    id: Optional[int] = None
    email: str
    role: str

    model_config = ConfigDict(frozen=True)


class LoginRequest(BaseModel):
    """Schema for login request."""

    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    """Schema for login response."""

    id: int
    email: str
    role: str
    token: str
    expires_at: Optional[str] = None
