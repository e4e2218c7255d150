"""
Authentication service: login, session lookup and logout.

Sessions are opaque random tokens stored in the ``sessions`` collection with
an expiry. Accounts created before hashing was introduced may still carry a
plaintext password; it is accepted once and replaced by a bcrypt hash.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple

from app.core.config import Settings, settings as default_settings
from app.core.email_domain import company_email_error, is_allowed_company_email, normalize_email
from app.core.entities import SESSIONS, USERS
from app.core.security import hash_password, is_password_hash, verify_password
from app.errors import UnauthorizedError, ValidationError
from app.models.base_model import coerce_int
from app.repositories.entity_store import EntityStore, Record
from app.schemas.user import SessionUser
from app.utils.time import parse_aware_timestamp, utc_now

logger = logging.getLogger(__name__)


def _session_user(user: Record) -> SessionUser:
    return SessionUser(id=user["id"], email=user["email"], role=user["role"])


class AuthService:
    """Resolves credentials and session tokens into a SessionUser."""

    def __init__(self, store: EntityStore, app_settings: Optional[Settings] = None):
        self.store = store
        self.settings = app_settings or default_settings

    async def _find_user_by_email(self, email: str) -> Optional[Record]:
        users = await self.store.list(USERS)
        return next((u for u in users if normalize_email(u.get("email")) == email), None)

    async def login(self, email: str, password: str) -> Tuple[SessionUser, Record]:
        """
        Check credentials and open a session.

        Returns:
            (session user, session record holding the token)

        Raises:
            ValidationError: email outside the allow-list or empty password
            UnauthorizedError: unknown email or wrong password
        """
        normalized = normalize_email(email)
        if not is_allowed_company_email(normalized, self.settings.ALLOWED_EMAIL_DOMAINS):
            raise ValidationError(company_email_error(self.settings.ALLOWED_EMAIL_DOMAINS))
        if not password:
            raise ValidationError("Password is required")

        user = await self._find_user_by_email(normalized)
        if not user or not user.get("password"):
            raise UnauthorizedError("Invalid email or password")

        stored = str(user["password"])
        hashed = is_password_hash(stored)
        if hashed:
            matches = verify_password(password, stored)
        else:
            matches = secrets.compare_digest(stored.encode("utf-8"), password.encode("utf-8"))
        if not matches:
            raise UnauthorizedError("Invalid email or password")

        now = utc_now()
        changes: Record = {"lastLogin": now.isoformat()}
        if not hashed:
            changes["password"] = hash_password(password)
            logger.info("Upgraded plaintext password for user %s", user["id"])

        expires_at = now + timedelta(hours=self.settings.SESSION_TTL_HOURS)
        async with self.store.transaction() as tx:
            await tx.update(USERS, user["id"], changes)
            session = await tx.create(
                SESSIONS,
                {
                    "userId": user["id"],
                    "token": secrets.token_hex(32),
                    "createdAt": now.isoformat(),
                    "expiresAt": expires_at.isoformat(),
                },
            )

        logger.info("User %s logged in", normalized)
        return _session_user(user), session

    async def resolve(self, token: Optional[str]) -> Optional[SessionUser]:
        """The user behind a live session token; expired sessions are removed."""
        if not token:
            return None

        async with self.store.transaction() as tx:
            session = next((s for s in await tx.list(SESSIONS) if s.get("token") == token), None)
            if not session:
                return None

            expires_at = parse_aware_timestamp(session.get("expiresAt"))
            if expires_at is None or expires_at <= utc_now():
                await tx.delete(SESSIONS, session["id"])
                return None

            user_id = coerce_int(session.get("userId"))
            user = await tx.get(USERS, user_id) if user_id is not None else None

        return _session_user(user) if user else None

    async def logout(self, token: Optional[str]) -> None:
        if not token:
            return
        async with self.store.transaction() as tx:
            for session in await tx.list(SESSIONS):
                if session.get("token") == token:
                    await tx.delete(SESSIONS, session["id"])

    async def require_user(self, token: Optional[str]) -> SessionUser:
        user = await self.resolve(token)
        if user is None:
            raise UnauthorizedError("Unauthorized")
        return user
