"""
Audit log Pydantic schemas.
"""

from typing import Any, Optional, Union

from pydantic import Field

from app.schemas.base import CamelModel


class AuditLogRead(CamelModel):
    """One immutable audit record (API response)."""

    id: int
    actor_user_id: Optional[int] = Field(default=None, alias="actorUserId")
    actor_email: str = Field(alias="actorEmail")
    actor_role: str = Field(alias="actorRole")
    action: str
    entity: str
    entity_id: Union[int, str] = Field(alias="entityId")
    before_data: Optional[Any] = Field(default=None, alias="beforeData")
    after_data: Optional[Any] = Field(default=None, alias="afterData")
    created_at: str = Field(alias="createdAt")
