"""Audit log router (admin only)."""

from typing import List

from fastapi import APIRouter, Depends

from app.core.dependencies import get_audit_recorder, get_current_user
from app.schemas.audit_log import AuditLogRead
from app.schemas.user import SessionUser
from app.services.audit_service import AuditRecorder

router = APIRouter(prefix="/api/audit", tags=["Audit"])


@router.get("", response_model=List[AuditLogRead], response_model_by_alias=True)
async def list_audit_logs(
    user: SessionUser = Depends(get_current_user),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Every audit record, most recent first."""
    return await audit.list_logs(user)
