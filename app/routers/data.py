"""
Generic data router.

One set of endpoints serves every entity (users, applicants, assignments,
manpowerRequests, settings). Authorization and auditing happen in
EntityService.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from app.core.dependencies import get_current_user, get_entity_service
from app.schemas.user import SessionUser
from app.services.entity_service import EntityService

router = APIRouter(prefix="/api/data", tags=["Data"])


@router.get("/{entity}")
async def list_records(
    entity: str,
    user: SessionUser = Depends(get_current_user),
    service: EntityService = Depends(get_entity_service),
):
    """
    All records of an entity visible to the caller.

    Team leads only see their own assignments and manpower requests;
    manpower requests include a live ``assignedCount``.
    """
    return await service.list_records(entity, user)


@router.post("/{entity}", status_code=status.HTTP_201_CREATED)
async def create_record(
    entity: str,
    payload: Dict[str, Any] = Body(...),
    user: SessionUser = Depends(get_current_user),
    service: EntityService = Depends(get_entity_service),
):
    return await service.create_record(entity, payload, user)


@router.put("/{entity}")
async def update_record(
    entity: str,
    payload: Dict[str, Any] = Body(...),
    record_id: Optional[int] = Query(None, alias="id"),
    user: SessionUser = Depends(get_current_user),
    service: EntityService = Depends(get_entity_service),
):
    """Partial update; the id comes from ``?id=`` or the payload."""
    return await service.update_record(entity, payload, user, record_id=record_id)


@router.delete("/{entity}")
async def delete_record(
    entity: str,
    record_id: Optional[str] = Query(None, alias="id"),
    user: SessionUser = Depends(get_current_user),
    service: EntityService = Depends(get_entity_service),
):
    await service.delete_record(entity, record_id, user)
    return {"ok": True}
