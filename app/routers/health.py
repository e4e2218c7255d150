"""Health check router."""

import logging

from fastapi import APIRouter, Depends

from app.core.dependencies import get_store
from app.errors import AppError
from app.repositories.entity_store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(store: EntityStore = Depends(get_store)):
    """Lightweight health endpoint with a store round-trip."""

    store_ok = False
    try:
        await store.get_settings()
        store_ok = True
    except AppError as exc:
        logger.warning("Health check store read failed: %s", exc.message)

    return {
        "api_ok": True,
        "backend": store.backend,
        "store_ok": store_ok,
    }
