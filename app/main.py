"""
Main FastAPI application.

This is the entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import Settings, settings
from app.errors import AppError, app_error_handler, build_error_payload
from app.repositories.store_factory import create_store
from app.routers import assignments, audit, auth, data, health

logger = logging.getLogger(__name__)


async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters use the same 400 shape as service validation."""
    details = {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]}
    return JSONResponse(
        status_code=400,
        content=build_error_payload("validation_error", "Invalid request", details),
    )


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    The store is constructed from ``app_settings`` on startup, initialized
    (defaults written, tables created, default users seeded) and closed on
    shutdown.
    """
    app_settings = app_settings or settings
    logging.basicConfig(
        level=app_settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s with %s store", app_settings.APP_NAME, app_settings.STORE_BACKEND)
        store = create_store(app_settings)
        await store.initialize()
        app.state.store = store

        yield

        logger.info("Shutting down %s", app_settings.APP_NAME)
        await store.close()

    app = FastAPI(
        title=app_settings.APP_NAME,
        description="Applicant claiming and manpower quota API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router)
    app.include_router(data.router)
    app.include_router(assignments.router)
    app.include_router(audit.router)

    return app


app = create_app()
