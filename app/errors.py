"""Structured error helpers for API responses."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppError(Exception):
    """Application-scoped error for standardized API responses."""

    def __init__(self, status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details
        self.payload = build_error_payload(code, message, details)


class ValidationError(AppError):
    """Missing or malformed input."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, "validation_error", message, details)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "unauthorized", message)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(status.HTTP_403_FORBIDDEN, "forbidden", message)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(status.HTTP_404_NOT_FOUND, "not_found", message, details)


class ConflictError(AppError):
    """
    Business-rule violation.

    These are expected outcomes, not bugs. ``rule`` names the violated rule so
    callers can render an actionable message.
    """

    def __init__(self, rule: str, message: str, details: Optional[Dict[str, Any]] = None):
        merged = {"rule": rule}
        if details:
            merged.update(details)
        super().__init__(status.HTTP_409_CONFLICT, "conflict", message, merged)
        self.rule = rule


class StorageFailureError(AppError):
    """Underlying read/write failure (disk, connection, corrupt document)."""

    def __init__(self, message: str = "Storage failure"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_failure", message)


async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)

