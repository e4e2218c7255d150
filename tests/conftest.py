"""
Pytest configuration and shared fixtures.

Tests are plain functions that drive coroutines with asyncio.run, so every
store is built, used and closed inside a single event loop.
"""

from contextlib import asynccontextmanager

import pytest

from app.core.entities import APPLICANTS, MANPOWER_REQUESTS, USERS
from app.db.session import build_engine
from app.repositories.file_store import JsonFileStore
from app.repositories.sql_store import SqlEntityStore
from app.schemas.user import SessionUser

STORE_BACKENDS = ["file", "sql"]


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests, no external deps")
    config.addinivalue_line("markers", "api: drives the FastAPI app through TestClient")


@pytest.fixture(params=STORE_BACKENDS)
def open_store(request, tmp_path):
    """
    Factory for an initialized store of each backing.

    Usage:
        async def main():
            async with open_store() as store:
                ...
        asyncio.run(main())
    """
    backend = request.param

    @asynccontextmanager
    async def _open(initial_users=None):
        if backend == "file":
            store = JsonFileStore(tmp_path / "store.json", initial_users=initial_users)
        else:
            engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
            store = SqlEntityStore(engine, initial_users=initial_users)
        await store.initialize()
        try:
            yield store
        finally:
            await store.close()

    return _open


def actor(role: str, email: str = None, user_id: int = 1) -> SessionUser:
    """A session user for service calls."""
    local_part = {"team-lead": "tl"}.get(role, role)
    return SessionUser(id=user_id, email=email or f"{local_part}@co.com", role=role)


class Seeder:
    """Writes fixture records straight through the store (no gate, no audit)."""

    def __init__(self, store):
        self.store = store

    async def user(self, email: str, role: str, **fields):
        return await self.store.create(USERS, {"email": email, "role": role, **fields})

    async def team_lead(self, email: str = "tl@co.com"):
        return await self.user(email, "team-lead")

    async def applicant(self, name: str = "Juan Dela Cruz", position: str = "Field Collector", status: str = "approved", **fields):
        payload = {"name": name, "positionAppliedFor": position, "status": status, "age": 27, **fields}
        return await self.store.create(APPLICANTS, payload)

    async def request(self, tl_email: str = "tl@co.com", position: str = "Field Collector", limit=1, status: str = "approved"):
        return await self.store.create(
            MANPOWER_REQUESTS,
            {
                "teamLeadEmail": tl_email,
                "teamLeadName": tl_email.split("@")[0],
                "position": position,
                "requestedCount": limit,
                "status": status,
                "limit": limit,
            },
        )


@pytest.fixture
def seeder():
    return Seeder


@pytest.fixture
def make_actor():
    return actor
