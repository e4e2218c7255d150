"""
Database engine and session factory construction.

Nothing here is created at import time: the process entry point builds the
engine and hands it to the relational entity store, which owns its lifecycle.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async database engine.

    echo=True prints SQL statements, handy when DEBUG is on.
    """
    engine = create_async_engine(
        database_url,
        echo=echo,
        future=True,
    )
    if engine.dialect.name == "sqlite":
        _begin_immediate(engine)
    return engine


def _begin_immediate(engine: AsyncEngine) -> None:
    """
    Take SQLite's write lock when a transaction starts.

    The sqlite driver defers BEGIN until the first write, so two transactions
    could both read the same assignments before either one writes. SQLite has
    no row locks, so BEGIN IMMEDIATE is what serializes claims there.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Keeps data accessible after commit
    )
