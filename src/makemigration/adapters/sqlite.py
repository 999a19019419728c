"""Async SQLite database handle (SQLAlchemy + ``aiosqlite``)."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from makemigration.adapters.engine import AsyncSQLDatabase


def normalize_sqlite_url(database_url: str) -> str:
    """Normalize ``sqlite://`` to the ``sqlite+aiosqlite://`` scheme."""
    if database_url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + database_url[len("sqlite://"):]
    return database_url


class SQLiteDatabase(AsyncSQLDatabase):
    """SQLite handle.

    SQLite has no server-side pool, so the engine is created without the
    pooling defaults used for Postgres and MySQL.

    Example:
        db = SQLiteDatabase("sqlite:///app.db")
    """

    def __init__(self, database_url: str, **engine_kwargs: Any) -> None:
        super().__init__(normalize_sqlite_url(database_url), **engine_kwargs)

    def _create_engine(self, database_url: str, **engine_kwargs: Any) -> AsyncEngine:
        return create_async_engine(database_url, **engine_kwargs)
