"""Async MySQL database handle (SQLAlchemy + ``aiomysql``)."""

from typing import Any

from makemigration.adapters.engine import AsyncSQLDatabase


def normalize_mysql_url(database_url: str) -> str:
    """Normalize ``mysql://`` to the ``mysql+aiomysql://`` scheme."""
    if database_url.startswith("mysql://"):
        return "mysql+aiomysql://" + database_url[len("mysql://"):]
    return database_url


class MySQLDatabase(AsyncSQLDatabase):
    """MySQL handle.

    Args:
        database_url: Accepts ``mysql://`` or ``mysql+aiomysql://`` schemes.
            The URL must name a database; introspection is scoped to it.
        connect_timeout: Seconds to wait for a new connection.
        **engine_kwargs: Forwarded to ``create_async_engine_pooled``.
    """

    def __init__(
        self,
        database_url: str,
        connect_timeout: int = 10,
        **engine_kwargs: Any,
    ) -> None:
        engine_kwargs.setdefault("connect_args", {"connect_timeout": connect_timeout})
        super().__init__(normalize_mysql_url(database_url), **engine_kwargs)
