"""SQL database protocol definition.

Defines the ``SQLDatabase`` Protocol that every database handle given to the
introspector must satisfy. All methods are ``async def``.

Usage:
    from makemigration.adapters.base import SQLDatabase

    async def table_names(db: SQLDatabase) -> list[str]:
        rows = await db.fetch_all(
            "SELECT name FROM sqlite_master WHERE type = :kind",
            {"kind": "table"},
        )
        return [row["name"] for row in rows]
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SQLDatabase(Protocol):
    """Handle that can run parameterized raw SQL and decode rows.

    The introspector only reads through this interface. Which dialect a
    handle speaks is decided by its concrete type (see
    ``makemigration.adapters``), not by anything it returns.
    """

    async def fetch_all(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Execute a statement and return every row as a dict.

        Args:
            sql: Raw SQL with named ``:param`` placeholders.
            params: Values bound to the placeholders.

        Returns:
            List of dicts keyed by result column name. Empty list if no rows.

        Example:
            rows = await db.fetch_all(
                "SELECT column_name FROM information_schema.columns "
                "WHERE table_name = :table_name",
                {"table_name": "users"},
            )
        """
        ...

    async def close(self) -> None:
        """Close the handle and release its connections."""
        ...
