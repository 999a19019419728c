"""Runtime contract for generated migrations.

Generated modules subclass ``AsyncMigration`` and drive a ``Database`` through
``SchemaBuilder`` chains. Only the contract lives here; a migration runner
supplies the concrete builder.

Usage:
    from makemigration.migration import AsyncMigration, Database

    class CreateUsers20240102030405(AsyncMigration):
        async def prepare(self, database: Database) -> None:
            await (
                database.schema("users")
                .id()
                .field("name", "string(255)")
                .required()
                .create()
            )

        async def revert(self, database: Database) -> None:
            await database.schema("users").delete()
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import Protocol


class SchemaBuilder(Protocol):
    """Fluent builder for one table's DDL.

    Clause methods return the builder so calls chain. ``create``, ``update``
    and ``delete`` finalize the chain and must be awaited.
    """

    def id(self) -> "SchemaBuilder":
        """Add the identity column (uuid primary key)."""
        ...

    def field(self, name: str, data_type: str) -> "SchemaBuilder":
        """Add or redefine a column.

        Args:
            name: Column name.
            data_type: Column type tag such as ``"string(255)"``, ``"int64"``
                or ``"custom(tsvector)"``.
        """
        ...

    def required(self) -> "SchemaBuilder":
        """Mark the most recent field NOT NULL."""
        ...

    def unique(self) -> "SchemaBuilder":
        """Mark the most recent field unique."""
        ...

    def default(self, literal: str) -> "SchemaBuilder":
        """Set the most recent field's default to a raw SQL literal."""
        ...

    def delete_field(self, name: str) -> "SchemaBuilder":
        ...

    def unique_on(self, *columns: str) -> "SchemaBuilder":
        ...

    def foreign_key(
        self,
        column: str,
        table: str,
        referenced_column: str,
        on_delete: str | None = None,
        on_update: str | None = None,
    ) -> "SchemaBuilder":
        """Reference ``table.referenced_column`` from ``column``.

        ``on_delete`` / ``on_update`` take a referential action name
        (``"CASCADE"``, ``"RESTRICT"``, ``"SET NULL"``, ``"SET DEFAULT"``,
        ``"NO ACTION"``).
        """
        ...

    def create(self) -> Awaitable[None]:
        ...

    def update(self) -> Awaitable[None]:
        ...

    def delete(self) -> Awaitable[None]:
        ...


class Database(Protocol):
    """Entry point handed to ``prepare`` and ``revert``."""

    def schema(self, name: str) -> SchemaBuilder:
        """Start a builder chain for table *name*."""
        ...


class AsyncMigration(ABC):
    """Base class for generated migrations."""

    @property
    def name(self) -> str:
        """Migration identifier (the class name)."""
        return type(self).__name__

    @abstractmethod
    async def prepare(self, database: Database) -> None:
        """Apply the migration."""

    @abstractmethod
    async def revert(self, database: Database) -> None:
        """Undo the migration."""
