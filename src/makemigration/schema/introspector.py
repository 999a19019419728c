"""Live database schema introspection.

This module queries a live database's catalog and builds a ``DatabaseSchema``
snapshot:
- Tables (excluding the migration-tracking table and system tables)
- Columns: type, nullability, default, uniqueness
- Constraints: primary key, foreign key (with referential actions), unique

The dialect is chosen from the concrete type of the handle
(``PostgresDatabase``, ``MySQLDatabase``, ``SQLiteDatabase``). Every catalog
query binds the table and schema names as parameters; the SQL text itself is
static.

Catalog rows are decoded strictly: a row missing a required field, or
carrying a value of the wrong type, raises ``CatalogRowError`` and aborts
introspection instead of being skipped.
"""

import logging
from typing import Any

from makemigration.adapters.base import SQLDatabase
from makemigration.adapters.mysql import MySQLDatabase
from makemigration.adapters.postgres import PostgresDatabase
from makemigration.adapters.sqlite import SQLiteDatabase
from makemigration.schema.models import (
    Column,
    Constraint,
    ConstraintKind,
    DatabaseSchema,
    ForeignKeyReference,
    ReferentialAction,
    Table,
)
from makemigration.schema.types import map_mysql_type, map_postgres_type, map_sqlite_type

logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================


class IntrospectionError(Exception):
    """Base class for introspection failures."""

    pass


class UnsupportedDatabaseKind(IntrospectionError):
    """Raised when a handle cannot run SQL or speaks an unsupported dialect."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Unsupported database type: {kind}")


class DatabaseNameUnresolvable(IntrospectionError):
    """Raised when MySQL does not report a current database."""

    def __init__(self) -> None:
        super().__init__(
            "Cannot determine database name: SELECT DATABASE() returned no value.\n"
            "Include the database name in the connection URL."
        )


class CatalogRowError(IntrospectionError):
    """Raised when a catalog row lacks a required field or cannot be decoded."""

    pass


# ============================================================================
# Row decoding
# ============================================================================


def _context(table_name: str | None) -> str:
    return f" for table '{table_name}'" if table_name else ""


def _text(row: dict[str, Any], key: str, table_name: str | None = None) -> str:
    """Decode a required, non-empty string field."""
    if key not in row:
        raise CatalogRowError(f"Catalog row{_context(table_name)} is missing '{key}'")
    value = row[key]
    if isinstance(value, bytes):
        value = value.decode()
    if not isinstance(value, str) or not value:
        raise CatalogRowError(
            f"Catalog row{_context(table_name)} has invalid '{key}': {value!r}"
        )
    return value


def _optional_text(row: dict[str, Any], key: str, table_name: str | None = None) -> str | None:
    """Decode a nullable string field (the field itself must be present)."""
    if key not in row:
        raise CatalogRowError(f"Catalog row{_context(table_name)} is missing '{key}'")
    value = row[key]
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode()
    if isinstance(value, str):
        return value
    raise CatalogRowError(f"Catalog row{_context(table_name)} has invalid '{key}': {value!r}")


def _optional_int(row: dict[str, Any], key: str, table_name: str | None = None) -> int | None:
    """Decode a nullable integer field (the field itself must be present)."""
    if key not in row:
        raise CatalogRowError(f"Catalog row{_context(table_name)} is missing '{key}'")
    value = row[key]
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise CatalogRowError(f"Catalog row{_context(table_name)} has invalid '{key}': {value!r}")


def _int(row: dict[str, Any], key: str, table_name: str | None = None) -> int:
    value = _optional_int(row, key, table_name)
    if value is None:
        raise CatalogRowError(f"Catalog row{_context(table_name)} has NULL '{key}'")
    return value


# ============================================================================
# Constraint assembly
# ============================================================================

_CONSTRAINT_KINDS: dict[str, ConstraintKind] = {
    "PRIMARY KEY": ConstraintKind.PRIMARY_KEY,
    "FOREIGN KEY": ConstraintKind.FOREIGN_KEY,
    "UNIQUE": ConstraintKind.UNIQUE,
}


def _merge_constraint_rows(rows: list[dict[str, Any]], table_name: str) -> list[Constraint]:
    """Collapse one-row-per-column catalog output into one constraint per name.

    Composite keys arrive as repeated rows sharing a constraint name, and the
    join against the referenced columns can repeat a referencing column, so
    column lists are de-duplicated in first-seen order. A composite foreign
    key keeps its first referenced column.

    Expected row keys: constraint_name, constraint_type, column_name,
    foreign_table_name, foreign_column_name, delete_rule, update_rule.
    """
    kinds: dict[str, ConstraintKind] = {}
    constraint_columns: dict[str, list[str]] = {}
    references: dict[str, ForeignKeyReference] = {}

    for row in rows:
        name = _text(row, "constraint_name", table_name)
        raw_kind = _text(row, "constraint_type", table_name)
        column_name = _text(row, "column_name", table_name)

        kind = _CONSTRAINT_KINDS.get(raw_kind.upper())
        if kind is None:
            raise CatalogRowError(
                f"Catalog row for table '{table_name}' has unsupported "
                f"constraint_type: {raw_kind!r}"
            )

        if name not in kinds:
            kinds[name] = kind
            constraint_columns[name] = []

        if column_name not in constraint_columns[name]:
            constraint_columns[name].append(column_name)

        if kind is ConstraintKind.FOREIGN_KEY and name not in references:
            references[name] = ForeignKeyReference(
                table=_text(row, "foreign_table_name", table_name),
                column=_text(row, "foreign_column_name", table_name),
                on_delete=ReferentialAction.parse(_optional_text(row, "delete_rule", table_name)),
                on_update=ReferentialAction.parse(_optional_text(row, "update_rule", table_name)),
            )

    return [
        Constraint(
            kind=kinds[name],
            columns=tuple(cols),
            name=name,
            references=references.get(name),
        )
        for name, cols in constraint_columns.items()
    ]


def _mark_unique_columns(columns: list[Column], constraints: list[Constraint]) -> list[Column]:
    """Flag columns that alone make up a primary key or unique constraint."""
    unique_names = {
        constraint.columns[0]
        for constraint in constraints
        if constraint.kind in (ConstraintKind.PRIMARY_KEY, ConstraintKind.UNIQUE)
        and len(constraint.columns) == 1
    }
    return [
        column.model_copy(update={"is_unique": True})
        if column.name in unique_names and not column.is_unique
        else column
        for column in columns
    ]


# ============================================================================
# Introspector
# ============================================================================


class DatabaseIntrospector:
    """Builds a ``DatabaseSchema`` from a live database.

    Usage:
        db = PostgresDatabase("postgresql://localhost/app")
        schema = await DatabaseIntrospector(db).introspect()
        print(schema.table_names)

    Args:
        database: Handle satisfying ``SQLDatabase``. Its concrete type picks
            the dialect.
        excluded_tables: Table names to skip.  Defaults to
            ``EXCLUDED_TABLES_DEFAULT`` (the migration-tracking table).
        schema_name: PostgreSQL schema to read (ignored by MySQL, which uses
            the connection's current database, and by SQLite).
    """

    EXCLUDED_TABLES_DEFAULT = {"_fluent_migrations"}

    def __init__(
        self,
        database: Any,
        excluded_tables: set[str] | None = None,
        schema_name: str = "public",
    ) -> None:
        self._db = database
        self._excluded_tables = (
            set(self.EXCLUDED_TABLES_DEFAULT) if excluded_tables is None else set(excluded_tables)
        )
        self._schema_name = schema_name

    @property
    def dialect(self) -> str:
        """Dialect name of the handle.

        Raises:
            UnsupportedDatabaseKind: If the handle cannot execute SQL or is not
                one of the supported dialect handles.
        """
        if not isinstance(self._db, SQLDatabase):
            raise UnsupportedDatabaseKind(type(self._db).__name__)
        if isinstance(self._db, PostgresDatabase):
            return "postgres"
        if isinstance(self._db, MySQLDatabase):
            return "mysql"
        if isinstance(self._db, SQLiteDatabase):
            return "sqlite"
        raise UnsupportedDatabaseKind(type(self._db).__name__)

    async def introspect(self) -> DatabaseSchema:
        """Introspect every user table of the database.

        Returns:
            DatabaseSchema with tables in catalog (name) order.

        Raises:
            UnsupportedDatabaseKind: Unsupported handle.
            DatabaseNameUnresolvable: MySQL has no current database.
            CatalogRowError: A catalog row could not be decoded.
        """
        dialect = self.dialect
        logger.info("Introspecting %s database", dialect)

        if dialect == "postgres":
            tables = await self._introspect_postgres()
        elif dialect == "mysql":
            tables = await self._introspect_mysql()
        else:
            tables = await self._introspect_sqlite()

        logger.info("Found %d tables", len(tables))
        return DatabaseSchema(tables=tuple(tables))

    def _keep(self, table_name: str) -> bool:
        if table_name in self._excluded_tables:
            logger.debug("Skipping excluded table %s", table_name)
            return False
        return True

    # ------------------------------------------------------------------
    # PostgreSQL
    # ------------------------------------------------------------------

    async def _introspect_postgres(self) -> list[Table]:
        rows = await self._db.fetch_all(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = :schema_name
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """,
            {"schema_name": self._schema_name},
        )

        tables: list[Table] = []
        for row in rows:
            table_name = _text(row, "table_name")
            if not self._keep(table_name):
                continue

            logger.debug("Introspecting table %s", table_name)
            columns = await self._get_postgres_columns(table_name)
            constraints = await self._get_postgres_constraints(table_name)
            tables.append(
                Table(
                    name=table_name,
                    columns=tuple(_mark_unique_columns(columns, constraints)),
                    constraints=tuple(constraints),
                )
            )
        return tables

    async def _get_postgres_columns(self, table_name: str) -> list[Column]:
        rows = await self._db.fetch_all(
            """
            SELECT
                column_name,
                udt_name,
                character_maximum_length,
                is_nullable,
                column_default
            FROM information_schema.columns
            WHERE table_schema = :schema_name
              AND table_name = :table_name
            ORDER BY ordinal_position
            """,
            {"schema_name": self._schema_name, "table_name": table_name},
        )

        return [
            Column(
                name=_text(row, "column_name", table_name),
                data_type=map_postgres_type(
                    _text(row, "udt_name", table_name),
                    _optional_int(row, "character_maximum_length", table_name),
                ),
                is_optional=_text(row, "is_nullable", table_name) == "YES",
                default=_optional_text(row, "column_default", table_name),
            )
            for row in rows
        ]

    async def _get_postgres_constraints(self, table_name: str) -> list[Constraint]:
        # pg_constraint is keyed by the owning table, so FK names that repeat
        # across tables never mix, and conkey/confkey unnest pairwise.
        # A target outside the introspected schema is reported as schema.table.
        rows = await self._db.fetch_all(
            """
            SELECT
                con.conname AS constraint_name,
                CASE con.contype
                    WHEN 'p' THEN 'PRIMARY KEY'
                    WHEN 'u' THEN 'UNIQUE'
                    WHEN 'f' THEN 'FOREIGN KEY'
                END AS constraint_type,
                att.attname AS column_name,
                CASE
                    WHEN ref_cls.oid IS NULL THEN NULL
                    WHEN ref_nsp.nspname = nsp.nspname THEN ref_cls.relname::text
                    ELSE ref_nsp.nspname || '.' || ref_cls.relname
                END AS foreign_table_name,
                ref_att.attname AS foreign_column_name,
                CASE con.confdeltype
                    WHEN 'a' THEN 'NO ACTION'
                    WHEN 'r' THEN 'RESTRICT'
                    WHEN 'c' THEN 'CASCADE'
                    WHEN 'n' THEN 'SET NULL'
                    WHEN 'd' THEN 'SET DEFAULT'
                END AS delete_rule,
                CASE con.confupdtype
                    WHEN 'a' THEN 'NO ACTION'
                    WHEN 'r' THEN 'RESTRICT'
                    WHEN 'c' THEN 'CASCADE'
                    WHEN 'n' THEN 'SET NULL'
                    WHEN 'd' THEN 'SET DEFAULT'
                END AS update_rule
            FROM pg_catalog.pg_constraint AS con
            JOIN pg_catalog.pg_class AS cls ON cls.oid = con.conrelid
            JOIN pg_catalog.pg_namespace AS nsp ON nsp.oid = cls.relnamespace
            CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
                WITH ORDINALITY AS k(attnum, ref_attnum, ord)
            JOIN pg_catalog.pg_attribute AS att
                ON att.attrelid = con.conrelid
                AND att.attnum = k.attnum
            LEFT JOIN pg_catalog.pg_class AS ref_cls ON ref_cls.oid = con.confrelid
            LEFT JOIN pg_catalog.pg_namespace AS ref_nsp ON ref_nsp.oid = ref_cls.relnamespace
            LEFT JOIN pg_catalog.pg_attribute AS ref_att
                ON ref_att.attrelid = con.confrelid
                AND ref_att.attnum = k.ref_attnum
            WHERE nsp.nspname = :schema_name
              AND cls.relname = :table_name
              AND con.contype IN ('p', 'u', 'f')
            ORDER BY con.conname, k.ord
            """,
            {"schema_name": self._schema_name, "table_name": table_name},
        )
        return _merge_constraint_rows(rows, table_name)

    # ------------------------------------------------------------------
    # MySQL
    # ------------------------------------------------------------------

    async def _get_mysql_database_name(self) -> str:
        rows = await self._db.fetch_all("SELECT DATABASE() AS db")
        if not rows or rows[0].get("db") is None:
            raise DatabaseNameUnresolvable()
        return _text(rows[0], "db")

    async def _introspect_mysql(self) -> list[Table]:
        database_name = await self._get_mysql_database_name()
        logger.debug("MySQL current database is %s", database_name)

        rows = await self._db.fetch_all(
            """
            SELECT table_name AS table_name
            FROM information_schema.tables
            WHERE table_schema = :database_name
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """,
            {"database_name": database_name},
        )

        tables: list[Table] = []
        for row in rows:
            table_name = _text(row, "table_name")
            if not self._keep(table_name):
                continue

            logger.debug("Introspecting table %s", table_name)
            columns = await self._get_mysql_columns(database_name, table_name)
            constraints = await self._get_mysql_constraints(database_name, table_name)
            tables.append(
                Table(
                    name=table_name,
                    columns=tuple(_mark_unique_columns(columns, constraints)),
                    constraints=tuple(constraints),
                )
            )
        return tables

    async def _get_mysql_columns(self, database_name: str, table_name: str) -> list[Column]:
        # information_schema column labels are upper case on MySQL 8 unless aliased
        rows = await self._db.fetch_all(
            """
            SELECT
                column_name AS column_name,
                data_type AS data_type,
                column_type AS column_type,
                character_maximum_length AS character_maximum_length,
                is_nullable AS is_nullable,
                column_default AS column_default,
                column_key AS column_key
            FROM information_schema.columns
            WHERE table_schema = :database_name
              AND table_name = :table_name
            ORDER BY ordinal_position
            """,
            {"database_name": database_name, "table_name": table_name},
        )

        return [
            Column(
                name=_text(row, "column_name", table_name),
                data_type=map_mysql_type(
                    _text(row, "data_type", table_name),
                    _optional_int(row, "character_maximum_length", table_name),
                    _optional_text(row, "column_type", table_name),
                ),
                is_optional=_text(row, "is_nullable", table_name) == "YES",
                is_unique=_optional_text(row, "column_key", table_name) == "UNI",
                default=_optional_text(row, "column_default", table_name),
            )
            for row in rows
        ]

    async def _get_mysql_constraints(self, database_name: str, table_name: str) -> list[Constraint]:
        rows = await self._db.fetch_all(
            """
            SELECT
                tc.constraint_name AS constraint_name,
                tc.constraint_type AS constraint_type,
                kcu.column_name AS column_name,
                kcu.referenced_table_name AS foreign_table_name,
                kcu.referenced_column_name AS foreign_column_name,
                rc.delete_rule AS delete_rule,
                rc.update_rule AS update_rule
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
                ON kcu.constraint_schema = tc.constraint_schema
                AND kcu.constraint_name = tc.constraint_name
                AND kcu.table_name = tc.table_name
            LEFT JOIN information_schema.referential_constraints AS rc
                ON rc.constraint_schema = tc.constraint_schema
                AND rc.constraint_name = tc.constraint_name
                AND rc.table_name = tc.table_name
            WHERE tc.table_schema = :database_name
              AND tc.table_name = :table_name
              AND tc.constraint_type IN ('PRIMARY KEY', 'FOREIGN KEY', 'UNIQUE')
            ORDER BY tc.constraint_name, kcu.ordinal_position
            """,
            {"database_name": database_name, "table_name": table_name},
        )
        return _merge_constraint_rows(rows, table_name)

    # ------------------------------------------------------------------
    # SQLite
    # ------------------------------------------------------------------

    async def _introspect_sqlite(self) -> list[Table]:
        rows = await self._db.fetch_all(
            """
            SELECT name
            FROM sqlite_master
            WHERE type = 'table'
              AND name NOT LIKE 'sqlite_%'
            ORDER BY name
            """
        )

        tables: list[Table] = []
        for row in rows:
            table_name = _text(row, "name")
            if not self._keep(table_name):
                continue

            logger.debug("Introspecting table %s", table_name)
            info_rows = await self._get_sqlite_table_info(table_name)
            columns = [
                Column(
                    name=_text(info, "name", table_name),
                    data_type=map_sqlite_type(_optional_text(info, "type", table_name) or ""),
                    is_optional=_int(info, "notnull", table_name) != 1,
                    default=_optional_text(info, "dflt_value", table_name),
                )
                for info in info_rows
            ]

            constraints: list[Constraint] = []
            primary_key = self._sqlite_primary_key(info_rows, table_name)
            if primary_key:
                constraints.append(
                    Constraint(kind=ConstraintKind.PRIMARY_KEY, columns=tuple(primary_key))
                )
            constraints.extend(await self._get_sqlite_foreign_keys(table_name))

            tables.append(
                Table(
                    name=table_name,
                    columns=tuple(_mark_unique_columns(columns, constraints)),
                    constraints=tuple(constraints),
                )
            )
        return tables

    async def _get_sqlite_table_info(self, table_name: str) -> list[dict[str, Any]]:
        # Table-valued pragma form so the table name can be bound
        return await self._db.fetch_all(
            'SELECT name, type, "notnull" AS "notnull", dflt_value, pk '
            "FROM pragma_table_info(:table_name) ORDER BY cid",
            {"table_name": table_name},
        )

    @staticmethod
    def _sqlite_primary_key(info_rows: list[dict[str, Any]], table_name: str) -> list[str]:
        """Primary-key columns ordered by their position in the key."""
        keyed = [
            (_int(info, "pk", table_name), _text(info, "name", table_name))
            for info in info_rows
        ]
        return [name for position, name in sorted(keyed) if position > 0]

    async def _get_sqlite_foreign_keys(self, table_name: str) -> list[Constraint]:
        rows = await self._db.fetch_all(
            'SELECT id, seq, "table" AS foreign_table_name, "from" AS column_name, '
            '"to" AS foreign_column_name, on_update, on_delete '
            "FROM pragma_foreign_key_list(:table_name) ORDER BY id, seq",
            {"table_name": table_name},
        )

        grouped: dict[int, list[dict[str, Any]]] = {}
        for row in rows:
            grouped.setdefault(_int(row, "id", table_name), []).append(row)

        constraints: list[Constraint] = []
        for fk_rows in grouped.values():
            first = fk_rows[0]
            target_table = _text(first, "foreign_table_name", table_name)
            target_column = _optional_text(first, "foreign_column_name", table_name)
            if target_column is None:
                # REFERENCES without a column list points at the target's primary key
                target_info = await self._get_sqlite_table_info(target_table)
                target_key = self._sqlite_primary_key(target_info, target_table)
                if not target_key:
                    # SQLite only checks the target when rows are written
                    logger.warning(
                        "Skipping foreign key on table %s: target %s is missing "
                        "or has no primary key",
                        table_name,
                        target_table,
                    )
                    continue
                target_column = target_key[0]

            constraints.append(
                Constraint(
                    kind=ConstraintKind.FOREIGN_KEY,
                    columns=tuple(
                        dict.fromkeys(_text(row, "column_name", table_name) for row in fk_rows)
                    ),
                    references=ForeignKeyReference(
                        table=target_table,
                        column=target_column,
                        on_delete=ReferentialAction.parse(
                            _optional_text(first, "on_delete", table_name)
                        ),
                        on_update=ReferentialAction.parse(
                            _optional_text(first, "on_update", table_name)
                        ),
                    ),
                )
            )
        return constraints
