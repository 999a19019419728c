"""Pydantic models for schema snapshots.

This module contains the canonical schema data model shared by both sides of
a comparison:
- Column types: DataKind, ColumnDataType
- Structure: Column, Constraint, ForeignKeyReference, Table, DatabaseSchema

The same ``DatabaseSchema`` describes either what the database currently has
or what the models declare it should have. All models are frozen, so two
snapshots compare structurally with ``==``.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


# ============================================================================
# Column Types
# ============================================================================


class DataKind(str, Enum):
    """Closed set of semantic column types."""

    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    BOOL = "bool"
    STRING = "string"
    TEXT = "text"
    FLOAT = "float"
    DOUBLE = "double"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    UUID = "uuid"
    DATA = "data"
    JSON = "json"
    CUSTOM = "custom"


_SQL_TYPES: dict[DataKind, str] = {
    DataKind.INT: "INTEGER",
    DataKind.INT8: "TINYINT",
    DataKind.INT16: "SMALLINT",
    DataKind.INT32: "INTEGER",
    DataKind.INT64: "BIGINT",
    DataKind.UINT: "INTEGER UNSIGNED",
    DataKind.UINT8: "TINYINT UNSIGNED",
    DataKind.UINT16: "SMALLINT UNSIGNED",
    DataKind.UINT32: "INTEGER UNSIGNED",
    DataKind.UINT64: "BIGINT UNSIGNED",
    DataKind.BOOL: "BOOLEAN",
    DataKind.TEXT: "TEXT",
    DataKind.FLOAT: "REAL",
    DataKind.DOUBLE: "DOUBLE PRECISION",
    DataKind.DATE: "DATE",
    DataKind.DATETIME: "TIMESTAMP",
    DataKind.TIME: "TIME",
    DataKind.UUID: "UUID",
    DataKind.DATA: "BYTEA",
    DataKind.JSON: "JSONB",
}

_TAG_PATTERN = re.compile(r"^\s*(?P<kind>[a-z0-9]+)(?:\((?P<arg>.*)\))?\s*$", re.DOTALL)


class ColumnDataType(BaseModel):
    """Semantic type of a column.

    ``length`` is only meaningful for ``STRING`` and ``name`` only for
    ``CUSTOM`` (the raw dialect type name that could not be mapped).

    Example:
        >>> ColumnDataType.string(255).sql_type
        'VARCHAR(255)'
        >>> ColumnDataType.parse("custom(tsvector)").name
        'tsvector'
    """

    model_config = ConfigDict(frozen=True)

    kind: DataKind
    length: int | None = None
    name: str | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> "ColumnDataType":
        if self.length is not None and self.kind is not DataKind.STRING:
            raise ValueError(f"length is only valid for string columns, not {self.kind.value}")
        if self.kind is DataKind.CUSTOM:
            if not self.name:
                raise ValueError("custom column types require a raw type name")
        elif self.name is not None:
            raise ValueError(f"name is only valid for custom columns, not {self.kind.value}")
        return self

    @classmethod
    def of(cls, kind: DataKind | str) -> "ColumnDataType":
        """Build a payload-free type (``string`` without a length included)."""
        return cls(kind=DataKind(kind))

    @classmethod
    def string(cls, length: int | None = None) -> "ColumnDataType":
        return cls(kind=DataKind.STRING, length=length)

    @classmethod
    def custom(cls, raw_name: str) -> "ColumnDataType":
        return cls(kind=DataKind.CUSTOM, name=raw_name)

    @classmethod
    def parse(cls, tag: str) -> "ColumnDataType":
        """Parse a type tag produced by ``tag``.

        Whitespace around the tag is ignored; a payload is kept verbatim.

        Raises:
            ValueError: If the tag is not a known kind or has a bad payload.
        """
        match = _TAG_PATTERN.match(tag)
        if not match:
            raise ValueError(f"Invalid column type tag: {tag!r}")

        try:
            kind = DataKind(match.group("kind"))
        except ValueError:
            raise ValueError(f"Unknown column type in tag: {tag!r}") from None

        arg = match.group("arg")
        if kind is DataKind.CUSTOM:
            if not arg:
                raise ValueError(f"custom tag requires a type name: {tag!r}")
            return cls.custom(arg)
        if kind is DataKind.STRING and arg is not None:
            if not arg.isdigit():
                raise ValueError(f"string length must be an integer: {tag!r}")
            return cls.string(int(arg))
        if arg is not None:
            raise ValueError(f"{kind.value} does not take an argument: {tag!r}")
        return cls.of(kind)

    @property
    def tag(self) -> str:
        """Compact tag used in generated migration code."""
        if self.kind is DataKind.CUSTOM:
            return f"custom({self.name})"
        if self.kind is DataKind.STRING and self.length is not None:
            return f"string({self.length})"
        return self.kind.value

    @property
    def sql_type(self) -> str:
        """Canonical SQL type name (display and fallback only)."""
        if self.kind is DataKind.STRING:
            return f"VARCHAR({self.length if self.length is not None else 255})"
        if self.kind is DataKind.CUSTOM:
            return self.name or ""
        return _SQL_TYPES[self.kind]

    @property
    def is_custom(self) -> bool:
        return self.kind is DataKind.CUSTOM

    def __str__(self) -> str:
        return self.tag


# ============================================================================
# Columns and Constraints
# ============================================================================


class Column(BaseModel):
    """Schema for a table column.

    Two columns are equal only when name, type, optionality, uniqueness and
    default all match; any difference is a modification.

    Example:
        >>> col = Column(name="id", data_type=ColumnDataType.of("uuid"))
        >>> col.is_optional
        False
    """

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: ColumnDataType
    is_optional: bool = False
    is_unique: bool = False
    default: str | None = None  # Opaque literal, never parsed


class ReferentialAction(str, Enum):
    """Action taken on a referencing row when the referenced row changes."""

    CASCADE = "CASCADE"
    RESTRICT = "RESTRICT"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    NO_ACTION = "NO ACTION"

    @classmethod
    def parse(cls, raw: str | None) -> "ReferentialAction | None":
        """Map a catalog rule string (e.g. ``"set null"``) to an action."""
        if raw is None:
            return None
        try:
            return cls(" ".join(raw.upper().replace("_", " ").split()))
        except ValueError:
            return None


class ForeignKeyReference(BaseModel):
    """Target of a foreign key constraint."""

    model_config = ConfigDict(frozen=True)

    table: str
    column: str
    on_delete: ReferentialAction | None = None
    on_update: ReferentialAction | None = None


class ConstraintKind(str, Enum):
    PRIMARY_KEY = "primary_key"
    FOREIGN_KEY = "foreign_key"
    UNIQUE = "unique"
    INDEX = "index"


class Constraint(BaseModel):
    """Schema for a table constraint.

    ``columns`` is order-significant (composite keys). ``name`` is ``None``
    for constraints the database did not name; such constraints cannot be
    dropped by reference.
    """

    model_config = ConfigDict(frozen=True)

    kind: ConstraintKind
    columns: tuple[str, ...] = ()
    name: str | None = None
    references: ForeignKeyReference | None = None

    @model_validator(mode="after")
    def _check_references(self) -> "Constraint":
        if self.kind is ConstraintKind.FOREIGN_KEY and self.references is None:
            raise ValueError("foreign key constraints require a reference")
        if self.kind is not ConstraintKind.FOREIGN_KEY and self.references is not None:
            raise ValueError(f"{self.kind.value} constraints cannot carry a reference")
        return self


# ============================================================================
# Tables and Schema
# ============================================================================


class Table(BaseModel):
    """Schema for a database table."""

    model_config = ConfigDict(frozen=True)

    name: str
    columns: tuple[Column, ...] = ()
    constraints: tuple[Constraint, ...] = ()

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def column(self, name: str) -> Column | None:
        """Look up a column by name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None


class DatabaseSchema(BaseModel):
    """Complete schema snapshot (current or desired).

    Example:
        >>> schema = DatabaseSchema(tables=(Table(name="users"),))
        >>> schema.table("users").name
        'users'
        >>> schema.table("missing") is None
        True
    """

    model_config = ConfigDict(frozen=True)

    tables: tuple[Table, ...] = ()

    @property
    def table_names(self) -> list[str]:
        return [table.name for table in self.tables]

    def table(self, name: str) -> Table | None:
        """Look up a table by name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def __len__(self) -> int:
        return len(self.tables)
