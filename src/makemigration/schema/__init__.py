"""Schema model, introspection and comparison.

Provides the canonical snapshot models (``DatabaseSchema`` and friends), the
two introspectors that produce them (``DatabaseIntrospector`` for a live
database, ``ModelIntrospector`` for model declarations), and ``compare``,
which turns two snapshots into a ``SchemaDiff``.

Usage:
    from makemigration.schema import DatabaseIntrospector, ModelIntrospector, compare
"""

from makemigration.schema.comparator import compare
from makemigration.schema.diff import (
    AddColumn,
    AddConstraint,
    CreateTable,
    DropColumn,
    DropConstraint,
    DropTable,
    ModifyColumn,
    RenameTable,
    SchemaChange,
    SchemaDiff,
)
from makemigration.schema.introspector import (
    CatalogRowError,
    DatabaseIntrospector,
    DatabaseNameUnresolvable,
    IntrospectionError,
    UnsupportedDatabaseKind,
)
from makemigration.schema.model_introspector import ModelIntrospector
from makemigration.schema.models import (
    Column,
    ColumnDataType,
    Constraint,
    ConstraintKind,
    DatabaseSchema,
    DataKind,
    ForeignKeyReference,
    ReferentialAction,
    Table,
)

__all__ = [
    "compare",
    "DatabaseIntrospector",
    "ModelIntrospector",
    "IntrospectionError",
    "UnsupportedDatabaseKind",
    "DatabaseNameUnresolvable",
    "CatalogRowError",
    "DataKind",
    "ColumnDataType",
    "Column",
    "ReferentialAction",
    "ForeignKeyReference",
    "ConstraintKind",
    "Constraint",
    "Table",
    "DatabaseSchema",
    "SchemaChange",
    "SchemaDiff",
    "CreateTable",
    "DropTable",
    "RenameTable",
    "AddColumn",
    "DropColumn",
    "ModifyColumn",
    "AddConstraint",
    "DropConstraint",
]
