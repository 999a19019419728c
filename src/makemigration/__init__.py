"""makemigration: schema diffing and migration generation.

Compares model declarations against a live PostgreSQL, MySQL or SQLite
database and renders the difference as a reversible async migration module.

Usage:
    from makemigration import Field, Parent, ModelRegistry
    from makemigration import DatabaseIntrospector, ModelIntrospector, compare, generate
    from makemigration import create_database, load_config
"""

__version__ = "0.1.0"

# Adapters
from makemigration.adapters import (
    MySQLDatabase,
    PostgresDatabase,
    SQLDatabase,
    SQLiteDatabase,
)

# Config
from makemigration.config import DatabaseProfile, MigrationConfig, load_config

# Declarations
from makemigration.declarations import (
    DuplicateModelError,
    Field,
    Model,
    ModelRegistry,
    Parent,
    UnsupportedFieldType,
)

# Factory
from makemigration.factory import (
    ProfileNotFoundError,
    create_database,
    load_models,
    resolve_url,
)

# Generator
from makemigration.generator import MigrationFileWriter, MigrationGenerator, generate

# Migration contract
from makemigration.migration import AsyncMigration, Database, SchemaBuilder

# Schema
from makemigration.schema import (
    CatalogRowError,
    DatabaseIntrospector,
    DatabaseNameUnresolvable,
    DatabaseSchema,
    IntrospectionError,
    ModelIntrospector,
    SchemaDiff,
    UnsupportedDatabaseKind,
    compare,
)

__all__ = [
    # Adapters
    "SQLDatabase",
    "PostgresDatabase",
    "MySQLDatabase",
    "SQLiteDatabase",
    # Config
    "load_config",
    "DatabaseProfile",
    "MigrationConfig",
    # Declarations
    "Field",
    "Parent",
    "Model",
    "ModelRegistry",
    "UnsupportedFieldType",
    "DuplicateModelError",
    # Factory
    "create_database",
    "load_models",
    "resolve_url",
    "ProfileNotFoundError",
    # Generator
    "generate",
    "MigrationGenerator",
    "MigrationFileWriter",
    # Migration contract
    "AsyncMigration",
    "Database",
    "SchemaBuilder",
    # Schema
    "DatabaseIntrospector",
    "ModelIntrospector",
    "compare",
    "DatabaseSchema",
    "SchemaDiff",
    "IntrospectionError",
    "UnsupportedDatabaseKind",
    "DatabaseNameUnresolvable",
    "CatalogRowError",
]
