"""Migration code generation and persistence.

Usage:
    from makemigration.generator import MigrationGenerator, MigrationFileWriter

    migration = MigrationGenerator().render(diff, "add users")
    MigrationFileWriter("migrations").write(migration.code, migration.identifier)
"""

from makemigration.generator.renderer import (
    GeneratedMigration,
    MigrationGenerator,
    generate,
    migration_identifier,
    normalize_name,
)
from makemigration.generator.writer import MigrationFileWriter

__all__ = [
    "generate",
    "GeneratedMigration",
    "MigrationGenerator",
    "MigrationFileWriter",
    "migration_identifier",
    "normalize_name",
]
