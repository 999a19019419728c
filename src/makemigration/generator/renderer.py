"""Migration source generation.

Renders a ``SchemaDiff`` as a Python module holding one ``AsyncMigration``
subclass. ``prepare`` applies the changes in diff order; ``revert`` undoes
them in reverse order where an inverse can be derived mechanically, and
leaves a comment for manual review where it cannot (dropped tables and
columns, constraint changes, renames).

Each executable statement is a single awaited builder chain:

    await (
        database.schema("users")
        .id()
        .field("name", "string(255)")
        .required()
        .create()
    )

Usage:
    from makemigration.generator import generate

    code = generate(diff, "add users")
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

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
from makemigration.schema.models import Column, Constraint, ConstraintKind

logger = logging.getLogger(__name__)

IDENTITY_COLUMN = "id"
BODY_INDENT = " " * 8

_NAME_SEPARATORS = re.compile(r"[^0-9A-Za-z]+")


# ============================================================================
# Naming
# ============================================================================


def normalize_name(name: str) -> str:
    """Turn a free-form migration name into a class-name fragment.

    Splits on anything that is not an ASCII letter or digit and capitalizes
    each part with the rest lowercased.

    Examples:
        >>> normalize_name("add user_fields")
        'AddUserFields'
        >>> normalize_name("CreateUsers")
        'Createusers'
        >>> normalize_name("--")
        'Migration'
    """
    parts = [part for part in _NAME_SEPARATORS.split(name) if part]
    if not parts:
        return "Migration"
    return "".join(part[0].upper() + part[1:].lower() for part in parts)


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def migration_identifier(name: str, now: datetime | None = None) -> str:
    """Class name and file stem for a migration.

    Example:
        >>> migration_identifier("users", datetime(2024, 1, 2, 3, 4, 5))
        'CreateUsers20240102030405'
    """
    return f"Create{normalize_name(name)}{_utc(now):%Y%m%d%H%M%S}"


# ============================================================================
# Literals and clauses
# ============================================================================


def _quote(value: str) -> str:
    """Double-quoted Python string literal."""
    return json.dumps(value, ensure_ascii=False)


def _quoted_list(values: tuple[str, ...]) -> str:
    return ", ".join(_quote(value) for value in values)


def _comment(text: str) -> str:
    return "# " + " ".join(text.splitlines())


def _sql_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _field_clauses(column: Column) -> list[str]:
    clauses = [f".field({_quote(column.name)}, {_quote(column.data_type.tag)})"]
    if not column.is_optional:
        clauses.append(".required()")
    if column.is_unique:
        clauses.append(".unique()")
    if column.default is not None:
        clauses.append(f".default({_quote(column.default)})")
    return clauses


def _unmapped_notes(columns: list[Column]) -> list[str]:
    return [
        _comment(f"Unmapped database type '{column.data_type.name}': review manually")
        for column in columns
        if column.data_type.is_custom
    ]


def _constraint_clause(constraint: Constraint) -> str | None:
    """Builder clause for a constraint, or None when it is not generated."""
    if not constraint.columns:
        return None
    if constraint.kind is ConstraintKind.UNIQUE:
        return f".unique_on({_quoted_list(constraint.columns)})"
    if constraint.kind is ConstraintKind.FOREIGN_KEY and constraint.references is not None:
        if len(constraint.columns) > 1:
            # foreign_key() takes a single local column
            return None
        ref = constraint.references
        args = [_quote(constraint.columns[0]), _quote(ref.table), _quote(ref.column)]
        if ref.on_delete is not None:
            args.append(f"on_delete={_quote(ref.on_delete.value)}")
        if ref.on_update is not None:
            args.append(f"on_update={_quote(ref.on_update.value)}")
        return f".foreign_key({', '.join(args)})"
    return None


def _constraint_note(constraint: Constraint) -> str:
    columns = _quoted_list(constraint.columns)
    if constraint.kind is ConstraintKind.INDEX:
        return _comment(f"Index on {columns} is not generated")
    if constraint.kind is ConstraintKind.PRIMARY_KEY:
        return _comment(f"Primary key on {columns} is owned by the identity column")
    if constraint.kind is ConstraintKind.FOREIGN_KEY and constraint.references is not None:
        ref = constraint.references
        return _comment(
            f"Composite foreign key on {columns} referencing "
            f"'{ref.table}.{ref.column}' is not generated: review manually"
        )
    return _comment(f"{constraint.kind.value} constraint on {columns} is not generated")


def _describe(constraint: Constraint) -> str:
    label = constraint.kind.value.replace("_", " ")
    if constraint.name:
        return f"{label} constraint '{constraint.name}'"
    return f"{label} constraint on ({', '.join(constraint.columns)})"


# ============================================================================
# Statements
# ============================================================================


@dataclass
class _Statement:
    """Comment lines followed by an optional awaited builder chain."""

    notes: list[str]
    table: str | None = None
    clauses: list[str] | None = None

    @property
    def executable(self) -> bool:
        return self.table is not None

    def lines(self) -> list[str]:
        lines = list(self.notes)
        if self.table is not None:
            lines.append("await (")
            lines.append(f"    database.schema({_quote(self.table)})")
            lines.extend(f"    {clause}" for clause in self.clauses or [])
            lines.append(")")
        return lines


def _chain(table: str, clauses: list[str], notes: list[str] | None = None) -> _Statement:
    return _Statement(notes=notes or [], table=table, clauses=clauses)


def _notice(*notes: str) -> _Statement:
    return _Statement(notes=[_comment(note) for note in notes])


def _forward(change: SchemaChange) -> _Statement:
    if isinstance(change, CreateTable):
        table = change.table
        columns = [column for column in table.columns if column.name != IDENTITY_COLUMN]
        clauses = [".id()"]
        for column in columns:
            clauses.extend(_field_clauses(column))
        for constraint in table.constraints:
            if constraint.kind is ConstraintKind.PRIMARY_KEY:
                continue
            clause = _constraint_clause(constraint)
            clauses.append(clause if clause is not None else _constraint_note(constraint))
        clauses.append(".create()")
        return _chain(table.name, clauses, _unmapped_notes(columns))

    if isinstance(change, DropTable):
        return _chain(change.table_name, [".delete()"])

    if isinstance(change, AddColumn):
        return _chain(
            change.table,
            _field_clauses(change.column) + [".update()"],
            _unmapped_notes([change.column]),
        )

    if isinstance(change, DropColumn):
        return _chain(change.table, [f".delete_field({_quote(change.column_name)})", ".update()"])

    if isinstance(change, ModifyColumn):
        return _chain(
            change.table,
            _field_clauses(change.to_column) + [".update()"],
            _unmapped_notes([change.to_column]),
        )

    if isinstance(change, AddConstraint):
        clause = _constraint_clause(change.constraint)
        if clause is None:
            return _Statement(notes=[_constraint_note(change.constraint)])
        return _chain(change.table, [clause, ".update()"])

    if isinstance(change, DropConstraint):
        return _notice(
            f"Drop constraint '{change.constraint_name}' from '{change.table}'",
            "Manual intervention required:",
            f"ALTER TABLE {_sql_identifier(change.table)} "
            f"DROP CONSTRAINT {_sql_identifier(change.constraint_name)};",
        )

    if isinstance(change, RenameTable):
        return _notice(
            f"Rename table '{change.from_name}' to '{change.to_name}'",
            "Manual intervention required:",
            f"ALTER TABLE {_sql_identifier(change.from_name)} "
            f"RENAME TO {_sql_identifier(change.to_name)};",
        )

    raise TypeError(f"Unknown schema change: {change!r}")


def _reverse(change: SchemaChange) -> _Statement:
    if isinstance(change, CreateTable):
        return _chain(change.table.name, [".delete()"])

    if isinstance(change, DropTable):
        return _notice(
            f"Cannot recreate dropped table '{change.table_name}'",
            "Manual intervention required",
        )

    if isinstance(change, AddColumn):
        return _chain(change.table, [f".delete_field({_quote(change.column.name)})", ".update()"])

    if isinstance(change, DropColumn):
        return _notice(
            f"Cannot restore dropped column '{change.column_name}' to '{change.table}'",
            "Manual intervention required",
        )

    if isinstance(change, ModifyColumn):
        return _chain(
            change.table,
            _field_clauses(change.from_column) + [".update()"],
            _unmapped_notes([change.from_column]),
        )

    if isinstance(change, AddConstraint):
        return _notice(
            f"Remove {_describe(change.constraint)} from '{change.table}'",
            "Review manually",
        )

    if isinstance(change, DropConstraint):
        return _notice(
            f"Restore constraint '{change.constraint_name}' on '{change.table}'",
            "Review manually",
        )

    if isinstance(change, RenameTable):
        return _notice(
            f"Rename table '{change.to_name}' back to '{change.from_name}'",
            "Manual intervention required:",
            f"ALTER TABLE {_sql_identifier(change.to_name)} "
            f"RENAME TO {_sql_identifier(change.from_name)};",
        )

    raise TypeError(f"Unknown schema change: {change!r}")


def _render_block(statements: list[_Statement]) -> str:
    lines: list[str] = []
    for statement in statements:
        if lines:
            lines.append("")
        lines.extend(statement.lines())

    if not any(statement.executable for statement in statements):
        lines.append("pass")

    return "\n".join(f"{BODY_INDENT}{line}" if line else "" for line in lines)


# ============================================================================
# Generator
# ============================================================================

_MODULE_TEMPLATE = '''"""{identifier} migration.

Generated by makemigration at {timestamp}.
"""

from makemigration.migration import AsyncMigration, Database


class {identifier}(AsyncMigration):
    async def prepare(self, database: Database) -> None:
{forward}

    async def revert(self, database: Database) -> None:
{reverse}
'''


@dataclass(frozen=True)
class GeneratedMigration:
    """Rendered migration source and the identifier it declares."""

    identifier: str
    code: str


class MigrationGenerator:
    """Renders schema diffs as migration modules.

    Example:
        migration = MigrationGenerator().render(diff, "add users")
        MigrationFileWriter("migrations").write(migration.code, migration.identifier)
    """

    def render(
        self,
        diff: SchemaDiff,
        name: str,
        *,
        now: datetime | None = None,
    ) -> GeneratedMigration:
        """Render *diff* under a migration named after *name*.

        Args:
            diff: Changes to render.
            name: Free-form migration name, normalized into the identifier.
            now: Generation time; defaults to the current UTC time. A naive
                value is taken as UTC.

        Returns:
            ``GeneratedMigration`` holding the identifier and module source.
        """
        moment = _utc(now)
        identifier = migration_identifier(name, moment)

        forward = [_forward(change) for change in diff.changes]
        reverse = [_reverse(change) for change in reversed(diff.changes)]

        code = _MODULE_TEMPLATE.format(
            identifier=identifier,
            timestamp=moment.isoformat(timespec="seconds"),
            forward=_render_block(forward),
            reverse=_render_block(reverse),
        )
        logger.debug("Rendered %s with %d changes", identifier, len(diff))
        return GeneratedMigration(identifier=identifier, code=code)

    def generate(self, diff: SchemaDiff, name: str, *, now: datetime | None = None) -> str:
        """Render *diff* and return only the module source."""
        return self.render(diff, name, now=now).code


def generate(diff: SchemaDiff, name: str, *, now: datetime | None = None) -> str:
    """Module-level shortcut for ``MigrationGenerator().generate``."""
    return MigrationGenerator().generate(diff, name, now=now)
