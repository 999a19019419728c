"""Tests for migration source generation and file writing.

Verifies that:
- The end-to-end "create users" migration renders exactly
- Identifiers are ``Create`` + normalized name + UTC timestamp
- ``revert`` mirrors ``prepare`` in reverse order
- Every change kind renders a module that parses
- Custom types, indexes and primary keys render as comments
- Generated code runs against a recording ``Database``
- ``MigrationFileWriter`` writes ``<identifier>.py`` and never overwrites
"""

import ast
import asyncio
import textwrap
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from makemigration.generator import (
    MigrationFileWriter,
    MigrationGenerator,
    generate,
    migration_identifier,
    normalize_name,
)
from makemigration.migration import AsyncMigration
from makemigration.schema.diff import (
    AddColumn,
    AddConstraint,
    CreateTable,
    DropColumn,
    DropConstraint,
    DropTable,
    ModifyColumn,
    RenameTable,
    SchemaDiff,
)
from makemigration.schema.models import (
    Column,
    ColumnDataType,
    Constraint,
    ConstraintKind,
    DataKind,
    ForeignKeyReference,
    ReferentialAction,
    Table,
)

NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

ID = Column(name="id", data_type=ColumnDataType.of(DataKind.UUID), is_unique=True)
NAME = Column(name="name", data_type=ColumnDataType.string(255))
EMAIL = Column(name="email", data_type=ColumnDataType.string(255), is_optional=True, is_unique=True)
USERS = Table(
    name="users",
    columns=(ID, NAME),
    constraints=(Constraint(kind=ConstraintKind.PRIMARY_KEY, columns=("id",), name="users_pkey"),),
)


def diff_of(*changes: Any) -> SchemaDiff:
    return SchemaDiff(changes=changes)


def method_body(code: str, method: str) -> str:
    """Source of one method of the generated class."""
    tree = ast.parse(code)
    cls = next(node for node in tree.body if isinstance(node, ast.ClassDef))
    func = next(node for node in cls.body if getattr(node, "name", None) == method)
    return ast.get_source_segment(code, func)


# ============================================================================
# Recording database
# ============================================================================


class RecordingBuilder:
    """Records every clause call; finalizers return awaitables."""

    FINALIZERS = {"create", "update", "delete"}

    def __init__(self, log: list[tuple], table: str) -> None:
        self._log = log
        self._table = table

    def __getattr__(self, clause: str):
        def call(*args: Any, **kwargs: Any):
            self._log.append((self._table, clause, args, kwargs))
            if clause in self.FINALIZERS:
                return asyncio.sleep(0)
            return self

        return call


class RecordingDatabase:
    def __init__(self) -> None:
        self.log: list[tuple] = []

    def schema(self, name: str) -> RecordingBuilder:
        return RecordingBuilder(self.log, name)


def load_migration(code: str) -> AsyncMigration:
    namespace: dict[str, Any] = {}
    exec(compile(code, "<migration>", "exec"), namespace)
    classes = [
        value
        for value in namespace.values()
        if isinstance(value, type) and issubclass(value, AsyncMigration) and value is not AsyncMigration
    ]
    assert len(classes) == 1
    return classes[0]()


# ============================================================================
# Naming
# ============================================================================


class TestNaming:
    """Identifier construction."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("users", "Users"),
            ("CreateUsers", "Createusers"),
            ("add user_fields", "AddUserFields"),
            ("add-2fa codes", "Add2faCodes"),
            ("  trim  ", "Trim"),
            ("--", "Migration"),
            ("", "Migration"),
        ],
    )
    def test_normalize_name(self, name: str, expected: str) -> None:
        assert normalize_name(name) == expected

    def test_identifier(self) -> None:
        assert migration_identifier("CreateUsers", NOW) == "CreateCreateusers20240102030405"

    def test_naive_time_is_utc(self) -> None:
        assert migration_identifier("x", datetime(2024, 1, 2, 3, 4, 5)) == "CreateX20240102030405"

    def test_aware_time_converted_to_utc(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        moment = datetime(2024, 1, 2, 5, 4, 5, tzinfo=plus_two)
        assert migration_identifier("x", moment) == "CreateX20240102030405"

    def test_identifier_is_valid_class_name(self) -> None:
        assert migration_identifier("weird name!@#", NOW).isidentifier()

    def test_render_reports_identifier(self) -> None:
        migration = MigrationGenerator().render(diff_of(CreateTable(table=USERS)), "users", now=NOW)
        assert migration.identifier == "CreateUsers20240102030405"
        assert f"class {migration.identifier}(AsyncMigration):" in migration.code


# ============================================================================
# End to end
# ============================================================================


class TestCreateUsers:
    """Empty database, one desired ``users`` table."""

    def test_exact_output(self) -> None:
        code = generate(diff_of(CreateTable(table=USERS)), "CreateUsers", now=NOW)

        expected = textwrap.dedent(
            '''\
            """CreateCreateusers20240102030405 migration.

            Generated by makemigration at 2024-01-02T03:04:05+00:00.
            """

            from makemigration.migration import AsyncMigration, Database


            class CreateCreateusers20240102030405(AsyncMigration):
                async def prepare(self, database: Database) -> None:
                    await (
                        database.schema("users")
                        .id()
                        .field("name", "string(255)")
                        .required()
                        .create()
                    )

                async def revert(self, database: Database) -> None:
                    await (
                        database.schema("users")
                        .delete()
                    )
            '''
        )
        assert code == expected

    def test_runs_against_builder(self) -> None:
        code = generate(diff_of(CreateTable(table=USERS)), "CreateUsers", now=NOW)
        migration = load_migration(code)
        database = RecordingDatabase()

        asyncio.run(migration.prepare(database))
        assert [(table, clause, args) for table, clause, args, _ in database.log] == [
            ("users", "id", ()),
            ("users", "field", ("name", "string(255)")),
            ("users", "required", ()),
            ("users", "create", ()),
        ]

        database.log.clear()
        asyncio.run(migration.revert(database))
        assert [clause for _, clause, _, _ in database.log] == ["delete"]

    def test_name_property(self) -> None:
        code = generate(diff_of(CreateTable(table=USERS)), "CreateUsers", now=NOW)
        assert load_migration(code).name == "CreateCreateusers20240102030405"

    def test_generation_is_deterministic(self) -> None:
        diff = diff_of(CreateTable(table=USERS), AddColumn(table="users", column=EMAIL))
        assert generate(diff, "users", now=NOW) == generate(diff, "users", now=NOW)


# ============================================================================
# Change templates
# ============================================================================


class TestForwardAndReverse:
    """Per-change templates."""

    def test_add_column_reverses_to_delete_field(self) -> None:
        code = generate(diff_of(AddColumn(table="users", column=EMAIL)), "email", now=NOW)
        prepare = method_body(code, "prepare")
        revert = method_body(code, "revert")

        assert '.field("email", "string(255)")' in prepare
        assert ".required()" not in prepare
        assert ".unique()" in prepare
        assert ".update()" in prepare
        assert '.delete_field("email")' in revert
        assert ".update()" in revert

    def test_drop_column(self) -> None:
        code = generate(diff_of(DropColumn(table="users", column_name="legacy")), "legacy", now=NOW)
        assert '.delete_field("legacy")' in method_body(code, "prepare")
        revert = method_body(code, "revert")
        assert "Cannot restore dropped column 'legacy'" in revert
        assert "pass" in revert

    def test_drop_table(self) -> None:
        code = generate(diff_of(DropTable(table_name="tags")), "tags", now=NOW)
        assert ".delete()" in method_body(code, "prepare")
        assert "Cannot recreate dropped table 'tags'" in method_body(code, "revert")

    def test_modify_column_uses_to_then_from(self) -> None:
        wider = NAME.model_copy(update={"data_type": ColumnDataType.string(500), "is_optional": True})
        change = ModifyColumn(table="users", column_name="name", from_column=NAME, to_column=wider)
        code = generate(diff_of(change), "widen", now=NOW)

        prepare = method_body(code, "prepare")
        revert = method_body(code, "revert")
        assert '"string(500)"' in prepare
        assert ".required()" not in prepare
        assert '"string(255)"' in revert
        assert ".required()" in revert

    def test_default_rendered_as_literal(self) -> None:
        column = Column(name="status", data_type=ColumnDataType.of(DataKind.TEXT), default="'draft'")
        code = generate(diff_of(AddColumn(table="posts", column=column)), "status", now=NOW)
        assert """.default("'draft'")""" in code

    def test_reverse_order(self) -> None:
        diff = diff_of(
            AddColumn(table="users", column=EMAIL),
            AddColumn(table="posts", column=NAME),
        )
        migration = load_migration(generate(diff, "two", now=NOW))
        database = RecordingDatabase()
        asyncio.run(migration.revert(database))

        deletes = [(table, args) for table, clause, args, _ in database.log if clause == "delete_field"]
        assert deletes == [("posts", ("name",)), ("users", ("email",))]

    def test_foreign_key_clause(self) -> None:
        fk = Constraint(
            kind=ConstraintKind.FOREIGN_KEY,
            columns=("author_id",),
            name="posts_author_id_fkey",
            references=ForeignKeyReference(
                table="users",
                column="id",
                on_delete=ReferentialAction.CASCADE,
                on_update=ReferentialAction.NO_ACTION,
            ),
        )
        code = generate(diff_of(AddConstraint(table="posts", constraint=fk)), "fk", now=NOW)

        assert (
            '.foreign_key("author_id", "users", "id", on_delete="CASCADE", on_update="NO ACTION")'
            in method_body(code, "prepare")
        )
        assert "Review manually" in method_body(code, "revert")

    def test_foreign_key_without_actions(self) -> None:
        fk = Constraint(
            kind=ConstraintKind.FOREIGN_KEY,
            columns=("author_id",),
            references=ForeignKeyReference(table="users", column="id"),
        )
        code = generate(diff_of(AddConstraint(table="posts", constraint=fk)), "fk", now=NOW)
        assert '.foreign_key("author_id", "users", "id")' in code

    def test_composite_foreign_key_is_comment_only(self) -> None:
        """foreign_key() takes one local column, so a composite key is flagged."""
        fk = Constraint(
            kind=ConstraintKind.FOREIGN_KEY,
            columns=("a", "b"),
            name="s_a_b_fkey",
            references=ForeignKeyReference(table="t", column="x"),
        )
        code = generate(diff_of(AddConstraint(table="s", constraint=fk)), "x", now=NOW)
        prepare = method_body(code, "prepare")

        assert ".foreign_key(" not in code
        assert "await" not in prepare
        assert (
            """# Composite foreign key on "a", "b" referencing 't.x' is not generated: review manually"""
            in prepare
        )
        assert "pass" in prepare
        ast.parse(code)

    def test_composite_foreign_key_in_create_table(self) -> None:
        fk = Constraint(
            kind=ConstraintKind.FOREIGN_KEY,
            columns=("a", "b"),
            references=ForeignKeyReference(table="t", column="x"),
        )
        table = Table(name="s", columns=(ID,), constraints=(fk,))
        code = generate(diff_of(CreateTable(table=table)), "s", now=NOW)

        assert ".foreign_key(" not in code
        assert 'Composite foreign key on "a", "b"' in method_body(code, "prepare")
        load_migration(code)

    def test_unique_constraint_in_create(self) -> None:
        table = USERS.model_copy(
            update={
                "columns": (ID, NAME, EMAIL),
                "constraints": USERS.constraints
                + (Constraint(kind=ConstraintKind.UNIQUE, columns=("name", "email"), name="u"),),
            }
        )
        prepare = method_body(generate(diff_of(CreateTable(table=table)), "users", now=NOW), "prepare")
        assert '.unique_on("name", "email")' in prepare
        assert prepare.index(".unique_on(") < prepare.index(".create()")

    def test_index_is_comment_only(self) -> None:
        index = Constraint(kind=ConstraintKind.INDEX, columns=("a", "b"))
        code = generate(diff_of(AddConstraint(table="t", constraint=index)), "idx", now=NOW)
        prepare = method_body(code, "prepare")
        assert '# Index on "a", "b" is not generated' in prepare
        assert "await" not in prepare
        assert "pass" in prepare

    def test_primary_key_constraint_is_comment_only(self) -> None:
        pk = Constraint(kind=ConstraintKind.PRIMARY_KEY, columns=("id",), name="t_pkey")
        prepare = method_body(
            generate(diff_of(AddConstraint(table="t", constraint=pk)), "pk", now=NOW), "prepare"
        )
        assert "await" not in prepare
        assert "Primary key" in prepare

    def test_drop_constraint_notice(self) -> None:
        code = generate(
            diff_of(DropConstraint(table="users", constraint_name="users_email_key")), "drop", now=NOW
        )
        prepare = method_body(code, "prepare")
        assert "Manual intervention required" in prepare
        assert 'ALTER TABLE "users" DROP CONSTRAINT "users_email_key";' in prepare
        assert "Restore constraint 'users_email_key'" in method_body(code, "revert")

    def test_rename_table_notice(self) -> None:
        code = generate(diff_of(RenameTable(from_name="people", to_name="users")), "rename", now=NOW)
        assert 'ALTER TABLE "people" RENAME TO "users";' in method_body(code, "prepare")
        assert 'ALTER TABLE "users" RENAME TO "people";' in method_body(code, "revert")

    def test_custom_type_flagged(self) -> None:
        column = Column(name="search", data_type=ColumnDataType.custom("tsvector"), is_optional=True)
        code = generate(diff_of(AddColumn(table="docs", column=column)), "search", now=NOW)
        assert "# Unmapped database type 'tsvector': review manually" in code
        assert '.field("search", "custom(tsvector)")' in code


# ============================================================================
# Parsing
# ============================================================================


class TestGeneratedModuleParses:
    """Every change kind yields valid Python."""

    def test_empty_diff(self) -> None:
        code = generate(SchemaDiff(), "nothing", now=NOW)
        ast.parse(code)
        assert method_body(code, "prepare").rstrip().endswith("pass")
        assert method_body(code, "revert").rstrip().endswith("pass")

    def test_all_change_kinds(self) -> None:
        odd = Column(
            name='we"ird\\name',
            data_type=ColumnDataType.custom("geometry(Point,4326)"),
            default="'a\nb'",
        )
        diff = diff_of(
            CreateTable(
                table=Table(
                    name="t",
                    columns=(ID, odd),
                    constraints=(
                        Constraint(kind=ConstraintKind.INDEX, columns=("x",)),
                        Constraint(kind=ConstraintKind.UNIQUE, columns=()),
                    ),
                )
            ),
            DropTable(table_name="old"),
            RenameTable(from_name="a\nb", to_name="c"),
            AddColumn(table="t", column=odd),
            DropColumn(table="t", column_name="gone"),
            ModifyColumn(table="t", column_name="x", from_column=NAME, to_column=odd),
            AddConstraint(table="t", constraint=Constraint(kind=ConstraintKind.UNIQUE, columns=("x",))),
            DropConstraint(table="t", constraint_name="t_x_key"),
        )
        code = generate(diff, "everything", now=NOW)
        ast.parse(code)
        load_migration(code)
