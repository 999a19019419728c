"""Tests for the schema snapshot models.

Verifies that:
- ``ColumnDataType`` tags round-trip through ``parse`` for every kind
- Payload rules hold (length only on string, name only on custom)
- ``sql_type`` renders canonical SQL names
- ``ReferentialAction.parse`` normalizes catalog rule strings
- ``Constraint`` requires a reference exactly for foreign keys
- ``Table`` / ``DatabaseSchema`` lookups and structural equality
"""

import pytest
from pydantic import ValidationError

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


# ============================================================================
# ColumnDataType
# ============================================================================


class TestColumnDataTypeTags:
    """Tag rendering and parsing."""

    @pytest.mark.parametrize(
        "kind",
        [kind for kind in DataKind if kind is not DataKind.CUSTOM],
    )
    def test_plain_kind_round_trips(self, kind: DataKind) -> None:
        """Every payload-free kind parses back from its tag."""
        data_type = ColumnDataType.of(kind)
        assert ColumnDataType.parse(data_type.tag) == data_type

    def test_string_with_length(self) -> None:
        """string(255) keeps its length."""
        data_type = ColumnDataType.string(255)
        assert data_type.tag == "string(255)"
        assert ColumnDataType.parse("string(255)") == data_type

    def test_string_without_length(self) -> None:
        """Bare string has no length in its tag."""
        assert ColumnDataType.string().tag == "string"
        assert ColumnDataType.parse("string").length is None

    def test_custom_keeps_raw_name(self) -> None:
        """custom(raw) carries the unmapped dialect type name."""
        data_type = ColumnDataType.custom("tsvector")
        assert data_type.tag == "custom(tsvector)"
        assert data_type.is_custom
        assert ColumnDataType.parse("custom(tsvector)") == data_type

    def test_custom_name_with_parentheses(self) -> None:
        """A raw name containing parentheses survives the round trip."""
        data_type = ColumnDataType.custom("numeric(10,2)")
        assert ColumnDataType.parse(data_type.tag).name == "numeric(10,2)"

    def test_custom_name_whitespace_preserved(self) -> None:
        """Whitespace inside the payload is part of the raw name."""
        data_type = ColumnDataType.custom(" double precision ")
        assert ColumnDataType.parse(data_type.tag) == data_type

    def test_whitespace_around_tag_ignored(self) -> None:
        assert ColumnDataType.parse("  string(40)\n") == ColumnDataType.string(40)
        assert ColumnDataType.parse(" custom(citext) ").name == "citext"

    def test_str_is_tag(self) -> None:
        """str() of a type is its tag."""
        assert str(ColumnDataType.of(DataKind.UUID)) == "uuid"

    @pytest.mark.parametrize(
        "tag",
        ["", "varchar", "int32(4)", "string(abc)", "custom()", "custom", "STRING"],
    )
    def test_invalid_tags_rejected(self, tag: str) -> None:
        """Unknown kinds and bad payloads raise ValueError."""
        with pytest.raises(ValueError):
            ColumnDataType.parse(tag)


class TestColumnDataTypePayload:
    """Payload validation."""

    def test_length_only_for_string(self) -> None:
        with pytest.raises(ValidationError):
            ColumnDataType(kind=DataKind.INT32, length=4)

    def test_custom_requires_name(self) -> None:
        with pytest.raises(ValidationError):
            ColumnDataType(kind=DataKind.CUSTOM)

    def test_custom_rejects_empty_name(self) -> None:
        with pytest.raises(ValidationError):
            ColumnDataType.custom("")

    def test_name_only_for_custom(self) -> None:
        with pytest.raises(ValidationError):
            ColumnDataType(kind=DataKind.TEXT, name="text")

    def test_frozen(self) -> None:
        """Types are immutable."""
        data_type = ColumnDataType.string(10)
        with pytest.raises(ValidationError):
            data_type.length = 20


class TestSqlType:
    """Canonical SQL rendering."""

    def test_string_defaults_to_255(self) -> None:
        assert ColumnDataType.string().sql_type == "VARCHAR(255)"

    def test_string_uses_length(self) -> None:
        assert ColumnDataType.string(40).sql_type == "VARCHAR(40)"

    def test_custom_uses_raw_name(self) -> None:
        assert ColumnDataType.custom("tsvector").sql_type == "tsvector"

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            (DataKind.INT64, "BIGINT"),
            (DataKind.BOOL, "BOOLEAN"),
            (DataKind.UUID, "UUID"),
            (DataKind.DATETIME, "TIMESTAMP"),
            (DataKind.JSON, "JSONB"),
            (DataKind.UINT32, "INTEGER UNSIGNED"),
        ],
    )
    def test_plain_kinds(self, kind: DataKind, expected: str) -> None:
        assert ColumnDataType.of(kind).sql_type == expected

    def test_every_kind_has_sql_type(self) -> None:
        """No kind is left without a rendering."""
        for kind in DataKind:
            data_type = (
                ColumnDataType.custom("x") if kind is DataKind.CUSTOM else ColumnDataType.of(kind)
            )
            assert data_type.sql_type


# ============================================================================
# Referential actions and constraints
# ============================================================================


class TestReferentialAction:
    """Catalog rule parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("CASCADE", ReferentialAction.CASCADE),
            ("cascade", ReferentialAction.CASCADE),
            ("SET NULL", ReferentialAction.SET_NULL),
            ("set  null", ReferentialAction.SET_NULL),
            ("SET_DEFAULT", ReferentialAction.SET_DEFAULT),
            ("NO ACTION", ReferentialAction.NO_ACTION),
            ("RESTRICT", ReferentialAction.RESTRICT),
        ],
    )
    def test_known_rules(self, raw: str, expected: ReferentialAction) -> None:
        assert ReferentialAction.parse(raw) is expected

    def test_none_and_unknown(self) -> None:
        assert ReferentialAction.parse(None) is None
        assert ReferentialAction.parse("EXPLODE") is None


class TestConstraint:
    """Reference rules and structural equality."""

    def test_foreign_key_requires_reference(self) -> None:
        with pytest.raises(ValidationError):
            Constraint(kind=ConstraintKind.FOREIGN_KEY, columns=("user_id",))

    def test_reference_only_on_foreign_key(self) -> None:
        with pytest.raises(ValidationError):
            Constraint(
                kind=ConstraintKind.UNIQUE,
                columns=("email",),
                references=ForeignKeyReference(table="users", column="id"),
            )

    def test_equality_includes_name(self) -> None:
        """Same kind and columns but different names are different constraints."""
        a = Constraint(kind=ConstraintKind.UNIQUE, columns=("email",), name="a")
        b = Constraint(kind=ConstraintKind.UNIQUE, columns=("email",), name="b")
        assert a != b
        assert a == Constraint(kind=ConstraintKind.UNIQUE, columns=("email",), name="a")

    def test_column_order_is_significant(self) -> None:
        a = Constraint(kind=ConstraintKind.PRIMARY_KEY, columns=("a", "b"))
        b = Constraint(kind=ConstraintKind.PRIMARY_KEY, columns=("b", "a"))
        assert a != b


# ============================================================================
# Columns, tables, schemas
# ============================================================================


class TestColumn:
    """Column defaults and equality."""

    def test_defaults(self) -> None:
        column = Column(name="name", data_type=ColumnDataType.string())
        assert column.is_optional is False
        assert column.is_unique is False
        assert column.default is None

    def test_any_field_difference_is_inequality(self) -> None:
        base = Column(name="age", data_type=ColumnDataType.of(DataKind.INT64))
        assert base != base.model_copy(update={"is_optional": True})
        assert base != base.model_copy(update={"is_unique": True})
        assert base != base.model_copy(update={"default": "0"})
        assert base != base.model_copy(update={"data_type": ColumnDataType.of(DataKind.INT32)})
        assert base == base.model_copy()


class TestTableAndSchema:
    """Lookups."""

    def test_table_column_lookup(self) -> None:
        table = Table(
            name="users",
            columns=(
                Column(name="id", data_type=ColumnDataType.of(DataKind.UUID)),
                Column(name="name", data_type=ColumnDataType.string()),
            ),
        )
        assert table.column_names == ["id", "name"]
        assert table.column("name").data_type.tag == "string"
        assert table.column("missing") is None

    def test_schema_lookup_and_len(self) -> None:
        schema = DatabaseSchema(tables=(Table(name="users"), Table(name="posts")))
        assert schema.table_names == ["users", "posts"]
        assert schema.table("posts").name == "posts"
        assert schema.table("tags") is None
        assert len(schema) == 2

    def test_empty_schema(self) -> None:
        assert len(DatabaseSchema()) == 0
