"""Desired-schema extraction from model declarations.

Turns ``Model`` declarations (see ``makemigration.declarations``) into the
same ``DatabaseSchema`` shape the database introspector produces, so the two
can be compared directly.

Every table gets an implicit identity column ``id`` (uuid, required, unique)
and a primary key on it named ``<schema>_pkey``. ``Parent`` fields become
uuid columns with a foreign key named ``<schema>_<key>_fkey``.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, time
from typing import Any
from uuid import UUID

from makemigration.declarations import (
    DuplicateModelError,
    Field,
    Parent,
    UnsupportedFieldType,
)
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

logger = logging.getLogger(__name__)

IDENTITY_COLUMN = "id"

_PYTHON_TYPES: dict[type, ColumnDataType] = {
    str: ColumnDataType.string(),
    int: ColumnDataType.of(DataKind.INT64),
    bool: ColumnDataType.of(DataKind.BOOL),
    float: ColumnDataType.of(DataKind.DOUBLE),
    datetime: ColumnDataType.of(DataKind.DATETIME),
    date: ColumnDataType.of(DataKind.DATE),
    time: ColumnDataType.of(DataKind.TIME),
    UUID: ColumnDataType.of(DataKind.UUID),
    bytes: ColumnDataType.of(DataKind.DATA),
    dict: ColumnDataType.of(DataKind.JSON),
    list: ColumnDataType.of(DataKind.JSON),
}


def resolve_column_type(value_type: Any) -> ColumnDataType | None:
    """Map a declared value type to a column type.

    Explicit ``ColumnDataType`` and ``DataKind`` values pass through. Python
    types are looked up along their MRO, so ``bool`` stays ``bool`` and a
    ``str`` subclass maps like ``str``.

    Returns:
        The column type, or None if the type has no mapping.
    """
    if isinstance(value_type, ColumnDataType):
        return value_type
    if isinstance(value_type, DataKind):
        if value_type is DataKind.CUSTOM:
            return None
        return ColumnDataType.of(value_type)
    if isinstance(value_type, type):
        for base in value_type.__mro__:
            if base in _PYTHON_TYPES:
                return _PYTHON_TYPES[base]
    return None


def _action(value: ReferentialAction | str | None, model: str, key: str) -> ReferentialAction | None:
    if value is None or isinstance(value, ReferentialAction):
        return value
    action = ReferentialAction.parse(value)
    if action is None:
        raise ValueError(f"Parent '{key}' on model '{model}' has unknown referential action {value!r}")
    return action


class ModelIntrospector:
    """Builds the desired ``DatabaseSchema`` from model declarations.

    Example:
        desired = ModelIntrospector().introspect(registry)
        desired.table("users").column_names  # ['id', 'name', ...]
    """

    def introspect(self, models: Iterable[Any]) -> DatabaseSchema:
        """Build one table per model, in declaration order.

        Raises:
            DuplicateModelError: Two models share a schema name.
            UnsupportedFieldType: A field's value type has no mapping.
            ValueError: A model redeclares ``id``, repeats a field key or uses
                an unknown referential action.
        """
        tables: list[Table] = []
        seen: set[str] = set()
        for model in models:
            if model.schema in seen:
                raise DuplicateModelError(model.schema)
            seen.add(model.schema)
            tables.append(self._table(model))

        logger.debug("Built desired schema with %d tables", len(tables))
        return DatabaseSchema(tables=tuple(tables))

    def _table(self, model: Any) -> Table:
        schema: str = model.schema
        columns = [
            Column(
                name=IDENTITY_COLUMN,
                data_type=ColumnDataType.of(DataKind.UUID),
                is_optional=False,
                is_unique=True,
            )
        ]
        constraints = [
            Constraint(
                kind=ConstraintKind.PRIMARY_KEY,
                columns=(IDENTITY_COLUMN,),
                name=f"{schema}_pkey",
            )
        ]

        keys: set[str] = {IDENTITY_COLUMN}
        for declared in model.fields:
            if declared.key == IDENTITY_COLUMN:
                raise ValueError(
                    f"Model '{schema}' declares '{IDENTITY_COLUMN}'; the identity column is implicit"
                )
            if declared.key in keys:
                raise ValueError(f"Model '{schema}' declares field '{declared.key}' more than once")
            keys.add(declared.key)

            if isinstance(declared, Parent):
                columns.append(
                    Column(
                        name=declared.key,
                        data_type=ColumnDataType.of(DataKind.UUID),
                        is_optional=declared.optional,
                    )
                )
                constraints.append(
                    Constraint(
                        kind=ConstraintKind.FOREIGN_KEY,
                        columns=(declared.key,),
                        name=f"{schema}_{declared.key}_fkey",
                        references=ForeignKeyReference(
                            table=declared.references,
                            column=declared.column,
                            on_delete=_action(declared.on_delete, schema, declared.key),
                            on_update=_action(declared.on_update, schema, declared.key),
                        ),
                    )
                )
            elif isinstance(declared, Field):
                data_type = resolve_column_type(declared.value_type)
                if data_type is None:
                    raise UnsupportedFieldType(schema, declared.key, declared.value_type)
                columns.append(
                    Column(
                        name=declared.key,
                        data_type=data_type,
                        is_optional=declared.optional,
                        is_unique=declared.unique,
                        default=declared.default,
                    )
                )
            else:
                raise TypeError(f"Model '{schema}' has an unknown field declaration: {declared!r}")

        return Table(name=schema, columns=tuple(columns), constraints=tuple(constraints))
