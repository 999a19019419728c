"""Explicit model declarations.

Application models describe the table they want by declaring a ``schema``
name and a ``fields`` list. Nothing is reflected at runtime: the declaration
is the whole source of truth for the desired schema.

Usage:
    from makemigration.declarations import Field, ModelRegistry, Parent

    registry = ModelRegistry()

    @registry.register
    class User:
        schema = "users"
        fields = [
            Field("name", str),
            Field("email", str, unique=True),
            Field("age", int, optional=True),
        ]

    @registry.register
    class Post:
        schema = "posts"
        fields = [
            Field("title", str),
            Parent("author_id", references="users", on_delete="CASCADE"),
        ]
"""

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


class UnsupportedFieldType(TypeError):
    """Raised when a field's value type has no column type mapping."""

    def __init__(self, model: str, key: str, value_type: Any) -> None:
        self.model = model
        self.key = key
        self.value_type = value_type
        type_name = getattr(value_type, "__name__", repr(value_type))
        super().__init__(
            f"Field '{key}' on model '{model}' has unsupported type {type_name}. "
            "Declare a ColumnDataType or DataKind explicitly."
        )


class DuplicateModelError(ValueError):
    """Raised when two models declare the same schema name."""

    def __init__(self, schema: str) -> None:
        self.schema = schema
        super().__init__(f"Model schema '{schema}' is declared more than once")


@dataclass(frozen=True)
class Field:
    """A plain column.

    Attributes:
        key: Column name.
        value_type: Python type (``str``, ``int``, ``datetime``...), or a
            ``ColumnDataType`` / ``DataKind`` for explicit control.
        optional: Whether the column accepts NULL.
        unique: Whether values must be unique.
        default: Default value literal, passed through verbatim.
    """

    key: str
    value_type: Any
    optional: bool = False
    unique: bool = False
    default: str | None = None


@dataclass(frozen=True)
class Parent:
    """A reference to another model's table (a foreign key column).

    Attributes:
        key: Referencing column name (e.g. ``"author_id"``).
        references: Target table name.
        column: Target column, the identity column by default.
        optional: Whether the reference may be NULL.
        on_delete: Referential action name (``"CASCADE"``, ``"SET NULL"``...) or
            a ``ReferentialAction``.
        on_update: Referential action on key updates.
    """

    key: str
    references: str
    column: str = "id"
    optional: bool = True
    on_delete: str | None = None
    on_update: str | None = None


@runtime_checkable
class Model(Protocol):
    """Anything exposing a table name and its field declarations."""

    schema: str
    fields: Sequence[Field | Parent]


class ModelRegistry:
    """Ordered collection of models keyed by schema name.

    Example:
        registry = ModelRegistry()

        @registry.register
        class Tag:
            schema = "tags"
            fields = [Field("label", str, unique=True)]

        assert "tags" in registry
    """

    def __init__(self, models: Iterable[Any] = ()) -> None:
        self._models: dict[str, Any] = {}
        for model in models:
            self.add(model)

    def add(self, model: Any) -> None:
        """Add a model.

        Raises:
            TypeError: If the model does not declare ``schema`` and ``fields``.
            DuplicateModelError: If the schema name is already registered.
        """
        if not isinstance(model, Model):
            raise TypeError(f"{model!r} must declare 'schema' and 'fields'")
        if model.schema in self._models:
            raise DuplicateModelError(model.schema)
        self._models[model.schema] = model

    def register(self, model: Any) -> Any:
        """Class decorator form of ``add``."""
        self.add(model)
        return model

    @property
    def models(self) -> list[Any]:
        return list(self._models.values())

    def __iter__(self) -> Iterator[Any]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, schema: object) -> bool:
        return schema in self._models
