"""Schema change models.

A ``SchemaDiff`` is the ordered list of ``SchemaChange`` values that moves a
current snapshot toward a desired one. Changes are frozen pydantic models
discriminated by their ``change`` literal so a diff can be serialized and
validated as a whole.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from makemigration.schema.models import Column, Constraint, Table


class _Change(BaseModel):
    model_config = ConfigDict(frozen=True)


class CreateTable(_Change):
    change: Literal["create_table"] = "create_table"
    table: Table

    @property
    def description(self) -> str:
        return f"Create table '{self.table.name}'"


class DropTable(_Change):
    """Drop a table by name; its contents are not recoverable from the diff."""

    change: Literal["drop_table"] = "drop_table"
    table_name: str

    @property
    def description(self) -> str:
        return f"Drop table '{self.table_name}'"


class RenameTable(_Change):
    """Rename a table.

    The comparator never infers renames; this change exists for callers that
    build diffs by hand and is rendered as a manual-intervention notice.
    """

    change: Literal["rename_table"] = "rename_table"
    from_name: str
    to_name: str

    @property
    def description(self) -> str:
        return f"Rename table '{self.from_name}' to '{self.to_name}'"


class AddColumn(_Change):
    change: Literal["add_column"] = "add_column"
    table: str
    column: Column

    @property
    def description(self) -> str:
        return f"Add column '{self.column.name}' to table '{self.table}'"


class DropColumn(_Change):
    change: Literal["drop_column"] = "drop_column"
    table: str
    column_name: str

    @property
    def description(self) -> str:
        return f"Drop column '{self.column_name}' from table '{self.table}'"


class ModifyColumn(_Change):
    change: Literal["modify_column"] = "modify_column"
    table: str
    column_name: str
    from_column: Column
    to_column: Column

    @property
    def description(self) -> str:
        return f"Modify column '{self.column_name}' in table '{self.table}'"


class AddConstraint(_Change):
    change: Literal["add_constraint"] = "add_constraint"
    table: str
    constraint: Constraint

    @property
    def description(self) -> str:
        label = self.constraint.kind.value.replace("_", " ")
        columns = ", ".join(self.constraint.columns)
        return f"Add {label} constraint on ({columns}) to table '{self.table}'"


class DropConstraint(_Change):
    change: Literal["drop_constraint"] = "drop_constraint"
    table: str
    constraint_name: str

    @property
    def description(self) -> str:
        return f"Drop constraint '{self.constraint_name}' from table '{self.table}'"


SchemaChange = Annotated[
    Union[
        CreateTable,
        DropTable,
        RenameTable,
        AddColumn,
        DropColumn,
        ModifyColumn,
        AddConstraint,
        DropConstraint,
    ],
    Field(discriminator="change"),
]


class SchemaDiff(BaseModel):
    """Ordered change set between two snapshots.

    Example:
        >>> diff = SchemaDiff()
        >>> diff.is_empty
        True
    """

    model_config = ConfigDict(frozen=True)

    changes: tuple[SchemaChange, ...] = ()

    @property
    def is_empty(self) -> bool:
        """True when the snapshots are already in sync."""
        return len(self.changes) == 0

    def summary(self) -> list[str]:
        """One description line per change, in diff order."""
        return [change.description for change in self.changes]

    def __len__(self) -> int:
        return len(self.changes)
