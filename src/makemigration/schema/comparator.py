"""Schema comparison.

Compares the current schema (from the database) against the desired schema
(from model declarations) and returns the ordered ``SchemaDiff`` that turns
one into the other. Pure logic -- no I/O, no database connections.

Usage:
    from makemigration.schema.comparator import compare

    current = await DatabaseIntrospector(db).introspect()
    desired = ModelIntrospector().introspect(registry)

    diff = compare(current, desired)
    for line in diff.summary():
        print(line)
"""

from makemigration.schema.diff import (
    AddColumn,
    AddConstraint,
    CreateTable,
    DropColumn,
    DropConstraint,
    DropTable,
    ModifyColumn,
    SchemaChange,
    SchemaDiff,
)
from makemigration.schema.models import DatabaseSchema, Table


def compare(current: DatabaseSchema, desired: DatabaseSchema) -> SchemaDiff:
    """Compute the changes that move *current* to *desired*.

    Tables and columns are matched by name only, so a rename shows up as a
    drop plus a create. Changes come out in a fixed order:

    1. ``CreateTable`` for desired tables missing from current (desired order)
    2. ``DropTable`` for current tables missing from desired (current order)
    3. Per table present in both (desired order): ``AddColumn``,
       ``DropColumn``, ``ModifyColumn``, ``AddConstraint``,
       ``DropConstraint``

    Constraints are matched by value (kind, columns, name, reference).
    Current constraints without a name are never dropped, since they cannot
    be referenced.

    Args:
        current: Snapshot of what the database has.
        desired: Snapshot of what the models declare.

    Returns:
        ``SchemaDiff``; empty when the snapshots already agree.

    Examples:
        >>> from makemigration.schema.models import Table
        >>> users = DatabaseSchema(tables=(Table(name="users"),))
        >>> compare(users, users).is_empty
        True
        >>> compare(DatabaseSchema(), users).summary()
        ["Create table 'users'"]
        >>> compare(users, DatabaseSchema()).summary()
        ["Drop table 'users'"]
    """
    current_names = set(current.table_names)
    desired_names = set(desired.table_names)

    changes: list[SchemaChange] = []

    for table in desired.tables:
        if table.name not in current_names:
            changes.append(CreateTable(table=table))

    for table in current.tables:
        if table.name not in desired_names:
            changes.append(DropTable(table_name=table.name))

    for table in desired.tables:
        current_table = current.table(table.name)
        if current_table is not None:
            changes.extend(_compare_table(current_table, table))

    return SchemaDiff(changes=tuple(changes))


def _compare_table(current: Table, desired: Table) -> list[SchemaChange]:
    changes: list[SchemaChange] = []
    current_columns = set(current.column_names)
    desired_columns = set(desired.column_names)

    for column in desired.columns:
        if column.name not in current_columns:
            changes.append(AddColumn(table=desired.name, column=column))

    for column in current.columns:
        if column.name not in desired_columns:
            changes.append(DropColumn(table=desired.name, column_name=column.name))

    for column in desired.columns:
        before = current.column(column.name)
        if before is not None and before != column:
            changes.append(
                ModifyColumn(
                    table=desired.name,
                    column_name=column.name,
                    from_column=before,
                    to_column=column,
                )
            )

    for constraint in desired.constraints:
        if constraint not in current.constraints:
            changes.append(AddConstraint(table=desired.name, constraint=constraint))

    for constraint in current.constraints:
        # Unnamed constraints cannot be dropped by reference
        if constraint not in desired.constraints and constraint.name is not None:
            changes.append(DropConstraint(table=desired.name, constraint_name=constraint.name))

    return changes
