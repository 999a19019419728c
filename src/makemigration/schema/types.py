"""Per-dialect mapping of raw catalog type names to ``ColumnDataType``.

Every function here is total: a name that is not in the lookup table falls
back to ``ColumnDataType.custom(raw_name)`` so introspection always
completes, whatever the live schema contains.
"""

from makemigration.schema.models import ColumnDataType, DataKind


# ============================================================================
# PostgreSQL (information_schema.columns.udt_name)
# ============================================================================

POSTGRES_TYPES: dict[str, DataKind] = {
    "int2": DataKind.INT16,
    "smallint": DataKind.INT16,
    "int4": DataKind.INT32,
    "integer": DataKind.INT32,
    "int8": DataKind.INT64,
    "bigint": DataKind.INT64,
    "bool": DataKind.BOOL,
    "boolean": DataKind.BOOL,
    "varchar": DataKind.STRING,
    "character varying": DataKind.STRING,
    "bpchar": DataKind.STRING,
    "char": DataKind.STRING,
    "character": DataKind.STRING,
    "text": DataKind.TEXT,
    "float4": DataKind.FLOAT,
    "real": DataKind.FLOAT,
    "float8": DataKind.DOUBLE,
    "double precision": DataKind.DOUBLE,
    "date": DataKind.DATE,
    "timestamp": DataKind.DATETIME,
    "timestamptz": DataKind.DATETIME,
    "time": DataKind.TIME,
    "timetz": DataKind.TIME,
    "uuid": DataKind.UUID,
    "bytea": DataKind.DATA,
    "json": DataKind.JSON,
    "jsonb": DataKind.JSON,
}


def map_postgres_type(udt_name: str, max_length: int | None = None) -> ColumnDataType:
    """Map a PostgreSQL ``udt_name`` to a column type.

    Example:
        >>> map_postgres_type("int4").tag
        'int32'
        >>> map_postgres_type("varchar", 255).tag
        'string(255)'
        >>> map_postgres_type("tsvector").tag
        'custom(tsvector)'
    """
    kind = POSTGRES_TYPES.get(udt_name.lower())
    if kind is None:
        return ColumnDataType.custom(udt_name)
    if kind is DataKind.STRING:
        return ColumnDataType.string(max_length)
    return ColumnDataType.of(kind)


# ============================================================================
# MySQL (information_schema.columns.data_type / column_type)
# ============================================================================

MYSQL_TYPES: dict[str, DataKind] = {
    "tinyint": DataKind.INT8,
    "smallint": DataKind.INT16,
    "int": DataKind.INT32,
    "integer": DataKind.INT32,
    "mediumint": DataKind.INT32,
    "bigint": DataKind.INT64,
    "bool": DataKind.BOOL,
    "boolean": DataKind.BOOL,
    "varchar": DataKind.STRING,
    "char": DataKind.STRING,
    "text": DataKind.TEXT,
    "tinytext": DataKind.TEXT,
    "mediumtext": DataKind.TEXT,
    "longtext": DataKind.TEXT,
    "float": DataKind.FLOAT,
    "double": DataKind.DOUBLE,
    "date": DataKind.DATE,
    "datetime": DataKind.DATETIME,
    "timestamp": DataKind.DATETIME,
    "time": DataKind.TIME,
    "binary": DataKind.DATA,
    "varbinary": DataKind.DATA,
    "blob": DataKind.DATA,
    "json": DataKind.JSON,
}

_UNSIGNED: dict[DataKind, DataKind] = {
    DataKind.INT8: DataKind.UINT8,
    DataKind.INT16: DataKind.UINT16,
    DataKind.INT32: DataKind.UINT32,
    DataKind.INT64: DataKind.UINT64,
}


def map_mysql_type(
    data_type: str,
    max_length: int | None = None,
    column_type: str | None = None,
) -> ColumnDataType:
    """Map a MySQL ``data_type`` to a column type.

    ``column_type`` (e.g. ``"int(10) unsigned"``) refines the result:
    ``tinyint(1)`` is MySQL's boolean and ``unsigned`` integers map to their
    unsigned kinds.

    Example:
        >>> map_mysql_type("int", column_type="int(10) unsigned").tag
        'uint32'
        >>> map_mysql_type("tinyint", column_type="tinyint(1)").tag
        'bool'
    """
    kind = MYSQL_TYPES.get(data_type.lower())
    if kind is None:
        return ColumnDataType.custom(data_type)

    full_type = (column_type or "").lower()
    if kind is DataKind.INT8 and full_type.startswith("tinyint(1)"):
        return ColumnDataType.of(DataKind.BOOL)
    if kind in _UNSIGNED and "unsigned" in full_type:
        return ColumnDataType.of(_UNSIGNED[kind])
    if kind is DataKind.STRING:
        return ColumnDataType.string(max_length)
    return ColumnDataType.of(kind)


# ============================================================================
# SQLite (free-form declared type, classified by substring)
# ============================================================================


def map_sqlite_type(type_string: str) -> ColumnDataType:
    """Classify a SQLite declared type by substring.

    SQLite accepts any declared type, so this follows its affinity rules
    loosely: ``int`` is a 64-bit integer, ``char``/``text`` is text,
    ``real``/``double``/``float`` is double and ``blob`` is binary. A
    column declared without a type has blob affinity and maps to binary.

    Example:
        >>> map_sqlite_type("VARCHAR(40)").tag
        'text'
        >>> map_sqlite_type("NUMERIC").tag
        'custom(NUMERIC)'
    """
    lower = type_string.lower()
    if not lower.strip():
        return ColumnDataType.of(DataKind.DATA)
    if "int" in lower:
        return ColumnDataType.of(DataKind.INT64)
    if "char" in lower or "text" in lower:
        return ColumnDataType.of(DataKind.TEXT)
    if "real" in lower or "double" in lower or "float" in lower:
        return ColumnDataType.of(DataKind.DOUBLE)
    if "blob" in lower:
        return ColumnDataType.of(DataKind.DATA)
    return ColumnDataType.custom(type_string)
