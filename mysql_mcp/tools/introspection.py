"""Schema and server introspection tools.

Every statement here is a fixed template. Database and table names in
SHOW statements go through quote_ident(); values compared in
information_schema queries are bound as ``%s`` parameters. Caller text is
never interpolated anywhere else.
"""

from typing import Any

from mysql_mcp.config import settings
from mysql_mcp.errors import DatabaseConnectionError, EmptyInput
from mysql_mcp.identifiers import quote_ident, quote_qualified
from mysql_mcp.tools._deps import get_registry, tool_envelope

_SYSTEM_SCHEMAS_SQL = "('information_schema', 'performance_schema', 'mysql', 'sys')"

# --- SQL Templates ---

_VIEWS_SQL = """
SELECT TABLE_NAME AS name, DEFINER AS definer, SECURITY_TYPE AS security_type,
       IS_UPDATABLE AS is_updatable
FROM information_schema.VIEWS
WHERE TABLE_SCHEMA = %s
ORDER BY TABLE_NAME
"""

_TRIGGERS_SQL = """
SELECT TRIGGER_NAME AS name, EVENT_MANIPULATION AS event, EVENT_OBJECT_TABLE AS `table`,
       ACTION_TIMING AS timing, LEFT(ACTION_STATEMENT, 200) AS statement
FROM information_schema.TRIGGERS
WHERE TRIGGER_SCHEMA = %s
ORDER BY TRIGGER_NAME
"""

_PROCEDURES_SQL = """
SELECT ROUTINE_NAME AS name, DEFINER AS definer, CREATED AS created,
       LAST_ALTERED AS modified, IFNULL(PARAMETER_STYLE, '') AS parameter_style
FROM information_schema.ROUTINES
WHERE ROUTINE_SCHEMA = %s AND ROUTINE_TYPE = 'PROCEDURE'
ORDER BY ROUTINE_NAME
"""

_FUNCTIONS_SQL = """
SELECT ROUTINE_NAME AS name, DEFINER AS definer, DTD_IDENTIFIER AS returns,
       CREATED AS created
FROM information_schema.ROUTINES
WHERE ROUTINE_SCHEMA = %s AND ROUTINE_TYPE = 'FUNCTION'
ORDER BY ROUTINE_NAME
"""

_PARTITIONS_SQL = """
SELECT PARTITION_NAME AS name, PARTITION_METHOD AS method,
       PARTITION_EXPRESSION AS expression, PARTITION_DESCRIPTION AS description,
       TABLE_ROWS AS table_rows, DATA_LENGTH AS data_length
FROM information_schema.PARTITIONS
WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s AND PARTITION_NAME IS NOT NULL
ORDER BY PARTITION_ORDINAL_POSITION
"""

_DATABASE_SIZE_SQL = """
SELECT TABLE_SCHEMA AS name,
       ROUND(SUM(DATA_LENGTH + INDEX_LENGTH) / 1024 / 1024, 2) AS size_mb,
       ROUND(SUM(DATA_LENGTH) / 1024 / 1024, 2) AS data_mb,
       ROUND(SUM(INDEX_LENGTH) / 1024 / 1024, 2) AS index_mb,
       COUNT(*) AS tables
FROM information_schema.TABLES
WHERE {filter}
GROUP BY TABLE_SCHEMA
ORDER BY size_mb DESC
"""

_TABLE_SIZE_SQL = """
SELECT TABLE_NAME AS name, TABLE_ROWS AS `rows`,
       ROUND(DATA_LENGTH / 1024 / 1024, 2) AS data_mb,
       ROUND(INDEX_LENGTH / 1024 / 1024, 2) AS index_mb,
       ROUND((DATA_LENGTH + INDEX_LENGTH) / 1024 / 1024, 2) AS total_mb,
       ENGINE AS engine
FROM information_schema.TABLES
WHERE TABLE_SCHEMA = %s{table_filter}
ORDER BY total_mb DESC
"""

_FOREIGN_KEYS_SQL = """
SELECT kcu.CONSTRAINT_NAME AS name, kcu.TABLE_NAME AS `table`, kcu.COLUMN_NAME AS `column`,
       kcu.REFERENCED_TABLE_NAME AS referenced_table,
       kcu.REFERENCED_COLUMN_NAME AS referenced_column,
       rc.UPDATE_RULE AS on_update, rc.DELETE_RULE AS on_delete
FROM information_schema.KEY_COLUMN_USAGE kcu
LEFT JOIN information_schema.REFERENTIAL_CONSTRAINTS rc
  ON rc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
 AND rc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
WHERE kcu.CONSTRAINT_SCHEMA = %s AND kcu.REFERENCED_TABLE_NAME IS NOT NULL{table_filter}
ORDER BY kcu.TABLE_NAME, kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
"""


def _require(**values: str) -> None:
    for name, value in values.items():
        if not value or not value.strip():
            raise EmptyInput(f"{name} is required")


def _rows(sql: str, params: tuple | None = None) -> dict[str, Any]:
    pool, _ = get_registry().active()
    result = pool.query(sql, params=params, max_rows=settings.mysql_max_rows)
    rows = result.as_dicts()
    return {"status": "success", "rows": rows, "row_count": len(rows)}


# --- Core ---


@tool_envelope
def list_databases() -> dict:
    """List the databases visible to the configured MySQL account."""
    pool, _ = get_registry().active()
    result = pool.query("SHOW DATABASES", max_rows=settings.mysql_max_rows)
    return {"status": "success", "databases": [row[0] for row in result.rows]}


@tool_envelope
def list_tables(database: str) -> dict:
    """List the tables in a database.

    Args:
        database: Database name.
    """
    _require(database=database)
    pool, _ = get_registry().active()
    result = pool.query(f"SHOW TABLES FROM {quote_ident(database)}", max_rows=settings.mysql_max_rows)
    return {"status": "success", "database": database, "tables": [row[0] for row in result.rows]}


@tool_envelope
def describe_table(database: str, table: str) -> dict:
    """Describe the columns of a table: type, nullability, key, default, extra and comment.

    Args:
        database: Database name.
        table: Table name.
    """
    _require(database=database, table=table)
    pool, _ = get_registry().active()
    result = pool.query(
        f"SHOW FULL COLUMNS FROM {quote_qualified(database, table)}",
        max_rows=settings.mysql_max_rows,
    )
    columns = [
        {
            "name": row.get("Field"),
            "type": row.get("Type"),
            "collation": row.get("Collation") or "",
            "null": row.get("Null") or "",
            "key": row.get("Key") or "",
            "default": row.get("Default"),
            "extra": row.get("Extra") or "",
            "comment": row.get("Comment") or "",
        }
        for row in result.as_dicts()
    ]
    return {"status": "success", "database": database, "table": table, "columns": columns}


# --- Extended ---


@tool_envelope
def list_indexes(database: str, table: str) -> dict:
    """List the indexes of a table with their columns in index order.

    Args:
        database: Database name.
        table: Table name.
    """
    _require(database=database, table=table)
    pool, _ = get_registry().active()
    result = pool.query(f"SHOW INDEX FROM {quote_qualified(database, table)}")

    # SHOW INDEX returns one row per (index, column); group them by Key_name.
    indexes: dict[str, dict[str, Any]] = {}
    for row in result.as_dicts():
        name = str(row.get("Key_name"))
        index = indexes.setdefault(
            name,
            {
                "name": name,
                "columns": [],
                "non_unique": str(row.get("Non_unique")) == "1",
                "type": row.get("Index_type") or "",
            },
        )
        index["columns"].append(row.get("Column_name") or row.get("Expression"))
    return {"status": "success", "indexes": list(indexes.values())}


@tool_envelope
def show_create_table(database: str, table: str) -> dict:
    """Return the CREATE TABLE statement for a table.

    Args:
        database: Database name.
        table: Table name.
    """
    _require(database=database, table=table)
    pool, _ = get_registry().active()
    row = pool.query_row(f"SHOW CREATE TABLE {quote_qualified(database, table)}")
    if row is None or len(row) < 2:
        raise DatabaseConnectionError("SHOW CREATE TABLE returned no rows", f"{database}.{table}")
    return {"status": "success", "table": row[0], "create_statement": row[1]}


@tool_envelope
def list_views(database: str) -> dict:
    """List the views in a database."""
    _require(database=database)
    return _rows(_VIEWS_SQL, (database,))


@tool_envelope
def list_triggers(database: str) -> dict:
    """List the triggers in a database."""
    _require(database=database)
    return _rows(_TRIGGERS_SQL, (database,))


@tool_envelope
def list_procedures(database: str) -> dict:
    """List the stored procedures in a database."""
    _require(database=database)
    return _rows(_PROCEDURES_SQL, (database,))


@tool_envelope
def list_functions(database: str) -> dict:
    """List the stored functions in a database."""
    _require(database=database)
    return _rows(_FUNCTIONS_SQL, (database,))


@tool_envelope
def list_partitions(database: str, table: str) -> dict:
    """List the partitions of a partitioned table."""
    _require(database=database, table=table)
    return _rows(_PARTITIONS_SQL, (database, table))


@tool_envelope
def database_size(database: str | None = None) -> dict:
    """Size of one database, or of every non-system database when omitted."""
    if database and database.strip():
        return _rows(_DATABASE_SIZE_SQL.format(filter="TABLE_SCHEMA = %s"), (database,))
    return _rows(_DATABASE_SIZE_SQL.format(filter=f"TABLE_SCHEMA NOT IN {_SYSTEM_SCHEMAS_SQL}"))


@tool_envelope
def table_size(database: str, table: str | None = None) -> dict:
    """Row estimate, data, index and total size (MB) per table, largest first.

    Args:
        database: Database name.
        table: Optional single table.
    """
    _require(database=database)
    if table and table.strip():
        return _rows(_TABLE_SIZE_SQL.format(table_filter=" AND TABLE_NAME = %s"), (database, table))
    return _rows(_TABLE_SIZE_SQL.format(table_filter=""), (database,))


@tool_envelope
def foreign_keys(database: str, table: str | None = None) -> dict:
    """List foreign key constraints with their ON UPDATE / ON DELETE rules.

    Args:
        database: Database name.
        table: Optional table to restrict to.
    """
    _require(database=database)
    if table and table.strip():
        return _rows(_FOREIGN_KEYS_SQL.format(table_filter=" AND kcu.TABLE_NAME = %s"), (database, table))
    return _rows(_FOREIGN_KEYS_SQL.format(table_filter=""), (database,))


@tool_envelope
def list_status(pattern: str | None = None) -> dict:
    """Global server status variables, optionally filtered by a LIKE pattern."""
    return _show_variables("SHOW GLOBAL STATUS", pattern)


@tool_envelope
def list_variables(pattern: str | None = None) -> dict:
    """Global server configuration variables, optionally filtered by a LIKE pattern."""
    return _show_variables("SHOW GLOBAL VARIABLES", pattern)


def _show_variables(statement: str, pattern: str | None) -> dict:
    pool, _ = get_registry().active()
    if pattern:
        result = pool.query(f"{statement} LIKE %s", params=(pattern,), max_rows=settings.mysql_max_rows)
    else:
        result = pool.query(statement, max_rows=settings.mysql_max_rows)
    variables = [{"name": row[0], "value": row[1]} for row in result.rows]
    return {"status": "success", "variables": variables}
