"""Connection management and server health tools.

list_connections() and use_connection() are a thin facade over the shared
ConnectionRegistry. DSNs are only ever returned with the password masked.
"""

import time

from mysql_mcp.errors import EmptyInput, SqlGateError
from mysql_mcp.logging_config import get_logger
from mysql_mcp.tools._deps import get_registry, tool_envelope
from mysql_mcp.types import ConnectionInfo

logger = get_logger(__name__)

_SERVER_VARIABLES_SQL = (
    "SHOW GLOBAL VARIABLES WHERE Variable_name IN "
    "('version_comment', 'character_set_server', 'collation_server', 'max_connections')"
)
_SERVER_STATUS_SQL = "SHOW GLOBAL STATUS WHERE Variable_name IN ('Uptime', 'Threads_connected')"


@tool_envelope
def list_connections() -> dict:
    """List the configured MySQL connections and which one is active."""
    registry = get_registry()
    active = registry.active_name
    connections: list[ConnectionInfo] = [
        {
            "name": config.name,
            "dsn": config.dsn,
            "description": config.description,
            "read_only": config.read_only,
            "active": config.name == active,
        }
        for config in registry.list()
    ]
    return {"status": "success", "connections": connections, "active": active}


@tool_envelope
def use_connection(name: str) -> dict:
    """Switch the active MySQL connection used by every other tool.

    Args:
        name: Name of a configured connection (see list_connections).
    """
    if not name or not name.strip():
        raise EmptyInput("connection name is required")

    registry = get_registry()
    registry.set_active(name)

    message = f"Switched to connection '{name}'"
    database = None
    pool, _ = registry.active()
    try:
        row = pool.query_row("SELECT DATABASE()")
        database = row[0] if row else None
    except SqlGateError as e:
        # Informational only; the switch itself succeeded.
        logger.warning("use_connection_database_lookup_failed", connection=name, error=str(e))
        message += " (note: could not determine current database)"

    return {"status": "success", "active": name, "message": message, "database": database}


@tool_envelope
def ping() -> dict:
    """Check that the active MySQL connection is alive and report the round-trip latency."""
    pool, name = get_registry().active()
    start = time.perf_counter()
    pool.ping()
    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    return {"status": "success", "connection": name, "latency_ms": latency_ms, "message": "pong"}


@tool_envelope
def server_info() -> dict:
    """Report MySQL server version, character set, limits, uptime and current user."""
    pool, name = get_registry().active()

    version_row = pool.query_row("SELECT VERSION()")
    variables = {str(k).lower(): v for k, v in pool.query(_SERVER_VARIABLES_SQL).rows}
    status = {str(k).lower(): v for k, v in pool.query(_SERVER_STATUS_SQL).rows}
    user_row = pool.query_row("SELECT CURRENT_USER(), DATABASE()") or [None, None]

    return {
        "status": "success",
        "connection": name,
        "version": version_row[0] if version_row else "",
        "version_comment": variables.get("version_comment", ""),
        "character_set": variables.get("character_set_server", ""),
        "collation": variables.get("collation_server", ""),
        "max_connections": variables.get("max_connections", ""),
        "uptime_seconds": status.get("uptime", ""),
        "threads_connected": status.get("threads_connected", ""),
        "current_user": user_row[0] or "",
        "current_database": user_row[1],
    }
