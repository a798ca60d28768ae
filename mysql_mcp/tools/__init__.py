"""MySQL MCP tools package.

All tools are plain functions returning a dict envelope; mcp_server.py
registers them with FastMCP. Call init_registry() before using them.
"""

from mysql_mcp.tools._deps import get_registry, init_registry, reset_registry
from mysql_mcp.tools.connections import list_connections, ping, server_info, use_connection
from mysql_mcp.tools.introspection import (
    database_size,
    describe_table,
    foreign_keys,
    list_databases,
    list_functions,
    list_indexes,
    list_partitions,
    list_procedures,
    list_status,
    list_tables,
    list_triggers,
    list_variables,
    list_views,
    show_create_table,
    table_size,
)
from mysql_mcp.tools.query import explain_query, run_query
from mysql_mcp.tools.vector_search import vector_info, vector_search

CORE_TOOLS = (list_databases, list_tables, describe_table, run_query, ping, server_info)
CONNECTION_TOOLS = (list_connections, use_connection)
EXTENDED_TOOLS = (
    list_indexes,
    show_create_table,
    explain_query,
    list_views,
    list_triggers,
    list_procedures,
    list_functions,
    list_partitions,
    database_size,
    table_size,
    foreign_keys,
    list_status,
    list_variables,
)
VECTOR_TOOLS = (vector_search, vector_info)

__all__ = [
    "init_registry",
    "get_registry",
    "reset_registry",
    "CORE_TOOLS",
    "CONNECTION_TOOLS",
    "EXTENDED_TOOLS",
    "VECTOR_TOOLS",
    "run_query",
    "explain_query",
    "list_databases",
    "list_tables",
    "describe_table",
    "list_indexes",
    "show_create_table",
    "list_views",
    "list_triggers",
    "list_procedures",
    "list_functions",
    "list_partitions",
    "database_size",
    "table_size",
    "foreign_keys",
    "list_status",
    "list_variables",
    "list_connections",
    "use_connection",
    "ping",
    "server_info",
    "vector_search",
    "vector_info",
]
