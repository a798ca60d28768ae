"""MCP server exposing read-only MySQL tools over stdio.

Claude Desktop, Gemini CLI and other MCP clients connect via the stdio
transport. Core and connection tools are always registered; the extended
introspection tools and the vector tools are registered only when
MYSQL_MCP_EXTENDED / MYSQL_MCP_VECTOR are set.

CRITICAL: MCP stdio transport uses stdout for JSON-RPC. ALL application
logging MUST go to stderr; logging_config.setup_logging() guarantees it.
"""

from collections.abc import Callable

from mcp.server import FastMCP

from mysql_mcp.config import Settings, settings
from mysql_mcp.logging_config import get_logger, setup_logging
from mysql_mcp.registry import build_registry
from mysql_mcp.tools import (
    CONNECTION_TOOLS,
    CORE_TOOLS,
    EXTENDED_TOOLS,
    VECTOR_TOOLS,
    init_registry,
    reset_registry,
)

logger = get_logger(__name__)

SERVER_NAME = "mysql-mcp"

_INSTRUCTIONS = (
    "Read-only access to MySQL. Use list_databases, list_tables and "
    "describe_table to explore the schema, then run_query for SELECT, SHOW, "
    "DESCRIBE or EXPLAIN statements. Writes, DDL, comments, file access and "
    "system schemas are rejected."
)


def enabled_tools(config: Settings) -> list[Callable[..., dict]]:
    """Tool functions to register for the given feature flags, in listing order."""
    tools = list(CORE_TOOLS) + list(CONNECTION_TOOLS)
    if config.mysql_mcp_extended:
        tools += EXTENDED_TOOLS
    if config.mysql_mcp_vector:
        tools += VECTOR_TOOLS
    return tools


def create_server(config: Settings = settings) -> FastMCP:
    """Build a FastMCP server with the tools enabled by ``config``."""
    server = FastMCP(SERVER_NAME, instructions=_INSTRUCTIONS)
    for tool in enabled_tools(config):
        server.add_tool(tool)
    logger.info(
        "mcp_server_created",
        extended=config.mysql_mcp_extended,
        vector=config.mysql_mcp_vector,
        tools=len(enabled_tools(config)),
    )
    return server


def main() -> None:
    """Console entry point: configure logging, open connections, serve stdio."""
    setup_logging(json_logs=settings.mysql_mcp_json_logs, level=settings.log_level)

    registry = build_registry(settings)
    init_registry(registry)
    logger.info(
        "mysql_mcp_starting",
        connections=[c.name for c in registry.list()],
        active=registry.active_name,
        max_rows=settings.mysql_max_rows,
    )
    try:
        create_server(settings).run(transport="stdio")
    finally:
        reset_registry()
        registry.close()
        logger.info("mysql_mcp_stopped")


if __name__ == "__main__":
    main()
