"""Read-only MySQL MCP server with a layered SQL safety gate."""

__version__ = "0.1.0"
