"""Structured logging configuration.

The MCP stdio transport owns stdout for JSON-RPC, so every log line goes to
stderr.

Usage:
    from mysql_mcp.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("connection_added", name="default", active=True)
"""

import logging
import sys

import structlog


def setup_logging(json_logs: bool = True, level: str = "INFO") -> None:
    """Configure structlog for stderr output. Call once at startup.

    Args:
        json_logs: Render JSON lines; otherwise use the console renderer.
        level: Minimum level name, e.g. "INFO" or "DEBUG".
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(stream=sys.stderr, level=log_level)

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,  # Allow reconfiguration
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.
    """
    return structlog.get_logger(name)
