"""Shared dependency injection for all tool modules.

This module holds the ConnectionRegistry that all tools share. It is
initialised once at server startup via init_registry(). The registry
itself is thread-safe; only the module global is swapped here.

Usage (inside tool modules):
    from mysql_mcp.tools._deps import get_registry, tool_envelope
"""

import functools
from collections.abc import Callable
from typing import Any

from mysql_mcp.errors import SqlGateError, ValidationRejected
from mysql_mcp.logging_config import get_logger
from mysql_mcp.registry import ConnectionRegistry
from mysql_mcp.types import error_result

logger = get_logger(__name__)

_registry: ConnectionRegistry | None = None


def init_registry(registry: ConnectionRegistry) -> None:
    """Set the shared connection registry for all tools."""
    global _registry
    _registry = registry
    logger.info("tools_registry_initialised", connections=len(registry))


def get_registry() -> ConnectionRegistry:
    """Get the shared connection registry.

    Raises:
        RuntimeError: If init_registry() has not been called yet.
    """
    if _registry is None:
        raise RuntimeError("Connection registry not initialised. Call init_registry() before using tools.")
    return _registry


def reset_registry() -> None:
    """Drop the shared registry (for test isolation and shutdown)."""
    global _registry
    _registry = None


def tool_envelope(fn: Callable[..., dict]) -> Callable[..., dict]:
    """Turn exceptions raised by a tool into the error envelope.

    Rejections are logged as warnings; connection and driver failures as
    errors. Anything unexpected is logged with its traceback.
    """

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> dict:
        try:
            return fn(*args, **kwargs)
        except ValidationRejected as e:
            logger.warning("tool_rejected", tool=fn.__name__, kind=e.kind, reason=str(e))
            return error_result(e)
        except SqlGateError as e:
            logger.error("tool_failed", tool=fn.__name__, kind=e.kind, error=str(e))
            return error_result(e)
        except Exception as e:
            logger.exception("tool_unexpected_error", tool=fn.__name__, error=str(e))
            return {"status": "error", "error_message": str(e), "error_kind": "Error"}

    return wrapper
