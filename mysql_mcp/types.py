"""Shared TypedDict definitions for tool return values.

All tools return plain dicts: ``status`` is "success" or "error". Error
dicts always match ErrorResult.
"""

from __future__ import annotations

from typing import Any, TypedDict

from mysql_mcp.errors import SqlGateError

# --- Shared ---


class ErrorResult(TypedDict):
    """Common error return for all tools."""

    status: str  # "error"
    error_message: str
    error_kind: str


def error_result(error: SqlGateError) -> ErrorResult:
    """Build the error envelope for a raised SqlGateError."""
    return {"status": "error", "error_message": str(error), "error_kind": error.kind}


# --- Query ---


class QuerySuccessResult(TypedDict, total=False):
    """Returned by run_query.

    `warning` is optional (only present when rows are truncated).
    """

    status: str  # "success"
    columns: list[str]
    rows: list[list[Any]]
    row_count: int
    truncated: bool
    warning: str


# --- Connections ---


class ConnectionInfo(TypedDict):
    name: str
    dsn: str  # password masked
    description: str
    read_only: bool
    active: bool


# --- Vector ---


class VectorMatch(TypedDict):
    distance: Any
    data: dict[str, Any]


class VectorColumnInfo(TypedDict):
    table: str
    column: str
    dimensions: int
    column_type: str
    index_name: str
    index_type: str
