"""JSON serialization safety for MySQL result values.

PyMySQL returns types that the MCP transport cannot serialize as-is:
bytes for BLOB/BINARY columns, Decimal, date/time/datetime, timedelta for
TIME columns and Python sets for SET columns. normalize_row() converts
them at the source, before results leave the pool.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any


def normalize_value(val: Any) -> Any:
    """Convert a single cell to a JSON-safe type."""
    if val is None:
        return None
    if isinstance(val, (bytes, bytearray, memoryview)):
        return bytes(val).decode("utf-8", errors="replace")
    # bool is an int subclass; both pass through unchanged
    if isinstance(val, (str, int, float)):
        return val
    if isinstance(val, Decimal):
        return str(val)
    if isinstance(val, (datetime, date, time)):
        return val.isoformat()
    if isinstance(val, timedelta):
        return str(val)
    if isinstance(val, (set, frozenset)):
        return ",".join(sorted(str(v) for v in val))
    return str(val)


def normalize_row(row: Any) -> list[Any]:
    """Normalize every cell of a row (tuple, list or SQLAlchemy Row)."""
    return [normalize_value(v) for v in row]


def normalize_rows(rows: Any) -> list[list[Any]]:
    return [normalize_row(r) for r in rows]


def clamp_max_rows(requested: int | None, ceiling: int) -> int:
    """Return the effective row limit: the request if 0 < requested < ceiling."""
    if requested is None or requested <= 0 or requested > ceiling:
        return ceiling
    return requested


@dataclass
class QueryResult:
    """Columns and normalized rows of one statement, truncated to a row limit."""

    columns: list[str] = field(default_factory=list)
    rows: list[list[Any]] = field(default_factory=list)
    truncated: bool = False

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def as_dicts(self) -> list[dict[str, Any]]:
        """Rows keyed by column name, for introspection results."""
        return [dict(zip(self.columns, row)) for row in self.rows]
