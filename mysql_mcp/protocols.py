"""Protocols (interfaces) for external dependencies.

The registry and the tools talk to MySQL only through MySQLPoolProtocol,
NEVER through SQLAlchemy or PyMySQL directly.

Unit tests provide fake implementations.

Usage:
    # In tools:
    def my_tool(pool: MySQLPoolProtocol) -> list[str]:
        return pool.query("SHOW DATABASES").rows

    # In production (registry.py):
    from mysql_mcp.clients import MySQLPool
    pool = MySQLPool(dsn, PoolSettings())

    # In tests:
    from tests.fakes import FakeMySQLPool
    pool = FakeMySQLPool()
    pool.add_result("SHOW DATABASES", ["Database"], [["shop"]])
"""

from typing import Any, Protocol, runtime_checkable

from mysql_mcp.serialization import QueryResult


@runtime_checkable
class MySQLPoolProtocol(Protocol):
    """Interface for a pooled MySQL connection.

    Concrete implementations:
    - MySQLPool (mysql_mcp/clients.py): SQLAlchemy QueuePool over PyMySQL
    - FakeMySQLPool (tests/fakes.py): in-memory fake for unit tests
    """

    def ping(self) -> None:
        """Check the server is reachable.

        Raises:
            DatabaseConnectionError: If the server cannot be reached.
            QueryTimeout: If the server does not answer within the ping timeout.
        """
        ...

    def query(
        self,
        sql: str,
        params: tuple | dict | None = None,
        database: str | None = None,
        max_rows: int | None = None,
    ) -> QueryResult:
        """Execute one statement and return normalized rows.

        Args:
            sql: Statement text. Caller-supplied SQL must already have passed
                validate_combined().
            params: Bound parameters for ``%s`` placeholders.
            database: If set, ``USE`` it on the same leased connection first.
            max_rows: Row limit; the result is flagged truncated when more
                rows were available.

        Raises:
            DatabaseConnectionError: On driver failure.
            QueryTimeout: When the query deadline expires.
        """
        ...

    def query_row(self, sql: str, params: tuple | dict | None = None) -> list[Any] | None:
        """Execute a statement and return the first row, or None."""
        ...

    def close(self) -> None:
        """Release every pooled connection."""
        ...
