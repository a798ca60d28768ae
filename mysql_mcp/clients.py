"""Concrete implementation of MySQLPoolProtocol.

MySQLPool wraps a SQLAlchemy engine (QueuePool, PyMySQL driver) built from
a driver-format DSN. Statements are sent with exec_driver_sql(): the SQL
has already been validated, and bound parameters use PyMySQL's ``%s``
placeholders.

For unit testing, use the fakes in tests/fakes.py instead.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, DisconnectionError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.pool import QueuePool

from mysql_mcp.dsn import mask_dsn, parse_dsn
from mysql_mcp.errors import DatabaseConnectionError, QueryTimeout
from mysql_mcp.identifiers import quote_ident, truncate_query
from mysql_mcp.logging_config import get_logger
from mysql_mcp.serialization import QueryResult, normalize_row

logger = get_logger(__name__)

_CHECKIN_KEY = "mysql_mcp_checked_in_at"


@dataclass(frozen=True)
class PoolSettings:
    """Pool limits and deadlines. Durations are in seconds.

    Zero or negative values mean "use the default", never immediate expiry.
    """

    max_open: int = 10
    max_idle: int = 5
    max_lifetime: float = 30 * 60
    max_idle_time: float = 5 * 60
    ping_timeout: float = 5
    query_timeout: float = 30

    def __post_init__(self):
        for name, field_ in self.__dataclass_fields__.items():
            if getattr(self, name) <= 0:
                object.__setattr__(self, name, field_.default)
        if self.max_idle > self.max_open:
            object.__setattr__(self, "max_idle", self.max_open)


class MySQLPool:
    """Connection pool for one configured MySQL server. Implements MySQLPoolProtocol.

    Usage:
        pool = MySQLPool("ro:secret@tcp(db:3306)/app", PoolSettings())
        result = pool.query("SELECT id FROM users", database="app", max_rows=50)
    """

    def __init__(self, dsn: str, pool_settings: PoolSettings | None = None):
        self._settings = pool_settings or PoolSettings()
        self._masked_dsn = mask_dsn(dsn)

        parsed = parse_dsn(dsn)
        self._default_database = parsed.database

        connect_args = parsed.connect_args()
        connect_args.update(
            connect_timeout=self._settings.ping_timeout,
            read_timeout=self._settings.query_timeout,
            write_timeout=self._settings.query_timeout,
        )
        self._engine = create_engine(
            parsed.sqlalchemy_url(),
            poolclass=QueuePool,
            pool_size=self._settings.max_idle,
            max_overflow=self._settings.max_open - self._settings.max_idle,
            pool_recycle=int(self._settings.max_lifetime),
            pool_timeout=self._settings.query_timeout,
            connect_args=connect_args,
        )
        event.listen(self._engine, "checkin", self._on_checkin)
        event.listen(self._engine, "checkout", self._on_checkout)

        logger.info(
            "mysql_pool_created",
            dsn=self._masked_dsn,
            max_open=self._settings.max_open,
            max_idle=self._settings.max_idle,
        )

    def _on_checkin(self, dbapi_connection, connection_record) -> None:
        connection_record.info[_CHECKIN_KEY] = time.monotonic()

    def _on_checkout(self, dbapi_connection, connection_record, connection_proxy) -> None:
        # Raising DisconnectionError makes the pool discard this connection
        # and hand out a fresh one.
        checked_in = connection_record.info.get(_CHECKIN_KEY)
        if checked_in is not None and time.monotonic() - checked_in > self._settings.max_idle_time:
            logger.info("mysql_pool_idle_connection_discarded", dsn=self._masked_dsn)
            raise DisconnectionError("connection exceeded max idle time")

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        try:
            with self._engine.connect() as conn:
                yield conn
        except PoolTimeoutError as e:
            raise QueryTimeout("timed out waiting for a pooled connection") from e
        except DBAPIError as e:
            message = str(e.orig) if e.orig is not None else str(e)
            if "timed out" in message.lower():
                raise QueryTimeout("query timed out", message) from e
            raise DatabaseConnectionError("database error", message) from e
        except SQLAlchemyError as e:
            raise DatabaseConnectionError("database error", str(e)) from e

    def ping(self) -> None:
        """Open (or reuse) a connection and run ``SELECT 1``.

        Connection setup is bounded by the ping timeout.

        Raises:
            DatabaseConnectionError: If the server cannot be reached.
            QueryTimeout: If the server does not answer in time.
        """
        with self._connect() as conn:
            conn.exec_driver_sql("SELECT 1")

    def query(
        self,
        sql: str,
        params: tuple | dict | None = None,
        database: str | None = None,
        max_rows: int | None = None,
    ) -> QueryResult:
        """Run one statement and return normalized rows.

        When ``database`` is given, ``USE`` and the statement share one
        leased connection. Afterwards the DSN's own database is restored; if
        the DSN names none, or the restore fails, the connection is
        invalidated so the pool never hands out a caller's schema.
        """
        logger.info("mysql_query_start", sql_preview=truncate_query(sql), database=database)
        with self._connect() as conn:
            if database:
                conn.exec_driver_sql(f"USE {quote_ident(database)}")
            try:
                cursor = conn.exec_driver_sql(sql, params) if params else conn.exec_driver_sql(sql)
                result = _collect(cursor, max_rows)
            finally:
                if database:
                    self._reset_database(conn, database)

        logger.info("mysql_query_complete", row_count=result.row_count, truncated=result.truncated)
        return result

    def _reset_database(self, conn: Connection, database: str) -> None:
        if database == self._default_database:
            return
        if self._default_database:
            try:
                conn.exec_driver_sql(f"USE {quote_ident(self._default_database)}")
                return
            except SQLAlchemyError as e:
                logger.warning("mysql_database_restore_failed", dsn=self._masked_dsn, error=str(e))
        conn.invalidate()

    def query_row(self, sql: str, params: tuple | dict | None = None) -> list[Any] | None:
        """Run a statement and return its first normalized row, or None."""
        result = self.query(sql, params=params, max_rows=1)
        return result.rows[0] if result.rows else None

    def close(self) -> None:
        self._engine.dispose()
        logger.info("mysql_pool_closed", dsn=self._masked_dsn)


def _collect(cursor, max_rows: int | None) -> QueryResult:
    if not cursor.returns_rows:
        return QueryResult()

    columns = list(cursor.keys())
    if max_rows is None:
        return QueryResult(columns=columns, rows=[normalize_row(r) for r in cursor])

    # One extra row tells us whether the result was cut short.
    fetched = cursor.fetchmany(max_rows + 1)
    truncated = len(fetched) > max_rows
    return QueryResult(
        columns=columns,
        rows=[normalize_row(r) for r in fetched[:max_rows]],
        truncated=truncated,
    )
