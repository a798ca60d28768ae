"""Tests for MySQLPool and PoolSettings.

No MySQL server is needed: create_engine() does not connect, and the
connection-level paths are driven with stand-in objects.
"""

import time

import pytest
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from mysql_mcp.clients import MySQLPool, PoolSettings, _collect
from mysql_mcp.errors import DatabaseConnectionError, QueryTimeout


class TestPoolSettings:
    def test_defaults(self):
        settings = PoolSettings()
        assert settings.max_open == 10
        assert settings.max_idle == 5
        assert settings.max_lifetime == 1800
        assert settings.max_idle_time == 300
        assert settings.ping_timeout == 5
        assert settings.query_timeout == 30

    def test_non_positive_means_default(self):
        settings = PoolSettings(max_open=0, max_idle=-1, max_lifetime=0, query_timeout=-30)
        assert settings.max_open == 10
        assert settings.max_idle == 5
        assert settings.max_lifetime == 1800
        assert settings.query_timeout == 30

    def test_max_idle_capped_at_max_open(self):
        settings = PoolSettings(max_open=3, max_idle=8)
        assert settings.max_idle == 3


class TestMySQLPoolEngine:
    @pytest.fixture
    def pool(self):
        pool = MySQLPool(
            "reader:pw@tcp(db.internal:3307)/shop?charset=utf8mb4",
            PoolSettings(max_open=8, max_idle=3, max_lifetime=600),
        )
        yield pool
        pool.close()

    def test_engine_url(self, pool):
        url = pool._engine.url
        assert url.drivername == "mysql+pymysql"
        assert url.host == "db.internal"
        assert url.port == 3307
        assert url.database == "shop"

    def test_pool_sizing(self, pool):
        assert pool._engine.pool.size() == 3
        assert pool._engine.pool._max_overflow == 5

    def test_invalid_dsn_rejected(self):
        from mysql_mcp.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            MySQLPool("no-slash-here")


class _Record:
    def __init__(self):
        self.info = {}


class TestIdleTimeout:
    def test_fresh_connection_kept(self):
        pool = MySQLPool("reader:pw@tcp(db:3306)/shop", PoolSettings(max_idle_time=60))
        record = _Record()
        pool._on_checkin(None, record)
        pool._on_checkout(None, record, None)
        pool.close()

    def test_idle_connection_discarded(self):
        pool = MySQLPool("reader:pw@tcp(db:3306)/shop", PoolSettings(max_idle_time=60))
        record = _Record()
        pool._on_checkin(None, record)
        record.info["mysql_mcp_checked_in_at"] = time.monotonic() - 120
        with pytest.raises(DisconnectionError):
            pool._on_checkout(None, record, None)
        pool.close()


class TestErrorMapping:
    @pytest.fixture
    def pool(self):
        pool = MySQLPool("reader:pw@tcp(db:3306)/shop")
        yield pool
        pool.close()

    def _fail_connect(self, monkeypatch, pool, error):
        def connect():
            raise error

        monkeypatch.setattr(pool._engine, "connect", connect)

    def test_driver_error(self, monkeypatch, pool):
        error = OperationalError("SELECT 1", None, Exception("(2003) Can't connect to MySQL server"))
        self._fail_connect(monkeypatch, pool, error)
        with pytest.raises(DatabaseConnectionError) as exc_info:
            pool.ping()
        assert "Can't connect" in exc_info.value.detail

    def test_driver_timeout(self, monkeypatch, pool):
        error = OperationalError("SELECT 1", None, Exception("timed out"))
        self._fail_connect(monkeypatch, pool, error)
        with pytest.raises(QueryTimeout):
            pool.query("SELECT 1")

    def test_pool_exhausted(self, monkeypatch, pool):
        self._fail_connect(monkeypatch, pool, PoolTimeoutError("QueuePool limit reached"))
        with pytest.raises(QueryTimeout):
            pool.query("SELECT 1")


class _Connection:
    """Stands in for a SQLAlchemy Connection; statements matching a prefix fail."""

    def __init__(self, failures=None):
        self.statements = []
        self.invalidated = False
        self._failures = failures or {}

    def exec_driver_sql(self, sql, params=None):
        self.statements.append(sql)
        for prefix, message in self._failures.items():
            if sql.startswith(prefix):
                raise OperationalError(sql, params, Exception(message))
        return _Cursor(["n"], [(1,)])

    def invalidate(self):
        self.invalidated = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class TestDatabaseScope:
    def _pool(self, monkeypatch, dsn, conn):
        pool = MySQLPool(dsn)
        monkeypatch.setattr(pool._engine, "connect", lambda: conn)
        return pool

    def test_default_database_restored(self, monkeypatch):
        conn = _Connection()
        pool = self._pool(monkeypatch, "reader:pw@tcp(db:3306)/shop", conn)

        result = pool.query("SELECT 1", database="reports")

        assert result.rows == [[1]]
        assert conn.statements == ["USE `reports`", "SELECT 1", "USE `shop`"]
        assert conn.invalidated is False

    def test_same_database_needs_no_restore(self, monkeypatch):
        conn = _Connection()
        pool = self._pool(monkeypatch, "reader:pw@tcp(db:3306)/shop", conn)

        pool.query("SELECT 1", database="shop")

        assert conn.statements == ["USE `shop`", "SELECT 1"]
        assert conn.invalidated is False

    def test_unscoped_query_leaves_connection_alone(self, monkeypatch):
        conn = _Connection()
        pool = self._pool(monkeypatch, "reader:pw@tcp(db:3306)/", conn)

        pool.query("SELECT 1")

        assert conn.statements == ["SELECT 1"]
        assert conn.invalidated is False

    def test_no_default_database_invalidates(self, monkeypatch):
        conn = _Connection()
        pool = self._pool(monkeypatch, "reader:pw@tcp(db:3306)/", conn)

        pool.query("SELECT 1", database="reports")

        assert conn.statements == ["USE `reports`", "SELECT 1"]
        assert conn.invalidated is True

    def test_failed_restore_invalidates(self, monkeypatch):
        conn = _Connection({"USE `shop`": "(2013) Lost connection to MySQL server"})
        pool = self._pool(monkeypatch, "reader:pw@tcp(db:3306)/shop", conn)

        result = pool.query("SELECT 1", database="reports")

        assert result.rows == [[1]]
        assert conn.invalidated is True

    def test_failed_restore_keeps_query_error(self, monkeypatch):
        conn = _Connection(
            {
                "SELECT": "(1146) Table 'reports.missing' doesn't exist",
                "USE `shop`": "(2013) Lost connection to MySQL server",
            }
        )
        pool = self._pool(monkeypatch, "reader:pw@tcp(db:3306)/shop", conn)

        with pytest.raises(DatabaseConnectionError) as exc_info:
            pool.query("SELECT * FROM missing", database="reports")

        assert "1146" in exc_info.value.detail
        assert conn.invalidated is True


class _Cursor:
    def __init__(self, columns, rows, returns_rows=True):
        self._columns = columns
        self._rows = rows
        self.returns_rows = returns_rows

    def keys(self):
        return self._columns

    def fetchmany(self, size):
        return self._rows[:size]

    def __iter__(self):
        return iter(self._rows)


class TestCollect:
    def test_not_truncated(self):
        result = _collect(_Cursor(["id"], [(1,), (2,)]), max_rows=5)
        assert result.columns == ["id"]
        assert result.rows == [[1], [2]]
        assert result.truncated is False

    def test_exactly_max_rows(self):
        result = _collect(_Cursor(["id"], [(1,), (2,)]), max_rows=2)
        assert result.row_count == 2
        assert result.truncated is False

    def test_truncated(self):
        result = _collect(_Cursor(["id"], [(1,), (2,), (3,)]), max_rows=2)
        assert result.rows == [[1], [2]]
        assert result.truncated is True

    def test_rows_normalized(self):
        result = _collect(_Cursor(["b"], [(b"blob",)]), max_rows=None)
        assert result.rows == [["blob"]]

    def test_statement_without_rows(self):
        result = _collect(_Cursor([], [], returns_rows=False), max_rows=10)
        assert result.columns == []
        assert result.rows == []
