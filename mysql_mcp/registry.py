"""Named MySQL connections and the active-connection pointer.

One readers-writer lock guards the pool map and the active name. The hot
path, active(), takes the read lock and does no I/O. add(), set_active()
and close() take the write lock.

Usage:
    from mysql_mcp.registry import ConnectionConfig, ConnectionRegistry, PoolSettings
    registry = ConnectionRegistry(PoolSettings())
    registry.add(ConnectionConfig(name="prod", dsn="ro:pw@tcp(db:3306)/app"))
    pool, name = registry.active()
"""

import threading
from collections.abc import Callable
from contextlib import contextmanager
from typing import Iterator

from pydantic import BaseModel, Field

from mysql_mcp.clients import MySQLPool, PoolSettings
from mysql_mcp.dsn import apply_tls_mode, mask_dsn
from mysql_mcp.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    QueryTimeout,
    UnknownConnection,
)
from mysql_mcp.logging_config import get_logger
from mysql_mcp.protocols import MySQLPoolProtocol

logger = get_logger(__name__)

__all__ = [
    "ConnectionConfig",
    "ConnectionRegistry",
    "PoolSettings",
    "build_registry",
]

PoolFactory = Callable[[str, PoolSettings], MySQLPoolProtocol]


class ConnectionConfig(BaseModel):
    """One configured MySQL connection."""

    name: str = Field(min_length=1)
    dsn: str = Field(min_length=1)
    description: str = ""
    read_only: bool = False
    ssl: str = ""


class _ReadWriteLock:
    """Many concurrent readers or one writer. Writers wait for readers to drain."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ConnectionRegistry:
    """Pools keyed by connection name, plus the active name.

    The first successfully added connection becomes active; only
    set_active() changes it afterwards.
    """

    def __init__(
        self,
        pool_settings: PoolSettings | None = None,
        pool_factory: PoolFactory = MySQLPool,
    ):
        self._pool_settings = pool_settings or PoolSettings()
        self._pool_factory = pool_factory
        self._lock = _ReadWriteLock()
        self._pools: dict[str, MySQLPoolProtocol] = {}
        self._configs: dict[str, ConnectionConfig] = {}
        self._active = ""
        self._closed = False

    def add(self, config: ConnectionConfig) -> None:
        """Open, ping and store a pool for ``config``.

        Raises:
            ConfigurationError: If the name is already registered or the
                DSN cannot be parsed.
            DatabaseConnectionError: If the pool cannot be opened or pinged.
                The pool is closed before raising.
        """
        with self._lock.write():
            if self._closed:
                raise DatabaseConnectionError("connection registry is closed")
            if config.name in self._pools:
                raise ConfigurationError("duplicate connection name", config.name)

            dsn = apply_tls_mode(config.dsn, config.ssl)
            try:
                pool = self._pool_factory(dsn, self._pool_settings)
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error("connection_open_failed", name=config.name, dsn=mask_dsn(dsn), error=str(e))
                raise DatabaseConnectionError(f"failed to open connection '{config.name}'", str(e)) from e

            try:
                pool.ping()
            except (DatabaseConnectionError, QueryTimeout) as e:
                _close_quietly(pool, config.name)
                logger.error("connection_ping_failed", name=config.name, dsn=mask_dsn(dsn), error=str(e))
                raise DatabaseConnectionError(f"failed to ping connection '{config.name}'", str(e)) from e

            self._pools[config.name] = pool
            self._configs[config.name] = config
            if not self._active:
                self._active = config.name
            logger.info(
                "connection_added",
                name=config.name,
                dsn=mask_dsn(dsn),
                active=self._active == config.name,
            )

    def active(self) -> tuple[MySQLPoolProtocol, str]:
        """Return ``(pool, name)`` for the active connection.

        Raises:
            DatabaseConnectionError: If no connection is available.
        """
        with self._lock.read():
            if self._closed or not self._active:
                raise DatabaseConnectionError("no active database connection")
            return self._pools[self._active], self._active

    def set_active(self, name: str) -> None:
        """Raises UnknownConnection if ``name`` was never added."""
        with self._lock.write():
            if name not in self._pools:
                raise UnknownConnection("connection not found", name)
            previous, self._active = self._active, name
        logger.info("connection_switched", previous=previous, active=name)

    @property
    def active_name(self) -> str:
        with self._lock.read():
            return self._active

    def list(self) -> list[ConnectionConfig]:
        """Configs in insertion order, with DSN passwords masked."""
        with self._lock.read():
            return [c.model_copy(update={"dsn": mask_dsn(c.dsn)}) for c in self._configs.values()]

    def close(self) -> None:
        """Close every pool. Per-pool errors are logged; repeated calls are no-ops."""
        with self._lock.write():
            if self._closed:
                return
            self._closed = True
            for name, pool in self._pools.items():
                _close_quietly(pool, name)
            self._pools.clear()
            self._active = ""
        logger.info("connection_registry_closed")

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._pools)


def _close_quietly(pool: MySQLPoolProtocol, name: str) -> None:
    try:
        pool.close()
    except Exception as e:
        logger.warning("connection_close_failed", name=name, error=str(e))


def build_registry(settings, pool_factory: PoolFactory = MySQLPool) -> ConnectionRegistry:
    """Create a registry from Settings and add every configured connection.

    Raises:
        ConfigurationError: If no connection is configured.
        DatabaseConnectionError: If a configured connection cannot be opened.
    """
    configs = settings.connection_configs()
    if not configs:
        raise ConfigurationError(
            "no MySQL connection configured",
            "set MYSQL_DSN or MYSQL_CONNECTIONS",
        )

    registry = ConnectionRegistry(settings.pool_settings(), pool_factory=pool_factory)
    try:
        for config in configs:
            registry.add(config)
    except Exception:
        registry.close()
        raise
    return registry
