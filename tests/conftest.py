"""Shared test fixtures for the mysql-mcp test suite."""

import os

import pytest

# Set env vars at module level so they're available during test collection.
# mysql_mcp.config creates a Settings() singleton at import time, which
# happens before any fixtures run.
_TEST_ENV = {
    "MYSQL_MAX_ROWS": "200",
    "MYSQL_QUERY_TIMEOUT_SECONDS": "30",
    "MYSQL_MCP_JSON_LOGS": "true",
    "LOG_LEVEL": "INFO",
}

# Connection settings from a developer's shell must not leak into tests.
_CONNECTION_ENV = ["MYSQL_CONNECTIONS", "MYSQL_DSN", "MYSQL_SSL", "MYSQL_MCP_EXTENDED", "MYSQL_MCP_VECTOR"] + [
    f"MYSQL_DSN_{i}{suffix}" for i in range(1, 11) for suffix in ("", "_NAME", "_DESC")
]

for _key, _val in _TEST_ENV.items():
    os.environ.setdefault(_key, _val)

PRIMARY_DSN = "reader:secret@tcp(db1.internal:3306)/shop"
ANALYTICS_DSN = "reader:p@ss@word@tcp(db2.internal:3306)/warehouse"


@pytest.fixture(autouse=True)
def set_test_env(monkeypatch):
    """Pin the environment for every test so the real shell and .env are ignored."""
    for key, val in _TEST_ENV.items():
        monkeypatch.setenv(key, val)
    for key in _CONNECTION_ENV:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def pool_factory():
    from tests.fakes import FakePoolFactory

    return FakePoolFactory()


@pytest.fixture
def mock_registry(pool_factory):
    """Provide a two-connection registry of fake pools and inject it into tools._deps.

    "primary" is active; "analytics" has an '@' in its password.
    """
    from mysql_mcp.registry import ConnectionConfig, ConnectionRegistry, PoolSettings
    from mysql_mcp.tools._deps import init_registry, reset_registry

    registry = ConnectionRegistry(PoolSettings(), pool_factory=pool_factory)
    registry.add(ConnectionConfig(name="primary", dsn=PRIMARY_DSN, description="Primary shop database"))
    registry.add(ConnectionConfig(name="analytics", dsn=ANALYTICS_DSN, description="Reporting replica"))
    init_registry(registry)

    yield registry

    reset_registry()
    registry.close()


@pytest.fixture
def fake_pool(mock_registry, pool_factory):
    """The FakeMySQLPool behind the active ("primary") connection."""
    return pool_factory.pools[PRIMARY_DSN]


@pytest.fixture
def analytics_pool(mock_registry, pool_factory):
    return pool_factory.pools[ANALYTICS_DSN]
