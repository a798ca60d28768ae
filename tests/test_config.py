"""Tests for Settings loaded from the environment."""

import pytest

from mysql_mcp.config import Settings
from mysql_mcp.errors import ConfigurationError


class TestSettingsDefaults:
    """Settings falls back to documented defaults when variables are unset."""

    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.mysql_max_rows == 200
        assert s.mysql_query_timeout_seconds == 30
        assert s.mysql_max_open_conns == 10
        assert s.mysql_max_idle_conns == 5
        assert s.mysql_conn_max_lifetime_minutes == 30
        assert s.mysql_conn_max_idle_time_minutes == 5
        assert s.mysql_ping_timeout_seconds == 5
        assert s.mysql_mcp_extended is False
        assert s.mysql_mcp_vector is False

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("MYSQL_MAX_ROWS", "50")
        monkeypatch.setenv("MYSQL_QUERY_TIMEOUT_SECONDS", "10")
        s = Settings(_env_file=None)
        assert s.mysql_max_rows == 50
        assert s.mysql_query_timeout_seconds == 10

    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_non_positive_means_default(self, monkeypatch, value):
        monkeypatch.setenv("MYSQL_MAX_ROWS", value)
        monkeypatch.setenv("MYSQL_PING_TIMEOUT_SECONDS", value)
        s = Settings(_env_file=None)
        assert s.mysql_max_rows == 200
        assert s.mysql_ping_timeout_seconds == 5

    @pytest.mark.parametrize("value", ["1", "true", "TRUE"])
    def test_feature_flags(self, monkeypatch, value):
        monkeypatch.setenv("MYSQL_MCP_EXTENDED", value)
        monkeypatch.setenv("MYSQL_MCP_VECTOR", value)
        s = Settings(_env_file=None)
        assert s.mysql_mcp_extended is True
        assert s.mysql_mcp_vector is True


class TestPoolSettings:
    def test_minutes_converted_to_seconds(self, monkeypatch):
        monkeypatch.setenv("MYSQL_CONN_MAX_LIFETIME_MINUTES", "10")
        monkeypatch.setenv("MYSQL_CONN_MAX_IDLE_TIME_MINUTES", "2")
        pool = Settings(_env_file=None).pool_settings()
        assert pool.max_lifetime == 600
        assert pool.max_idle_time == 120

    def test_limits_passed_through(self, monkeypatch):
        monkeypatch.setenv("MYSQL_MAX_OPEN_CONNS", "4")
        monkeypatch.setenv("MYSQL_MAX_IDLE_CONNS", "2")
        pool = Settings(_env_file=None).pool_settings()
        assert pool.max_open == 4
        assert pool.max_idle == 2
        assert pool.query_timeout == 30


class TestConnectionConfigs:
    def test_nothing_configured(self):
        assert Settings(_env_file=None).connection_configs() == []

    def test_mysql_dsn_is_default(self, monkeypatch):
        monkeypatch.setenv("MYSQL_DSN", "u:p@tcp(db:3306)/shop")
        configs = Settings(_env_file=None).connection_configs()
        assert len(configs) == 1
        assert configs[0].name == "default"
        assert configs[0].dsn == "u:p@tcp(db:3306)/shop"

    def test_numbered_dsns(self, monkeypatch):
        monkeypatch.setenv("MYSQL_DSN", "u:p@tcp(db:3306)/shop")
        monkeypatch.setenv("MYSQL_DSN_1", "u:p@tcp(db1:3306)/a")
        monkeypatch.setenv("MYSQL_DSN_1_NAME", "reporting")
        monkeypatch.setenv("MYSQL_DSN_1_DESC", "Reporting replica")
        monkeypatch.setenv("MYSQL_DSN_3", "u:p@tcp(db3:3306)/c")
        configs = Settings(_env_file=None).connection_configs()
        assert [c.name for c in configs] == ["default", "reporting", "connection_3"]
        assert configs[1].description == "Reporting replica"

    def test_ssl_applies_to_env_connections(self, monkeypatch):
        monkeypatch.setenv("MYSQL_DSN", "u:p@tcp(db:3306)/shop")
        monkeypatch.setenv("MYSQL_SSL", "skip-verify")
        configs = Settings(_env_file=None).connection_configs()
        assert configs[0].ssl == "skip-verify"

    def test_json_connections(self, monkeypatch):
        monkeypatch.setenv(
            "MYSQL_CONNECTIONS",
            '[{"name": "prod", "dsn": "u:p@tcp(prod:3306)/app", "description": "Production", "read_only": true},'
            ' {"name": "stage", "dsn": "u:p@tcp(stage:3306)/app", "ssl": "true"}]',
        )
        configs = Settings(_env_file=None).connection_configs()
        assert [c.name for c in configs] == ["prod", "stage"]
        assert configs[0].read_only is True
        assert configs[1].ssl == "true"

    def test_json_connections_take_precedence(self, monkeypatch):
        monkeypatch.setenv("MYSQL_DSN", "u:p@tcp(db:3306)/shop")
        monkeypatch.setenv("MYSQL_CONNECTIONS", '[{"name": "only", "dsn": "u:p@tcp(x:3306)/y"}]')
        configs = Settings(_env_file=None).connection_configs()
        assert [c.name for c in configs] == ["only"]

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            '{"name": "prod", "dsn": "u:p@tcp(db:3306)/app"}',
            '[{"name": "missing-dsn"}]',
            '[{"name": "", "dsn": "u:p@tcp(db:3306)/app"}]',
        ],
    )
    def test_malformed_json_connections(self, monkeypatch, raw):
        monkeypatch.setenv("MYSQL_CONNECTIONS", raw)
        with pytest.raises(ConfigurationError):
            Settings(_env_file=None).connection_configs()
