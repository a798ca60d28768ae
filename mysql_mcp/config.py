"""Application configuration loaded from environment variables via pydantic-settings.

Usage:
    from mysql_mcp.config import settings
    print(settings.mysql_max_rows)
"""

import json
import os
from pathlib import Path

from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mysql_mcp.errors import ConfigurationError
from mysql_mcp.registry import ConnectionConfig, PoolSettings

# Resolve .env path relative to this file (mysql_mcp/.env), not CWD.
_ENV_FILE = Path(__file__).parent / ".env"

# MYSQL_DSN_1 .. MYSQL_DSN_10, each with optional _NAME and _DESC.
MAX_NUMBERED_DSNS = 10


class Settings(BaseSettings):
    """All application settings. Loaded from environment variables and .env file.

    Environment variables are case-insensitive: MYSQL_DSN or mysql_dsn both work.
    """

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Connections ---
    mysql_connections: str | None = Field(
        default=None,
        description='JSON list of {"name", "dsn", "description", "read_only", "ssl"} objects',
    )
    mysql_dsn: str = Field(
        default="",
        description="DSN of the connection named 'default'",
    )
    mysql_ssl: str = Field(
        default="",
        description="TLS mode for env-configured connections: true, skip-verify or preferred",
    )

    # --- Query limits ---
    mysql_max_rows: int = Field(default=200, description="Maximum rows returned by any query tool")
    mysql_query_timeout_seconds: int = Field(default=30, description="Per-query deadline")

    # --- Pool ---
    mysql_max_open_conns: int = Field(default=10)
    mysql_max_idle_conns: int = Field(default=5)
    mysql_conn_max_lifetime_minutes: int = Field(default=30)
    mysql_conn_max_idle_time_minutes: int = Field(default=5)
    mysql_ping_timeout_seconds: int = Field(default=5)

    # --- Feature flags ---
    mysql_mcp_extended: bool = Field(default=False, description="Register the extended introspection tools")
    mysql_mcp_vector: bool = Field(default=False, description="Register the MySQL 9 vector tools")
    mysql_mcp_json_logs: bool = Field(default=True, description="Render logs as JSON lines")
    log_level: str = Field(default="INFO")

    @field_validator(
        "mysql_max_rows",
        "mysql_query_timeout_seconds",
        "mysql_max_open_conns",
        "mysql_max_idle_conns",
        "mysql_conn_max_lifetime_minutes",
        "mysql_conn_max_idle_time_minutes",
        "mysql_ping_timeout_seconds",
    )
    @classmethod
    def _non_positive_means_default(cls, value: int, info: ValidationInfo) -> int:
        if value <= 0:
            return cls.model_fields[info.field_name].default
        return value

    def pool_settings(self) -> PoolSettings:
        return PoolSettings(
            max_open=self.mysql_max_open_conns,
            max_idle=self.mysql_max_idle_conns,
            max_lifetime=self.mysql_conn_max_lifetime_minutes * 60,
            max_idle_time=self.mysql_conn_max_idle_time_minutes * 60,
            ping_timeout=self.mysql_ping_timeout_seconds,
            query_timeout=self.mysql_query_timeout_seconds,
        )

    def connection_configs(self) -> list[ConnectionConfig]:
        """Resolve configured connections in priority order.

        MYSQL_CONNECTIONS wins when set. Otherwise MYSQL_DSN becomes
        "default", followed by MYSQL_DSN_1..MYSQL_DSN_10.

        Raises:
            ConfigurationError: If MYSQL_CONNECTIONS is not a valid JSON list
                of connection objects.
        """
        if self.mysql_connections:
            try:
                raw = json.loads(self.mysql_connections)
                if not isinstance(raw, list):
                    raise ConfigurationError("failed to parse MYSQL_CONNECTIONS", "expected a JSON list")
                return [ConnectionConfig.model_validate(item) for item in raw]
            except (json.JSONDecodeError, ValidationError) as e:
                raise ConfigurationError("failed to parse MYSQL_CONNECTIONS", str(e)) from e

        configs = []
        if self.mysql_dsn:
            configs.append(
                ConnectionConfig(
                    name="default",
                    dsn=self.mysql_dsn,
                    description="Default connection",
                    ssl=self.mysql_ssl,
                )
            )

        # Numbered DSNs are open-ended, so they are read from the environment directly.
        for i in range(1, MAX_NUMBERED_DSNS + 1):
            dsn = os.environ.get(f"MYSQL_DSN_{i}", "")
            if not dsn:
                continue
            configs.append(
                ConnectionConfig(
                    name=os.environ.get(f"MYSQL_DSN_{i}_NAME") or f"connection_{i}",
                    dsn=dsn,
                    description=os.environ.get(f"MYSQL_DSN_{i}_DESC", ""),
                    ssl=self.mysql_ssl,
                )
            )
        return configs


# Singleton instance, import this everywhere
settings = Settings()
