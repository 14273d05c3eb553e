"""
ragcore.config.postgres – PostgreSQL connection and pool config.

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT,
          DB_POOL_RECYCLE, DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

_ASYNC_PREFIX = "postgresql+asyncpg://"


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValueError("DATABASE_URL is required and must be non-empty")
    if not url.startswith(("postgresql://", "postgres://", _ASYNC_PREFIX)):
        raise ValueError(
            "DATABASE_URL must start with postgresql://, postgres:// or postgresql+asyncpg://"
        )
    return url


def _validate_int(value: int, name: str, min_val: int) -> None:
    if not isinstance(value, int) or value < min_val:
        raise ValueError(f"{name} must be an integer >= {min_val}, got {value!r}")


@dataclass(frozen=True)
class PostgresConfig:
    """Durable task / chunk / mapping store connection settings."""

    url: str
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    echo: bool = False
    application_name: str = "ragcore"

    def __post_init__(self) -> None:
        _validate_url(self.url)
        _validate_int(self.pool_size, "pool_size", 1)
        _validate_int(self.max_overflow, "max_overflow", 0)
        _validate_int(self.pool_timeout, "pool_timeout", 1)
        _validate_int(self.pool_recycle, "pool_recycle", 1)
        if not isinstance(self.echo, bool):
            raise ValueError("echo must be a boolean")
        if not self.application_name.strip():
            raise ValueError("application_name must be a non-empty string")

    @property
    def async_url(self) -> str:
        """DSN rewritten for the asyncpg driver."""
        if self.url.startswith(_ASYNC_PREFIX):
            return self.url
        if self.url.startswith("postgres://"):
            return _ASYNC_PREFIX + self.url[len("postgres://"):]
        return _ASYNC_PREFIX + self.url[len("postgresql://"):]

    @classmethod
    def from_env(cls, **overrides: object) -> PostgresConfig:
        """Overrides (keyword args) take precedence over env."""

        def _int(attr: str, env: str, default: int) -> int:
            v = overrides.get(attr)
            return int(v) if v is not None else int(os.environ.get(env, default))

        echo = overrides.get("echo")
        if echo is None:
            echo = os.environ.get("DB_ECHO", "").strip().lower() in ("1", "true", "yes")
        raw_url = overrides.get("url") or os.environ.get("DATABASE_URL", "postgresql://localhost/ragcore")
        return cls(
            url=_validate_url(str(raw_url)),
            pool_size=_int("pool_size", "DB_POOL_SIZE", 10),
            max_overflow=_int("max_overflow", "DB_MAX_OVERFLOW", 20),
            pool_timeout=_int("pool_timeout", "DB_POOL_TIMEOUT", 30),
            pool_recycle=_int("pool_recycle", "DB_POOL_RECYCLE", 1800),
            echo=bool(echo),
            application_name=str(overrides.get("application_name") or os.environ.get("DB_APPLICATION_NAME", "ragcore")),
        )


def load_postgres_config(**overrides: object) -> PostgresConfig:
    """Load and validate PostgreSQL config. Raises ValueError on invalid values."""
    return PostgresConfig.from_env(**overrides)
