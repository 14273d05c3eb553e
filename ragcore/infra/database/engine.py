"""
ragcore.infra.database.engine – async SQLAlchemy 2.0 engine and session factory.

ensure_database_exists() can create the target database on first run
(connects to "postgres", then CREATE DATABASE).
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING
from urllib.parse import urlparse, urlunparse

import asyncpg
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Registers every model on Base.metadata before create_all()
from ragcore.infra.database.models import Base

if TYPE_CHECKING:
    from ragcore.config import PostgresConfig

logger = logging.getLogger(__name__)

_DBNAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _split_db_name(url: str) -> tuple[str, str]:
    """Target database name and a DSN pointing at the 'postgres' maintenance db."""
    parsed = urlparse(url)
    dbname = (parsed.path or "/postgres").strip("/").split("?")[0] or "postgres"
    postgres_url = urlunparse((parsed.scheme, parsed.netloc, "/postgres", parsed.params, parsed.query, parsed.fragment))
    return dbname, postgres_url


async def ensure_database_exists(config: "PostgresConfig") -> None:
    plain_url = config.url.replace("postgresql+asyncpg://", "postgresql://", 1)
    dbname, postgres_url = _split_db_name(plain_url)
    if dbname == "postgres":
        return
    if not _DBNAME_PATTERN.match(dbname):
        logger.warning("ensure_database_exists: skipping unsafe database name %r", dbname)
        return
    try:
        conn = await asyncpg.connect(postgres_url)
    except (OSError, asyncpg.PostgresError) as exc:
        logger.debug("ensure_database_exists: cannot reach postgres (%s), skipping", exc)
        return
    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", dbname) is None:
            await conn.execute(f'CREATE DATABASE "{dbname}"')
            logger.info("Created database %s", dbname)
    finally:
        await conn.close()


def build_engine(config: "PostgresConfig", *, use_null_pool: bool = False) -> AsyncEngine:
    connect_args: dict = {
        "server_settings": {"application_name": config.application_name, "jit": "off"}
    }
    if use_null_pool:
        return create_async_engine(
            config.async_url, echo=config.echo, poolclass=NullPool, connect_args=connect_args
        )
    engine = create_async_engine(
        config.async_url,
        echo=config.echo,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    logger.info("AsyncEngine created: pool_size=%d max_overflow=%d", config.pool_size, config.max_overflow)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def init_db(engine: AsyncEngine, *, drop_all: bool = False) -> None:
    """Create all ORM tables. For dev/test; use migrations in production."""
    async with engine.begin() as conn:
        if drop_all:
            logger.warning("Dropping all ORM tables (drop_all=True)")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialised")
