"""
Shared async database utilities for all UniVote services.
Uses asyncpg for non-blocking PostgreSQL access with connection pooling.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def _connect_kwargs() -> dict:
    return {
        "host": os.getenv("DB_HOST", "postgres"),
        "port": int(os.getenv("DB_PORT", "5432")),
        "database": os.getenv("DB_NAME", "univote"),
        "user": os.getenv("DB_USER", "univote_user"),
        "password": os.getenv("DB_PASSWORD", "univote_pass"),
    }


class Database:
    """Async database connection pool manager."""

    _pool: asyncpg.Pool | None = None

    @classmethod
    async def get_pool(cls) -> asyncpg.Pool:
        """Return the existing pool or create one lazily."""
        if cls._pool is None:
            cls._pool = await asyncpg.create_pool(
                **_connect_kwargs(),
                min_size=int(os.getenv("DB_POOL_MIN", "2")),
                max_size=int(os.getenv("DB_POOL_MAX", "20")),
            )
        return cls._pool

    @classmethod
    async def close(cls) -> None:
        """Gracefully close the pool (called on app shutdown)."""
        if cls._pool is not None:
            await cls._pool.close()
            cls._pool = None

    @classmethod
    @asynccontextmanager
    async def connection(cls):
        """Acquire a connection from the pool (auto-released on exit)."""
        pool = await cls.get_pool()
        async with pool.acquire() as conn:
            yield conn

    @classmethod
    @asynccontextmanager
    async def transaction(cls):
        """Acquire a connection and open a transaction (auto-committed/rolled-back)."""
        pool = await cls.get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    @classmethod
    async def listener_connection(cls) -> asyncpg.Connection:
        """Open a dedicated (non-pooled) connection for LISTEN/NOTIFY.

        Pooled connections are reset on release, which drops listeners, so
        the live-results feed keeps its own connection for its lifetime.
        """
        return await asyncpg.connect(**_connect_kwargs())

    @classmethod
    async def apply_schema(cls) -> None:
        """Run the idempotent schema script (tables, constraints, triggers)."""
        ddl = SCHEMA_PATH.read_text(encoding="utf-8")
        async with cls.connection() as conn:
            await conn.execute(ddl)
        logger.info("Database schema applied")
