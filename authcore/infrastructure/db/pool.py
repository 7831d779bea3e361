from __future__ import annotations

from typing import Optional

from psycopg_pool import AsyncConnectionPool

from authcore.settings import Settings, get_settings

_pool: Optional[AsyncConnectionPool] = None


def build_conninfo(settings: Settings) -> str:
    """DATABASE_URL with a connect timeout, unless the URL already sets one."""
    dsn = settings.database_url
    if "connect_timeout=" in dsn:
        return dsn
    sep = "&" if "?" in dsn else "?"
    return f"{dsn}{sep}connect_timeout={settings.db_connect_timeout_seconds}"


def get_pool() -> AsyncConnectionPool:
    """
    Lazily build the process-wide pool, closed. The API lifespan and the
    sweeper worker open it on startup.
    """
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = AsyncConnectionPool(
            build_conninfo(settings),
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            timeout=settings.db_pool_timeout_seconds,
            open=False,
        )
    return _pool


async def open_pool() -> AsyncConnectionPool:
    pool = get_pool()
    if pool.closed:
        await pool.open()
    return pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
