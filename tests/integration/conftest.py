import asyncio
import os
import time
import uuid

import pytest
import pytest_asyncio
from psycopg_pool import AsyncConnectionPool
from redis.asyncio import Redis

from authcore.settings import get_settings


def pytest_collection_modifyitems(config, items):
    # these need the docker-compose Postgres and Redis
    if os.environ.get("RUN_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set RUN_INTEGRATION=1 to run against Postgres/Redis")
    for item in items:
        if "tests/integration" in str(item.fspath).replace(os.sep, "/"):
            item.add_marker(skip)


async def _wait_pool_ready(p: AsyncConnectionPool, timeout: float = 30.0) -> None:
    """Retry simple SELECT until Postgres accepts connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            async with p.connection(timeout=1) as conn:
                await conn.execute("SELECT 1;")
            return
        except Exception:
            if time.monotonic() > deadline:
                raise
            await asyncio.sleep(0.5)


@pytest_asyncio.fixture
async def pool():
    p = AsyncConnectionPool(get_settings().database_url, min_size=1, max_size=10, open=False)
    await p.open()
    await _wait_pool_ready(p)
    try:
        yield p
    finally:
        await p.close()


@pytest_asyncio.fixture
async def redis_client():
    r = Redis.from_url(get_settings().redis_url, encoding="utf-8", decode_responses=True)
    try:
        yield r
    finally:
        await r.aclose()


@pytest.fixture()
def user_id() -> str:
    # rows are scoped per test instead of truncating shared tables
    return f"it-{uuid.uuid4()}"
