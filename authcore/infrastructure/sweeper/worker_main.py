from __future__ import annotations

import asyncio
import signal
from contextlib import suppress
from datetime import timedelta
import logging

from authcore.application.expiry_sweeper import ExpirySweeper
from authcore.application.session_lifecycle import SessionLifecycleManager
from authcore.infrastructure.clock import SystemClock
from authcore.infrastructure.db.pool import close_pool, get_pool, open_pool
from authcore.infrastructure.db.uow import PgUnitOfWork
from authcore.infrastructure.redis_cache.pool import close_redis, get_redis
from authcore.infrastructure.redis_cache.sweep_lease import RedisSweepLease
from authcore.logging import setup_logging
from authcore.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def build_sweeper(settings: Settings) -> ExpirySweeper:
    pool = get_pool()
    clock = SystemClock()
    idle_timeout = timedelta(seconds=settings.session_idle_timeout_seconds)
    absolute_lifetime = timedelta(seconds=settings.session_absolute_lifetime_seconds)
    uow = PgUnitOfWork(pool)
    sessions = SessionLifecycleManager(
        PgUnitOfWork(pool),
        clock,
        max_sessions_per_user=settings.max_sessions_per_user,
        idle_timeout=idle_timeout,
        absolute_lifetime=absolute_lifetime,
    )
    return ExpirySweeper(
        uow=uow,
        sessions=sessions,
        clock=clock,
        idle_timeout=idle_timeout,
        interval=settings.sweep_interval_seconds,
        absolute_lifetime=absolute_lifetime,
        terminated_retention=timedelta(
            seconds=settings.terminated_session_retention_seconds
        ),
        lease=RedisSweepLease(get_redis(), ttl_seconds=settings.sweep_lease_ttl_seconds),
    )


async def _run() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, service="authcore-sweeper")

    await open_pool()
    logger.info("sweeper: pool opened")

    sweeper = build_sweeper(settings)

    stop = asyncio.Event()

    def _on_signal(*_: object) -> None:
        logger.info("sweeper: stop signal received")
        stop.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _on_signal)

    sweeper_task = asyncio.create_task(sweeper.run_forever())
    logger.info("sweeper: started run_forever loop")

    await stop.wait()

    sweeper_task.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper_task

    await close_redis()
    await close_pool()
    logger.info("sweeper: stopped cleanly")


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
