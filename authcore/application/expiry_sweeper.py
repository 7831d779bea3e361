from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable

from authcore.application.session_lifecycle import SessionLifecycleManager
from authcore.domain.errors import StorageUnavailable
from authcore.domain.ports.clock import ClockPort
from authcore.domain.ports.sweep_lease import SweepLeasePort
from authcore.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger("authcore.application.expiry_sweeper")


@dataclass(frozen=True)
class SweepResult:
    deleted_records: int = 0
    failed_records: int = 0
    expired_sessions: int = 0
    purged_sessions: int = 0
    skipped: bool = False


class ExpirySweeper:
    """
    Periodic reconciliation pass:
    - deletes verification records past expires_at (consumed or not)
    - expires sessions idle for longer than idle_timeout, or older than
      absolute_lifetime
    - purges terminated sessions older than terminated_retention

    Only touches rows already past their deadline, so it can run next to live
    issuance and verification.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWorkPort,
        sessions: SessionLifecycleManager,
        clock: ClockPort,
        idle_timeout: timedelta,
        interval: float = 300.0,
        absolute_lifetime: timedelta | None = None,
        terminated_retention: timedelta | None = None,
        lease: SweepLeasePort | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.uow = uow
        self.sessions = sessions
        self.clock = clock
        self.idle_timeout = idle_timeout
        self.interval = interval
        self.absolute_lifetime = absolute_lifetime
        self.terminated_retention = terminated_retention
        self.lease = lease
        self._sleep = sleep
        self._owner = f"sweeper-{uuid.uuid4()}"

    async def run_forever(self) -> None:
        logger.info(
            "expiry sweeper started",
            extra={"interval": self.interval, "owner": self._owner},
        )
        while True:
            await self.tick()
            await self._sleep(self.interval)

    async def tick(self) -> SweepResult | None:
        """One scheduled run; a failed pass is logged and the loop carries on."""
        try:
            return await self.sweep_once()
        except StorageUnavailable:
            logger.exception("sweep failed; retrying next interval")
            return None

    async def sweep_once(self) -> SweepResult:
        held = await self._acquire_lease()
        if held is False:
            logger.debug("sweep lease held elsewhere; skipping")
            return SweepResult(skipped=True)
        try:
            return await self._sweep()
        finally:
            if held:
                await self._release_lease()

    async def _acquire_lease(self) -> bool | None:
        """True when held, False when another instance holds it, None when unusable."""
        if self.lease is None:
            return None
        try:
            return await self.lease.acquire(self._owner)
        except StorageUnavailable:
            # mutations below are conditional updates; overlapping passes are harmless
            logger.warning("sweep lease unavailable; sweeping without it", exc_info=True)
            return None

    async def _release_lease(self) -> None:
        try:
            await self.lease.release(self._owner)
        except StorageUnavailable:
            logger.warning("failed to release sweep lease; it will lapse", exc_info=True)

    async def _sweep(self) -> SweepResult:
        now = self.clock.now()
        deleted, failed = await self._delete_expired_records(now)
        expired = await self.sessions.expire_idle_since(now - self.idle_timeout)
        if self.absolute_lifetime is not None:
            expired += await self.sessions.expire_started_before(
                now - self.absolute_lifetime
            )

        purged = 0
        if self.terminated_retention is not None:
            async with self.uow as tx:
                purged = await tx.sessions.delete_terminated_before(
                    now - self.terminated_retention
                )
                await tx.commit()

        result = SweepResult(
            deleted_records=deleted,
            failed_records=failed,
            expired_sessions=expired,
            purged_sessions=purged,
        )
        logger.info(
            "sweep completed",
            extra={
                "deleted_records": deleted,
                "failed_records": failed,
                "expired_sessions": expired,
                "purged_sessions": purged,
            },
        )
        return result

    async def _delete_expired_records(self, now) -> tuple[int, int]:
        async with self.uow as tx:
            expired = await tx.verification_records.list_expired_before(now)

        deleted = failed = 0
        for record in expired:
            try:
                async with self.uow as tx:
                    if await tx.verification_records.delete(record.id):
                        deleted += 1
                    await tx.commit()
            except StorageUnavailable:
                failed += 1
                logger.warning(
                    "failed to delete expired record",
                    extra={"record_id": record.id},
                    exc_info=True,
                )
        return deleted, failed
