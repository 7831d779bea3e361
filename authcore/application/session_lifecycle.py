from __future__ import annotations

import logging
from datetime import datetime, timedelta

from authcore.domain.entities import Session
from authcore.domain.errors import StorageUnavailable
from authcore.domain.ports.clock import ClockPort
from authcore.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger(__name__)


class SessionLifecycleManager:
    """
    State machine for authenticated sessions: ACTIVE -> EXPIRED | REVOKED.

    Every transition is a conditional update in the store (only rows still
    ACTIVE move), so concurrent requests and the sweeper cannot resurrect
    or double-transition a session.
    """

    def __init__(
        self,
        uow: UnitOfWorkPort,
        clock: ClockPort,
        *,
        max_sessions_per_user: int | None = 5,
        reset_token_ttl: timedelta = timedelta(minutes=15),
        idle_timeout: timedelta | None = None,
        absolute_lifetime: timedelta | None = None,
    ) -> None:
        self._uow = uow
        self._clock = clock
        self._max_sessions = max_sessions_per_user
        self._reset_token_ttl = reset_token_ttl
        self._idle_timeout = idle_timeout
        self._absolute_lifetime = absolute_lifetime

    async def create(
        self, user_id: str, client_address: str | None, session_token_id: str
    ) -> Session:
        now = self._clock.now()
        session = Session(
            user_id=user_id,
            session_token_id=session_token_id,
            client_address=client_address,
            created_at=now,
            last_activity_at=now,
        )
        async with self._uow as tx:
            await tx.sessions.lock_user(user_id)
            if self._max_sessions:
                active = await tx.sessions.list_active_by_user(user_id)
                overflow = len(active) - self._max_sessions + 1
                for oldest in active[: max(0, overflow)]:
                    await tx.sessions.revoke_by_id(oldest.id)
                    logger.info(
                        "session limit reached; revoked oldest",
                        extra={"user_id": user_id, "session_id": oldest.id},
                    )
            session = await tx.sessions.insert(session)
            await tx.commit()
        logger.info(
            "session created",
            extra={"user_id": user_id, "session_id": session.id},
        )
        return session

    async def touch(self, session_token_id: str) -> bool:
        async with self._uow as tx:
            touched = await tx.sessions.touch(session_token_id, self._clock.now())
            await tx.commit()
        return touched

    async def revoke(self, session_token_id: str) -> bool:
        async with self._uow as tx:
            revoked = await tx.sessions.revoke(session_token_id)
            await tx.commit()
        if revoked:
            logger.info("session revoked", extra={"session_token_id": session_token_id})
        return revoked

    async def revoke_all(self, user_id: str) -> int:
        async with self._uow as tx:
            count = await tx.sessions.revoke_all_for_user(user_id)
            await tx.commit()
        logger.info("all sessions revoked", extra={"user_id": user_id, "count": count})
        return count

    async def rotate(
        self, user_id: str, client_address: str | None, session_token_id: str
    ) -> Session:
        """Session-fixation defence: drop every live session, then start fresh."""
        await self.revoke_all(user_id)
        return await self.create(user_id, client_address, session_token_id)

    async def expire_idle_since(self, cutoff: datetime) -> int:
        """
        Move ACTIVE sessions idle since before `cutoff` to EXPIRED.
        One failing session is logged and skipped; the others still expire.
        """
        async with self._uow as tx:
            idle = await tx.sessions.list_idle(cutoff)
        expired = await self._expire_each(idle, cutoff, idle=True)
        if expired:
            logger.info("idle sessions expired", extra={"count": expired})
        return expired

    async def expire_started_before(self, cutoff: datetime) -> int:
        """Move ACTIVE sessions created before `cutoff` to EXPIRED, however busy."""
        async with self._uow as tx:
            old = await tx.sessions.list_started_before(cutoff)
        expired = await self._expire_each(old, cutoff, idle=False)
        if expired:
            logger.info("sessions past lifetime expired", extra={"count": expired})
        return expired

    async def _expire_each(
        self, sessions: list[Session], cutoff: datetime, *, idle: bool
    ) -> int:
        expired = 0
        for session in sessions:
            try:
                if await self._expire_one(session.id, cutoff, idle=idle):
                    expired += 1
            except StorageUnavailable:
                logger.warning(
                    "failed to expire session",
                    extra={"session_id": session.id},
                    exc_info=True,
                )
        return expired

    async def _expire_one(self, session_id: str, cutoff: datetime, *, idle: bool) -> bool:
        async with self._uow as tx:
            if idle:
                expired = await tx.sessions.expire_if_idle(session_id, cutoff)
            else:
                expired = await tx.sessions.expire_if_started_before(session_id, cutoff)
            await tx.commit()
        return expired

    def _deadline_passed(self, session: Session, now: datetime) -> tuple[datetime, bool] | None:
        """(cutoff, idle) of the first timeout the session has run past, if any."""
        if self._absolute_lifetime is not None:
            cutoff = now - self._absolute_lifetime
            if session.created_at < cutoff:
                return cutoff, False
        if self._idle_timeout is not None:
            cutoff = now - self._idle_timeout
            if session.last_activity_at < cutoff:
                return cutoff, True
        return None

    async def is_valid(
        self, session_token_id: str, client_address: str | None = None
    ) -> bool:
        async with self._uow as tx:
            session = await tx.sessions.get_by_token_id(session_token_id)
        if session is None or not session.is_active:
            return False

        passed = self._deadline_passed(session, self._clock.now())
        if passed is not None:
            cutoff, idle = passed
            if await self._expire_one(session.id, cutoff, idle=idle):
                logger.info(
                    "session timed out on validation",
                    extra={"session_id": session.id, "idle": idle},
                )
                return False
            # lost the race to a touch or a revoke; report what is stored now
            current = await self.get(session_token_id)
            return current is not None and current.is_active

        if (
            client_address is not None
            and session.client_address
            and session.client_address != client_address
        ):
            logger.warning(
                "client address mismatch; revoking session",
                extra={"session_id": session.id},
            )
            await self.revoke(session_token_id)
            return False
        return True

    async def get(self, session_token_id: str) -> Session | None:
        async with self._uow as tx:
            return await tx.sessions.get_by_token_id(session_token_id)

    async def list_active(self, user_id: str) -> list[Session]:
        async with self._uow as tx:
            return await tx.sessions.list_active_by_user(user_id)

    async def count_active(self, user_id: str) -> int:
        async with self._uow as tx:
            return await tx.sessions.count_active_by_user(user_id)

    async def bind_reset_token(self, session_token_id: str, reset_token: str) -> bool:
        expires_at = self._clock.now() + self._reset_token_ttl
        async with self._uow as tx:
            bound = await tx.sessions.set_reset_token(
                session_token_id, reset_token, expires_at
            )
            await tx.commit()
        return bound

    async def clear_reset_token(self, session_token_id: str) -> bool:
        async with self._uow as tx:
            cleared = await tx.sessions.set_reset_token(session_token_id, None, None)
            await tx.commit()
        return cleared

    async def find_by_reset_token(self, reset_token: str) -> Session | None:
        async with self._uow as tx:
            session = await tx.sessions.get_by_reset_token(reset_token)
        if session is None or not session.reset_token_valid(self._clock.now()):
            return None
        return session
