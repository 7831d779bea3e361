from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from authcore.domain.entities import Session


class SessionStorePort(Protocol):
    async def insert(self, session: Session) -> Session:
        """
        Persist a new session and return it with its generated id.
        Raises SessionAlreadyExists when session_token_id is taken.
        """

    async def lock_user(self, user_id: str) -> None:
        """Serialise session creation for user_id until the transaction ends."""

    async def get_by_token_id(self, session_token_id: str) -> Optional[Session]:
        """Lookup by the bearer-token correlation id."""

    async def get_by_reset_token(self, reset_token: str) -> Optional[Session]:
        """Lookup by the password-reset handshake token."""

    async def touch(self, session_token_id: str, when: datetime) -> bool:
        """Bump last_activity_at (never backwards) if the session is ACTIVE."""

    async def revoke(self, session_token_id: str) -> bool:
        """ACTIVE -> REVOKED. False when absent or already terminal."""

    async def revoke_by_id(self, session_id: str) -> bool:
        """ACTIVE -> REVOKED by primary key."""

    async def revoke_all_for_user(self, user_id: str) -> int:
        """ACTIVE -> REVOKED for every session of the user."""

    async def list_idle(self, cutoff: datetime) -> list[Session]:
        """ACTIVE sessions with last_activity_at < cutoff."""

    async def expire_if_idle(self, session_id: str, cutoff: datetime) -> bool:
        """
        ACTIVE -> EXPIRED, only if the session is still idle at cutoff.
        A touch that lands first wins.
        """

    async def list_started_before(self, cutoff: datetime) -> list[Session]:
        """ACTIVE sessions created before cutoff."""

    async def expire_if_started_before(self, session_id: str, cutoff: datetime) -> bool:
        """ACTIVE -> EXPIRED, only if the session was created before cutoff."""

    async def list_active_by_user(self, user_id: str) -> list[Session]:
        """Active sessions ordered by created_at, oldest first."""

    async def count_active_by_user(self, user_id: str) -> int:
        """Number of ACTIVE sessions for the user."""

    async def set_reset_token(
        self,
        session_token_id: str,
        reset_token: Optional[str],
        expires_at: Optional[datetime],
    ) -> bool:
        """Bind (or clear, with None) a reset token on an ACTIVE session."""

    async def delete_terminated_before(self, cutoff: datetime) -> int:
        """Purge EXPIRED/REVOKED sessions whose last activity is older than cutoff."""
