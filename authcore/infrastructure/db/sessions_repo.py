from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import psycopg
import psycopg.errors

from authcore.domain.entities import Session, SessionState
from authcore.domain.errors import SessionAlreadyExists, StorageUnavailable
from authcore.domain.ports.session_store import SessionStorePort
from authcore.infrastructure.db.errors import storage_errors

_COLUMNS = (
    "id, user_id, session_token_id, client_address, state, created_at, "
    "last_activity_at, reset_token, reset_token_expires_at"
)


def _to_session(row: Sequence) -> Session:
    (
        id_,
        user_id,
        session_token_id,
        client_address,
        state,
        created_at,
        last_activity_at,
        reset_token,
        reset_token_expires_at,
    ) = row
    return Session(
        id=str(id_),
        user_id=str(user_id),
        session_token_id=str(session_token_id),
        client_address=client_address,
        state=SessionState(state),
        created_at=created_at,
        last_activity_at=last_activity_at,
        reset_token=reset_token,
        reset_token_expires_at=reset_token_expires_at,
    )


class PgSessionStore(SessionStorePort):
    """
    Postgres implementation of SessionStorePort, bound to the UoW connection.
    State transitions are all `... WHERE state = 'ACTIVE'` updates.
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn

    async def _fetch_one(self, sql: str, params: tuple, operation: str) -> Optional[Session]:
        with storage_errors(operation):
            async with self._conn.cursor() as cur:
                await cur.execute(sql, params)
                row = await cur.fetchone()
        return _to_session(row) if row else None

    async def _fetch_all(self, sql: str, params: tuple, operation: str) -> list[Session]:
        with storage_errors(operation):
            async with self._conn.cursor() as cur:
                await cur.execute(sql, params)
                rows = await cur.fetchall()
        return [_to_session(r) for r in rows]

    async def _execute(self, sql: str, params: tuple, operation: str) -> int:
        with storage_errors(operation):
            async with self._conn.cursor() as cur:
                await cur.execute(sql, params)
                return cur.rowcount

    async def insert(self, session: Session) -> Session:
        sql = f"""
        INSERT INTO sessions
            (user_id, session_token_id, client_address, state, created_at, last_activity_at)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """
        params = (
            session.user_id,
            session.session_token_id,
            session.client_address,
            session.state.value,
            session.created_at,
            session.last_activity_at,
        )
        try:
            async with self._conn.cursor() as cur:
                await cur.execute(sql, params)
                row = await cur.fetchone()
        except psycopg.errors.UniqueViolation as e:
            raise SessionAlreadyExists(session.session_token_id) from e
        except psycopg.Error as e:
            raise StorageUnavailable(f"insert session failed: {e}") from e
        if not row:
            raise RuntimeError("insert returned no row")
        return _to_session(row)

    async def lock_user(self, user_id: str) -> None:
        with storage_errors("lock user sessions"):
            async with self._conn.cursor() as cur:
                await cur.execute(
                    "SELECT pg_advisory_xact_lock(hashtextextended(%s, 0))",
                    (f"sessions:{user_id}",),
                )

    async def get_by_token_id(self, session_token_id: str) -> Optional[Session]:
        sql = f"SELECT {_COLUMNS} FROM sessions WHERE session_token_id = %s"
        return await self._fetch_one(sql, (session_token_id,), "fetch session")

    async def get_by_reset_token(self, reset_token: str) -> Optional[Session]:
        sql = f"SELECT {_COLUMNS} FROM sessions WHERE reset_token = %s"
        return await self._fetch_one(sql, (reset_token,), "fetch session by reset token")

    async def touch(self, session_token_id: str, when: datetime) -> bool:
        sql = """
        UPDATE sessions
        SET last_activity_at = GREATEST(last_activity_at, %s)
        WHERE session_token_id = %s AND state = 'ACTIVE'
        """
        return await self._execute(sql, (when, session_token_id), "touch session") > 0

    async def revoke(self, session_token_id: str) -> bool:
        sql = """
        UPDATE sessions SET state = 'REVOKED'
        WHERE session_token_id = %s AND state = 'ACTIVE'
        """
        return await self._execute(sql, (session_token_id,), "revoke session") > 0

    async def revoke_by_id(self, session_id: str) -> bool:
        sql = "UPDATE sessions SET state = 'REVOKED' WHERE id = %s AND state = 'ACTIVE'"
        return await self._execute(sql, (session_id,), "revoke session") > 0

    async def revoke_all_for_user(self, user_id: str) -> int:
        sql = "UPDATE sessions SET state = 'REVOKED' WHERE user_id = %s AND state = 'ACTIVE'"
        return await self._execute(sql, (user_id,), "revoke user sessions")

    async def list_idle(self, cutoff: datetime) -> list[Session]:
        sql = f"""
        SELECT {_COLUMNS} FROM sessions
        WHERE state = 'ACTIVE' AND last_activity_at < %s
        ORDER BY last_activity_at
        """
        return await self._fetch_all(sql, (cutoff,), "list idle sessions")

    async def expire_if_idle(self, session_id: str, cutoff: datetime) -> bool:
        sql = """
        UPDATE sessions SET state = 'EXPIRED'
        WHERE id = %s AND state = 'ACTIVE' AND last_activity_at < %s
        """
        return await self._execute(sql, (session_id, cutoff), "expire session") > 0

    async def list_started_before(self, cutoff: datetime) -> list[Session]:
        sql = f"""
        SELECT {_COLUMNS} FROM sessions
        WHERE state = 'ACTIVE' AND created_at < %s
        ORDER BY created_at
        """
        return await self._fetch_all(sql, (cutoff,), "list sessions past lifetime")

    async def expire_if_started_before(self, session_id: str, cutoff: datetime) -> bool:
        sql = """
        UPDATE sessions SET state = 'EXPIRED'
        WHERE id = %s AND state = 'ACTIVE' AND created_at < %s
        """
        return await self._execute(sql, (session_id, cutoff), "expire session") > 0

    async def list_active_by_user(self, user_id: str) -> list[Session]:
        sql = f"""
        SELECT {_COLUMNS} FROM sessions
        WHERE user_id = %s AND state = 'ACTIVE'
        ORDER BY created_at
        """
        return await self._fetch_all(sql, (user_id,), "list active sessions")

    async def count_active_by_user(self, user_id: str) -> int:
        sql = "SELECT count(*) FROM sessions WHERE user_id = %s AND state = 'ACTIVE'"
        with storage_errors("count active sessions"):
            async with self._conn.cursor() as cur:
                await cur.execute(sql, (user_id,))
                row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def set_reset_token(
        self,
        session_token_id: str,
        reset_token: Optional[str],
        expires_at: Optional[datetime],
    ) -> bool:
        sql = """
        UPDATE sessions
        SET reset_token = %s, reset_token_expires_at = %s
        WHERE session_token_id = %s AND state = 'ACTIVE'
        """
        return (
            await self._execute(
                sql, (reset_token, expires_at, session_token_id), "set reset token"
            )
            > 0
        )

    async def delete_terminated_before(self, cutoff: datetime) -> int:
        sql = """
        DELETE FROM sessions
        WHERE state IN ('EXPIRED', 'REVOKED') AND last_activity_at < %s
        """
        return await self._execute(sql, (cutoff,), "purge terminated sessions")
