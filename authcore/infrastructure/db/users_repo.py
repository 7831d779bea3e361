from __future__ import annotations

from typing import Optional

from psycopg_pool import AsyncConnectionPool

from authcore.domain.entities import UserRecord
from authcore.domain.ports.user_directory import UserDirectoryPort
from authcore.infrastructure.db.errors import storage_errors


class PgUserDirectory(UserDirectoryPort):
    """
    Read-only view over the `users` table owned by the account service.
    Runs outside the verification transaction; it only resolves addresses.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        sql = "SELECT id, email FROM users WHERE id::text = %s"
        with storage_errors("find user"):
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, (user_id,))
                    row = await cur.fetchone()
        if not row:
            return None
        id_, email = row
        return UserRecord(id=str(id_), email=str(email).strip().lower())
