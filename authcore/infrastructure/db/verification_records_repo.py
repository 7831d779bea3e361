from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import psycopg

from authcore.domain.entities import VerificationPurpose, VerificationRecord
from authcore.domain.ports.verification_store import VerificationRecordStorePort
from authcore.infrastructure.db.errors import storage_errors

_COLUMNS = "id, user_id, code, purpose, created_at, expires_at, consumed"


def _to_record(row: Sequence) -> VerificationRecord:
    id_, user_id, code, purpose, created_at, expires_at, consumed = row
    return VerificationRecord(
        id=str(id_),
        user_id=str(user_id),
        code=str(code),
        purpose=VerificationPurpose(purpose),
        created_at=created_at,
        expires_at=expires_at,
        consumed=bool(consumed),
    )


class PgVerificationRecordStore(VerificationRecordStorePort):
    """
    Postgres implementation of VerificationRecordStorePort.

    NOTE:
    - Constructed with an *active async connection* supplied by the UoW.
    - It does not commit; the UnitOfWork controls the transaction boundary.
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn

    async def insert(self, record: VerificationRecord) -> VerificationRecord:
        sql = f"""
        INSERT INTO verification_records
            (user_id, code, purpose, created_at, expires_at, consumed)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """
        with storage_errors("insert verification record"):
            async with self._conn.cursor() as cur:
                await cur.execute(
                    sql,
                    (
                        record.user_id,
                        record.code,
                        record.purpose.value,
                        record.created_at,
                        record.expires_at,
                        record.consumed,
                    ),
                )
                row = await cur.fetchone()
        if not row:
            raise RuntimeError("insert returned no row")
        return _to_record(row)

    async def get_by_code(
        self, user_id: str, code: str, purpose: VerificationPurpose
    ) -> Optional[VerificationRecord]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM verification_records
        WHERE user_id = %s AND code = %s AND purpose = %s
        ORDER BY consumed ASC, created_at DESC
        LIMIT 1
        """
        with storage_errors("fetch verification record"):
            async with self._conn.cursor() as cur:
                await cur.execute(sql, (user_id, code, VerificationPurpose(purpose).value))
                row = await cur.fetchone()
        return _to_record(row) if row else None

    async def list_unconsumed(
        self, user_id: str, purpose: VerificationPurpose
    ) -> list[VerificationRecord]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM verification_records
        WHERE user_id = %s AND purpose = %s AND consumed = false
        ORDER BY created_at
        """
        with storage_errors("list unconsumed verification records"):
            async with self._conn.cursor() as cur:
                await cur.execute(sql, (user_id, VerificationPurpose(purpose).value))
                rows = await cur.fetchall()
        return [_to_record(r) for r in rows]

    async def list_expired_before(self, when: datetime) -> list[VerificationRecord]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM verification_records
        WHERE expires_at < %s
        ORDER BY expires_at
        """
        with storage_errors("list expired verification records"):
            async with self._conn.cursor() as cur:
                await cur.execute(sql, (when,))
                rows = await cur.fetchall()
        return [_to_record(r) for r in rows]

    async def mark_consumed(self, record_id: str) -> bool:
        # conditional update: concurrent callers serialise on the row lock and
        # only the first one still sees consumed = false
        sql = """
        UPDATE verification_records
        SET consumed = true
        WHERE id = %s AND consumed = false
        RETURNING id
        """
        with storage_errors("consume verification record"):
            async with self._conn.cursor() as cur:
                await cur.execute(sql, (record_id,))
                row = await cur.fetchone()
        return row is not None

    async def delete(self, record_id: str) -> bool:
        with storage_errors("delete verification record"):
            async with self._conn.cursor() as cur:
                await cur.execute(
                    "DELETE FROM verification_records WHERE id = %s", (record_id,)
                )
                return cur.rowcount > 0

    async def delete_expired_before(self, when: datetime) -> int:
        with storage_errors("delete expired verification records"):
            async with self._conn.cursor() as cur:
                await cur.execute(
                    "DELETE FROM verification_records WHERE expires_at < %s", (when,)
                )
                return cur.rowcount

    async def lock_scope(self, user_id: str, purpose: VerificationPurpose) -> None:
        key = f"verification:{user_id}:{VerificationPurpose(purpose).value}"
        with storage_errors("lock verification scope"):
            async with self._conn.cursor() as cur:
                await cur.execute(
                    "SELECT pg_advisory_xact_lock(hashtextextended(%s, 0))", (key,)
                )
