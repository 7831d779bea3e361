from __future__ import annotations

from typing import Any, Optional, Type

import psycopg
from psycopg_pool import AsyncConnectionPool

from authcore.domain.ports.unit_of_work import UnitOfWorkPort
from authcore.infrastructure.db.errors import storage_errors
from authcore.infrastructure.db.sessions_repo import PgSessionStore
from authcore.infrastructure.db.verification_records_repo import (
    PgVerificationRecordStore,
)


class PgUnitOfWork(UnitOfWorkPort):
    """
    One connection and one transaction per `async with`. Re-enterable
    sequentially; not meant to be shared between concurrent tasks.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool
        self._conn_cm: Optional[Any] = None
        self._conn: Optional[psycopg.AsyncConnection] = None
        self._committed: bool = False
        self.verification_records: PgVerificationRecordStore
        self.sessions: PgSessionStore

    async def __aenter__(self) -> "PgUnitOfWork":
        self._conn_cm = self._pool.connection()
        with storage_errors("acquire connection"):
            self._conn = await self._conn_cm.__aenter__()
        self.verification_records = PgVerificationRecordStore(self._conn)
        self.sessions = PgSessionStore(self._conn)
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: Any,
    ) -> None:
        try:
            if self._conn and (exc_value or not self._committed):
                try:
                    await self._conn.rollback()
                except psycopg.Error:
                    # broken connection; the pool discards it on return
                    pass
        finally:
            if self._conn_cm:
                await self._conn_cm.__aexit__(exc_type, exc_value, traceback)
            self._conn = None
            self._conn_cm = None
            self._committed = False

    async def commit(self) -> None:
        if not self._conn:
            raise RuntimeError("No connection available to commit")
        with storage_errors("commit"):
            await self._conn.commit()
        self._committed = True

    async def rollback(self) -> None:
        if self._conn:
            with storage_errors("rollback"):
                await self._conn.rollback()
        self._committed = False
