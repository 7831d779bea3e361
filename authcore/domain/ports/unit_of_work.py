from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Protocol, Type

from authcore.domain.ports.session_store import SessionStorePort
from authcore.domain.ports.verification_store import VerificationRecordStorePort


@dataclass
class UnitOfWorkPort(Protocol):
    """
    Transaction boundary.

    Usage:
        async with uow as tx:
            await tx.verification_records.lock_scope(user_id, purpose)
            for stale in await tx.verification_records.list_unconsumed(user_id, purpose):
                await tx.verification_records.mark_consumed(stale.id)
            record = await tx.verification_records.insert(record)
            await tx.commit()
    """

    verification_records: VerificationRecordStorePort
    sessions: SessionStorePort

    async def __aenter__(self) -> "UnitOfWorkPort":
        """Begin a new transaction."""

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """End the transaction, rolling back unless committed."""

    async def commit(self) -> None:
        """Commit the transaction."""

    async def rollback(self) -> None:
        """Rollback the transaction."""
