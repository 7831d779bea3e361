from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from authcore.domain.entities import VerificationPurpose, VerificationRecord


class VerificationRecordStorePort(Protocol):
    async def insert(self, record: VerificationRecord) -> VerificationRecord:
        """Persist a new record and return it with its generated id."""

    async def get_by_code(
        self, user_id: str, code: str, purpose: VerificationPurpose
    ) -> Optional[VerificationRecord]:
        """
        Return the record matching (user_id, code, purpose).
        An unconsumed match wins over consumed history, then the most recent.
        """

    async def list_unconsumed(
        self, user_id: str, purpose: VerificationPurpose
    ) -> list[VerificationRecord]:
        """All records for the pair that still have consumed = false."""

    async def list_expired_before(self, when: datetime) -> list[VerificationRecord]:
        """Records whose expires_at < when, consumed or not."""

    async def mark_consumed(self, record_id: str) -> bool:
        """
        Compare-and-swap consumed false -> true.
        True only for the caller that performed the transition.
        """

    async def delete(self, record_id: str) -> bool:
        """Delete one record. False if it was already gone."""

    async def delete_expired_before(self, when: datetime) -> int:
        """Bulk delete of records whose expires_at < when."""

    async def lock_scope(self, user_id: str, purpose: VerificationPurpose) -> None:
        """
        Serialise issuance for (user_id, purpose) until the current
        transaction ends.
        """
