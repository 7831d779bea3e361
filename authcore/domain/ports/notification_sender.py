from __future__ import annotations

from typing import Protocol

from authcore.domain.entities import VerificationPurpose


class NotificationSenderPort(Protocol):
    async def send_code(
        self,
        *,
        destination: str,
        code: str,
        ttl_minutes: int,
        purpose: VerificationPurpose,
        idempotency_key: str | None = None,
    ) -> None:
        """Deliver the plaintext code. Raises DeliveryFailed."""
