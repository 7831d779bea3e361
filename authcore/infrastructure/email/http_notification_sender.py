from __future__ import annotations

from typing import Optional, Dict
import httpx

from authcore.domain.entities import VerificationPurpose
from authcore.domain.errors import DeliveryFailed
from authcore.domain.ports.notification_sender import NotificationSenderPort

SUBJECTS: Dict[VerificationPurpose, str] = {
    VerificationPurpose.EMAIL_2FA: "Your verification code",
    VerificationPurpose.LOGIN_EMAIL: "Your sign-in code",
    VerificationPurpose.PASSWORD_RESET: "Your password reset code",
    VerificationPurpose.TOTP_SETUP: "Your authenticator setup key",
}


def render_body(code: str, ttl_minutes: int) -> str:
    return (
        f"Your code is {code}. It expires in {ttl_minutes} minutes.\n"
        "If you did not request it, you can ignore this message."
    )


class HttpNotificationSender(NotificationSenderPort):
    """Posts codes to the notification service's JSON `/send` endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        send_path: str = "/send",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._send_path = send_path if send_path.startswith("/") else f"/{send_path}"
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    async def send_code(
        self,
        *,
        destination: str,
        code: str,
        ttl_minutes: int,
        purpose: VerificationPurpose,
        idempotency_key: str | None = None,
    ) -> None:
        headers: Dict[str, str] = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        url = f"{self._base_url}{self._send_path}"
        payload = {
            "to": destination,
            "subject": SUBJECTS[VerificationPurpose(purpose)],
            "body": render_body(code, ttl_minutes),
        }

        try:
            resp = await self._client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryFailed(f"notifier HTTP error: {e}") from e
        if not (200 <= resp.status_code < 300):
            text = resp.text[:200]
            raise DeliveryFailed(f"notifier responded {resp.status_code}: {text}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
