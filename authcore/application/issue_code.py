import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import authcore.domain.services as domain_services
from authcore.domain.entities import (
    PurposePolicy,
    SecretKind,
    VerificationPurpose,
    VerificationRecord,
)
from authcore.domain.errors import DeliveryFailed, UserNotFound
from authcore.domain.ports.clock import ClockPort
from authcore.domain.ports.notification_sender import NotificationSenderPort
from authcore.domain.ports.unit_of_work import UnitOfWorkPort
from authcore.domain.ports.user_directory import UserDirectoryPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedCode:
    record_id: str
    purpose: VerificationPurpose
    masked_destination: str
    expires_at: datetime
    # only set for purposes that are not delivered (TOTP enrollment)
    secret: str | None = None


async def issue_code(
    uow: UnitOfWorkPort,
    users: UserDirectoryPort,
    notifier: NotificationSenderPort,
    clock: ClockPort,
    user_id: str,
    policy: PurposePolicy,
    generate_secret: Callable[[SecretKind], str] | None = None,
    notification_timeout: float | None = None,
) -> IssuedCode:
    user = await users.find_by_id(user_id)
    if user is None:
        raise UserNotFound()

    generate = generate_secret or domain_services.generate_secret
    secret = generate(policy.secret_kind)
    masked = domain_services.mask_email(user.email)
    purpose = policy.purpose

    async with uow as transaction:
        store = transaction.verification_records
        await store.lock_scope(user.id, purpose)
        invalidated = 0
        for stale in await store.list_unconsumed(user.id, purpose):
            if await store.mark_consumed(stale.id):
                invalidated += 1
        now = clock.now()
        record = await store.insert(
            VerificationRecord(
                user_id=user.id,
                code=secret,
                purpose=purpose,
                created_at=now,
                expires_at=now + policy.ttl,
            )
        )
        await transaction.commit()

    logger.info(
        "verification code issued",
        extra={
            "user_id": user.id,
            "purpose": purpose.value,
            "record_id": record.id,
            "invalidated": invalidated,
            "destination": masked,
        },
    )

    if not policy.delivered:
        return IssuedCode(
            record_id=record.id,
            purpose=purpose,
            masked_destination=masked,
            expires_at=record.expires_at,
            secret=secret,
        )

    try:
        await asyncio.wait_for(
            notifier.send_code(
                destination=user.email,
                code=secret,
                ttl_minutes=policy.ttl_minutes,
                purpose=purpose,
                idempotency_key=record.id,
            ),
            timeout=notification_timeout,
        )
    except asyncio.TimeoutError as e:
        logger.warning(
            "code delivery timed out",
            extra={"record_id": record.id, "destination": masked},
        )
        raise DeliveryFailed("notification sender timed out") from e
    except DeliveryFailed:
        logger.warning(
            "code delivery failed",
            extra={"record_id": record.id, "destination": masked},
        )
        raise

    return IssuedCode(
        record_id=record.id,
        purpose=purpose,
        masked_destination=masked,
        expires_at=record.expires_at,
    )
