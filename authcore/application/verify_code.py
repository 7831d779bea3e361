import logging

import authcore.domain.services as domain_services
from authcore.domain.entities import SecretKind, VerificationPurpose
from authcore.domain.ports.clock import ClockPort
from authcore.domain.ports.otp_provider import OtpAlgorithmPort
from authcore.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger(__name__)


async def verify_code(
    uow: UnitOfWorkPort,
    clock: ClockPort,
    user_id: str,
    code: str,
    purpose: VerificationPurpose,
) -> bool:
    """
    Single-use check of a presented code. A miss, a consumed code and an
    expired code all look the same to the caller: False.
    """
    purpose = VerificationPurpose(purpose)
    kind = (
        SecretKind.OPAQUE
        if purpose == VerificationPurpose.TOTP_SETUP
        else SecretKind.DIGITS
    )
    if not user_id or not domain_services.is_well_formed_code(code, kind):
        return False

    async with uow as transaction:
        store = transaction.verification_records
        record = await store.get_by_code(user_id, code, purpose)
        if record is None or not record.is_valid(clock.now()):
            return False
        # the store decides the race: only one caller flips consumed
        consumed = await store.mark_consumed(record.id)
        await transaction.commit()

    if consumed:
        logger.info(
            "verification code accepted",
            extra={"user_id": user_id, "purpose": purpose.value, "record_id": record.id},
        )
    return consumed


async def confirm_totp_setup(
    uow: UnitOfWorkPort,
    clock: ClockPort,
    otp: OtpAlgorithmPort,
    user_id: str,
    otp_code: str,
) -> str | None:
    """
    Finish a TOTP enrollment: the pending secret is accepted once the user
    proves their authenticator produces a valid code for it. Returns the
    enrolled secret, or None.
    """
    async with uow as transaction:
        store = transaction.verification_records
        pending = await store.list_unconsumed(user_id, VerificationPurpose.TOTP_SETUP)
        now = clock.now()
        candidates = [r for r in pending if r.is_valid(now)]
        if not candidates:
            return None
        record = max(candidates, key=lambda r: r.created_at)
        if not otp.verify(record.code, otp_code):
            return None
        if not await store.mark_consumed(record.id):
            return None
        await transaction.commit()

    logger.info(
        "totp enrollment confirmed",
        extra={"user_id": user_id, "record_id": record.id},
    )
    return record.code
