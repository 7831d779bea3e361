from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from authcore.application.issue_code import issue_code
from authcore.application.verify_code import verify_code
from authcore.domain.entities import PurposePolicy, VerificationPurpose
from authcore.domain.errors import DeliveryFailed, UserNotFound
from authcore.domain.ports.clock import ClockPort
from authcore.domain.ports.notification_sender import NotificationSenderPort
from authcore.domain.ports.unit_of_work import UnitOfWorkPort
from authcore.domain.ports.user_directory import UserDirectoryPort
from authcore.presentation.dependencies import (
    get_clock,
    get_notification_sender,
    get_notification_timeout,
    get_purpose_policies,
    get_uow,
    get_user_directory,
)
from authcore.schemas.requests import IssueCodeIn, VerifyCodeIn
from authcore.schemas.responses import IssuedCodeOut, VerifyCodeOut

router = APIRouter(prefix="/verification-codes", tags=["Verification codes"])


@router.post(
    "",
    status_code=202,
    response_model=IssuedCodeOut,
    response_model_exclude_none=True,
)
async def post_issue_code(
    body: IssueCodeIn,
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    users: Annotated[UserDirectoryPort, Depends(get_user_directory)],
    notifier: Annotated[NotificationSenderPort, Depends(get_notification_sender)],
    clock: Annotated[ClockPort, Depends(get_clock)],
    policies: Annotated[
        dict[VerificationPurpose, PurposePolicy], Depends(get_purpose_policies)
    ],
    notification_timeout: Annotated[float, Depends(get_notification_timeout)],
):
    try:
        issued = await issue_code(
            uow=uow,
            users=users,
            notifier=notifier,
            clock=clock,
            user_id=body.user_id,
            policy=policies[body.purpose],
            notification_timeout=notification_timeout,
        )
    except UserNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="user not found"
        )
    except DeliveryFailed:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="could not deliver code; try again",
        )

    return IssuedCodeOut(
        purpose=issued.purpose,
        masked_destination=issued.masked_destination,
        expires_at=issued.expires_at,
        secret=issued.secret,
    )


@router.post("/verify", response_model=VerifyCodeOut)
async def post_verify_code(
    body: VerifyCodeIn,
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    clock: Annotated[ClockPort, Depends(get_clock)],
):
    valid = await verify_code(
        uow=uow,
        clock=clock,
        user_id=body.user_id,
        code=body.code,
        purpose=body.purpose,
    )
    return VerifyCodeOut(valid=valid)
