from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status

from authcore.application.session_lifecycle import SessionLifecycleManager
from authcore.domain.errors import SessionAlreadyExists
from authcore.presentation.dependencies import get_session_manager
from authcore.schemas.requests import SessionCreateIn
from authcore.schemas.responses import (
    ActiveSessionsOut,
    RevokedOut,
    SessionOut,
    SessionValidityOut,
    TouchedOut,
)

router = APIRouter(tags=["Sessions"])

Manager = Annotated[SessionLifecycleManager, Depends(get_session_manager)]


@router.post("/sessions", status_code=201, response_model=SessionOut)
async def post_create_session(body: SessionCreateIn, sessions: Manager):
    try:
        session = await sessions.create(
            user_id=body.user_id,
            client_address=body.client_address,
            session_token_id=body.session_token_id,
        )
    except SessionAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="session already exists for this token",
        )
    return SessionOut.from_entity(session)


@router.post("/sessions/{session_token_id}/touch", response_model=TouchedOut)
async def post_touch_session(session_token_id: str, sessions: Manager):
    return TouchedOut(touched=await sessions.touch(session_token_id))


@router.delete("/sessions/{session_token_id}", response_model=RevokedOut)
async def delete_session(session_token_id: str, sessions: Manager):
    revoked = await sessions.revoke(session_token_id)
    return RevokedOut(revoked=int(revoked))


@router.get("/sessions/{session_token_id}/validity", response_model=SessionValidityOut)
async def get_session_validity(
    session_token_id: str,
    sessions: Manager,
    x_client_address: Annotated[str | None, Header()] = None,
):
    valid = await sessions.is_valid(session_token_id, client_address=x_client_address)
    return SessionValidityOut(valid=valid)


@router.get("/users/{user_id}/sessions", response_model=ActiveSessionsOut)
async def get_user_sessions(user_id: str, sessions: Manager):
    active = await sessions.list_active(user_id)
    return ActiveSessionsOut(
        count=len(active), sessions=[SessionOut.from_entity(s) for s in active]
    )


@router.delete("/users/{user_id}/sessions", response_model=RevokedOut)
async def delete_user_sessions(user_id: str, sessions: Manager):
    return RevokedOut(revoked=await sessions.revoke_all(user_id))
