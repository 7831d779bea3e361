from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from authcore.domain.entities import Session, SessionState, VerificationPurpose


class IssuedCodeOut(BaseModel):
    status: Literal["accepted"] = "accepted"
    purpose: VerificationPurpose
    masked_destination: str = Field(..., description="e.g. je***@example.com")
    expires_at: datetime
    secret: str | None = Field(None, description="Only for TOTP enrollment")


class VerifyCodeOut(BaseModel):
    valid: bool


class SessionOut(BaseModel):
    id: str
    user_id: str
    session_token_id: str
    client_address: str | None
    state: SessionState
    created_at: datetime
    last_activity_at: datetime

    @classmethod
    def from_entity(cls, session: Session) -> "SessionOut":
        return cls(
            id=session.id,
            user_id=session.user_id,
            session_token_id=session.session_token_id,
            client_address=session.client_address,
            state=session.state,
            created_at=session.created_at,
            last_activity_at=session.last_activity_at,
        )


class ActiveSessionsOut(BaseModel):
    count: int
    sessions: list[SessionOut]


class SessionValidityOut(BaseModel):
    valid: bool


class TouchedOut(BaseModel):
    touched: bool


class RevokedOut(BaseModel):
    revoked: int
