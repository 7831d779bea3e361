from pydantic import BaseModel, Field

from authcore.domain.entities import VerificationPurpose


class IssueCodeIn(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    purpose: VerificationPurpose


class VerifyCodeIn(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    code: str = Field(..., min_length=1, max_length=64)
    purpose: VerificationPurpose


class SessionCreateIn(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    session_token_id: str = Field(
        ..., min_length=1, max_length=128, description="jti of the bearer token"
    )
    client_address: str | None = Field(None, max_length=64)
