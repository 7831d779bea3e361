from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from authcore.domain.errors import InvalidStatusTransition


class VerificationPurpose(str, Enum):
    EMAIL_2FA = "EMAIL_2FA"
    TOTP_SETUP = "TOTP_SETUP"
    LOGIN_EMAIL = "LOGIN_EMAIL"
    PASSWORD_RESET = "PASSWORD_RESET"


class SecretKind(str, Enum):
    DIGITS = "digits"
    OPAQUE = "opaque"


class SessionState(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


@dataclass(frozen=True)
class PurposePolicy:
    """How codes of one purpose are generated, delivered and how long they live."""

    purpose: VerificationPurpose
    ttl: timedelta
    secret_kind: SecretKind = SecretKind.DIGITS
    delivered: bool = True

    @property
    def ttl_minutes(self) -> int:
        return max(1, int(self.ttl.total_seconds() // 60))


@dataclass
class VerificationRecord:
    user_id: str
    code: str
    purpose: VerificationPurpose
    created_at: datetime
    expires_at: datetime
    consumed: bool = False
    id: str | None = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id is required")
        self.purpose = VerificationPurpose(self.purpose)
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")

    def is_expired(self, now: datetime) -> bool:
        # equality still counts as valid
        return now > self.expires_at

    def is_valid(self, now: datetime) -> bool:
        return not self.consumed and not self.is_expired(now)


@dataclass
class UserRecord:
    id: str
    email: str


@dataclass
class Session:
    user_id: str
    session_token_id: str
    client_address: str | None
    created_at: datetime
    last_activity_at: datetime
    state: SessionState = SessionState.ACTIVE
    reset_token: str | None = None
    reset_token_expires_at: datetime | None = None
    id: str | None = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id is required")
        if not self.session_token_id:
            raise ValueError("session_token_id is required")
        self.state = SessionState(self.state)

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    def touch(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        if now > self.last_activity_at:
            self.last_activity_at = now
        return True

    def expire(self):
        if not self.is_active:
            raise InvalidStatusTransition()
        self.state = SessionState.EXPIRED

    def revoke(self):
        if not self.is_active:
            raise InvalidStatusTransition()
        self.state = SessionState.REVOKED

    def reset_token_valid(self, now: datetime) -> bool:
        if not self.is_active or not self.reset_token:
            return False
        if self.reset_token_expires_at is None:
            return True
        return now <= self.reset_token_expires_at
