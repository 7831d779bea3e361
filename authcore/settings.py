from datetime import timedelta
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from authcore.domain.entities import PurposePolicy, SecretKind, VerificationPurpose


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    redis_socket_timeout_seconds: float = 5.0
    notifier_base_url: str = "http://notifier-mock:8025"
    notification_timeout_seconds: float = 5.0

    # Postgres pool
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_pool_timeout_seconds: float = 5.0
    db_connect_timeout_seconds: int = 3

    # Verification codes
    email_2fa_ttl_seconds: int = 600
    login_email_ttl_seconds: int = 600
    password_reset_ttl_seconds: int = 600
    totp_setup_ttl_seconds: int = 600

    # Sessions
    session_idle_timeout_seconds: int = 86400
    session_absolute_lifetime_seconds: int = 28800
    max_sessions_per_user: int = 5
    reset_token_ttl_seconds: int = 900

    # Sweeper
    sweep_interval_seconds: float = 300
    terminated_session_retention_seconds: int = 86400
    sweep_lease_ttl_seconds: int = 120

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    def purpose_policies(self) -> dict[VerificationPurpose, PurposePolicy]:
        return {
            VerificationPurpose.EMAIL_2FA: PurposePolicy(
                VerificationPurpose.EMAIL_2FA,
                ttl=timedelta(seconds=self.email_2fa_ttl_seconds),
            ),
            VerificationPurpose.LOGIN_EMAIL: PurposePolicy(
                VerificationPurpose.LOGIN_EMAIL,
                ttl=timedelta(seconds=self.login_email_ttl_seconds),
            ),
            VerificationPurpose.PASSWORD_RESET: PurposePolicy(
                VerificationPurpose.PASSWORD_RESET,
                ttl=timedelta(seconds=self.password_reset_ttl_seconds),
            ),
            # enrollment secret goes back to the client (QR code), not by email
            VerificationPurpose.TOTP_SETUP: PurposePolicy(
                VerificationPurpose.TOTP_SETUP,
                ttl=timedelta(seconds=self.totp_setup_ttl_seconds),
                secret_kind=SecretKind.OPAQUE,
                delivered=False,
            ),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
