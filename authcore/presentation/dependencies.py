from datetime import timedelta

from fastapi import Depends, Request

from authcore.application.session_lifecycle import SessionLifecycleManager
from authcore.domain.entities import PurposePolicy, VerificationPurpose
from authcore.domain.ports.clock import ClockPort
from authcore.domain.ports.notification_sender import NotificationSenderPort
from authcore.domain.ports.unit_of_work import UnitOfWorkPort
from authcore.domain.ports.user_directory import UserDirectoryPort
from authcore.infrastructure.clock import SystemClock
from authcore.infrastructure.db.pool import get_pool
from authcore.infrastructure.db.uow import PgUnitOfWork
from authcore.infrastructure.db.users_repo import PgUserDirectory
from authcore.settings import get_settings


def get_uow() -> UnitOfWorkPort:
    return PgUnitOfWork(get_pool())


def get_clock() -> ClockPort:
    return SystemClock()


def get_user_directory() -> UserDirectoryPort:
    return PgUserDirectory(get_pool())


def get_notification_sender(request: Request) -> NotificationSenderPort:
    # This is set in authcore.main lifespan()
    return request.app.state.notification_sender


def get_purpose_policies() -> dict[VerificationPurpose, PurposePolicy]:
    return get_settings().purpose_policies()


def get_notification_timeout() -> float:
    return get_settings().notification_timeout_seconds


def get_session_manager(
    uow: UnitOfWorkPort = Depends(get_uow),
    clock: ClockPort = Depends(get_clock),
) -> SessionLifecycleManager:
    settings = get_settings()
    return SessionLifecycleManager(
        uow,
        clock,
        max_sessions_per_user=settings.max_sessions_per_user,
        reset_token_ttl=timedelta(seconds=settings.reset_token_ttl_seconds),
        idle_timeout=timedelta(seconds=settings.session_idle_timeout_seconds),
        absolute_lifetime=timedelta(seconds=settings.session_absolute_lifetime_seconds),
    )
