from datetime import timedelta

import pytest

from authcore.domain.entities import PurposePolicy, SecretKind, VerificationPurpose
from tests.fakes import (
    FakeClock,
    FakeNotifierOK,
    FakeOtp,
    FakeUoW,
    FakeUserDirectory,
)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def uow():
    return FakeUoW()


@pytest.fixture()
def users():
    return FakeUserDirectory()


@pytest.fixture()
def notifier():
    return FakeNotifierOK()


@pytest.fixture()
def otp():
    return FakeOtp()


@pytest.fixture()
def email_policy():
    return PurposePolicy(VerificationPurpose.EMAIL_2FA, ttl=timedelta(minutes=10))


@pytest.fixture()
def totp_policy():
    return PurposePolicy(
        VerificationPurpose.TOTP_SETUP,
        ttl=timedelta(minutes=10),
        secret_kind=SecretKind.OPAQUE,
        delivered=False,
    )
