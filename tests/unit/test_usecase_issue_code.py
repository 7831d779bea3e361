import pytest

from authcore.application.issue_code import issue_code
from authcore.domain.entities import VerificationPurpose
from authcore.domain.errors import DeliveryFailed, UserNotFound
from tests.fakes import FakeNotifierFailing, FakeNotifierSlow, T0


@pytest.fixture(autouse=True)
def fixed_code(monkeypatch):
    """Deterministic secret; override per test by re-monkeypatching."""
    from authcore.domain import services as domain_services

    monkeypatch.setattr(domain_services, "generate_secret", lambda kind: "012345")


@pytest.mark.asyncio
async def test_issue_code_happy_path(uow, users, notifier, clock, email_policy):
    issued = await issue_code(
        uow=uow,
        users=users,
        notifier=notifier,
        clock=clock,
        user_id="u1",
        policy=email_policy,
    )

    assert issued.masked_destination == "je***@example.com"
    assert issued.purpose is VerificationPurpose.EMAIL_2FA
    assert issued.secret is None
    assert issued.expires_at == T0.replace(minute=10)

    [record] = uow.verification_records.records.values()
    assert record.code == "012345"
    assert record.created_at == T0
    assert record.consumed is False
    assert uow.verification_records.locked_scopes == [("u1", VerificationPurpose.EMAIL_2FA)]
    assert uow.committed

    assert notifier.calls == [
        {
            "destination": "jeremy@example.com",
            "code": "012345",
            "ttl_minutes": 10,
            "purpose": VerificationPurpose.EMAIL_2FA,
            "idempotency_key": record.id,
        }
    ]


@pytest.mark.asyncio
async def test_reissue_soft_invalidates_previous(uow, users, notifier, clock, email_policy, monkeypatch):
    from authcore.domain import services as domain_services

    codes = iter(["111111", "222222"])
    monkeypatch.setattr(domain_services, "generate_secret", lambda kind: next(codes))

    for _ in range(2):
        await issue_code(uow, users, notifier, clock, "u1", email_policy)

    store = uow.verification_records
    # history is kept, only one left active
    assert len(store.records) == 2
    [active] = store.unconsumed_for("u1", VerificationPurpose.EMAIL_2FA)
    assert active.code == "222222"


@pytest.mark.asyncio
async def test_invalidation_is_scoped_to_purpose(uow, users, notifier, clock, email_policy, totp_policy):
    await issue_code(uow, users, notifier, clock, "u1", email_policy)
    await issue_code(uow, users, notifier, clock, "u1", totp_policy)

    store = uow.verification_records
    assert len(store.unconsumed_for("u1", VerificationPurpose.EMAIL_2FA)) == 1
    assert len(store.unconsumed_for("u1", VerificationPurpose.TOTP_SETUP)) == 1


@pytest.mark.asyncio
async def test_unknown_user_raises_and_writes_nothing(uow, users, notifier, clock, email_policy):
    with pytest.raises(UserNotFound):
        await issue_code(uow, users, notifier, clock, "ghost", email_policy)

    assert uow.verification_records.records == {}
    assert notifier.calls == []


@pytest.mark.asyncio
async def test_delivery_failure_keeps_record_valid(uow, users, clock, email_policy):
    with pytest.raises(DeliveryFailed):
        await issue_code(uow, users, FakeNotifierFailing(), clock, "u1", email_policy)

    [record] = uow.verification_records.records.values()
    assert record.consumed is False
    assert record.is_valid(clock.now())
    assert uow.committed


@pytest.mark.asyncio
async def test_delivery_timeout_is_delivery_failed(uow, users, clock, email_policy):
    with pytest.raises(DeliveryFailed):
        await issue_code(
            uow,
            users,
            FakeNotifierSlow(),
            clock,
            "u1",
            email_policy,
            notification_timeout=0.01,
        )

    [record] = uow.verification_records.records.values()
    assert record.consumed is False


@pytest.mark.asyncio
async def test_totp_setup_returns_secret_and_is_not_sent(uow, users, notifier, clock, totp_policy, monkeypatch):
    from authcore.domain import services as domain_services

    monkeypatch.setattr(domain_services, "generate_secret", lambda kind: "JBSWY3DPEHPK3PXP")

    issued = await issue_code(uow, users, notifier, clock, "u1", totp_policy)

    assert issued.secret == "JBSWY3DPEHPK3PXP"
    assert notifier.calls == []


@pytest.mark.asyncio
async def test_secret_is_not_logged(uow, users, notifier, clock, email_policy, caplog):
    caplog.set_level("DEBUG")
    await issue_code(uow, users, notifier, clock, "u1", email_policy)

    for rec in caplog.records:
        assert "012345" not in rec.getMessage()
        assert "012345" not in str(rec.__dict__.values())
        assert "jeremy@example.com" not in str(rec.__dict__.values())
