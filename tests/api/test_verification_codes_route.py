from tests.fakes import (
    DownVerificationStore,
    FakeNotifierFailing,
    FakeNotifierSlow,
    FakeUoW,
)


def test_issue_then_verify_happy_path(client, deps):
    response = client.post(
        "/v1/verification-codes", json={"user_id": "u1", "purpose": "EMAIL_2FA"}
    )

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "accepted"
    assert body["masked_destination"] == "je***@example.com"
    assert "secret" not in body
    code = deps["notifier"].last_code

    verify = {"user_id": "u1", "code": code, "purpose": "EMAIL_2FA"}
    assert client.post("/v1/verification-codes/verify", json=verify).json() == {
        "valid": True
    }
    assert client.post("/v1/verification-codes/verify", json=verify).json() == {
        "valid": False
    }


def test_issue_never_leaks_code_for_delivered_purposes(client, deps):
    response = client.post(
        "/v1/verification-codes", json={"user_id": "u1", "purpose": "LOGIN_EMAIL"}
    )

    assert deps["notifier"].last_code not in response.text


def test_totp_setup_returns_secret_without_delivery(client, deps):
    response = client.post(
        "/v1/verification-codes", json={"user_id": "u1", "purpose": "TOTP_SETUP"}
    )

    assert response.status_code == 202
    assert len(response.json()["secret"]) == 32
    assert deps["notifier"].calls == []


def test_issue_unknown_user_is_404(client):
    response = client.post(
        "/v1/verification-codes", json={"user_id": "ghost", "purpose": "EMAIL_2FA"}
    )

    assert response.status_code == 404
    assert response.json() == {"detail": "user not found"}


def test_issue_delivery_failure_is_502(client, deps):
    deps["notifier"] = FakeNotifierFailing()

    response = client.post(
        "/v1/verification-codes", json={"user_id": "u1", "purpose": "EMAIL_2FA"}
    )

    assert response.status_code == 502
    assert deps["notifier"].calls == 1


def test_issue_delivery_timeout_is_502(client, deps):
    deps["notifier"] = FakeNotifierSlow()

    response = client.post(
        "/v1/verification-codes", json={"user_id": "u1", "purpose": "EMAIL_2FA"}
    )

    assert response.status_code == 502


def test_issue_rejects_unknown_purpose(client):
    response = client.post(
        "/v1/verification-codes", json={"user_id": "u1", "purpose": "SMS"}
    )

    assert response.status_code == 422


def test_verify_wrong_code_is_false(client):
    client.post("/v1/verification-codes", json={"user_id": "u1", "purpose": "EMAIL_2FA"})

    response = client.post(
        "/v1/verification-codes/verify",
        json={"user_id": "u1", "code": "abcdef", "purpose": "EMAIL_2FA"},
    )

    assert response.status_code == 200
    assert response.json() == {"valid": False}


def test_verify_storage_down_is_503(client, deps):
    deps["uow"] = FakeUoW(verification_records=DownVerificationStore())

    response = client.post(
        "/v1/verification-codes/verify",
        json={"user_id": "u1", "code": "123456", "purpose": "EMAIL_2FA"},
    )

    assert response.status_code == 503
    assert response.json() == {"detail": "storage unavailable"}
