import pytest
from fastapi.testclient import TestClient

from authcore.main import create_app
from authcore.presentation.dependencies import (
    get_clock,
    get_notification_sender,
    get_notification_timeout,
    get_uow,
    get_user_directory,
)
from tests.fakes import FakeClock, FakeNotifierOK, FakeUoW, FakeUserDirectory


@pytest.fixture()
def app_and_deps():
    app = create_app()
    deps = {
        "uow": FakeUoW(),
        "clock": FakeClock(),
        "users": FakeUserDirectory(),
        "notifier": FakeNotifierOK(),
    }

    app.dependency_overrides[get_uow] = lambda: deps["uow"]
    app.dependency_overrides[get_clock] = lambda: deps["clock"]
    app.dependency_overrides[get_user_directory] = lambda: deps["users"]
    app.dependency_overrides[get_notification_sender] = lambda: deps["notifier"]
    app.dependency_overrides[get_notification_timeout] = lambda: 0.2

    try:
        yield app, deps
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app_and_deps):
    app, _ = app_and_deps
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def deps(app_and_deps):
    _, deps = app_and_deps
    return deps
