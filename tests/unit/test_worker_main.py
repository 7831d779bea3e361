from datetime import timedelta

from authcore.infrastructure.redis_cache.sweep_lease import RedisSweepLease
from authcore.infrastructure.sweeper import worker_main
from authcore.settings import Settings


def test_build_sweeper_wires_settings(monkeypatch):
    monkeypatch.setattr(worker_main, "get_pool", lambda: object())
    monkeypatch.setattr(worker_main, "get_redis", lambda: object())
    settings = Settings(
        session_idle_timeout_seconds=60,
        sweep_interval_seconds=5,
        terminated_session_retention_seconds=3600,
    )

    sweeper = worker_main.build_sweeper(settings)

    assert sweeper.idle_timeout == timedelta(seconds=60)
    assert sweeper.interval == 5
    assert sweeper.terminated_retention == timedelta(hours=1)
    assert isinstance(sweeper.lease, RedisSweepLease)


def test_build_sweeper_enforces_absolute_lifetime(monkeypatch):
    monkeypatch.setattr(worker_main, "get_pool", lambda: object())
    monkeypatch.setattr(worker_main, "get_redis", lambda: object())

    sweeper = worker_main.build_sweeper(Settings(session_absolute_lifetime_seconds=21600))

    assert sweeper.absolute_lifetime == timedelta(hours=6)
