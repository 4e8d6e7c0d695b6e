from __future__ import annotations

from fastapi.testclient import TestClient

from ppm_checker import PPMChecker
from ppm_checker.api import create_app
from ppm_checker.config import UNSET_APPLICATION_ID, BotConfig

from .conftest import BOT_CHANNEL, FakeHost, RecordingSleep, make_config


def _client(host: FakeHost, **overrides) -> tuple[PPMChecker, TestClient]:
    config = make_config(**overrides)
    checker = PPMChecker(host, config_provider=lambda: config, sleep=RecordingSleep(host.log))
    return checker, TestClient(create_app(checker, autostart=False))


def test_root_and_status() -> None:
    checker, client = _client(FakeHost())
    with client:
        root = client.get("/")
        status = client.get("/status")

    assert root.status_code == 200
    assert root.json() == {"status": "healthy", "service": "ppm-checker", "running": False}
    assert status.json()["running"] is False
    assert status.json()["last_cycle"] is None
    assert status.json()["jobs"] == []


def test_stop_and_start_cluster_commands() -> None:
    host = FakeHost()
    checker, client = _client(host)
    with client:
        stop = client.post("/run/stop-cluster")
        start = client.post("/run/start-cluster")
        client.post("/checker/stop")

    assert stop.status_code == 200
    assert start.json() == {"message": "/start sent"}
    assert host.executor.calls == [("stop", {}, BOT_CHANNEL), ("start", {}, BOT_CHANNEL)]


def test_cluster_command_unavailable_without_executor() -> None:
    host = FakeHost()
    host.provide_executor = False
    checker, client = _client(host)
    with client:
        response = client.post("/run/stop-cluster")

    assert response.status_code == 503
    assert host.executor.calls == []


def test_manual_check_runs_in_background() -> None:
    host = FakeHost()
    checker, client = _client(host)
    with client:
        response = client.post("/run/check")
        client.post("/checker/stop")

    assert response.status_code == 200
    assert host.log.commands() == ["ppm"]
    assert checker.cycles_run == 1


def test_start_refused_with_unset_application_id() -> None:
    host = FakeHost()
    checker, client = _client(host, bot=BotConfig(channel_id=BOT_CHANNEL, application_id=UNSET_APPLICATION_ID))
    with client:
        response = client.post("/checker/start")

    assert response.status_code == 409
    assert response.json()["running"] is False
