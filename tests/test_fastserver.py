"""
Tests for the daemon HTTP surface, driven through FastAPI's TestClient.
"""

import threading
import time

import pytest
from fastapi.testclient import TestClient

import fastserver
from config import OperationLogConfig


@pytest.fixture
def client(data_dir, tmp_path, monkeypatch):
    monkeypatch.setenv("AZ_DATA_DIR", str(data_dir))
    monkeypatch.setattr(OperationLogConfig, "BASE_DIR", str(tmp_path / "operations"))
    monkeypatch.setattr(fastserver, "setup_logging", lambda *args, **kwargs: None)
    with TestClient(fastserver.app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["zone_status"]["zones"] == 3


def test_list_zones(client):
    response = client.get("/zones")

    assert response.status_code == 200
    assert [zone["name"] for zone in response.json()["zones"]] == ["zone1", "zone2", "zone3"]


def test_disable_then_enable(client):
    response = client.get("/zones-action/", params={"zone": ["zone1", "zone2"], "operation": "disable"})

    assert response.status_code == 200
    assert response.json()["changed"] == ["zone1", "zone2"]
    zones = {zone["name"]: zone["available"] for zone in client.get("/zones").json()["zones"]}
    assert zones == {"zone1": False, "zone2": False, "zone3": True}

    response = client.get("/zones-action/", params={"zone": "zone1", "operation": "enable"})

    assert response.status_code == 200
    assert response.json()["changed"] == ["zone1"]


def test_invalid_operation(client):
    response = client.get("/zones-action/", params={"zone": "zone1", "operation": "reboot"})

    assert response.status_code == 400


def test_unknown_zone(client):
    response = client.get("/zones-action/", params={"zone": "nowhere", "operation": "disable"})

    assert response.status_code == 404
    assert "nowhere" in response.json()["detail"]


def test_automatic_zone_round_robin(client):
    picks = [client.get("/zones/automatic").json()["zone"] for _ in range(4)]

    assert picks == ["zone1", "zone2", "zone3", "zone1"]


def test_automatic_zone_none_available(client):
    client.get("/zones-action/", params={"zone": ["zone1", "zone2", "zone3"], "operation": "disable"})

    response = client.get("/zones/automatic")

    assert response.status_code == 503


def test_default_zone(client):
    assert client.get("/zones/default").json() == {"zone": "zone1"}


def test_sse_stream(client):
    response = client.get("/zones-action/", params={"zone": "zone2", "operation": "disable", "format": "sse"})

    assert response.status_code == 200
    assert "event: progress" in response.text
    assert "zone zone2 is unavailable" in response.text
    assert "event: success" in response.text


@pytest.mark.parametrize("response_format", ["json", "sse"])
def test_busy_zone_does_not_stall_other_requests(client, response_format):
    zone = fastserver.app.state.zone_manager.get_zone("zone1")
    lock_held = threading.Event()
    release = threading.Event()
    responses = []

    def hold_zone_lock():
        with zone._lock:
            lock_held.set()
            release.wait(5)

    def disable_zone():
        responses.append(client.get(
            "/zones-action/", params={"zone": "zone1", "operation": "disable", "format": response_format}
        ))

    holder = threading.Thread(target=hold_zone_lock)
    holder.start()
    assert lock_held.wait(5)
    disabler = threading.Thread(target=disable_zone)
    disabler.start()
    # Give the disable request time to block on the zone lock
    time.sleep(0.3)

    try:
        started = time.monotonic()
        response = client.get("/zones/default")
        elapsed = time.monotonic() - started
    finally:
        release.set()
        holder.join(5)
        disabler.join(5)

    assert response.status_code == 200
    assert elapsed < 0.5
    assert responses[0].status_code == 200
    assert zone.is_available() is False
