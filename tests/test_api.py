"""
API and session service tests.
"""
import threading
import time

import numpy as np
import pytest
from fastapi.testclient import TestClient

from dartscore.api.routes import get_region_store
from dartscore.core.frame_source import FrameSource, SequenceFrameSource
from dartscore.core.session_service import SessionService, get_session_service
from dartscore.core.storage import RegionStore
from dartscore.main import app

from conftest import black_frames, scripted_factory, t20_dart_mask
from test_storage import make_payload


@pytest.fixture
def store():
    return RegionStore()


@pytest.fixture
def service():
    service = SessionService(game_api_url="http://game.local")
    yield service
    service.stop()


@pytest.fixture
def client(store, service):
    app.dependency_overrides[get_region_store] = lambda: store
    app.dependency_overrides[get_session_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_root_and_health(client):
    assert client.get("/").json()["name"] == "DartScore API"
    health = client.get("/health").json()
    assert health == {"status": "ok", "session_running": False}


def test_upload_and_list_regions(client):
    response = client.post("/v1/regions/board-1", json=make_payload())
    assert response.status_code == 200
    assert response.json()["angle_ranges"] == 21

    boards = client.get("/v1/regions").json()["boards"]
    assert [b["board_id"] for b in boards] == ["board-1"]

    assert client.delete("/v1/regions/board-1").status_code == 200
    assert client.delete("/v1/regions/board-1").status_code == 404


def test_upload_bad_table(client):
    payload = make_payload()
    payload["angle_ranges"] = [[0, 100, 20]]
    assert client.post("/v1/regions/board-1", json=payload).status_code == 400


def test_load_missing_directory(client, tmp_path):
    response = client.post("/v1/regions/b/load", json={"path": str(tmp_path / "missing")})
    assert response.status_code == 400


def test_start_needs_regions(client):
    response = client.post("/v1/session/start", json={"board_id": "nope", "source": 0})
    assert response.status_code == 404


def test_start_rejects_bad_config(client, store, regions):
    store.save("default", regions)
    response = client.post("/v1/session/start", json={"source": 0, "config": {"gaussian_kernel": 4}})
    assert response.status_code == 422
    response = client.post("/v1/session/start", json={"source": 0, "config": {"warmup_frames": -5}})
    assert response.status_code == 422


def test_commands_without_session(client):
    assert client.post("/v1/session/reset-score").status_code == 409
    assert client.get("/v1/session/overlay").status_code == 404
    state = client.get("/v1/session/state").json()
    assert state["running"] is False
    assert state["scores"] == [None, None, None]


def test_service_scores_recording(client, service, regions, config):
    source = SequenceFrameSource(black_frames(60), fps=30)
    service.start(regions, source, board_id="b1", config=config,
                  subtractor_factory=scripted_factory({35: t20_dart_mask()}))
    assert service.wait_until_idle(timeout=10)

    state = client.get("/v1/session/state").json()
    assert state["running"] is False
    assert state["board_id"] == "b1"
    assert state["scores"] == [60, None, None]
    assert state["darts"][0]["segment"] == 20
    assert state["frame"] == 60

    overlay = client.get("/v1/session/overlay")
    assert overlay.status_code == 200
    assert overlay.headers["content-type"] == "image/jpeg"

    state = client.post("/v1/session/reset-score").json()
    assert state["scores"] == [None, None, None]

    state = client.post("/v1/session/replay").json()
    assert state["state"] == "awaiting_reference"
    assert client.get("/v1/session/overlay").status_code == 404


class EndlessSource(FrameSource):
    """Live-camera stand-in: black frames until released."""

    def _read_image(self):
        time.sleep(0.001)
        return np.zeros((400, 400, 3), dtype=np.uint8)


def test_service_refuses_second_session(service, regions, config):
    service.start(regions, EndlessSource(), config=config, subtractor_factory=scripted_factory({}))
    assert service.running
    with pytest.raises(RuntimeError):
        service.start(regions, EndlessSource(), config=config)

    service.stop()
    assert not service.running


class StuckSource(FrameSource):
    """A camera whose read() hangs until released by the test."""

    def __init__(self):
        super().__init__()
        self.unblock = threading.Event()

    def _read_image(self):
        self.unblock.wait(timeout=5)
        return np.zeros((400, 400, 3), dtype=np.uint8)


def test_stop_timeout_keeps_worker_and_blocks_restart(service, regions, config):
    source = StuckSource()
    service.start(regions, source, config=config, subtractor_factory=scripted_factory({}))

    service.stop(timeout=0.05)
    assert service.running
    with pytest.raises(RuntimeError):
        service.start(regions, EndlessSource(), config=config)

    source.unblock.set()
    service.stop()
    assert not service.running
