import base64

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from aslapp.backend.api.app import app
from aslapp.backend.api.deps import decode_frame_bgr, get_pipeline
from aslapp.backend.ml.common.models import Prediction
from aslapp.backend.ml.pipeline import RecognitionPipeline

from conftest import FakeClassifier, FakeClock


def data_url(h=30, w=40):
    ok, buf = cv2.imencode(".png", np.full((h, w, 3), 128, dtype=np.uint8))
    assert ok
    return "data:image/png;base64," + base64.b64encode(buf.tobytes()).decode("ascii")


@pytest.fixture
def client():
    def use(pipeline):
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return TestClient(app)

    yield use
    app.dependency_overrides.clear()


def test_decode_frame_any_size():
    img = decode_frame_bgr(data_url(17, 23))
    assert img.shape == (17, 23, 3)


def test_decode_frame_garbage():
    with pytest.raises(ValueError):
        decode_frame_bgr("data:image/png;base64,aGVsbG8=")


def test_health(client):
    c = client(RecognitionPipeline(FakeClassifier()))
    assert c.get("/health").json() == {"ok": True}


def test_state_initial(client):
    c = client(RecognitionPipeline(FakeClassifier()))
    assert c.get("/api/v1/state").json() == {"loaded": True, "frame_count": 0, "prediction": None}


def test_post_frames_throttled(client):
    clf = FakeClassifier([Prediction("B", 0.9), Prediction("C", 0.9)])
    p = RecognitionPipeline(clf, clock=FakeClock(1.0, 1.2))
    c = client(p)

    r1 = c.post("/api/v1/frames", json={"data": data_url()}).json()
    assert r1["admitted"] is True
    assert r1["state"]["frame_count"] == 1
    assert r1["state"]["prediction"] == {"label": "B", "confidence": pytest.approx(0.9)}

    r2 = c.post("/api/v1/frames", json={"data": data_url()}).json()
    assert r2["admitted"] is False
    assert r2["state"]["prediction"]["label"] == "B"
    assert clf.calls == 1


def test_decode_frame_empty_payload():
    with pytest.raises(ValueError):
        decode_frame_bgr("")
    with pytest.raises(ValueError):
        decode_frame_bgr("data:image/png;base64,")


def test_post_bad_frame(client):
    c = client(RecognitionPipeline(FakeClassifier()))
    r = c.post("/api/v1/frames", json={"data": "data:image/png;base64,aGVsbG8="})
    assert r.status_code == 400


def test_model_info(client):
    c = client(RecognitionPipeline(FakeClassifier()))
    body = c.get("/api/v1/model").json()
    assert body["input_kind"] == "IMAGE"
    assert body["labels"] == ["A", "B", "C"]


def test_model_info_when_unloaded(client):
    c = client(RecognitionPipeline(None, load_error="no model file in /models"))
    r = c.get("/api/v1/model")
    assert r.status_code == 503
    assert "no model file" in r.json()["detail"]
    assert c.get("/api/v1/state").json()["loaded"] is False


def test_stats(client):
    c = client(RecognitionPipeline(FakeClassifier()))
    assert c.get("/api/v1/stats").json() == {"accepted": 0, "rejected": 0, "dropped_busy": 0, "failed": 0}


def _next_state(ws):
    while True:
        msg = ws.receive_json()
        if msg["type"] == "state":
            return msg


def test_websocket_pushes_state(client):
    clf = FakeClassifier([Prediction("H", 0.75)])
    c = client(RecognitionPipeline(clf))

    with c.websocket_connect("/ws/asl") as ws:
        first = _next_state(ws)
        assert first["loaded"] is True
        assert first["prediction"] is None

        ws.send_json({"type": "frame", "data": data_url()})
        msg = _next_state(ws)
        assert msg["frame_count"] == 1
        assert msg["prediction"] == {"label": "H", "confidence": pytest.approx(0.75)}


@pytest.mark.parametrize("payload", ["", "data:image/png;base64,"])
def test_post_empty_frame(client, payload):
    c = client(RecognitionPipeline(FakeClassifier()))
    r = c.post("/api/v1/frames", json={"data": payload})
    assert r.status_code == 400
    assert c.get("/api/v1/state").json()["frame_count"] == 0


def test_websocket_skips_empty_frame(client):
    clf = FakeClassifier([Prediction("E", 0.8)])
    c = client(RecognitionPipeline(clf))

    with c.websocket_connect("/ws/asl") as ws:
        _next_state(ws)
        ws.send_json({"type": "frame", "data": ""})
        ws.send_json({"type": "frame", "data": "data:image/png;base64,"})
        ws.send_json({"type": "frame", "data": data_url()})
        msg = _next_state(ws)
        assert msg["frame_count"] == 1
        assert msg["prediction"]["label"] == "E"
    assert clf.calls == 1


def test_websocket_ignores_malformed_messages(client):
    clf = FakeClassifier([Prediction("W", 0.9)])
    c = client(RecognitionPipeline(clf))

    with c.websocket_connect("/ws/asl") as ws:
        _next_state(ws)
        ws.send_json([1, 2])
        ws.send_json("frame")
        ws.send_json({"type": "frame", "data": 42})
        ws.send_text("not json")
        ws.send_json({"type": "frame", "data": data_url()})
        msg = _next_state(ws)
        assert msg["frame_count"] == 1
        assert msg["prediction"] == {"label": "W", "confidence": pytest.approx(0.9)}
