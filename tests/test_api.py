"""HTTP tests for the FastAPI app."""

import time

import pytest
from fastapi.testclient import TestClient

from poseproof.main import app
from poseproof.metrics import render_metrics
from tests.factories import make_pose, pose_payload, solid_data_uri

RED = (255, 0, 0)
BLUE = (0, 0, 255)


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def export_body(**options):
    return {
        "before": {"image": solid_data_uri(600, 800, RED), "landmarks": pose_payload(make_pose(nose_y=0.15))},
        "after": {"image": solid_data_uri(600, 900, BLUE), "landmarks": pose_payload(make_pose(nose_y=0.25))},
        "format": "1:1",
        "options": {"watermark": {"isPro": True}, **options},
    }


def test_root(client):
    assert client.get("/").json()["status"] == "ok"


class TestAlignmentEndpoint:
    def test_identical_poses(self, client):
        pose = pose_payload(make_pose())
        resp = client.post("/api/v1/alignment", json={"landmarksBefore": pose, "landmarksAfter": pose})
        assert resp.status_code == 200
        data = resp.json()
        assert data["scale"] == pytest.approx(1.0)
        assert data["offsetX"] == pytest.approx(0.0, abs=1e-9)
        assert data["canAlign"] is True

    def test_short_landmarks(self, client):
        resp = client.post(
            "/api/v1/alignment",
            json={"landmarksBefore": pose_payload(make_pose(count=2)), "landmarksAfter": pose_payload(make_pose())},
        )
        data = resp.json()
        assert (data["scale"], data["offsetX"], data["offsetY"]) == (1.0, 0.0, 0.0)
        assert data["canAlign"] is False

    def test_unknown_anchor(self, client):
        resp = client.post("/api/v1/alignment", json={"anchor": "elbows"})
        assert resp.status_code == 422


class TestDrawParamsEndpoint:
    def test_layout_and_canvas(self, client):
        resp = client.post(
            "/api/v1/alignment/draw-params",
            json={
                "beforeImage": {"width": 1200, "height": 1600},
                "afterImage": {"width": 1200, "height": 1600},
                "landmarksBefore": pose_payload(make_pose(nose_y=-0.05, shoulder_y=0.1)),
                "landmarksAfter": pose_payload(make_pose()),
                "format": "1:1",
            },
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["useShoulderAlignment"] is True
        assert data["before"]["drawY"] <= 1e-6
        assert data["canvas"]["width"] == 2 * data["canvas"]["height"]

    def test_without_landmarks(self, client):
        resp = client.post(
            "/api/v1/alignment/draw-params",
            json={"beforeImage": {"width": 800, "height": 600}, "afterImage": {"width": 600, "height": 800}},
        )
        assert resp.status_code == 200
        assert resp.json()["bodyScale"] == 1.0

    def test_bad_format(self, client):
        resp = client.post(
            "/api/v1/alignment/draw-params",
            json={"beforeImage": {"width": 8, "height": 6}, "afterImage": {"width": 6, "height": 8}, "format": "2:1"},
        )
        assert resp.status_code == 422


class TestExportEndpoint:
    def test_sync_export(self, client):
        resp = client.post("/api/v1/export", json=export_body())
        assert resp.status_code == 200
        data = resp.json()
        assert data["image"].startswith("data:image/png;base64,")
        assert data["filename"].startswith("poseproof-export-")
        assert data["width"] == 2 * data["height"]
        assert data["mimeType"] == "image/png"

    def test_quality_out_of_range(self, client):
        resp = client.post("/api/v1/export", json=export_body(quality=0.5))
        assert resp.status_code == 422

    def test_corrupt_image(self, client):
        body = export_body()
        body["before"]["image"] = "data:image/png;base64,aGVsbG8="
        resp = client.post("/api/v1/export", json=body)
        assert resp.status_code == 400

    def test_job_flow(self, client):
        resp = client.post("/api/v1/export/submit", json=export_body())
        assert resp.status_code == 202
        job_id = resp.json()["id"]

        status = None
        for _ in range(100):
            status = client.get(f"/api/v1/export/status/{job_id}").json()
            if status["status"] != "pending":
                break
            time.sleep(0.1)

        assert status["status"] == "done", status
        assert status["result"]["width"] == 2 * status["result"]["height"]

    def test_submit_rejects_bad_options(self, client):
        resp = client.post("/api/v1/export/submit", json=export_body(resolution=999))
        assert resp.status_code == 422

    def test_unknown_job(self, client):
        assert client.get("/api/v1/export/status/nope").status_code == 404


def test_debug_log_forbidden_when_disabled(client, monkeypatch):
    monkeypatch.delenv("POSEPROOF_DEBUG_ALIGNMENT", raising=False)
    assert client.get("/api/v1/debug/alignment-log").status_code == 403


def test_metrics(client):
    client.post("/api/v1/export", json=export_body())
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "poseproof_export_requests_total" in resp.text


class TestGifEndpoint:
    def test_toggle_gif(self, client):
        body = export_body()
        body["options"] = {"style": "toggle", "watermark": {"isPro": True}}
        resp = client.post("/api/v1/export/gif", json=body)
        assert resp.status_code == 200
        data = resp.json()
        assert data["image"].startswith("data:image/gif;base64,")
        assert data["mimeType"] == "image/gif"
        assert data["style"] == "toggle"
        assert data["frameCount"] == 12
        assert data["filename"].startswith("poseproof-toggle-")

    def test_unknown_style(self, client):
        body = export_body()
        body["options"] = {"style": "spin"}
        assert client.post("/api/v1/export/gif", json=body).status_code == 422


def test_render_metrics_lists_service_metrics():
    text = render_metrics().decode("utf-8")
    assert "poseproof_shoulder_alignment_total" in text
    assert "poseproof_export_jobs_in_flight" in text
