"""Unit tests for the naturalff JSON API."""

import io
import subprocess
from unittest.mock import patch

import pytest

from naturalff.models import MediaDescriptor
from naturalff.web import create_app


@pytest.fixture
def app(tmp_path):
    app = create_app(work_dir=tmp_path)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _upload(client, filename="test.mp4", content=b"fake video data"):
    return client.post(
        "/api/probe",
        data={"file": (io.BytesIO(content), filename)},
        content_type="multipart/form-data",
    )


class TestHealth:
    def test_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"


class TestErrors:
    def test_unknown_route_is_json(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Not found"}

    def test_wrong_method_is_json(self, client):
        resp = client.get("/api/compile")
        assert resp.status_code == 405
        assert "error" in resp.get_json()

    def test_upload_limit(self, tmp_path):
        client = create_app(work_dir=tmp_path, max_upload_mb=1).test_client()
        resp = _upload(client, content=b"x" * (2 * 1024 * 1024))
        assert resp.status_code == 413
        assert resp.get_json()["error"] == "Upload exceeds 1 MB"


class TestParse:
    def test_commands_and_errors(self, client):
        resp = client.post("/api/parse", json={"script": "compress video\nexplode"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["commands"] == [{"type": "Compress", "params": {"bucket": "video"}}]
        assert data["errors"] == ["Unknown command: explode"]
        assert data["parsed"] == ["compress video"]
        assert data["diagnostics"][0]["line"] == 2

    def test_missing_script(self, client):
        resp = client.post("/api/parse", json={})
        assert resp.status_code == 400

    def test_body_not_an_object(self, client):
        resp = client.post("/api/parse", json=["compress video"])
        assert resp.status_code == 400
        assert "script" in resp.get_json()["error"]

    def test_body_not_json(self, client):
        resp = client.post("/api/parse", data="compress video", content_type="text/plain")
        assert resp.status_code == 400


class TestCompile:
    def test_basic(self, client):
        resp = client.post("/api/compile", json={"script": "trim from 1:30 to 3:45"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["args"] == ["-ss", "1:30", "-to", "3:45", "-i", "input.mp4", "output.mp4"]
        assert data["command"].startswith("ffmpeg -ss 1:30")
        assert data["errors"] == []

    def test_with_descriptor_and_config(self, client):
        resp = client.post("/api/compile", json={
            "script": "crop 100px from left",
            "descriptor": {"resolution": "1920x1080", "duration": 60},
            "input": "cam.mp4",
            "output": "out.mp4",
            "overwrite": True,
        })
        data = resp.get_json()
        assert data["args"] == ["-i", "cam.mp4", "-y", "-vf", "crop=1820:1080:100:0", "out.mp4"]

    def test_bad_descriptor(self, client):
        resp = client.post("/api/compile", json={
            "script": "compress video",
            "descriptor": {"resolution": "huge"},
        })
        assert resp.status_code == 400

    def test_crop_out_of_bounds(self, client):
        resp = client.post("/api/compile", json={
            "script": "crop 1000px from left\ncrop 920px from right",
            "descriptor": {"width": 1920, "height": 1080},
        })
        assert resp.status_code == 422
        assert "Crop too wide" in resp.get_json()["error"]

    def test_missing_script(self, client):
        resp = client.post("/api/compile", json={"script": 42})
        assert resp.status_code == 400

    def test_body_not_an_object(self, client):
        resp = client.post("/api/compile", json="compress video")
        assert resp.status_code == 400

    @pytest.mark.parametrize("descriptor", [
        {"resolution": "1920x1080", "codecs": ["h264"]},
        ["1920x1080"],
    ])
    def test_badly_shaped_descriptor(self, client, descriptor):
        resp = client.post("/api/compile", json={"script": "compress video", "descriptor": descriptor})
        assert resp.status_code == 400
        assert resp.get_json()["error"].startswith("Invalid descriptor")

    def test_output_not_a_string(self, client):
        resp = client.post("/api/compile", json={"script": "compress video", "output": ["a.mp4"]})
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "'output' must be a string"}


class TestProbe:
    @patch("naturalff.web.routes.ffutil.probe")
    def test_success(self, mock_probe, client, tmp_path):
        mock_probe.return_value = MediaDescriptor(
            filename=str(tmp_path / "x" / "input.mp4"), width=640, height=360, duration=5.0
        )
        resp = _upload(client)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["filename"] == "test.mp4"
        assert data["resolution"] == "640x360"

    @patch("naturalff.web.routes.ffutil.probe")
    def test_upload_removed_afterwards(self, mock_probe, client, tmp_path):
        mock_probe.return_value = MediaDescriptor(duration=1.0)
        _upload(client)
        assert list(tmp_path.iterdir()) == []

    @patch("naturalff.web.routes.ffutil.probe")
    def test_ffprobe_failure(self, mock_probe, client):
        mock_probe.side_effect = subprocess.CalledProcessError(1, ["ffprobe"], stderr="moov atom not found")
        resp = _upload(client)
        assert resp.status_code == 422
        assert "moov atom not found" in resp.get_json()["error"]

    def test_no_file(self, client):
        resp = client.post("/api/probe")
        assert resp.status_code == 400
