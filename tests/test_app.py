"""Tests for the Flask routes."""

from __future__ import annotations

import base64
from datetime import datetime, timedelta
from io import BytesIO

import pytest
from PIL import Image

import app as web
from services import editor
from services.errors import GenerationError


@pytest.fixture
def client():
    web.app.config["TESTING"] = True
    with web.app.test_client() as client:
        yield client


@pytest.fixture
def fake_generator(monkeypatch, generated_payload):
    calls = []

    def generator(base64_img1, mime_type1, base64_img2, mime_type2, prompt):
        calls.append(prompt)
        if generator.error is not None:
            raise generator.error
        return generated_payload

    generator.error = None
    generator.calls = calls
    monkeypatch.setattr(editor, "generate_edited_image", generator)
    return generator


def upload(client, slot, data, filename="photo.jpg", content_type="image/jpeg"):
    return client.post(
        f"/api/images/{slot}",
        data={"image": (BytesIO(data), filename, content_type)},
        content_type="multipart/form-data",
    )


class TestPages:
    """Tests for GET / and /health."""

    def test_index_lists_presets_and_actions(self, client):
        response = client.get("/")
        assert response.status_code == 200
        html = response.get_data(as_text=True)
        for label in ("Studio White", "Lush Garden", "City Park", "Luxury Home"):
            assert label in html
        assert "Generate Hug" in html
        assert "Generate Kiss" in html
        assert "image/png, image/jpeg, image/webp" in html

    def test_index_has_progress_line(self, client):
        html = client.get("/").get_data(as_text=True)
        assert 'id="progress"' in html
        assert 'role="status"' in html

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"

    def test_initial_state(self, client):
        data = client.get("/api/state").get_json()
        assert data["background"] == "white"
        assert data["suggest_outfit_change"] is False
        assert data["can_generate"] is False
        assert data["slots"]["1"]["filled"] is False


class TestImageRoutes:
    """Tests for /api/images and /previews."""

    def test_upload_and_preview(self, client, jpeg_bytes):
        response = upload(client, 1, jpeg_bytes)
        assert response.status_code == 200

        slot = response.get_json()["slots"]["1"]
        assert slot["filled"] is True
        assert slot["mime_type"] == "image/jpeg"

        preview = client.get(slot["preview_url"])
        assert preview.status_code == 200
        assert preview.data == jpeg_bytes
        assert preview.mimetype == "image/jpeg"

    def test_non_image_upload_rejected(self, client):
        response = upload(client, 1, b"plain text", filename="notes.txt", content_type="text/plain")

        assert response.status_code == 400
        data = response.get_json()
        assert data["notice"] == "Please select an image file."
        assert data["slots"]["1"]["filled"] is False

    def test_unreadable_upload(self, client):
        response = upload(client, 2, b"broken")

        assert response.status_code == 400
        data = response.get_json()
        assert data["error"] == "Failed to read the image file."
        assert data["slots"]["2"]["filled"] is False

    def test_pixel_bomb_upload(self, client, jpeg_bytes, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

        response = upload(client, 1, jpeg_bytes)

        assert response.status_code == 400
        data = response.get_json()
        assert data["error"] == "Image dimensions too large"
        assert data["slots"]["1"]["filled"] is False

    def test_missing_file_field(self, client):
        response = client.post("/api/images/1", data={"other": "x"})
        assert response.status_code == 400

    def test_invalid_slot(self, client, jpeg_bytes):
        assert upload(client, 3, jpeg_bytes).status_code == 400

    def test_delete_releases_preview(self, client, jpeg_bytes):
        preview_url = upload(client, 1, jpeg_bytes).get_json()["slots"]["1"]["preview_url"]

        response = client.delete("/api/images/1")

        assert response.status_code == 200
        assert response.get_json()["slots"]["1"]["filled"] is False
        assert client.get(preview_url).status_code == 404


class TestSessions:
    """Tests for session expiry on ordinary requests."""

    def test_abandoned_session_previews_released(self, client, jpeg_bytes):
        preview_url = upload(client, 1, jpeg_bytes).get_json()["slots"]["1"]["preview_url"]
        for state in web.session_manager.sessions.values():
            state.last_updated = datetime.now() - timedelta(hours=2)

        with web.app.test_client() as other_browser:
            other_browser.get("/api/state")

        assert client.get(preview_url).status_code == 404


class TestOptionsRoute:
    """Tests for PUT /api/options."""

    def test_update_options(self, client):
        response = client.put("/api/options", json={"background": "home", "suggest_outfit_change": True})

        data = response.get_json()
        assert data["background"] == "home"
        assert data["suggest_outfit_change"] is True

    def test_unknown_background(self, client):
        response = client.put("/api/options", json={"background": "mars"})
        assert response.status_code == 400
        assert "Unknown background preset" in response.get_json()["error"]

    def test_outfit_change_string_rejected(self, client):
        response = client.put("/api/options", json={"suggest_outfit_change": "false"})

        assert response.status_code == 400
        assert client.get("/api/state").get_json()["suggest_outfit_change"] is False


class TestGenerateRoute:
    """Tests for POST /api/generate and downloads."""

    def test_generate_success_and_download(self, client, jpeg_bytes, fake_generator, generated_payload):
        upload(client, 1, jpeg_bytes)
        upload(client, 2, jpeg_bytes)
        client.put("/api/options", json={"background": "garden"})

        response = client.post("/api/generate/hug")

        assert response.status_code == 200
        data = response.get_json()
        assert data["result_image"] == f"data:image/png;base64,{generated_payload}"
        assert data["loading_action"] is None
        assert "lush garden during daytime" in fake_generator.calls[0]

        download = client.get("/api/result/download")
        assert download.status_code == 200
        assert download.data == base64.b64decode(generated_payload)
        assert "runabhii-creation.png" in download.headers["Content-Disposition"]

    def test_generate_with_one_photo(self, client, jpeg_bytes, fake_generator):
        upload(client, 1, jpeg_bytes)

        response = client.post("/api/generate/kiss")

        assert response.status_code == 400
        assert response.get_json()["error"] == "Please upload both photos before generating."
        assert fake_generator.calls == []

    def test_generate_failure(self, client, jpeg_bytes, fake_generator):
        fake_generator.error = GenerationError("API Error: service unavailable")
        upload(client, 1, jpeg_bytes)
        upload(client, 2, jpeg_bytes)

        response = client.post("/api/generate/hug")

        assert response.status_code == 502
        data = response.get_json()
        assert data["error"].startswith("Generation failed:")
        assert data["loading_action"] is None
        assert data["can_generate"] is True

    def test_unknown_action(self, client):
        assert client.post("/api/generate/wave").status_code == 400

    def test_download_without_result(self, client):
        assert client.get("/api/result/download").status_code == 400

    def test_reset(self, client, jpeg_bytes):
        upload(client, 1, jpeg_bytes)

        data = client.post("/api/reset").get_json()

        assert data["slots"]["1"]["filled"] is False
        assert data["error"] is None
