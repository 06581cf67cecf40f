"""Integration tests for mediagate.api.main - FastAPI REST API endpoints.

Tests use the FastAPI TestClient with an in-process FakeBackend, or a mocked
``google-genai`` client, so that no network access occurs.  Tests cover every endpoint:

- ``GET /health`` - Liveness probe.
- ``POST /generate-text`` - JSON prompt generation.
- ``POST /generate-from-image`` - Image upload generation.
- ``POST /generate-from-document`` - Document upload generation.
- ``POST /generate-from-audio`` - Audio upload generation.

Malformed requests and an app started without an API key are covered too.

Every upload test also checks that the uploads directory is empty once the
response has been returned.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from mediagate.api.main import create_app
from mediagate.core.backend import GenerationFailed
from mediagate.core.config import GatewayConfig
from mediagate.core.content import MediaPart, TextPart
from mediagate.core.exceptions import BackendFailure


def _uploads(test_client) -> list:
    return list(test_client.app.state.config.uploads_dir.iterdir())


# ---------------------------------------------------------------------------
# Health endpoint tests.
# ---------------------------------------------------------------------------


class TestHealth:
    """Test GET /health."""

    def test_health_reports_model(self, test_client):
        resp = test_client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["model"] == "gemini-test"
        assert "version" in data


# ---------------------------------------------------------------------------
# Text endpoint tests.
# ---------------------------------------------------------------------------


class TestGenerateText:
    """Test POST /generate-text."""

    def test_generate_text_success(self, test_client, fake_backend):
        resp = test_client.post("/generate-text", json={"prompt": "Hello"})
        assert resp.status_code == 200
        assert resp.json() == {"text": "Hi there"}
        assert fake_backend.calls == [[TextPart("Hello")]]

    def test_generate_text_backend_failure(self, test_client, fake_backend):
        fake_backend.error = BackendFailure("API key not valid")
        resp = test_client.post("/generate-text", json={"prompt": "Hello"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "API key not valid"}

    def test_generate_text_missing_prompt_forwarded(self, test_client, fake_backend):
        resp = test_client.post("/generate-text", json={})
        assert resp.status_code == 200
        assert fake_backend.calls == [[TextPart("")]]

    def test_generate_text_unexpected_error(self, test_client, fake_backend):
        fake_backend.error = RuntimeError("socket closed")
        resp = test_client.post("/generate-text", json={"prompt": "Hello"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "socket closed"}


# ---------------------------------------------------------------------------
# Upload endpoint tests.
# ---------------------------------------------------------------------------

_MEDIA_ROUTES = [
    ("/generate-from-image", "image", "image/png", "Describe this image"),
    ("/generate-from-document", "document", "application/pdf", "Summarize this document"),
    ("/generate-from-audio", "audio", "audio/mpeg", "Transcribe this audio"),
]


class TestGenerateFromUpload:
    """Test the three upload routes."""

    @pytest.mark.parametrize("route, field, mime_type, default_prompt", _MEDIA_ROUTES)
    def test_default_prompt_and_media_part(
        self, test_client, fake_backend, route, field, mime_type, default_prompt
    ):
        payload = b"\x00\x01binary\xff"
        resp = test_client.post(route, files={field: ("upload.bin", payload, mime_type)})

        assert resp.status_code == 200
        assert resp.json() == {"text": "Hi there"}
        (parts,) = fake_backend.calls
        assert parts[0] == TextPart(default_prompt)
        assert isinstance(parts[1], MediaPart)
        assert parts[1].mime_type == mime_type
        assert parts[1].decoded() == payload
        assert _uploads(test_client) == []

    @pytest.mark.parametrize("route, field, mime_type, default_prompt", _MEDIA_ROUTES)
    def test_custom_prompt(self, test_client, fake_backend, route, field, mime_type, default_prompt):
        resp = test_client.post(
            route,
            files={field: ("upload.bin", b"data", mime_type)},
            data={"prompt": "Be brief"},
        )

        assert resp.status_code == 200
        assert fake_backend.calls[0][0] == TextPart("Be brief")

    @pytest.mark.parametrize("route, field, mime_type, default_prompt", _MEDIA_ROUTES)
    def test_missing_file(self, test_client, fake_backend, route, field, mime_type, default_prompt):
        resp = test_client.post(route, data={"prompt": "anything"})

        assert resp.status_code == 400
        assert resp.json() == {"error": f"No {field} file uploaded."}
        assert fake_backend.calls == []

    def test_no_body_at_all(self, test_client, fake_backend):
        resp = test_client.post("/generate-from-image")
        assert resp.status_code == 400
        assert resp.json() == {"error": "No image file uploaded."}

    def test_audio_backend_failure_still_removes_upload(self, test_client, fake_backend):
        fake_backend.error = BackendFailure("quota exceeded")

        resp = test_client.post(
            "/generate-from-audio",
            files={"audio": ("clip.mp3", b"ID3", "audio/mpeg")},
        )

        assert resp.status_code == 500
        assert resp.json() == {"error": "quota exceeded"}
        assert _uploads(test_client) == []

    def test_returned_failure_removes_upload(self, test_client, fake_backend):
        fake_backend.result = GenerationFailed(message="unsupported mime type")

        resp = test_client.post(
            "/generate-from-document",
            files={"document": ("notes.xyz", b"??", "application/x-unknown")},
        )

        assert resp.status_code == 500
        assert resp.json() == {"error": "unsupported mime type"}
        assert _uploads(test_client) == []

    def test_upload_exists_while_backend_runs(self, test_client, fake_backend):
        seen: list[int] = []
        fake_backend.on_call = lambda parts: seen.append(len(_uploads(test_client)))

        test_client.post(
            "/generate-from-image",
            files={"image": ("cat.png", b"png", "image/png")},
        )

        assert seen == [1]
        assert _uploads(test_client) == []

    def test_upload_removed_externally_still_succeeds(self, test_client, fake_backend):
        def remove_upload(parts):
            for path in _uploads(test_client):
                path.unlink()

        fake_backend.on_call = remove_upload

        resp = test_client.post(
            "/generate-from-image",
            files={"image": ("cat.png", b"png", "image/png")},
        )

        assert resp.status_code == 200
        assert resp.json() == {"text": "Hi there"}


# ---------------------------------------------------------------------------
# Malformed request tests.
# ---------------------------------------------------------------------------


class TestMalformedRequests:
    """Test that invalid input gets an ``{error}`` body instead of a 422."""

    def test_generate_text_without_body(self, test_client, fake_backend):
        resp = test_client.post("/generate-text")

        assert resp.status_code == 500
        assert set(resp.json()) == {"error"}
        assert fake_backend.calls == []

    def test_generate_text_non_string_prompt(self, test_client, fake_backend):
        resp = test_client.post("/generate-text", json={"prompt": 123})

        assert resp.status_code == 500
        assert "prompt" in resp.json()["error"]
        assert fake_backend.calls == []

    @pytest.mark.parametrize("route, field, mime_type, default_prompt", _MEDIA_ROUTES)
    def test_text_in_file_field_counts_as_missing_file(
        self, test_client, fake_backend, route, field, mime_type, default_prompt
    ):
        resp = test_client.post(route, data={field: "notafile"})

        assert resp.status_code == 400
        assert resp.json() == {"error": f"No {field} file uploaded."}
        assert fake_backend.calls == []
        assert _uploads(test_client) == []


# ---------------------------------------------------------------------------
# Startup without credentials.
# ---------------------------------------------------------------------------


class TestMissingApiKey:
    """Test an app built without an injected backend or an API key."""

    def test_starts_and_reports_missing_key_per_request(self, temp_dir):
        cfg = GatewayConfig(
            _env_file=None,
            gemini_api_key=None,
            model_name="gemini-test",
            uploads_dir=str(temp_dir / "uploads"),
        )
        with patch(
            "mediagate.core.backend.genai.Client",
            side_effect=ValueError("Missing key inputs argument!"),
        ):
            with TestClient(create_app(cfg)) as client:
                assert client.get("/health").status_code == 200

                resp = client.post("/generate-text", json={"prompt": "Hello"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Missing key inputs argument!"}
