"""Pytest fixtures for photo editor tests."""

from __future__ import annotations

import base64
from io import BytesIO

import pytest
from PIL import Image

from models.schemas import SelectionState
from services.preview_store import PreviewStore


def make_image_bytes(fmt: str = "JPEG", size: tuple[int, int] = (32, 32)) -> bytes:
    """Encode a small solid-colour image."""
    buffer = BytesIO()
    Image.new("RGB", size, (200, 120, 80)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def preview_store() -> PreviewStore:
    return PreviewStore()


@pytest.fixture
def state() -> SelectionState:
    return SelectionState(session_id="test-session")


@pytest.fixture
def generated_payload() -> str:
    """Base64 payload standing in for a generated image."""
    return base64.b64encode(b"generated-image").decode("ascii")


class RecordingGenerator:
    """Fake generate_edited_image that records calls."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, base64_img1, mime_type1, base64_img2, mime_type2, prompt):
        self.calls.append((base64_img1, mime_type1, base64_img2, mime_type2, prompt))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def recording_generator(generated_payload) -> RecordingGenerator:
    return RecordingGenerator(result=generated_payload)
