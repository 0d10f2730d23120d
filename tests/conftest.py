from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from removebg_ai.config import REMOVEBG_API_URL, get_settings
from removebg_ai.errors import RemoteFailure
from removebg_ai.io import build_result
from removebg_ai.main import create_app
from removebg_ai.models import ProcessingResult, UploadedFile
from removebg_ai.session import EditorSession


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("REMOVEBG_API_KEY", "test-key")
    monkeypatch.setenv("REMOVEBG_API_URL", REMOVEBG_API_URL)
    monkeypatch.setenv("REMOVEBG_REQUEST_TIMEOUT_SECONDS", "5")
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def test_app() -> Generator[TestClient, None, None]:
    app = create_app()
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sample_png_bytes() -> bytes:
    image = Image.new("RGBA", (64, 48), color=(120, 140, 160, 0))
    return _to_bytes(image, "PNG")


@pytest.fixture
def sample_jpeg_bytes() -> bytes:
    image = Image.new("RGB", (64, 64), color=(200, 40, 40))
    return _to_bytes(image, "JPEG")


@pytest.fixture
def png_upload(sample_png_bytes) -> UploadedFile:
    return UploadedFile(filename="photo.png", content_type="image/png", data=sample_png_bytes)


@pytest.fixture
def fake_remover(sample_png_bytes) -> "FakeRemover":
    return FakeRemover(build_result(sample_png_bytes, "image/png"))


@pytest.fixture
def session(fake_remover) -> EditorSession:
    return EditorSession(fake_remover)


class FakeRemover:
    """Stand-in for RemoveBgClient that can be held open until released."""

    def __init__(self, result: ProcessingResult, failure: Optional[RemoteFailure] = None) -> None:
        self.result = result
        self.failure = failure
        self.calls: List[UploadedFile] = []
        self.hold = False
        self._gates: List[asyncio.Event] = []

    async def remove_background(self, file: UploadedFile) -> ProcessingResult:
        self.calls.append(file)
        if self.hold:
            gate = asyncio.Event()
            self._gates.append(gate)
            await gate.wait()
        if self.failure is not None:
            raise self.failure
        return self.result

    def release(self) -> None:
        while self._gates:
            self._gates.pop(0).set()


def _to_bytes(image: Image.Image, fmt: str) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()
