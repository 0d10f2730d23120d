from __future__ import annotations

import asyncio

import httpx
import pytest
import respx

from removebg_ai.config import REMOVEBG_API_URL, get_settings
from removebg_ai.errors import RemoteFailure
from removebg_ai.models import UploadedFile
from removebg_ai.services.removebg import RemoveBgClient, create_client


def test_client_posts_expected_request(png_upload, sample_png_bytes) -> None:
    client = RemoveBgClient("test-key", REMOVEBG_API_URL)
    with respx.mock(assert_all_called=True) as mock:
        route = mock.post(REMOVEBG_API_URL).mock(
            return_value=httpx.Response(200, content=sample_png_bytes, headers={"content-type": "image/png"})
        )
        result = asyncio.run(client.remove_background(png_upload))
    assert route.called
    request = route.calls[0].request
    assert request.headers["X-Api-Key"] == "test-key"
    assert request.headers["content-type"].startswith("multipart/form-data")
    body = request.content
    assert b'name="size"' in body
    assert b"auto" in body
    assert b'name="image_file"; filename="photo.png"' in body
    assert result.payload == sample_png_bytes
    assert result.media_type == "image/png"
    assert (result.width, result.height) == (64, 48)


def test_client_sniffs_media_type_when_header_missing(png_upload, sample_png_bytes) -> None:
    client = RemoveBgClient("test-key", REMOVEBG_API_URL)
    with respx.mock(assert_all_called=True) as mock:
        mock.post(REMOVEBG_API_URL).mock(
            return_value=httpx.Response(200, content=sample_png_bytes, headers={"content-type": "application/octet-stream"})
        )
        result = asyncio.run(client.remove_background(png_upload))
    assert result.media_type == "image/png"


def test_client_maps_http_errors(png_upload) -> None:
    client = RemoveBgClient("test-key", REMOVEBG_API_URL)
    with respx.mock(assert_all_called=True) as mock:
        mock.post(REMOVEBG_API_URL).mock(return_value=httpx.Response(503, text="unavailable"))
        with pytest.raises(RemoteFailure) as excinfo:
            asyncio.run(client.remove_background(png_upload))
    assert excinfo.value.code == "HTTP_ERROR"
    assert excinfo.value.status == 503
    assert str(excinfo.value) == "Failed to remove background. Please try again."


@pytest.mark.parametrize(
    "error, code",
    [
        (httpx.ConnectError("refused"), "CONNECTION_ERROR"),
        (httpx.ReadTimeout("slow"), "TIMEOUT"),
    ],
)
def test_client_maps_transport_errors(png_upload, error, code) -> None:
    client = RemoveBgClient("test-key", REMOVEBG_API_URL, timeout=0.5)
    with respx.mock(assert_all_called=True) as mock:
        mock.post(REMOVEBG_API_URL).mock(side_effect=error)
        with pytest.raises(RemoteFailure) as excinfo:
            asyncio.run(client.remove_background(png_upload))
    assert excinfo.value.code == code


def test_client_rejects_empty_payload(png_upload) -> None:
    client = RemoveBgClient("test-key", REMOVEBG_API_URL)
    with respx.mock(assert_all_called=True) as mock:
        mock.post(REMOVEBG_API_URL).mock(return_value=httpx.Response(200, content=b""))
        with pytest.raises(RemoteFailure) as excinfo:
            asyncio.run(client.remove_background(png_upload))
    assert excinfo.value.code == "INVALID_PAYLOAD"


def test_client_without_key_makes_no_request(png_upload) -> None:
    client = RemoveBgClient(None)
    assert client.is_configured() is False
    with respx.mock(assert_all_called=False) as mock:
        route = mock.post(REMOVEBG_API_URL)
        with pytest.raises(RemoteFailure) as excinfo:
            asyncio.run(client.remove_background(png_upload))
    assert excinfo.value.code == "NOT_CONFIGURED"
    assert not route.called


def test_create_client_uses_settings(monkeypatch) -> None:
    monkeypatch.setenv("REMOVEBG_API_URL", "https://proxy.example.com/removebg")
    get_settings.cache_clear()
    client = create_client(get_settings())
    assert client.api_key == "test-key"
    assert client.api_url == "https://proxy.example.com/removebg"
    assert client.timeout == 5.0
    assert client.size == "auto"


def test_uploaded_file_image_check() -> None:
    assert UploadedFile("a.webp", "image/webp", b"x").is_image()
    assert UploadedFile("a.PNG", "IMAGE/PNG", b"x").is_image()
    assert not UploadedFile("a.txt", "text/plain", b"x").is_image()
    assert not UploadedFile("a", "", b"x").is_image()
