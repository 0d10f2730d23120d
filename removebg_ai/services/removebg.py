from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from ..config import REMOVEBG_API_URL
from ..errors import REMOTE_FAILURE_MESSAGE, RemoteFailure
from ..io import build_result
from ..models import ProcessingResult, UploadedFile


class RemoveBgClient:
    """Async client for the remove.bg ``/removebg`` endpoint.

    One call per submission; failures are raised as ``RemoteFailure`` and
    never retried.
    """

    def __init__(
        self,
        api_key: str | None,
        api_url: str = REMOVEBG_API_URL,
        timeout: float = 60.0,
        size: str = "auto",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.size = size
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def remove_background(self, file: UploadedFile) -> ProcessingResult:
        if not self.api_key:
            raise RemoteFailure("remove.bg API key is not configured", "NOT_CONFIGURED")
        files = {"image_file": (file.filename, file.data, file.content_type)}
        data = {"size": self.size}
        headers = {"X-Api-Key": self.api_key}

        logger.info(f"Posting {file.filename} ({file.size} bytes) to {self.api_url}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, files=files, data=data, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning(f"remove.bg request timed out after {self.timeout}s")
            raise RemoteFailure(REMOTE_FAILURE_MESSAGE, "TIMEOUT") from exc
        except httpx.TransportError as exc:
            logger.warning(f"remove.bg connection failed: {exc}")
            raise RemoteFailure(REMOTE_FAILURE_MESSAGE, "CONNECTION_ERROR") from exc

        if not response.is_success:
            logger.warning(f"remove.bg returned HTTP {response.status_code}: {response.text[:200]}")
            raise RemoteFailure(REMOTE_FAILURE_MESSAGE, "HTTP_ERROR", status=response.status_code)

        if not response.content:
            raise RemoteFailure(REMOTE_FAILURE_MESSAGE, "INVALID_PAYLOAD", status=response.status_code)

        result = build_result(response.content, response.headers.get("content-type"))
        logger.info(f"remove.bg returned {len(result.payload)} bytes ({result.media_type})")
        return result


def create_client(settings) -> RemoveBgClient:
    """Create a client from application settings"""
    return RemoveBgClient(
        api_key=settings.api_key,
        api_url=settings.api_url,
        timeout=settings.request_timeout_seconds,
        size=settings.output_size,
    )


__all__ = ["RemoveBgClient", "create_client"]
