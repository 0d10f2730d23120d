"""Editor session: the upload/process/result state container.

Every transition goes through the intake (``accept_file``, ``drop``,
``pick``) and processor (``submit``, ``cancel``, ``reset``) contracts below.
A generation counter is bumped by every upload, cancel and reset; a remote
response is applied only if the generation it was issued under is still
current, so late responses after cancel/reset/re-upload are dropped.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Sequence

from loguru import logger
from starlette.concurrency import run_in_threadpool

from .config import MAX_UPLOAD_BYTES
from .errors import (
    OVERSIZE_MESSAGE,
    UNSUPPORTED_TYPE_MESSAGE,
    InvalidStateError,
    OversizeError,
    RemoteFailure,
    UnsupportedTypeError,
)
from .io import to_data_url
from .models import OperationState, ProcessingResult, StagedImage, UploadedFile

SUBMITTABLE_STATES = (OperationState.STAGED, OperationState.FAILED)
UNEXPECTED_ERROR_MESSAGE = "An error occurred"


class BackgroundRemover(Protocol):
    async def remove_background(self, file: UploadedFile) -> ProcessingResult:
        ...


class EditorSession:
    def __init__(self, client: BackgroundRemover, max_upload_bytes: int = MAX_UPLOAD_BYTES) -> None:
        self.client = client
        self.max_upload_bytes = max_upload_bytes
        self.state = OperationState.IDLE
        self.staged: Optional[StagedImage] = None
        self.result: Optional[ProcessingResult] = None
        self.error: Optional[str] = None
        self.generation = 0
        self.requests_issued = 0
        self._preview_task: Optional[asyncio.Task] = None

    # ---- Intake ----
    def accept_file(self, file: UploadedFile, *, prefiltered: bool = False) -> StagedImage:
        """Validate ``file`` and stage it, replacing any previous image.

        ``prefiltered`` marks files coming from a surface that already
        rejected non-image types (the drop zone).
        """
        self.check_size(file.size, file.filename)
        if not prefiltered and not file.is_image():
            self.error = UNSUPPORTED_TYPE_MESSAGE
            logger.info(f"Rejected {file.filename}: unsupported type {file.content_type!r}")
            raise UnsupportedTypeError(UNSUPPORTED_TYPE_MESSAGE)

        self.generation += 1
        staged = StagedImage(file=file, generation=self.generation)
        self.staged = staged
        self.result = None
        self.error = None
        self.state = OperationState.STAGED
        logger.info(f"Staged {file.filename} ({file.size} bytes, {file.content_type}) as generation {self.generation}")
        self._schedule_preview(staged)
        return staged

    def check_size(self, size: int, filename: str) -> None:
        """Raise ``OversizeError`` when ``size`` exceeds the upload limit; staged state is untouched."""
        if size > self.max_upload_bytes:
            message = self._oversize_message()
            self.error = message
            logger.info(f"Rejected {filename}: {size} bytes exceeds {self.max_upload_bytes}")
            raise OversizeError(message)

    def drop(self, files: Sequence[UploadedFile]) -> StagedImage:
        file = files[0] if files else None
        if file is None or not file.is_image():
            self.error = UNSUPPORTED_TYPE_MESSAGE
            raise UnsupportedTypeError(UNSUPPORTED_TYPE_MESSAGE)
        return self.accept_file(file, prefiltered=True)

    def pick(self, file: UploadedFile) -> StagedImage:
        return self.accept_file(file)

    @property
    def preview_ready(self) -> bool:
        return self.staged is not None and self.staged.preview is not None

    async def wait_for_preview(self) -> Optional[str]:
        """Wait until the current staged image has its preview, decoding it if nothing is scheduled."""
        if self._preview_task is not None and not self._preview_task.done():
            await asyncio.shield(self._preview_task)
        staged = self.staged
        if staged is not None and staged.preview is None:
            await self._decode_preview(staged)
        return self.staged.preview if self.staged is not None else None

    def _schedule_preview(self, staged: StagedImage) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # decoded on demand by wait_for_preview()
            self._preview_task = None
            return
        self._preview_task = loop.create_task(self._decode_preview(staged))

    async def _decode_preview(self, staged: StagedImage) -> None:
        preview = await run_in_threadpool(to_data_url, staged.file.data, staged.content_type)
        if self.staged is staged:
            staged.preview = preview
        else:
            logger.debug(f"Dropped preview for replaced generation {staged.generation}")

    # ---- Processor ----
    async def submit(self) -> OperationState:
        """Send the staged image to the background-removal service.

        Returns the session state once the call has completed. If the
        session moved on meanwhile, the outcome is discarded and the
        current state is returned unchanged.
        """
        if self.state not in SUBMITTABLE_STATES or self.staged is None:
            raise InvalidStateError(f"Cannot submit while {self.state.value}")

        staged = self.staged
        generation = self.generation
        self.state = OperationState.IN_FLIGHT
        self.error = None
        self.requests_issued += 1
        logger.info(f"Submitting generation {generation} ({staged.filename})")

        try:
            result = await self.client.remove_background(staged.file)
        except RemoteFailure as exc:
            if self._is_current(generation):
                self.state = OperationState.FAILED
                self.error = exc.message or UNEXPECTED_ERROR_MESSAGE
                logger.warning(f"Generation {generation} failed: {exc.code} {exc.message}")
            else:
                logger.info(f"Discarded failure for stale generation {generation}")
            return self.state
        except asyncio.CancelledError:
            # the awaiting task died (e.g. client disconnect); nothing is in flight any more
            if self._is_current(generation):
                self.generation += 1
                self.state = OperationState.STAGED
                logger.info(f"Submit task for generation {generation} was cancelled; back to staged")
            raise
        except Exception:
            if self._is_current(generation):
                self.state = OperationState.FAILED
                self.error = UNEXPECTED_ERROR_MESSAGE
            raise

        if not self._is_current(generation):
            logger.info(f"Discarded late response for stale generation {generation}")
            return self.state

        self.result = result
        self.state = OperationState.SUCCEEDED
        logger.info(f"Generation {generation} succeeded ({len(result.payload)} bytes)")
        return self.state

    def cancel(self) -> OperationState:
        """Return to STAGED; the underlying transfer keeps running and its outcome is ignored."""
        if self.state is not OperationState.IN_FLIGHT:
            raise InvalidStateError(f"Cannot cancel while {self.state.value}")
        self.generation += 1
        self.error = None
        self.state = OperationState.STAGED
        logger.info(f"Cancelled in-flight request; now at generation {self.generation}")
        return self.state

    def reset(self) -> OperationState:
        self.generation += 1
        self.staged = None
        self.result = None
        self.error = None
        self.state = OperationState.IDLE
        self._preview_task = None
        logger.info(f"Session reset; now at generation {self.generation}")
        return self.state

    # ---- Helpers ----
    def _is_current(self, generation: int) -> bool:
        return self.generation == generation and self.state is OperationState.IN_FLIGHT

    def _oversize_message(self) -> str:
        if self.max_upload_bytes == MAX_UPLOAD_BYTES:
            return OVERSIZE_MESSAGE
        megabytes = self.max_upload_bytes / (1024 * 1024)
        return f"Image size must be less than {megabytes:g}MB"


__all__ = ["EditorSession", "BackgroundRemover"]
