"""In-memory entities held by an editor session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class OperationState(str, Enum):
    """Where the session is in the upload/process/result cycle"""
    IDLE = "idle"
    STAGED = "staged"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class IntakeSource(str, Enum):
    """Input surface a file arrived through"""
    PICKER = "picker"
    DROP = "drop"


@dataclass(frozen=True)
class UploadedFile:
    """Raw file as received from the browser."""
    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    def is_image(self) -> bool:
        return (self.content_type or "").lower().startswith("image/")


@dataclass
class StagedImage:
    """The file pending (or having undergone) background removal.

    ``preview`` stays ``None`` until the asynchronous data-URL decode has
    finished. ``generation`` ties the image to the session counter it was
    staged under.
    """
    file: UploadedFile
    generation: int
    preview: Optional[str] = None

    @property
    def size(self) -> int:
        return self.file.size

    @property
    def content_type(self) -> str:
        return self.file.content_type

    @property
    def filename(self) -> str:
        return self.file.filename


@dataclass(frozen=True)
class ProcessingResult:
    """Binary image returned by the background-removal service"""
    payload: bytes = field(repr=False)
    media_type: str = "image/png"
    width: Optional[int] = None
    height: Optional[int] = None


__all__ = [
    "OperationState",
    "IntakeSource",
    "UploadedFile",
    "StagedImage",
    "ProcessingResult",
]
