"""RemoveBG AI: upload an image, strip its background via remove.bg, download the result."""

__version__ = "1.0.0"

from .errors import EditorError, InvalidStateError, OversizeError, RemoteFailure, UnsupportedTypeError
from .models import IntakeSource, OperationState, ProcessingResult, StagedImage, UploadedFile
from .session import EditorSession

__all__ = [
    "EditorSession",
    "EditorError",
    "InvalidStateError",
    "OversizeError",
    "RemoteFailure",
    "UnsupportedTypeError",
    "IntakeSource",
    "OperationState",
    "ProcessingResult",
    "StagedImage",
    "UploadedFile",
]
