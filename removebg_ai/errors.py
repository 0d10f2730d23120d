"""Error taxonomy shared by intake, the remove.bg client and the HTTP shell."""

from typing import Optional


class EditorError(Exception):
    """Base exception for editor errors"""

    code = "EDITOR_ERROR"
    status_code = 400

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class OversizeError(EditorError):
    """Uploaded file exceeds the size limit."""

    code = "OVERSIZE"
    status_code = 413


class UnsupportedTypeError(EditorError):
    """Uploaded file is not image-typed."""

    code = "UNSUPPORTED_TYPE"
    status_code = 415


class RemoteFailure(EditorError):
    """The background-removal service returned non-2xx or could not be reached."""

    code = "HTTP_ERROR"
    status_code = 502

    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, code)
        self.status = status


class InvalidStateError(EditorError):
    """An operation was invoked outside the state it is valid in."""

    code = "INVALID_STATE"
    status_code = 409


OVERSIZE_MESSAGE = "Image size must be less than 10MB"
UNSUPPORTED_TYPE_MESSAGE = "Please upload a valid image file"
REMOTE_FAILURE_MESSAGE = "Failed to remove background. Please try again."


__all__ = [
    "EditorError",
    "OversizeError",
    "UnsupportedTypeError",
    "RemoteFailure",
    "InvalidStateError",
    "OVERSIZE_MESSAGE",
    "UNSUPPORTED_TYPE_MESSAGE",
    "REMOTE_FAILURE_MESSAGE",
]
