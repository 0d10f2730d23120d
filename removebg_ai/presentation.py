"""Projection of an editor session into page affordances."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .models import OperationState
from .session import EditorSession


@dataclass(frozen=True)
class Affordances:
    show_dropzone: bool
    can_submit: bool
    show_progress: bool
    can_cancel: bool
    can_download: bool
    can_start_new: bool
    show_error: bool


def project(session: EditorSession) -> Affordances:
    state = session.state
    staged = session.staged is not None
    return Affordances(
        show_dropzone=not staged,
        can_submit=staged and session.result is None and state in (OperationState.STAGED, OperationState.FAILED),
        show_progress=state is OperationState.IN_FLIGHT,
        can_cancel=state is OperationState.IN_FLIGHT,
        can_download=state is OperationState.SUCCEEDED and session.result is not None,
        can_start_new=staged,
        show_error=bool(session.error),
    )


def describe(session: EditorSession, download_filename: str = "removed-background.png") -> Dict[str, Any]:
    """JSON view of ``session`` consumed by the page script."""
    staged = session.staged
    result = session.result
    return {
        "state": session.state.value,
        "generation": session.generation,
        "affordances": asdict(project(session)),
        "error": session.error,
        "image": None if staged is None else {
            "filename": staged.filename,
            "size": staged.size,
            "contentType": staged.content_type,
            "preview": staged.preview,
        },
        "result": None if result is None else {
            "url": f"/api/result?g={session.generation}",
            "mediaType": result.media_type,
            "width": result.width,
            "height": result.height,
            "downloadUrl": "/api/download",
            "downloadFilename": download_filename,
        },
    }


__all__ = ["Affordances", "project", "describe"]
