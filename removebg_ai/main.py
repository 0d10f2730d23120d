"""FastAPI shell serving the RemoveBG AI page and its JSON API."""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import uvicorn
from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, Response

from .config import Settings, get_settings
from .errors import EditorError
from .io import content_disposition
from .logger import log, setup_logger
from .models import IntakeSource, UploadedFile
from .presentation import describe
from .services.removebg import create_client
from .session import BackgroundRemover, EditorSession
from .store import SessionStore

STATIC_DIR = Path(__file__).resolve().parent / "static"


def create_app(
    settings: Optional[Settings] = None,
    client_factory: Optional[Callable[[Settings], BackgroundRemover]] = None,
) -> FastAPI:
    if settings is None:
        get_settings.cache_clear()
        settings = get_settings()
    client_factory = client_factory or create_client
    client = client_factory(settings)
    store = SessionStore(
        lambda: EditorSession(client, max_upload_bytes=settings.max_upload_bytes),
        max_sessions=settings.max_sessions,
        ttl_seconds=settings.session_ttl_seconds,
    )

    app = FastAPI(title="RemoveBG AI", version="1.0.0")
    app.state.settings = settings
    app.state.sessions = store

    def view(session: Optional[EditorSession]) -> Dict[str, Any]:
        if session is None:
            session = EditorSession(client, max_upload_bytes=settings.max_upload_bytes)
        return describe(session, settings.download_filename)

    def ensure_session(request: Request) -> EditorSession:
        """Session for a state-changing route, created (and cookied) on first use."""
        ref: _SessionRef = request.state.session_ref
        if ref.session is None:
            ref.session_id, ref.session = store.create()
            ref.created = True
        return ref.session

    def existing_session(request: Request) -> Optional[EditorSession]:
        return request.state.session_ref.session

    @app.on_event("startup")
    async def startup_event() -> None:
        log.info(f"Starting RemoveBG AI against {settings.api_url}")
        if not settings.is_configured():
            log.warning("REMOVEBG_API_KEY is not set; background removal requests will fail")

    @app.middleware("http")
    async def attach_session(request: Request, call_next):
        cookie = request.cookies.get(settings.session_cookie)
        ref = _SessionRef(session_id=cookie, session=store.get(cookie))
        request.state.session_ref = ref
        response = await call_next(request)
        if ref.created:
            response.set_cookie(settings.session_cookie, ref.session_id, httponly=True, samesite="lax")
        return response

    @app.exception_handler(EditorError)
    async def editor_error_handler(request: Request, exc: EditorError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code, "state": view(existing_session(request))},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log.error(f"Unhandled exception: {exc}")
        log.error(traceback.format_exc())
        return JSONResponse(status_code=500, content={"detail": "Internal server error", "code": "INTERNAL"})

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        return HTMLResponse((STATIC_DIR / "index.html").read_text(encoding="utf-8"))

    @app.get("/health", response_model=Dict[str, str])
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/state")
    async def state(request: Request) -> Dict[str, Any]:
        return view(existing_session(request))

    @app.post("/api/upload")
    async def upload(
        request: Request,
        file: UploadFile = File(...),
        source: str = Form(default=IntakeSource.PICKER.value),
    ) -> Dict[str, Any]:
        try:
            intake_source = IntakeSource(source)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="source must be 'picker' or 'drop'") from exc
        session = ensure_session(request)
        filename = file.filename or "image"
        if file.size is not None:
            session.check_size(file.size, filename)
        data = await file.read()
        uploaded = UploadedFile(
            filename=filename,
            content_type=file.content_type or "",
            data=data,
        )
        if intake_source is IntakeSource.DROP:
            session.drop([uploaded])
        else:
            session.pick(uploaded)
        await session.wait_for_preview()
        return view(session)

    @app.post("/api/submit")
    async def submit(request: Request) -> Dict[str, Any]:
        session = ensure_session(request)
        await session.submit()
        return view(session)

    @app.post("/api/cancel")
    async def cancel(request: Request) -> Dict[str, Any]:
        session = ensure_session(request)
        session.cancel()
        return view(session)

    @app.post("/api/reset")
    async def reset(request: Request) -> Dict[str, Any]:
        session = ensure_session(request)
        session.reset()
        return view(session)

    @app.get("/api/result")
    async def result(request: Request) -> Response:
        return _result_response(existing_session(request), settings.download_filename, inline=True)

    @app.get("/api/download")
    async def download(request: Request) -> Response:
        return _result_response(existing_session(request), settings.download_filename, inline=False)

    return app


@dataclass
class _SessionRef:
    """Per-request handle on the browser's session; ``created`` asks the middleware to set the cookie."""
    session_id: Optional[str] = None
    session: Optional[EditorSession] = None
    created: bool = False


def _result_response(session: Optional[EditorSession], filename: str, inline: bool) -> Response:
    if session is None or session.result is None:
        raise HTTPException(status_code=404, detail="No processed image available")
    return Response(
        content=session.result.payload,
        media_type=session.result.media_type,
        headers={"Content-Disposition": content_disposition(filename, inline=inline)},
    )


app = create_app()


def main() -> None:
    """Run the FastAPI application."""
    settings = get_settings()
    setup_logger(settings.log_level, settings.log_dir)
    uvicorn.run(
        "removebg_ai.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
