"""FastAPI application factory.

Routes
------
POST /api/analyze              metadata and rendition catalog
GET  /api/download/video       streamed video (muxed or video-only)
GET  /api/download/audio       streamed, transcoded audio
GET  /api/download/thumbnail   relayed thumbnail image
GET  /api/download/url         direct media URL of a single stream
GET  /healthz                  liveness probe
GET  /{path}                   static UI, ``index.html`` fallback

Every :class:`~ytd_stream.exceptions.YtdStreamError` raised while
handling a request is rendered as ``{"error": ..., "hint"?: ...}``.
Download routes validate their parameters before a
:class:`SinkStreamResponse` is created, so a bad request never spawns
an engine process.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel
from starlette.responses import Response

from ytd_stream.config import ServiceConfig
from ytd_stream.core.format_selector import output_plan, select_format
from ytd_stream.core.metadata_service import MetadataService
from ytd_stream.core.models import DownloadMode, DownloadRequest
from ytd_stream.core.naming import attachment_name
from ytd_stream.core.protocols import ProcessLauncher, ResponseSink
from ytd_stream.core.stream_orchestrator import StreamOrchestrator
from ytd_stream.exceptions import YtdStreamError
from ytd_stream.infra.asset_relay import AssetRelay
from ytd_stream.infra.subprocess_launcher import SubprocessLauncher
from ytd_stream.infra.ytdlp_command import build_stream_command
from ytd_stream.infra.ytdlp_provider import YtDlpMetadataProvider
from ytd_stream.version import __version__
from ytd_stream.web.responses import (
    SinkStreamResponse,
    error_response,
    internal_error_response,
)

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


class AnalyzeRequest(BaseModel):
    url: str | None = None


def create_app(
    config: ServiceConfig | None = None,
    *,
    metadata_service: MetadataService | None = None,
    launcher: ProcessLauncher | None = None,
    relay: AssetRelay | None = None,
) -> FastAPI:
    """Build the application around one immutable *config*.

    The keyword arguments replace the production collaborators; tests
    use them to run the routes against fakes.
    """
    cfg = config or ServiceConfig.from_env()
    service = metadata_service or MetadataService(YtDlpMetadataProvider(cfg))
    orchestrator = StreamOrchestrator(
        launcher or SubprocessLauncher(),
        chunk_size=cfg.chunk_size,
        kill_grace_seconds=cfg.kill_grace_seconds,
    )
    asset_relay = relay or AssetRelay(timeout=cfg.relay_timeout_seconds)

    app = FastAPI(title="ytd-stream", version=__version__)
    app.state.config = cfg
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------
    # Error boundary
    # ------------------------------------------------------------------

    @app.exception_handler(YtdStreamError)
    async def _handle_domain_error(request: Request, exc: YtdStreamError) -> JSONResponse:
        log = logger.info if exc.status_code < 500 else logger.error
        log("%s %s failed: %s", request.method, request.url.path, exc)
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _handle_bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("%s %s malformed request: %s", request.method, request.url.path, exc.errors())
        return JSONResponse({"error": "Malformed request"}, status_code=400)

    @app.exception_handler(Exception)
    async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s crashed", request.method, request.url.path)
        return internal_error_response()

    # ------------------------------------------------------------------
    # Streaming helper
    # ------------------------------------------------------------------

    def stream_download(request: DownloadRequest, fallback_name: str) -> Response:
        selection = select_format(request.rendition_id, request.mode)
        plan = output_plan(request.mode, request.ext, cfg)
        argv = build_stream_command(cfg, request.source_url, selection, plan)
        filename = attachment_name(request.title, plan.ext, fallback_name)
        logger.info(
            "download %s: %s (format %s) as %s",
            request.mode.value,
            request.source_url,
            selection,
            filename,
        )

        async def produce(sink: ResponseSink) -> object:
            return await orchestrator.stream_to_response(
                argv,
                sink,
                filename=filename,
                content_type=plan.content_type,
            )

        return SinkStreamResponse(produce, label=f"download {request.mode.value}")

    # ------------------------------------------------------------------
    # API routes
    # ------------------------------------------------------------------

    @app.post("/api/analyze")
    def analyze(body: AnalyzeRequest) -> dict[str, Any]:
        return service.analyze(body.url).to_dict()

    @app.get("/api/download/video")
    async def download_video(
        url: str | None = None,
        format_id: str | None = Query(None, alias="formatId"),
        mode: str | None = None,
        title: str | None = None,
        ext: str | None = None,
    ) -> Response:
        request = DownloadRequest.create(url, format_id, mode, title=title, ext=ext)
        fallback = "audio" if request.mode is DownloadMode.AUDIO else "video"
        return stream_download(request, fallback)

    @app.get("/api/download/audio")
    async def download_audio(url: str | None = None, title: str | None = None) -> Response:
        request = DownloadRequest.create(url, None, DownloadMode.AUDIO, title=title)
        return stream_download(request, "audio")

    @app.get("/api/download/thumbnail")
    async def download_thumbnail(
        thumbnail_url: str | None = Query(None, alias="thumbnailUrl"),
        title: str | None = None,
    ) -> Response:
        async def produce(sink: ResponseSink) -> object:
            return await asset_relay.relay(thumbnail_url or "", sink, title=title)

        return SinkStreamResponse(produce, label="thumbnail relay")

    @app.get("/api/download/url")
    def download_url(
        url: str | None = None,
        format_id: str | None = Query(None, alias="formatId"),
        mode: str | None = None,
    ) -> dict[str, str]:
        request = DownloadRequest.create(url, format_id, mode)
        return {"url": service.resolve_direct_url(request)}

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    # ------------------------------------------------------------------
    # Static UI
    # ------------------------------------------------------------------

    @app.get("/{full_path:path}", include_in_schema=False)
    def static_fallback(full_path: str) -> Response:
        if full_path.startswith("api/") or cfg.static_dir is None:
            return _not_found()
        root = cfg.static_dir.resolve()
        target = _safe_join(root, full_path)
        if target is not None and target.is_file():
            return FileResponse(target)
        index = root / INDEX_FILE
        if index.is_file():
            return FileResponse(index)
        return _not_found()

    return app


def _safe_join(root: Path, relative: str) -> Path | None:
    """Resolve *relative* under *root*; ``None`` if it escapes *root*."""
    if not relative:
        return None
    candidate = (root / relative).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    return candidate


def _not_found() -> JSONResponse:
    return JSONResponse({"error": "Not found"}, status_code=404)
