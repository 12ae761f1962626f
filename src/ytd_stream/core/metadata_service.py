"""Core metadata service — orchestrates extraction and catalog building.

This is the central service class behind the analyze endpoint.  It
depends on a :class:`~ytd_stream.core.protocols.MetadataProvider`
injected at construction time (dependency inversion), keeping the core
free of any external-system imports.

Guarantees
----------
* Pure orchestration — no I/O, no ``print()``, no filesystem access.
* Only :class:`~ytd_stream.exceptions.YtdStreamError` subclasses escape.
* All parsing logic is deterministic and stateless.
"""

from __future__ import annotations

import logging
from typing import Any

from ytd_stream.core.catalog import build_catalog, format_duration, parse_raw_renditions
from ytd_stream.core.format_selector import select_format
from ytd_stream.core.models import DownloadMode, DownloadRequest, MediaInfo
from ytd_stream.core.protocols import MetadataProvider
from ytd_stream.exceptions import (
    InvalidURLError,
    MetadataExtractionError,
    ResolutionError,
    YtdStreamError,
    append_ytdlp_upgrade_suggestion,
)

logger = logging.getLogger(__name__)


class MetadataService:
    """Stateless service that analyzes URLs and resolves direct links.

    Parameters
    ----------
    provider:
        Any object satisfying the :class:`MetadataProvider` protocol.
    """

    def __init__(self, provider: MetadataProvider) -> None:
        self._provider: MetadataProvider = provider

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(self, url: str | None) -> MediaInfo:
        """Extract metadata and the rendition catalog for *url*.

        An empty catalog is a valid result: the client shows "no
        downloadable resolutions" instead of failing the whole call.

        Raises
        ------
        InvalidURLError
            If *url* is empty or malformed.
        MetadataExtractionError
            If the backend fails to return metadata.
        VideoUnavailableError
            If the video is confirmed unavailable.
        """
        cleaned = self.validate_url(url)
        info = self._call(self._provider.fetch_info, cleaned)
        media = self._parse_media_info(info)
        logger.info(
            "analyzed %s: %d renditions",
            cleaned,
            len(media.video_formats),
        )
        return media

    def resolve_direct_url(self, request: DownloadRequest) -> str:
        """Return the engine's direct media URL for a validated request.

        A direct link points at a single stream, so video modes resolve
        the bare rendition and never a merge expression.

        Raises
        ------
        ResolutionError
            If the backend resolves no URL.
        """
        single = (
            DownloadMode.AUDIO
            if request.mode is DownloadMode.AUDIO
            else DownloadMode.VIDEO_ONLY
        )
        selection = select_format(request.rendition_id, single)
        direct = self._call(
            self._provider.resolve_direct_url,
            request.source_url,
            selection,
        )
        if not direct:
            raise ResolutionError(
                "Could not resolve download URL",
                hint=append_ytdlp_upgrade_suggestion("Try another format."),
            )
        return direct

    # ------------------------------------------------------------------
    # URL validation
    # ------------------------------------------------------------------

    @staticmethod
    def validate_url(url: str | None) -> str:
        """Return the stripped URL or raise :class:`InvalidURLError`."""
        stripped = (url or "").strip()
        if not stripped:
            raise InvalidURLError("Missing video URL")
        if not stripped.startswith(("http://", "https://")):
            raise InvalidURLError(
                f"Invalid URL: {stripped}",
                hint="URL must start with http:// or https://",
            )
        return stripped

    # ------------------------------------------------------------------
    # Provider delegation (safe boundary)
    # ------------------------------------------------------------------

    @staticmethod
    def _call(method: Any, *args: Any) -> Any:
        """Call the provider and ensure only our exceptions escape."""
        try:
            return method(*args)
        except YtdStreamError:
            # Already one of ours.
            raise
        except Exception as exc:
            raise MetadataExtractionError(
                f"Unexpected provider error: {exc}",
            ) from exc

    # ------------------------------------------------------------------
    # Raw-dict → domain-model parsing (pure)
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_media_info(info: dict[str, Any]) -> MediaInfo:
        raw_duration = info.get("duration")
        duration: float = (
            raw_duration
            if isinstance(raw_duration, (int, float)) and not isinstance(raw_duration, bool)
            else 0
        )
        return MediaInfo(
            title=str(info.get("title") or "Unknown title"),
            duration=duration,
            formatted_duration=format_duration(raw_duration),
            thumbnail=str(info.get("thumbnail") or ""),
            uploader=str(info.get("uploader") or ""),
            video_formats=build_catalog(parse_raw_renditions(info.get("formats"))),
        )
