"""yt-dlp backed implementation of :class:`~ytd_stream.core.protocols.MetadataProvider`.

This module is the **only** place in the codebase that imports ``yt_dlp``.
All yt-dlp exceptions are caught here and re-raised as typed
:class:`~ytd_stream.exceptions.YtdStreamError` subclasses — nothing raw
escapes the infrastructure boundary.
"""

from __future__ import annotations

from typing import Any

from ytd_stream.config import ServiceConfig
from ytd_stream.exceptions import (
    EnvironmentError,
    MetadataExtractionError,
    ResolutionError,
    VideoUnavailableError,
)
from ytd_stream.infra.ytdlp_command import metadata_options


def _import_ytdlp() -> Any:
    try:
        import yt_dlp
        import yt_dlp.utils
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "yt-dlp is not installed. Install with: pip install yt-dlp",
        ) from exc
    return yt_dlp


class YtDlpMetadataProvider:
    """Concrete :class:`MetadataProvider` backed by the yt-dlp Python API.

    Usage::

        provider = YtDlpMetadataProvider(ServiceConfig.from_env())
        info = provider.fetch_info("https://www.youtube.com/watch?v=...")

    This class satisfies the :class:`~ytd_stream.core.protocols.MetadataProvider`
    protocol structurally — no explicit inheritance required.
    """

    # Substrings in yt-dlp error messages that indicate the video itself
    # is unavailable (as opposed to a transient or extraction error).
    _UNAVAILABLE_SIGNALS: tuple[str, ...] = (
        "unavailable",
        "private video",
        "removed",
        "not available",
        "account terminated",
        "video has been removed",
        "this video is no longer available",
        "sign in to confirm your age",
    )

    def __init__(self, config: ServiceConfig | None = None) -> None:
        self._config: ServiceConfig = config or ServiceConfig()

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def fetch_info(self, url: str) -> dict[str, Any]:
        """Extract metadata for *url* without downloading.

        Returns
        -------
        dict[str, Any]
            The raw info dict produced by ``yt_dlp.YoutubeDL.extract_info``.

        Raises
        ------
        VideoUnavailableError
            When yt-dlp reports the video as unavailable / private / removed.
        MetadataExtractionError
            For all other extraction failures.
        """
        return self._extract(url, metadata_options(self._config))

    def resolve_direct_url(self, url: str, selection: str) -> str | None:
        """Return the media URL yt-dlp selects for *selection*.

        For merged selections the first requested stream (the video) is
        returned.
        """
        opts = {**metadata_options(self._config), "format": selection}
        info = self._extract(url, opts)

        direct = info.get("url")
        if isinstance(direct, str) and direct.strip():
            return direct.strip()

        requested = info.get("requested_formats")
        if isinstance(requested, list):
            for entry in requested:
                if isinstance(entry, dict) and isinstance(entry.get("url"), str):
                    return entry["url"].strip() or None
        return None

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def _extract(self, url: str, opts: dict[str, Any]) -> dict[str, Any]:
        yt_dlp = _import_ytdlp()

        try:
            with yt_dlp.YoutubeDL(opts) as ydl:
                info: Any = ydl.extract_info(url, download=False)
        except yt_dlp.utils.DownloadError as exc:
            self._raise_mapped(exc)
        except Exception as exc:
            raise MetadataExtractionError(
                f"Unexpected yt-dlp error: {exc}",
            ) from exc

        if info is None:
            raise MetadataExtractionError(
                "yt-dlp returned no metadata for the given URL.",
                hint="The URL may not point to a valid video.",
            )

        if not isinstance(info, dict):
            raise MetadataExtractionError(
                "yt-dlp returned an unexpected data structure.",
            )

        return dict(info)  # shallow copy

    # ------------------------------------------------------------------
    # Exception mapping
    # ------------------------------------------------------------------

    @classmethod
    def _raise_mapped(cls, exc: Exception) -> None:
        """Translate a yt-dlp ``DownloadError`` into a domain exception.

        Always raises — the ``Never`` return type is implicit via
        ``raise`` at every exit path.
        """
        message = str(exc)
        msg_lower = message.lower()
        # Checked first: "not available" is also an unavailability signal.
        if "requested format is not available" in msg_lower:
            raise ResolutionError(
                message,
                hint="Analyze the URL again and pick a listed format.",
            ) from exc
        if any(signal in msg_lower for signal in cls._UNAVAILABLE_SIGNALS):
            raise VideoUnavailableError(
                message,
                hint="The video may be private, removed, or geo-restricted.",
            ) from exc
        raise MetadataExtractionError(message) from exc
