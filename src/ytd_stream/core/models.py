"""Domain models for ytd-stream.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access and JSON rendering.  They carry zero I/O,
zero dependencies on external packages, and none of them outlives the
HTTP request that created it.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from ytd_stream.exceptions import InvalidURLError, MissingFormatError, ValidationError


# ---------------------------------------------------------------------------
# Raw engine output
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RawRendition:
    """A single format entry exactly as reported by the extraction engine."""

    format_id: str
    """Backend-specific identifier for this format."""

    ext: str
    """Container extension (e.g. ``mp4``, ``webm``)."""

    vcodec: str | None = None
    """Video codec tag.  ``None`` or ``"none"`` when there is no video."""

    height: int | None = None
    fps: float | None = None

    filesize: int | None = None
    """Exact size in bytes, when the engine knows it."""

    filesize_approx: int | None = None
    """Estimated size in bytes."""

    resolution: str | None = None
    """Engine-provided label such as ``"1920x1080"``."""

    format_note: str | None = None
    format: str | None = None

    protocol: str | None = None
    """Transfer protocol (``https``, ``m3u8_native``, ``http_dash_segments``...)."""

    @property
    def has_video(self) -> bool:
        return bool(self.vcodec) and self.vcodec != "none"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Rendition:
    """One downloadable video quality offered to the client."""

    format_id: str
    ext: str
    height: int
    """Vertical resolution in pixels, ``0`` when unknown."""

    resolution: str
    """Label used for de-duplication (``"720p"``, ``"unknown"``, ...)."""

    fps: float | None
    note: str | None
    size_bytes: int
    format: str | None = None
    """Engine description of the entry, e.g. ``"137 - 1920x1080 (1080p)"``."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "formatId": self.format_id,
            "ext": self.ext,
            "height": self.height,
            "resolution": self.resolution,
            "fps": self.fps,
            "note": self.note,
            "format": self.format,
            "filesize": self.size_bytes,
        }


@dataclass(frozen=True, slots=True)
class RenditionCatalog:
    """Immutable, ordered collection of :class:`Rendition` entries.

    Holds at most one entry per ``resolution`` label, sorted by height
    descending.  Convenience dunder methods make the catalog usable in
    boolean, length and iteration contexts.
    """

    renditions: tuple[Rendition, ...] = ()

    def __len__(self) -> int:
        return len(self.renditions)

    def __bool__(self) -> bool:
        return len(self.renditions) > 0

    def __iter__(self) -> Iterator[Rendition]:
        return iter(self.renditions)

    def to_list(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self.renditions]


@dataclass(frozen=True, slots=True)
class MediaInfo:
    """Result of analyzing one source URL."""

    title: str
    duration: float
    formatted_duration: str
    thumbnail: str
    uploader: str
    video_formats: RenditionCatalog

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "duration": self.duration,
            "formattedDuration": self.formatted_duration,
            "thumbnail": self.thumbnail,
            "uploader": self.uploader,
            "videoFormats": self.video_formats.to_list(),
        }


# ---------------------------------------------------------------------------
# Download requests
# ---------------------------------------------------------------------------

class DownloadMode(str, enum.Enum):
    WITH_AUDIO = "with-audio"
    VIDEO_ONLY = "video-only"
    AUDIO = "audio"

    @property
    def needs_rendition(self) -> bool:
        return self is not DownloadMode.AUDIO


@dataclass(frozen=True, slots=True)
class DownloadRequest:
    """A validated download call.  Build with :meth:`create`."""

    source_url: str
    rendition_id: str | None
    mode: DownloadMode
    title: str | None = None
    ext: str | None = None

    @classmethod
    def create(
        cls,
        source_url: str | None,
        rendition_id: str | None,
        mode: str | DownloadMode | None,
        *,
        title: str | None = None,
        ext: str | None = None,
    ) -> DownloadRequest:
        """Validate raw request parameters.

        ``mode`` defaults to ``with-audio``.  The rendition id is dropped
        for audio downloads.

        Raises
        ------
        InvalidURLError
            If the URL is missing or not http(s).
        MissingFormatError
            If a video mode is requested without a rendition id.
        """
        url = (source_url or "").strip()
        if not url:
            raise InvalidURLError("Missing video URL")
        if not url.startswith(("http://", "https://")):
            raise InvalidURLError(
                f"Invalid URL: {url}",
                hint="URL must start with http:// or https://",
            )

        try:
            resolved_mode = DownloadMode(mode or DownloadMode.WITH_AUDIO)
        except ValueError as exc:
            allowed = ", ".join(m.value for m in DownloadMode)
            raise ValidationError(
                f"Unknown download mode: {mode}",
                hint=f"Use one of: {allowed}",
            ) from exc

        format_id = (rendition_id or "").strip() or None
        if resolved_mode.needs_rendition and format_id is None:
            raise MissingFormatError("Missing format identifier")
        if not resolved_mode.needs_rendition:
            format_id = None

        return cls(
            source_url=url,
            rendition_id=format_id,
            mode=resolved_mode,
            title=title,
            ext=(ext or "").strip().lower() or None,
        )


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------

class StreamState(enum.Enum):
    SPAWNING = "spawning"
    STREAMING = "streaming"
    COMMITTED = "committed"
    TERMINATING = "terminating"
    DONE = "done"


class OutcomeKind(enum.Enum):
    """How a session that got past spawning ended."""

    COMPLETED = "completed"
    """Process exited 0 after every byte reached the sink."""

    TRUNCATED = "truncated"
    """Process failed after commit; the client got a short 200 body."""

    CANCELLED = "cancelled"
    """The client disconnected.  Expected, not an error."""


@dataclass(frozen=True, slots=True)
class StreamOutcome:
    kind: OutcomeKind
    bytes_sent: int
    returncode: int | None
    states: tuple[StreamState, ...]
    stderr_tail: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class OutputPlan:
    """What the response carries and how the engine must produce it."""

    ext: str
    content_type: str
    merge_container: str | None = None
    """Container for muxing video+audio, ``None`` when nothing is merged."""

    audio_format: str | None = None
    """Target audio container when transcoding, else ``None``."""

    audio_bitrate: str | None = None


@dataclass(frozen=True, slots=True)
class RelayOutcome:
    kind: OutcomeKind
    bytes_sent: int
    upstream_status: int
    content_type: str
