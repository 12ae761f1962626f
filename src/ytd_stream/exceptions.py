"""Custom exception hierarchy for ytd-stream.

All exceptions that cross layer boundaries must inherit from
:class:`YtdStreamError`.  Raw third-party exceptions (yt-dlp, httpx,
``OSError`` from process creation) must NEVER propagate beyond the
infrastructure layer — they are caught and re-raised as a typed
subclass defined here.

Each class carries the HTTP status the web error boundary renders it
with.  Only errors raised *before* response headers are committed can
ever reach a client as a status; everything after commit is logged.

Hierarchy
---------
YtdStreamError
├── ValidationError              (400)
│   ├── InvalidURLError
│   └── MissingFormatError
├── ResolutionError              (500)
│   ├── MetadataExtractionError
│   └── VideoUnavailableError
├── StartupError                 (500)
├── StreamFailedError            (500)
├── MidStreamError               (logged only)
├── RelayError                   (502)
└── EnvironmentError             (500)
    └── FfmpegNotFoundError
"""

from __future__ import annotations


class YtdStreamError(Exception):
    """Base exception for all ytd-stream errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the HTTP and CLI error boundaries can render a
    clean message without leaking internal stack traces.
    """

    status_code: int = 500
    """HTTP status used when the error is rendered before header commit."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""

    def to_payload(self) -> dict[str, str]:
        """Return the uniform ``{"error": ...}`` JSON body."""
        payload = {"error": str(self)}
        if self.hint:
            payload["hint"] = self.hint
        return payload


# --- Request validation ----------------------------------------------------

class ValidationError(YtdStreamError):
    """Raised when a client request is missing or has malformed input."""

    status_code = 400


class InvalidURLError(ValidationError):
    """Raised when the provided URL fails validation."""


class MissingFormatError(ValidationError):
    """Raised when a video download omits the rendition identifier."""


# --- Metadata / resolution -------------------------------------------------

class ResolutionError(YtdStreamError):
    """Raised when metadata or a direct URL cannot be resolved."""


class MetadataExtractionError(ResolutionError):
    """Raised when yt-dlp fails to extract video metadata."""


class VideoUnavailableError(ResolutionError):
    """Raised when the target video is unavailable (private, removed, etc.)."""


# --- Streaming -------------------------------------------------------------

class StartupError(YtdStreamError):
    """Raised when the engine process cannot be spawned."""


class StreamFailedError(YtdStreamError):
    """Raised when the engine exits before producing a single byte."""


class MidStreamError(YtdStreamError):
    """A failure after headers were committed.

    Never rendered as a response: the status line is already on the
    wire, so the body is simply cut short and the error is logged.
    """


class RelayError(YtdStreamError):
    """Raised when an upstream asset cannot be relayed."""

    status_code = 502


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(YtdStreamError):
    """Raised when a required runtime dependency or setting is not available."""


class FfmpegNotFoundError(EnvironmentError):
    """Raised when ffmpeg cannot be located on the system PATH."""


def append_ytdlp_upgrade_suggestion(hint: str) -> str:
    """Append yt-dlp upgrade guidance to an existing hint text.

    The suggestion is appended only once and preserves the original
    hint content verbatim.
    """
    marker = "Also try updating yt-dlp:"
    if marker in hint:
        return hint
    return "\n".join(
        (
            hint,
            marker,
            "    pip install --upgrade yt-dlp",
        )
    )
