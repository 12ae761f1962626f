"""Infrastructure: ffmpeg detection and platform guidance.

yt-dlp hands muxing and audio transcoding to ffmpeg.  This module
finds the binary the engine will use (the configured location first,
then PATH) and provides platform-specific installation guidance when
it is missing.

Rules
-----
* Detection via :func:`shutil.which` only — no subprocess.
* No permanent PATH modification.
* No automatic installation.
* No ``print()`` — callers handle user-facing output.
"""

from __future__ import annotations

import platform
import shutil
from dataclasses import dataclass
from pathlib import Path

from ytd_stream.exceptions import FfmpegNotFoundError

FFMPEG = "ffmpeg"


# ---------------------------------------------------------------------------
# Detection result
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FfmpegStatus:
    """Result of an ffmpeg detection probe.

    Attributes
    ----------
    found : bool
        Whether an ffmpeg binary was located.
    path : Path | None
        Absolute path to the ffmpeg binary, or ``None``.
    version_hint : str
        Human-readable status string (e.g. ``"found at …"`` or ``"not found"``).
    install_commands : tuple[str, ...]
        Suggested shell commands for installing ffmpeg on the current
        platform.  Empty when ffmpeg is already present.
    """

    found: bool
    path: Path | None
    version_hint: str
    install_commands: tuple[str, ...]


# ---------------------------------------------------------------------------
# Detection logic
# ---------------------------------------------------------------------------

def detect_ffmpeg(location: str | None = None) -> FfmpegStatus:
    """Probe for the ffmpeg binary yt-dlp will use.

    *location* mirrors yt-dlp's ``--ffmpeg-location``: either the
    binary itself or a directory containing it.  When it is ``None``
    the system PATH is searched.

    Returns a :class:`FfmpegStatus` regardless of whether ffmpeg is
    present — the caller decides whether to abort or merely warn.
    """
    result = _locate(location)

    if result is not None:
        resolved = Path(result).resolve()
        return FfmpegStatus(
            found=True,
            path=resolved,
            version_hint=f"found at {resolved}",
            install_commands=(),
        )

    return FfmpegStatus(
        found=False,
        path=None,
        version_hint="not found" if location is None else f"not found at {location}",
        install_commands=_platform_install_commands(),
    )


def require_ffmpeg(location: str | None = None) -> Path:
    """Locate ffmpeg or raise :class:`FfmpegNotFoundError`."""
    status = detect_ffmpeg(location)
    if not status.found or status.path is None:
        hint_lines: list[str] = []
        if status.install_commands:
            hint_lines.append("Install ffmpeg using one of:")
            hint_lines.extend(f"  {cmd}" for cmd in status.install_commands)
        if location is not None:
            hint_lines.append("Or fix YTD_STREAM_FFMPEG_LOCATION.")
        raise FfmpegNotFoundError(
            f"ffmpeg is {status.version_hint}.",
            hint="\n".join(hint_lines) if hint_lines else None,
        )
    return status.path


def _locate(location: str | None) -> str | None:
    if location is None:
        return shutil.which(FFMPEG)
    candidate = Path(location).expanduser()
    if candidate.is_dir():
        return shutil.which(FFMPEG, path=str(candidate))
    return shutil.which(str(candidate))


# ---------------------------------------------------------------------------
# Platform-specific install guidance
# ---------------------------------------------------------------------------

def _platform_install_commands() -> tuple[str, ...]:
    """Return install commands appropriate for the current OS."""
    system = platform.system().lower()
    if system == "windows":
        return (
            "winget install Gyan.FFmpeg",
            "choco install ffmpeg",
        )
    if system == "linux":
        return (
            "sudo apt install ffmpeg",
            "sudo dnf install ffmpeg",
            "sudo pacman -S ffmpeg",
        )
    if system == "darwin":
        return ("brew install ffmpeg",)
    return ("Please install ffmpeg from https://ffmpeg.org/download.html",)
