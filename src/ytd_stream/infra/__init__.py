"""Infrastructure layer — external system integration.

This layer wraps all interaction with yt-dlp, child processes, ffmpeg
and upstream HTTP servers.  Every raw third-party exception must be
caught here and re-raised as a
:class:`~ytd_stream.exceptions.YtdStreamError` subclass.

Rules
-----
* No imports from ``cli`` or ``web``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from ytd_stream.infra.asset_relay import AssetRelay
from ytd_stream.infra.ffmpeg_detector import FfmpegStatus, detect_ffmpeg, require_ffmpeg
from ytd_stream.infra.subprocess_launcher import SubprocessLauncher
from ytd_stream.infra.ytdlp_command import build_stream_command
from ytd_stream.infra.ytdlp_provider import YtDlpMetadataProvider

__all__: list[str] = [
    "AssetRelay",
    "FfmpegStatus",
    "SubprocessLauncher",
    "YtDlpMetadataProvider",
    "build_stream_command",
    "detect_ffmpeg",
    "require_ffmpeg",
]
