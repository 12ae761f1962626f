"""yt-dlp invocation options built from the immutable service config.

Both the Python-API metadata provider and the streaming command line
derive their options from the same :class:`ServiceConfig` value, fresh
on every call.  Nothing here is cached or mutated between requests.
"""

from __future__ import annotations

from typing import Any

from ytd_stream.config import ServiceConfig
from ytd_stream.core.models import OutputPlan
from ytd_stream.exceptions import EnvironmentError

STDOUT = "-"

# target container -> (ffmpeg audio encoder, ffmpeg muxer)
AUDIO_ENCODERS: dict[str, tuple[str, str]] = {
    "mp3": ("libmp3lame", "mp3"),
    "aac": ("aac", "adts"),
    "opus": ("libopus", "ogg"),
    "ogg": ("libvorbis", "ogg"),
    "flac": ("flac", "flac"),
    "wav": ("pcm_s16le", "wav"),
}


def base_api_options(config: ServiceConfig) -> dict[str, Any]:
    """Options shared by every ``yt_dlp.YoutubeDL`` instance."""
    opts: dict[str, Any] = {
        "quiet": True,
        "no_warnings": True,
        "no_color": True,
        "noplaylist": True,
        "prefer_free_formats": config.prefer_free_formats,
        "nocheckcertificate": not config.check_certificates,
    }
    if config.referer:
        opts["http_headers"] = {"Referer": config.referer}
    if config.ffmpeg_location:
        opts["ffmpeg_location"] = config.ffmpeg_location
    return opts


def metadata_options(config: ServiceConfig) -> dict[str, Any]:
    """Options for metadata-only extraction (nothing written to disk)."""
    return {**base_api_options(config), "skip_download": True}


def base_cli_args(config: ServiceConfig) -> list[str]:
    """Command-line equivalent of :func:`base_api_options`."""
    args = ["--no-warnings", "--no-progress", "--no-playlist"]
    if config.prefer_free_formats:
        args.append("--prefer-free-formats")
    if not config.check_certificates:
        args.append("--no-check-certificates")
    if config.referer:
        args += ["--referer", config.referer]
    if config.ffmpeg_location:
        args += ["--ffmpeg-location", config.ffmpeg_location]
    return args


def transcode_args(plan: OutputPlan) -> list[str]:
    """Route the download through ffmpeg, re-encoding audio on the fly.

    yt-dlp skips post-processors when writing to stdout, so conversion
    is done by the ffmpeg downloader's output arguments instead.

    Raises
    ------
    EnvironmentError
        When the configured audio format has no streaming encoder.
    """
    assert plan.audio_format is not None
    try:
        encoder, muxer = AUDIO_ENCODERS[plan.audio_format]
    except KeyError as exc:
        supported = ", ".join(sorted(AUDIO_ENCODERS))
        raise EnvironmentError(
            f"Unsupported audio format: {plan.audio_format}",
            hint=f"Set YTD_STREAM_AUDIO_FORMAT to one of: {supported}",
        ) from exc

    ffmpeg_out = f"-vn -acodec {encoder}"
    if plan.audio_bitrate and encoder not in ("flac", "pcm_s16le"):
        ffmpeg_out += f" -b:a {plan.audio_bitrate}"
    ffmpeg_out += f" -f {muxer}"
    return ["--downloader", "ffmpeg", "--downloader-args", f"ffmpeg_o:{ffmpeg_out}"]


def build_stream_command(
    config: ServiceConfig,
    source_url: str,
    selection: str,
    plan: OutputPlan,
) -> list[str]:
    """Return the argv that streams *source_url* to stdout.

    Example::

        yt-dlp --no-warnings ... -f 137+bestaudio/best
               --merge-output-format mkv -o - -- https://...
    """
    argv = [config.ytdlp_path, *base_cli_args(config), "-f", selection]
    if plan.merge_container:
        argv += ["--merge-output-format", plan.merge_container]
    if plan.audio_format:
        argv += transcode_args(plan)
    argv += ["-o", STDOUT, "--", source_url]
    return argv
