"""Immutable service configuration.

A single :class:`ServiceConfig` value is built once at startup (from
the environment, optionally overridden by CLI flags) and passed by
value into every engine invocation.  There is no module-level mutable
options object.

Environment variables
---------------------
PORT                               Listen port (falls back to ``YTD_STREAM_PORT``).
YTD_STREAM_HOST                    Listen address.
YTD_STREAM_YTDLP_PATH              yt-dlp executable used for streaming.
YTD_STREAM_FFMPEG_LOCATION         ffmpeg binary or directory passed to yt-dlp.
YTD_STREAM_REFERER                 Referer header sent by yt-dlp.
YTD_STREAM_PREFER_FREE_FORMATS     ``true``/``false``.
YTD_STREAM_CHECK_CERTIFICATES      ``true``/``false``.
YTD_STREAM_MERGE_CONTAINER         Container for muxed video+audio (``mkv``).  ``mp4``
                                   cannot be written to a pipe and arrives
                                   as MPEG-TS.
YTD_STREAM_AUDIO_FORMAT            Target container for audio downloads.
YTD_STREAM_AUDIO_BITRATE           Target bitrate for audio downloads.
YTD_STREAM_CHUNK_SIZE              Bytes per pipe read.
YTD_STREAM_KILL_GRACE_SECONDS      SIGTERM → SIGKILL escalation delay.
YTD_STREAM_RELAY_TIMEOUT_SECONDS   Upstream timeout for the asset relay.
YTD_STREAM_STATIC_DIR              Directory holding the UI ``index.html``.
YTD_STREAM_LOG_LEVEL               Logging level name.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ytd_stream.exceptions import EnvironmentError

ENV_PREFIX = "YTD_STREAM_"

_TRUE_VALUES = frozenset({"1", "true", "yes", "y", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "n", "off"})


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Settings shared by the HTTP layer and the engine invocations."""

    host: str = "127.0.0.1"
    port: int = 4000

    ytdlp_path: str = "yt-dlp"
    ffmpeg_location: str | None = None
    referer: str | None = "https://www.youtube.com/"
    prefer_free_formats: bool = True
    check_certificates: bool = False

    merge_container: str = "mkv"
    audio_format: str = "mp3"
    audio_bitrate: str = "192k"

    chunk_size: int = 64 * 1024
    kill_grace_seconds: float = 5.0
    relay_timeout_seconds: float = 30.0

    static_dir: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServiceConfig:
        """Build a config from *environ* (defaults to ``os.environ``).

        Raises
        ------
        EnvironmentError
            When a numeric or boolean variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            if value is None or not value.strip():
                return None
            return value.strip()

        port_raw = env.get("PORT") or get("PORT")
        static_raw = get("STATIC_DIR")

        return cls(
            host=get("HOST") or defaults.host,
            port=_parse_int("PORT", port_raw, defaults.port),
            ytdlp_path=get("YTDLP_PATH") or defaults.ytdlp_path,
            ffmpeg_location=get("FFMPEG_LOCATION"),
            referer=get("REFERER") or defaults.referer,
            prefer_free_formats=_parse_bool(
                "PREFER_FREE_FORMATS", get("PREFER_FREE_FORMATS"), defaults.prefer_free_formats,
            ),
            check_certificates=_parse_bool(
                "CHECK_CERTIFICATES", get("CHECK_CERTIFICATES"), defaults.check_certificates,
            ),
            merge_container=(get("MERGE_CONTAINER") or defaults.merge_container).lower(),
            audio_format=(get("AUDIO_FORMAT") or defaults.audio_format).lower(),
            audio_bitrate=get("AUDIO_BITRATE") or defaults.audio_bitrate,
            chunk_size=_parse_int("CHUNK_SIZE", get("CHUNK_SIZE"), defaults.chunk_size),
            kill_grace_seconds=_parse_float(
                "KILL_GRACE_SECONDS", get("KILL_GRACE_SECONDS"), defaults.kill_grace_seconds,
            ),
            relay_timeout_seconds=_parse_float(
                "RELAY_TIMEOUT_SECONDS", get("RELAY_TIMEOUT_SECONDS"), defaults.relay_timeout_seconds,
            ),
            static_dir=Path(static_raw) if static_raw else None,
            log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
        )


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------

def _parse_int(name: str, raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise EnvironmentError(
            f"Invalid integer for {name}: {raw!r}",
        ) from exc
    if value <= 0:
        raise EnvironmentError(f"{name} must be positive, got {value}")
    return value


def _parse_float(name: str, raw: str | None, default: float) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise EnvironmentError(
            f"Invalid number for {name}: {raw!r}",
        ) from exc
    if value <= 0:
        raise EnvironmentError(f"{name} must be positive, got {value}")
    return value


def _parse_bool(name: str, raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise EnvironmentError(
        f"Invalid boolean for {name}: {raw!r}",
        hint="Use one of: true, false, 1, 0, yes, no.",
    )
