"""Format selection — map a chosen rendition and mode to engine input.

Two pure functions:

* :func:`select_format` builds the yt-dlp format expression.
* :func:`output_plan` decides the response container, content type and
  whether the engine must merge or transcode.

Validation happens here, before anything is spawned: a video mode
without a rendition id is a client error, never silently defaulted.
"""

from __future__ import annotations

from ytd_stream.config import ServiceConfig
from ytd_stream.core.models import DownloadMode, OutputPlan
from ytd_stream.core.naming import content_type_for
from ytd_stream.exceptions import MissingFormatError

BEST_AUDIO = "bestaudio"
BEST_OVERALL = "best"

# ffmpeg cannot write these containers to a pipe; yt-dlp substitutes
# MPEG-TS when the output is stdout.
PIPED_CONTAINERS: dict[str, str] = {"mp4": "ts"}


def select_format(rendition_id: str | None, mode: DownloadMode | str) -> str:
    """Build the yt-dlp format expression for *rendition_id* and *mode*.

    Rules
    -----
    * ``with-audio`` — the rendition muxed with the best audio track,
      falling back to yt-dlp's best single-file choice when muxing is
      impossible (``"137+bestaudio/best"``).
    * ``video-only`` — exactly the rendition (``"137"``).
    * ``audio`` — the best audio-only source; *rendition_id* is ignored.

    Raises
    ------
    MissingFormatError
        If a video mode is requested without *rendition_id*.
    """
    resolved = DownloadMode(mode)
    if resolved is DownloadMode.AUDIO:
        return BEST_AUDIO

    format_id = (rendition_id or "").strip()
    if not format_id:
        raise MissingFormatError("Missing format identifier")

    if resolved is DownloadMode.WITH_AUDIO:
        return f"{format_id}+{BEST_AUDIO}/{BEST_OVERALL}"
    return format_id


def output_plan(
    mode: DownloadMode | str,
    ext: str | None,
    config: ServiceConfig,
) -> OutputPlan:
    """Decide what the response body will contain.

    * ``with-audio`` merges into ``config.merge_container``; the plan
      names the container that actually reaches stdout (``mp4`` merges
      stream as ``ts``).
    * ``video-only`` keeps the rendition's own container (*ext*,
      ``mp4`` when unknown).
    * ``audio`` transcodes to ``config.audio_format``.
    """
    resolved = DownloadMode(mode)
    if resolved is DownloadMode.AUDIO:
        target = config.audio_format
        return OutputPlan(
            ext=target,
            content_type=content_type_for(target),
            audio_format=target,
            audio_bitrate=config.audio_bitrate,
        )
    if resolved is DownloadMode.WITH_AUDIO:
        container = config.merge_container
        delivered = PIPED_CONTAINERS.get(container, container)
        return OutputPlan(
            ext=delivered,
            content_type=content_type_for(delivered),
            merge_container=container,
        )
    native = (ext or "mp4").lower()
    return OutputPlan(ext=native, content_type=content_type_for(native))
