"""Pure rendition catalog pipeline.

Every function in this module is a **pure** transformation — no I/O,
no side effects, fully deterministic, and trivially unit-testable.

Pipeline order (enforced by :func:`build_catalog`):

1. **Filter** — drop entries without a video component.
2. **Project** — turn each :class:`RawRendition` into a :class:`Rendition`.
3. **Deduplicate** — keep the largest entry per resolution label.
4. **Sort** — height descending, unknown height last.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from functools import reduce
from typing import Any

from ytd_stream.core.models import RawRendition, Rendition, RenditionCatalog


# ---------------------------------------------------------------------------
# 0. Parse
# ---------------------------------------------------------------------------

def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


def _as_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    return None


def _as_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def parse_raw_rendition(raw: Mapping[str, Any]) -> RawRendition:
    """Convert one raw yt-dlp format dict to a :class:`RawRendition`."""
    return RawRendition(
        format_id=str(raw.get("format_id", "")),
        ext=str(raw.get("ext") or ""),
        vcodec=_as_str(raw.get("vcodec")),
        height=_as_int(raw.get("height")),
        fps=_as_float(raw.get("fps")),
        filesize=_as_int(raw.get("filesize")),
        filesize_approx=_as_int(raw.get("filesize_approx")),
        resolution=_as_str(raw.get("resolution")),
        format_note=_as_str(raw.get("format_note")),
        format=_as_str(raw.get("format")),
        protocol=_as_str(raw.get("protocol")),
    )


def parse_raw_renditions(raw_formats: object) -> list[RawRendition]:
    """Parse a ``formats`` list, skipping malformed (non-dict) entries."""
    if not isinstance(raw_formats, list):
        return []
    return [parse_raw_rendition(entry) for entry in raw_formats if isinstance(entry, dict)]


# ---------------------------------------------------------------------------
# 1. Filter
# ---------------------------------------------------------------------------

def filter_video_renditions(formats: Iterable[RawRendition]) -> list[RawRendition]:
    """Return only entries that carry a video stream."""
    return [fmt for fmt in formats if fmt.has_video]


# ---------------------------------------------------------------------------
# 2. Project
# ---------------------------------------------------------------------------

def resolution_label(raw: RawRendition) -> str:
    """``raw.resolution`` if set, else ``"{height}p"``, else ``"unknown"``."""
    if raw.resolution:
        return raw.resolution
    if raw.height:
        return f"{raw.height}p"
    return "unknown"


def delivered_ext(raw: RawRendition) -> str:
    """Container the engine actually writes to stdout for *raw*.

    HLS renditions arrive as MPEG-TS segments whatever ``ext`` says.
    """
    if raw.protocol and raw.protocol.startswith("m3u8"):
        return "ts"
    return raw.ext


def to_rendition(raw: RawRendition) -> Rendition:
    """Project a raw entry onto the client-facing shape.

    Size falls back from the exact size to the estimate to ``0``.
    """
    return Rendition(
        format_id=raw.format_id,
        ext=delivered_ext(raw),
        height=raw.height or 0,
        resolution=resolution_label(raw),
        fps=raw.fps or None,
        note=raw.format_note or raw.format,
        size_bytes=raw.filesize or raw.filesize_approx or 0,
        format=raw.format,
    )


# ---------------------------------------------------------------------------
# 3. Deduplicate
# ---------------------------------------------------------------------------

def _keep_largest(
    kept: dict[str, Rendition],
    candidate: Rendition,
) -> dict[str, Rendition]:
    existing = kept.get(candidate.resolution)
    # ``>=``: a later entry of equal size replaces the earlier one.
    if existing is None or candidate.size_bytes >= existing.size_bytes:
        return {**kept, candidate.resolution: candidate}
    return kept


def dedupe_by_label(renditions: Iterable[Rendition]) -> list[Rendition]:
    """Keep one rendition per ``resolution`` label: the largest one.

    Labels keep the position of their first appearance.
    """
    reduced: dict[str, Rendition] = reduce(_keep_largest, renditions, {})
    return list(reduced.values())


# ---------------------------------------------------------------------------
# 4. Sort
# ---------------------------------------------------------------------------

def sort_by_height(renditions: Sequence[Rendition]) -> list[Rendition]:
    """Sort by height descending; height ``0`` (unknown) sorts last."""
    return sorted(renditions, key=lambda r: r.height, reverse=True)


# ---------------------------------------------------------------------------
# Composite pipeline
# ---------------------------------------------------------------------------

def build_catalog(raw_formats: Iterable[RawRendition]) -> RenditionCatalog:
    """Run the full filter → project → deduplicate → sort pipeline.

    Returns an empty catalog (not an error) when nothing qualifies.
    """
    projected = [to_rendition(fmt) for fmt in filter_video_renditions(raw_formats)]
    return RenditionCatalog(renditions=tuple(sort_by_height(dedupe_by_label(projected))))


# ---------------------------------------------------------------------------
# Presentation helper
# ---------------------------------------------------------------------------

def format_duration(seconds: object) -> str:
    """Render seconds as ``M:SS`` or ``H:MM:SS``; ``""`` for non-numbers."""
    value = _as_float(seconds)
    if value is None:
        return ""
    total = int(value)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
