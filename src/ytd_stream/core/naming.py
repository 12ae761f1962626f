"""File-name and response-header helpers.

Titles come straight from third-party metadata, so everything here
assumes hostile input: path separators, control characters, quotes
and CR/LF must never reach a file name or a header value.
"""

from __future__ import annotations

import re
import unicodedata

DEFAULT_FALLBACK = "download"
MAX_FILENAME_LENGTH = 120

_DISALLOWED = re.compile(r"[^A-Za-z0-9 ._()\-]")
_WHITESPACE = re.compile(r"\s+")
_EDGE_SEPARATORS = "._- "

_CONTENT_TYPES: dict[str, str] = {
    "mp4": "video/mp4",
    "m4v": "video/mp4",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    "ts": "video/mp2t",
    "mov": "video/quicktime",
    "3gp": "video/3gpp",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "opus": "audio/ogg",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "wav": "audio/wav",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
}


def _sanitize(raw: str, max_length: int) -> str:
    folded = unicodedata.normalize("NFKD", raw).encode("ascii", "ignore").decode("ascii")
    allowed = _DISALLOWED.sub("", folded)
    collapsed = _WHITESPACE.sub("_", allowed.strip())
    return collapsed[:max_length].strip(_EDGE_SEPARATORS)


def safe_file_name(
    raw_title: str | None,
    fallback: str = DEFAULT_FALLBACK,
    *,
    max_length: int = MAX_FILENAME_LENGTH,
) -> str:
    """Derive a file-system and header safe base name from *raw_title*.

    Characters outside ``[A-Za-z0-9 ._()-]`` are dropped (accented
    letters are folded to ASCII first), whitespace runs collapse to a
    single ``_``, the result is cut to *max_length* and leading or
    trailing separators are stripped.  Never returns an empty string.
    """
    for candidate in (raw_title or "", fallback or ""):
        cleaned = _sanitize(candidate, max_length)
        if cleaned:
            return cleaned
    return DEFAULT_FALLBACK


def attachment_name(raw_title: str | None, ext: str, fallback: str = DEFAULT_FALLBACK) -> str:
    """``safe_file_name`` plus a sanitized extension."""
    base = safe_file_name(raw_title, fallback)
    clean_ext = re.sub(r"[^A-Za-z0-9]", "", ext or "")
    return f"{base}.{clean_ext}" if clean_ext else base


def content_disposition(filename: str) -> str:
    """Build an ``attachment`` disposition for an already safe *filename*."""
    return f'attachment; filename="{filename}"'


def content_type_for(ext: str | None) -> str:
    return _CONTENT_TYPES.get((ext or "").lower().lstrip("."), "application/octet-stream")


def extension_for(content_type: str | None, default: str = "bin") -> str:
    """Reverse of :func:`content_type_for`; first matching extension wins."""
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    for ext, known in _CONTENT_TYPES.items():
        if known == media_type:
            return ext
    return default
