"""Tests for file-name and header helpers (core/naming.py)."""

from __future__ import annotations

import pytest

from ytd_stream.core.naming import (
    attachment_name,
    content_disposition,
    content_type_for,
    extension_for,
    safe_file_name,
)

HOSTILE_TITLES = [
    "../../etc/passwd",
    "..\\..\\windows\\system32",
    'evil"\r\nSet-Cookie: a=b',
    "tab\there\x00nul\x1bescape",
    "/",
    "....",
    "",
    "   ",
    "日本語のタイトル",
    "a" * 500,
]


class TestSafeFileName:
    def test_plain_title(self) -> None:
        assert safe_file_name("My Video (Live) - 2024") == "My_Video_(Live)_-_2024"

    def test_whitespace_collapsed(self) -> None:
        assert safe_file_name("a   b  c") == "a_b_c"

    def test_disallowed_characters_dropped(self) -> None:
        assert safe_file_name("a/b\\c:d*e?f|g\th") == "abcdefgh"

    def test_accents_folded(self) -> None:
        assert safe_file_name("Café Résumé") == "Cafe_Resume"

    def test_trailing_separators_stripped(self) -> None:
        assert safe_file_name("  title... ") == "title"
        assert safe_file_name("-_title_-") == "title"

    def test_truncated(self) -> None:
        assert len(safe_file_name("x" * 500)) == 120
        assert safe_file_name("abcdef", max_length=3) == "abc"

    def test_fallback_when_nothing_survives(self) -> None:
        assert safe_file_name("日本語", "video") == "video"
        assert safe_file_name(None, "audio") == "audio"

    def test_fallback_is_sanitized_too(self) -> None:
        assert safe_file_name("", "../x") == "x"

    def test_last_resort(self) -> None:
        assert safe_file_name("", "") == "download"
        assert safe_file_name("///", "\\\\") == "download"

    @pytest.mark.parametrize("title", HOSTILE_TITLES)
    def test_never_unsafe(self, title: str) -> None:
        name = safe_file_name(title)
        assert name
        assert "/" not in name
        assert "\\" not in name
        assert '"' not in name
        assert not any(ord(ch) < 32 or ord(ch) == 127 for ch in name)
        assert name not in (".", "..")


class TestAttachmentName:
    def test_title_and_ext(self) -> None:
        assert attachment_name("Song Title", "mp3") == "Song_Title.mp3"

    def test_fallback(self) -> None:
        assert attachment_name(None, "mp4", "video") == "video.mp4"

    def test_ext_sanitized(self) -> None:
        assert attachment_name("a", 'mp4"\r\n') == "a.mp4"

    def test_no_ext(self) -> None:
        assert attachment_name("a", "") == "a"


class TestHeaders:
    def test_content_disposition(self) -> None:
        assert content_disposition("a.mp4") == 'attachment; filename="a.mp4"'

    @pytest.mark.parametrize(
        ("ext", "expected"),
        [
            ("mp4", "video/mp4"),
            ("ts", "video/mp2t"),
            ("WEBM", "video/webm"),
            (".mkv", "video/x-matroska"),
            ("mp3", "audio/mpeg"),
            ("m4a", "audio/mp4"),
            ("opus", "audio/ogg"),
            ("jpg", "image/jpeg"),
            ("webp", "image/webp"),
            ("png", "image/png"),
            ("xyz", "application/octet-stream"),
            (None, "application/octet-stream"),
        ],
    )
    def test_content_type_for(self, ext: str | None, expected: str) -> None:
        assert content_type_for(ext) == expected

    def test_extension_for(self) -> None:
        assert extension_for("image/png") == "png"
        assert extension_for("image/jpeg; charset=binary") == "jpg"
        assert extension_for("text/html", "jpg") == "jpg"
        assert extension_for(None) == "bin"
