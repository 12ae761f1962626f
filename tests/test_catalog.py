"""Tests for the rendition catalog pipeline (core/catalog.py).

All functions under test are pure — no mocking required.
"""

from __future__ import annotations

import copy
from typing import Any

import pytest

from conftest import raw_format
from ytd_stream.core.catalog import (
    build_catalog,
    dedupe_by_label,
    delivered_ext,
    filter_video_renditions,
    format_duration,
    parse_raw_rendition,
    parse_raw_renditions,
    resolution_label,
    sort_by_height,
    to_rendition,
)
from ytd_stream.core.models import RawRendition, Rendition


def _raw(format_id: str = "137", **kwargs: Any) -> RawRendition:
    return parse_raw_rendition(raw_format(format_id, **kwargs))


def _rendition(format_id: str, label: str, size: int, height: int = 720) -> Rendition:
    return Rendition(
        format_id=format_id,
        ext="mp4",
        height=height,
        resolution=label,
        fps=None,
        note=None,
        size_bytes=size,
    )


def _catalog(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return build_catalog(parse_raw_renditions(entries)).to_list()


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParse:
    def test_all_fields(self) -> None:
        raw = parse_raw_rendition({
            "format_id": "299",
            "ext": "mp4",
            "vcodec": "avc1",
            "height": 1080,
            "fps": 60,
            "filesize": 10,
            "filesize_approx": 12,
            "resolution": "1920x1080",
            "format_note": "1080p60",
            "format": "299 - 1920x1080",
            "protocol": "https",
        })
        assert raw.format_id == "299"
        assert raw.height == 1080
        assert raw.fps == 60.0
        assert raw.filesize_approx == 12
        assert raw.resolution == "1920x1080"
        assert raw.protocol == "https"

    def test_wrong_types_become_none(self) -> None:
        raw = parse_raw_rendition({
            "format_id": 18,
            "height": "tall",
            "fps": True,
            "filesize": float("nan"),
        })
        assert raw.format_id == "18"
        assert raw.ext == ""
        assert raw.height is None
        assert raw.fps is None
        assert raw.filesize is None

    def test_non_list_formats(self) -> None:
        assert parse_raw_renditions(None) == []
        assert parse_raw_renditions("nope") == []

    def test_non_dict_entries_skipped(self) -> None:
        parsed = parse_raw_renditions([raw_format("1"), "junk", 42, None])
        assert [r.format_id for r in parsed] == ["1"]


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------

class TestFilter:
    @pytest.mark.parametrize("vcodec", [None, "none", ""])
    def test_no_video_dropped(self, vcodec: str | None) -> None:
        assert filter_video_renditions([_raw(vcodec=vcodec)]) == []

    def test_video_kept(self) -> None:
        raw = _raw(vcodec="vp9")
        assert filter_video_renditions([raw]) == [raw]

    def test_muxed_kept(self) -> None:
        raw = parse_raw_rendition(raw_format("18", vcodec="avc1", acodec="mp4a"))
        assert filter_video_renditions([raw]) == [raw]


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

class TestProjection:
    def test_label_prefers_engine_resolution(self) -> None:
        assert resolution_label(_raw(resolution="1920x1080")) == "1920x1080"

    def test_label_from_height(self) -> None:
        assert resolution_label(_raw(height=480)) == "480p"

    def test_label_unknown(self) -> None:
        assert resolution_label(_raw(height=None)) == "unknown"

    def test_size_falls_back_to_estimate(self) -> None:
        rendition = to_rendition(_raw(filesize=None, filesize_approx=777))
        assert rendition.size_bytes == 777

    def test_size_defaults_to_zero(self) -> None:
        assert to_rendition(_raw(filesize=None)).size_bytes == 0

    def test_missing_height_is_zero(self) -> None:
        assert to_rendition(_raw(height=None)).height == 0

    def test_note_falls_back_to_format(self) -> None:
        assert to_rendition(_raw(format="137 - 1080p")).note == "137 - 1080p"
        assert to_rendition(_raw(format_note="1080p", format="x")).note == "1080p"

    def test_format_description_carried(self) -> None:
        assert to_rendition(_raw(format="137 - 1920x1080 (1080p)")).format == "137 - 1920x1080 (1080p)"
        assert to_rendition(_raw()).format is None

    @pytest.mark.parametrize("protocol", ["m3u8", "m3u8_native"])
    def test_hls_delivered_as_mpegts(self, protocol: str) -> None:
        raw = _raw(protocol=protocol)
        assert raw.ext == "mp4"
        assert delivered_ext(raw) == "ts"
        assert to_rendition(raw).ext == "ts"

    @pytest.mark.parametrize("protocol", [None, "https", "http_dash_segments"])
    def test_direct_protocols_keep_ext(self, protocol: str | None) -> None:
        assert to_rendition(_raw(protocol=protocol, ext="webm")).ext == "webm"


# ---------------------------------------------------------------------------
# Deduplicate / sort
# ---------------------------------------------------------------------------

class TestDedupe:
    def test_largest_wins(self) -> None:
        kept = dedupe_by_label([
            _rendition("small", "720p", 10),
            _rendition("big", "720p", 30),
            _rendition("mid", "720p", 20),
        ])
        assert [r.format_id for r in kept] == ["big"]

    def test_equal_size_later_wins(self) -> None:
        kept = dedupe_by_label([
            _rendition("first", "720p", 10),
            _rendition("second", "720p", 10),
        ])
        assert [r.format_id for r in kept] == ["second"]

    def test_distinct_labels_kept(self) -> None:
        kept = dedupe_by_label([
            _rendition("a", "720p", 10),
            _rendition("b", "1280x720", 10),
        ])
        assert len(kept) == 2

    def test_input_not_mutated(self) -> None:
        items = [_rendition("a", "720p", 1), _rendition("b", "720p", 2)]
        snapshot = list(items)
        dedupe_by_label(items)
        assert items == snapshot


class TestSort:
    def test_height_descending_unknown_last(self) -> None:
        ordered = sort_by_height([
            _rendition("u", "unknown", 1, height=0),
            _rendition("m", "720p", 1, height=720),
            _rendition("h", "1080p", 1, height=1080),
        ])
        assert [r.format_id for r in ordered] == ["h", "m", "u"]


# ---------------------------------------------------------------------------
# build_catalog
# ---------------------------------------------------------------------------

class TestBuildCatalog:
    def test_reference_example(self) -> None:
        entries = [
            {"format_id": "a", "height": 720, "vcodec": "avc1", "filesize": 100},
            {"format_id": "b", "height": 720, "vcodec": "avc1", "filesize": 50},
            {"format_id": "c", "height": 1080, "vcodec": "avc1", "filesize": 200},
            {"format_id": "d", "vcodec": "none"},
        ]
        catalog = _catalog(entries)
        assert [(e["formatId"], e["height"]) for e in catalog] == [("c", 1080), ("a", 720)]
        assert catalog[1]["filesize"] == 100
        assert catalog[1]["resolution"] == "720p"

    def test_empty_input(self) -> None:
        assert _catalog([]) == []

    def test_audio_only_input(self) -> None:
        entries = [raw_format("140", vcodec="none"), raw_format("251", vcodec=None)]
        assert _catalog(entries) == []

    def test_one_entry_per_label_with_max_size(self) -> None:
        entries = [
            raw_format("1", height=720, filesize=5),
            raw_format("2", height=720, filesize=None, filesize_approx=9),
            raw_format("3", height=480, filesize=7),
            raw_format("4", height=480, filesize=3),
            raw_format("5", height=None, filesize=1),
        ]
        catalog = _catalog(entries)
        labels = [e["resolution"] for e in catalog]
        assert len(labels) == len(set(labels))
        sizes = {e["resolution"]: e["filesize"] for e in catalog}
        assert sizes == {"720p": 9, "480p": 7, "unknown": 1}

    def test_sorted_non_increasing(self) -> None:
        entries = [raw_format(str(h), height=h) for h in (360, 1440, 720, 144, 1080)]
        heights = [e["height"] for e in _catalog(entries)]
        assert heights == sorted(heights, reverse=True)

    def test_idempotent_and_input_untouched(self) -> None:
        entries = [raw_format("a", height=720), raw_format("b", height=1080)]
        snapshot = copy.deepcopy(entries)
        first = _catalog(entries)
        second = _catalog(entries)
        assert first == second
        assert entries == snapshot

    def test_to_dict_keys(self) -> None:
        entry = _catalog([raw_format("137", fps=30, format_note="1080p", format="137 - 1920x1080 (1080p)")])[0]
        assert entry == {
            "formatId": "137",
            "ext": "mp4",
            "height": 1080,
            "resolution": "1080p",
            "fps": 30.0,
            "note": "1080p",
            "format": "137 - 1920x1080 (1080p)",
            "filesize": 50_000_000,
        }


# ---------------------------------------------------------------------------
# format_duration
# ---------------------------------------------------------------------------

class TestFormatDuration:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "0:00"),
            (59, "0:59"),
            (61, "1:01"),
            (212.7, "3:32"),
            (3600, "1:00:00"),
            (3725, "1:02:05"),
        ],
    )
    def test_rendering(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected

    @pytest.mark.parametrize("value", [None, "12", True])
    def test_non_numeric(self, value: object) -> None:
        assert format_duration(value) == ""
