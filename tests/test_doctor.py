"""Tests for the ``ytd-stream doctor`` command (cli/doctor.py).

ffmpeg and the yt-dlp executable are mocked — no system dependency,
no internet.
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ytd_stream.cli import exit_codes
from ytd_stream.cli.doctor import (
    _audio_format_check,
    _ffmpeg_check,
    _os_check,
    _python_version_check,
    _ytdlp_executable_check,
    _ytdlp_module_check,
    collect_checks,
    run_doctor,
)
from ytd_stream.config import ServiceConfig
from ytd_stream.infra.ffmpeg_detector import FfmpegStatus
from ytd_stream.version import __version__


def _ffmpeg_found() -> FfmpegStatus:
    return FfmpegStatus(
        found=True,
        path=Path("/usr/bin/ffmpeg"),
        version_hint="found at /usr/bin/ffmpeg",
        install_commands=(),
    )


def _ffmpeg_missing() -> FfmpegStatus:
    return FfmpegStatus(
        found=False,
        path=None,
        version_hint="not found",
        install_commands=("brew install ffmpeg",),
    )


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------

class TestChecks:
    def test_python(self) -> None:
        label, value, status = _python_version_check()
        assert label == "Python"
        assert "OK" in status

    def test_ytdlp_module_installed(self) -> None:
        label, _value, status = _ytdlp_module_check()
        assert label == "yt-dlp (module)"
        assert "OK" in status

    @patch.dict("sys.modules", {"yt_dlp": None, "yt_dlp.version": None})
    def test_ytdlp_module_missing(self) -> None:
        _label, value, status = _ytdlp_module_check()
        assert value == "NOT INSTALLED"
        assert "FAIL" in status

    @patch("ytd_stream.cli.doctor.shutil.which", return_value="/usr/local/bin/yt-dlp")
    def test_ytdlp_executable_found(self, mock_which: MagicMock) -> None:
        _label, value, status = _ytdlp_executable_check(ServiceConfig())
        assert value == "/usr/local/bin/yt-dlp"
        assert "OK" in status
        mock_which.assert_called_once_with("yt-dlp")

    @patch("ytd_stream.cli.doctor.shutil.which", return_value=None)
    def test_ytdlp_executable_missing(self, _mock_which: MagicMock) -> None:
        _label, value, status = _ytdlp_executable_check(ServiceConfig(ytdlp_path="/opt/yt"))
        assert "/opt/yt" in value
        assert "FAIL" in status

    @patch("ytd_stream.cli.doctor.detect_ffmpeg")
    def test_ffmpeg_missing_is_warning(self, mock_detect: MagicMock) -> None:
        mock_detect.return_value = _ffmpeg_missing()
        _label, _value, status = _ffmpeg_check(ServiceConfig(ffmpeg_location="/opt/ff"))
        assert "WARN" in status
        mock_detect.assert_called_once_with("/opt/ff")

    def test_audio_format(self) -> None:
        assert "OK" in _audio_format_check(ServiceConfig())[2]
        assert "FAIL" in _audio_format_check(ServiceConfig(audio_format="wma"))[2]

    @patch("ytd_stream.cli.doctor.platform.machine", return_value="arm64")
    @patch("ytd_stream.cli.doctor.platform.release", return_value="23.4.0")
    @patch("ytd_stream.cli.doctor.platform.system", return_value="Darwin")
    def test_darwin_displayed_as_macos(self, *_mocks: MagicMock) -> None:
        _label, value, _status = _os_check()
        assert value == "macOS 23.4.0 (arm64)"

    def test_version_row_first(self) -> None:
        assert collect_checks(ServiceConfig())[0][:2] == ("ytd-stream", __version__)


# ---------------------------------------------------------------------------
# run_doctor
# ---------------------------------------------------------------------------

class TestRunDoctor:
    @patch("ytd_stream.cli.doctor.shutil.which", return_value="/usr/bin/yt-dlp")
    @patch("ytd_stream.cli.doctor.detect_ffmpeg")
    def test_all_pass(
        self,
        mock_detect: MagicMock,
        _mock_which: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_detect.return_value = _ffmpeg_found()
        assert run_doctor(ServiceConfig()) == exit_codes.SUCCESS
        assert "All checks passed" in capsys.readouterr().err

    @patch("ytd_stream.cli.doctor.shutil.which", return_value="/usr/bin/yt-dlp")
    @patch("ytd_stream.cli.doctor.detect_ffmpeg")
    def test_ffmpeg_missing_still_succeeds(
        self,
        mock_detect: MagicMock,
        _mock_which: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_detect.return_value = _ffmpeg_missing()
        assert run_doctor(ServiceConfig()) == exit_codes.SUCCESS
        assert "brew install ffmpeg" in capsys.readouterr().err

    @patch("ytd_stream.cli.doctor.shutil.which", return_value=None)
    @patch("ytd_stream.cli.doctor.detect_ffmpeg")
    def test_missing_executable_fails(self, mock_detect: MagicMock, _mock_which: MagicMock) -> None:
        mock_detect.return_value = _ffmpeg_found()
        assert run_doctor(ServiceConfig()) == exit_codes.GENERAL_ERROR

    @patch("ytd_stream.cli.doctor.shutil.which", return_value="/usr/bin/yt-dlp")
    @patch("ytd_stream.cli.doctor.detect_ffmpeg")
    def test_missing_module_fails(
        self,
        mock_detect: MagicMock,
        _mock_which: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        mock_detect.return_value = _ffmpeg_found()
        monkeypatch.setitem(sys.modules, "yt_dlp", None)
        monkeypatch.setitem(sys.modules, "yt_dlp.version", None)
        assert run_doctor(ServiceConfig()) == exit_codes.GENERAL_ERROR
