"""``ytd-stream doctor`` — environment diagnostics command.

Checks what the service needs at runtime and renders a Rich table:
the yt-dlp Python package (analyze), the yt-dlp executable (streaming),
ffmpeg (merging and audio transcoding) and the configured audio
encoder.

This module lives in the CLI layer — it may import from ``infra``
and ``core``, and it renders via Rich.  No business logic resides
here; it purely collects and displays diagnostic data.
"""

from __future__ import annotations

import platform
import shutil
import sys

from rich.table import Table

from ytd_stream.cli import exit_codes
from ytd_stream.cli.console import console
from ytd_stream.config import ServiceConfig
from ytd_stream.infra.ffmpeg_detector import detect_ffmpeg
from ytd_stream.infra.ytdlp_command import AUDIO_ENCODERS
from ytd_stream.version import __version__

OK = "[green]OK[/green]"
WARN = "[yellow]WARN[/yellow]"
FAIL = "[red]FAIL[/red]"

Check = tuple[str, str, str]


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> Check:
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    return "Python", version, OK if ok else "[red]FAIL (>=3.10 required)[/red]"


def _ytdlp_module_check() -> Check:
    """The Python package drives ``/api/analyze``."""
    try:
        from yt_dlp.version import __version__ as ydl_ver
    except ImportError:
        return "yt-dlp (module)", "NOT INSTALLED", FAIL
    return "yt-dlp (module)", ydl_ver, OK


def _ytdlp_executable_check(config: ServiceConfig) -> Check:
    """The executable is what download requests spawn."""
    resolved = shutil.which(config.ytdlp_path)
    if resolved is None:
        return "yt-dlp (exe)", f"{config.ytdlp_path} not found", FAIL
    return "yt-dlp (exe)", resolved, OK


def _ffmpeg_check(config: ServiceConfig) -> Check:
    status = detect_ffmpeg(config.ffmpeg_location)
    if status.found:
        return "ffmpeg", str(status.path) if status.path else "found", OK
    return "ffmpeg", "not found", WARN


def _audio_format_check(config: ServiceConfig) -> Check:
    value = f"{config.audio_format} @ {config.audio_bitrate}"
    if config.audio_format in AUDIO_ENCODERS:
        return "Audio format", value, OK
    return "Audio format", value, "[red]FAIL (unsupported)[/red]"


def _os_check() -> Check:
    system_raw = platform.system()
    system_display = {"Darwin": "macOS"}.get(system_raw, system_raw)
    value = f"{system_display} {platform.release()} ({platform.machine()})"
    return "OS", value, OK


def collect_checks(config: ServiceConfig) -> list[Check]:
    return [
        ("ytd-stream", __version__, OK),
        _python_version_check(),
        _ytdlp_module_check(),
        _ytdlp_executable_check(config),
        _ffmpeg_check(config),
        _audio_format_check(config),
        _os_check(),
    ]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(config: ServiceConfig | None = None) -> int:
    """Execute all diagnostic checks and render a Rich summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all critical checks pass,
        :data:`exit_codes.GENERAL_ERROR` if a critical check fails.
    """
    cfg = config or ServiceConfig()
    checks = collect_checks(cfg)
    has_failure = any("FAIL" in status for _, _, status in checks)

    table = Table(
        title="ytd-stream doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, value, status)

    console.print()
    console.print(table)
    console.print()

    ffmpeg_status = detect_ffmpeg(cfg.ffmpeg_location)
    if not ffmpeg_status.found and ffmpeg_status.install_commands:
        console.print(
            "[yellow]ffmpeg is not installed.[/yellow] "
            "Muxed video and audio downloads will fail."
        )
        console.print("Install using one of the following commands:\n")
        for cmd in ffmpeg_status.install_commands:
            console.print(f"  [bold]{cmd}[/bold]")
        console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR

    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
