"""Rendition catalog rendering for ``ytd-stream formats``.

Display only — no business logic, no downloading, no metadata parsing.
The table goes to the stderr console; ``--json`` output goes to stdout
so it can be piped.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from ytd_stream.cli.console import console
from ytd_stream.core.models import MediaInfo, Rendition


# ---------------------------------------------------------------------------
# Presentation helpers (pure transforms, no I/O)
# ---------------------------------------------------------------------------

def _format_filesize(size_bytes: int) -> str:
    """Convert bytes to a human-readable MB string, or ``"Unknown"``."""
    if size_bytes <= 0:
        return "Unknown"
    mb = size_bytes / (1024 * 1024)
    return f"{mb:.1f} MB"


def _format_fps(fps: float | None) -> str:
    if fps is None:
        return "-"
    return f"{fps:g}"


def _rendition_row(index: int, rendition: Rendition) -> tuple[str, ...]:
    return (
        str(index),
        rendition.format_id,
        rendition.resolution,
        _format_fps(rendition.fps),
        rendition.ext,
        rendition.note or "",
        _format_filesize(rendition.size_bytes),
    )


# ---------------------------------------------------------------------------
# Public renderers
# ---------------------------------------------------------------------------

def print_media_info(media: MediaInfo) -> None:
    """Print title, duration and a table of the catalog."""
    console.print(f"[bold cyan]Title:[/bold cyan]    {media.title}")
    if media.formatted_duration:
        console.print(f"[bold cyan]Duration:[/bold cyan] {media.formatted_duration}")
    if media.uploader:
        console.print(f"[bold cyan]Uploader:[/bold cyan] {media.uploader}")
    console.print()

    if not media.video_formats:
        console.print("[yellow]No downloadable video resolutions.[/yellow]")
        return

    table = Table(
        title="Available Renditions",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Format", justify="left")
    table.add_column("Resolution", justify="left", min_width=10)
    table.add_column("FPS", justify="right", min_width=5)
    table.add_column("Container", justify="left", min_width=8)
    table.add_column("Note", justify="left")
    table.add_column("Size", justify="right", min_width=10)

    for i, rendition in enumerate(media.video_formats, start=1):
        table.add_row(*_rendition_row(i, rendition))

    console.print(table)
    console.print()


def print_media_json(media: MediaInfo) -> None:
    """Write the analyze response body to stdout."""
    Console(highlight=False).print_json(data=media.to_dict())
