"""Shared Rich console for CLI output and log rendering.

Everything user-facing goes to stderr so that stdout stays clean for
piping (``ytd-stream formats --json``).
"""

from __future__ import annotations

from rich.console import Console


def get_rich_console() -> Console:
    """Create a Rich console instance targeting stderr."""
    return Console(stderr=True)


console = get_rich_console()
