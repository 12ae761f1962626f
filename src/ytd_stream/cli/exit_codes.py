"""Process exit codes returned by ``ytd-stream`` commands."""

from __future__ import annotations

SUCCESS: int = 0
"""Command finished; for ``serve``, the server shut down cleanly."""

GENERAL_ERROR: int = 1
"""A YtdStreamError was rendered, or ``doctor`` found a failing check."""

UNEXPECTED_ERROR: int = 2
"""An exception outside the YtdStreamError hierarchy reached the CLI."""

KEYBOARD_INTERRUPT: int = 130
"""Ctrl+C (128 + SIGINT)."""
