"""Allow ``python -m ytd_stream`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m ytd_stream`` behaves identically to the ``ytd-stream``
console script.
"""

from __future__ import annotations

from ytd_stream.cli.app import cli

if __name__ == "__main__":
    cli()
