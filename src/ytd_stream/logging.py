"""Logging setup for the service.

Modules log through ``logging.getLogger(__name__)``; this module only
decides where records go.  Records are rendered by Rich on stderr so
the server output matches the CLI's console styling.
"""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from ytd_stream.cli.console import console

PACKAGE_LOGGER = "ytd_stream"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single :class:`RichHandler` to the package logger.

    Calling this more than once only updates the level.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
    return logger
