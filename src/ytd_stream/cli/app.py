"""CLI application entry point and command routing for ytd-stream.

This module is the **sole error boundary** for the command line.  It
catches :class:`~ytd_stream.exceptions.YtdStreamError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Commands
--------
* ``ytd-stream serve [--host H] [--port P]`` — run the HTTP service
* ``ytd-stream doctor``                     — environment diagnostics
* ``ytd-stream formats <url> [--json]``     — print the rendition catalog
* ``ytd-stream --version``
"""

from __future__ import annotations

import argparse
import dataclasses
import sys

from ytd_stream.cli import exit_codes
from ytd_stream.cli.console import console
from ytd_stream.config import ServiceConfig
from ytd_stream.exceptions import YtdStreamError
from ytd_stream.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ytd-stream",
        description="Analyze video URLs and stream downloads over HTTP.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    commands = parser.add_subparsers(dest="command")

    serve = commands.add_parser("serve", help="Run the HTTP service.")
    serve.add_argument("--host", default=None, help="Listen address (default from env).")
    serve.add_argument("--port", type=int, default=None, help="Listen port (default from env).")
    serve.add_argument("--log-level", default=None, help="Logging level name.")

    commands.add_parser("doctor", help="Check the runtime environment.")

    formats = commands.add_parser("formats", help="List downloadable renditions of a URL.")
    formats.add_argument("url", help="Video page URL.")
    formats.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Print the analyze response body instead of a table.",
    )
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_serve(args: argparse.Namespace) -> int:
    """Run uvicorn with the application built from the merged config."""
    import uvicorn

    from ytd_stream.exceptions import FfmpegNotFoundError
    from ytd_stream.infra.ffmpeg_detector import require_ffmpeg
    from ytd_stream.logging import configure_logging
    from ytd_stream.web.app import create_app

    config = ServiceConfig.from_env()
    overrides = {
        name: value
        for name, value in (
            ("host", args.host),
            ("port", args.port),
            ("log_level", args.log_level.upper() if args.log_level else None),
        )
        if value is not None
    }
    config = dataclasses.replace(config, **overrides)

    configure_logging(config.log_level)
    try:
        require_ffmpeg(config.ffmpeg_location)
    except FfmpegNotFoundError as exc:
        console.print(f"[yellow]Warning:[/yellow] {exc} Merged and audio downloads will fail.")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")

    console.print(
        f"[bold green]ytd-stream {__version__}[/bold green] "
        f"listening on http://{config.host}:{config.port}"
    )
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )
    return exit_codes.SUCCESS


def _handle_doctor() -> int:
    from ytd_stream.cli.doctor import run_doctor

    return run_doctor(ServiceConfig.from_env())


def _handle_formats(args: argparse.Namespace) -> int:
    """Analyze one URL and print its catalog."""
    from ytd_stream.cli.formats_table import print_media_info, print_media_json
    from ytd_stream.core.metadata_service import MetadataService
    from ytd_stream.infra.ytdlp_provider import YtDlpMetadataProvider

    service = MetadataService(YtDlpMetadataProvider(ServiceConfig.from_env()))
    if not args.as_json:
        console.print(f"\n[bold]Fetching metadata…[/bold]  {args.url}\n")
    media = service.analyze(args.url)

    if args.as_json:
        print_media_json(media)
    else:
        print_media_info(media)
    return exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the ytd-stream CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return _handle_serve(args)
    if args.command == "doctor":
        return _handle_doctor()
    if args.command == "formats":
        return _handle_formats(args)

    parser.print_help()
    return exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except YtdStreamError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
