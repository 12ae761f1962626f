"""Subprocess-backed :class:`~ytd_stream.core.protocols.ProcessLauncher`.

Engine processes are started in their own session so that termination
reaches the whole process group: yt-dlp hands merging and transcoding
to an ffmpeg child that inherits the stdout pipe, and that child must
not outlive the request.

All ``OSError`` variants raised while spawning are mapped to
:class:`~ytd_stream.exceptions.StartupError`.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import sys
from collections.abc import Sequence

from ytd_stream.exceptions import StartupError

RELEASE_TIMEOUT_SECONDS = 2.0

_POSIX = sys.platform != "win32"


class SubprocessEngine:
    """Wraps an :class:`asyncio.subprocess.Process` started by the launcher."""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process
        self._released = False

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def stdout(self) -> asyncio.StreamReader:
        assert self._process.stdout is not None
        return self._process.stdout

    @property
    def stderr(self) -> asyncio.StreamReader:
        assert self._process.stderr is not None
        return self._process.stderr

    async def wait(self) -> int:
        return await self._process.wait()

    def terminate(self) -> None:
        self._signal(signal.SIGTERM if _POSIX else None)

    def kill(self) -> None:
        self._signal(signal.SIGKILL if _POSIX else None)

    def _signal(self, sig: signal.Signals | None) -> None:
        if self._process.returncode is not None:
            return
        if sig is None:
            self._process.kill()
            return
        try:
            os.killpg(self._process.pid, sig)
        except ProcessLookupError:
            # Group already gone; signal the leader in case it was reparented.
            self._process.send_signal(sig)

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        if _POSIX:
            # Grandchildren (ffmpeg) may still hold the pipes.
            with contextlib.suppress(ProcessLookupError, PermissionError):
                os.killpg(self._process.pid, signal.SIGKILL)
        for reader in (self._process.stdout, self._process.stderr):
            if reader is None:
                continue
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(_drain(reader), timeout=RELEASE_TIMEOUT_SECONDS)


async def _drain(reader: asyncio.StreamReader) -> None:
    while await reader.read(64 * 1024):
        pass


class SubprocessLauncher:
    """Concrete :class:`ProcessLauncher` using :mod:`asyncio` subprocesses."""

    async def launch(self, argv: Sequence[str]) -> SubprocessEngine:
        """Start *argv* with stdout and stderr piped, stdin closed.

        Raises
        ------
        StartupError
            When the executable is missing, not executable, or the OS
            refuses to create the process.
        """
        if not argv:
            raise StartupError("No command to run.")

        executable = argv[0]
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=_POSIX,
            )
        except FileNotFoundError as exc:
            raise StartupError(
                f"Engine executable not found: {executable}",
                hint="Install yt-dlp or set YTD_STREAM_YTDLP_PATH.",
            ) from exc
        except PermissionError as exc:
            raise StartupError(
                f"Engine executable is not runnable: {executable}",
            ) from exc
        except OSError as exc:
            raise StartupError(f"Could not start engine: {exc}") from exc

        return SubprocessEngine(process)
