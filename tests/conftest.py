"""Shared pytest fixtures and fakes for the ytd-stream test suite.

Guidelines
----------
* No internet access in any test.
* yt-dlp is mocked at the provider boundary; httpx through
  ``MockTransport``.
* Orchestrator tests drive fake processes and sinks, plus a few real
  ``sys.executable`` children for signal handling.
* Async code is run with ``asyncio.run`` inside plain test functions.
"""

from __future__ import annotations

import asyncio
import itertools
from collections import deque
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

import pytest

from ytd_stream.config import ServiceConfig

_PIDS = itertools.count(40_000)


# ---------------------------------------------------------------------------
# Fake engine process
# ---------------------------------------------------------------------------

class FakeReader:
    """Pipe read side fed from a list of chunks.

    When *blocking*, an exhausted reader waits until :meth:`close`
    instead of returning EOF, like the pipe of a still-running process.
    """

    def __init__(self, chunks: Iterable[bytes] = (), *, blocking: bool = False) -> None:
        self._chunks: deque[bytes] = deque(chunks)
        self._blocking = blocking
        self._closed = asyncio.Event()

    def close(self) -> None:
        self._closed.set()

    async def read(self, n: int = -1) -> bytes:
        if self._chunks:
            return self._chunks.popleft()
        if self._blocking:
            await self._closed.wait()
        return b""

    async def readline(self) -> bytes:
        return await self.read()


class FakeProcess:
    """Scripted stand-in for a yt-dlp child process.

    A non-hanging process has already exited with *exit_code*; its
    pipes hold *chunks* and *stderr* and then report EOF.  A hanging
    process keeps its pipes open until it is signalled.
    """

    def __init__(
        self,
        chunks: Sequence[bytes] = (),
        *,
        exit_code: int = 0,
        stderr: Sequence[str] = (),
        hang: bool = False,
        ignore_terminate: bool = False,
    ) -> None:
        self.pid = next(_PIDS)
        self.returncode: int | None = None
        self.stdout = FakeReader(chunks, blocking=hang)
        self.stderr = FakeReader((line.encode() + b"\n" for line in stderr), blocking=hang)
        self.signals: list[str] = []
        self.release_calls = 0
        self._ignore_terminate = ignore_terminate
        self._exited = asyncio.Event()
        if not hang:
            self._exit(exit_code)

    def _exit(self, code: int) -> None:
        if self.returncode is None:
            self.returncode = code
        self.stdout.close()
        self.stderr.close()
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode

    def terminate(self) -> None:
        self.signals.append("TERM")
        if not self._ignore_terminate:
            self._exit(-15)

    def kill(self) -> None:
        self.signals.append("KILL")
        self._exit(-9)

    async def release(self) -> None:
        self.release_calls += 1


class FakeLauncher:
    """Records every argv and returns a fresh process from *factory*."""

    def __init__(
        self,
        factory: Callable[[], FakeProcess] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self._factory = factory or FakeProcess
        self._error = error
        self.argvs: list[list[str]] = []
        self.processes: list[FakeProcess] = []

    async def launch(self, argv: Sequence[str]) -> FakeProcess:
        self.argvs.append(list(argv))
        if self._error is not None:
            raise self._error
        process = self._factory()
        self.processes.append(process)
        return process


# ---------------------------------------------------------------------------
# Fake response sink
# ---------------------------------------------------------------------------

class FakeSink:
    """In-memory :class:`ResponseSink`.

    *close_after* simulates a client that disconnects once it has
    received that many chunks.
    """

    def __init__(self, *, close_after: int | None = None) -> None:
        self.status: int | None = None
        self.headers: dict[str, str] = {}
        self.chunks: list[bytes] = []
        self.commit_calls = 0
        self.finished = False
        self._close_after = close_after
        self._closed = asyncio.Event()

    @property
    def committed(self) -> bool:
        return self.commit_calls > 0

    @property
    def body(self) -> bytes:
        return b"".join(self.chunks)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    async def commit(self, status: int, headers: Mapping[str, str]) -> None:
        self.commit_calls += 1
        if self.commit_calls > 1:
            raise RuntimeError("response headers already committed")
        self.status = status
        self.headers = dict(headers)

    async def write(self, chunk: bytes) -> None:
        if self.closed:
            return
        self.chunks.append(chunk)
        if self._close_after is not None and len(self.chunks) >= self._close_after:
            self.close()

    async def finish(self) -> None:
        self.finished = True

    async def wait_closed(self) -> None:
        await self._closed.wait()


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

def raw_format(
    format_id: str = "137",
    *,
    height: int | None = 1080,
    vcodec: str | None = "avc1.640028",
    ext: str = "mp4",
    filesize: int | None = 50_000_000,
    **extra: Any,
) -> dict[str, Any]:
    """Factory for a raw format dict shaped like yt-dlp output."""
    entry: dict[str, Any] = {
        "format_id": format_id,
        "ext": ext,
        "height": height,
        "vcodec": vcodec,
        "filesize": filesize,
    }
    entry.update(extra)
    return entry


@pytest.fixture
def config() -> ServiceConfig:
    return ServiceConfig(kill_grace_seconds=0.2)
