"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure and web adapters must
satisfy.  Core code depends ONLY on these protocols — never on
concrete implementations — preserving the dependency inversion
principle and letting tests drive the orchestrator with fakes.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol


class MetadataProvider(Protocol):
    """Contract for metadata extraction backends.

    Any object that implements these methods with the correct
    signatures satisfies this protocol structurally (no explicit
    inheritance required).
    """

    def fetch_info(self, url: str) -> dict[str, Any]:
        """Fetch raw metadata for *url* and return a provider-specific dict.

        The returned dict should contain ``"title"``, ``"duration"``,
        ``"thumbnail"``, ``"uploader"`` and ``"formats"`` (a list of
        format dicts).  Missing keys are tolerated by the caller.

        Implementations must map all backend-specific exceptions to
        :class:`~ytd_stream.exceptions.YtdStreamError` subclasses.

        Raises
        ------
        MetadataExtractionError
            When the backend fails to extract metadata.
        VideoUnavailableError
            When the target video is confirmed unavailable.
        """
        ...  # pragma: no cover

    def resolve_direct_url(self, url: str, selection: str) -> str | None:
        """Return the direct media URL yt-dlp picks for *selection*.

        Returns ``None`` when the backend resolved metadata but no URL.
        """
        ...  # pragma: no cover


class ByteReader(Protocol):
    """The read side of a pipe (``asyncio.StreamReader`` fits)."""

    async def read(self, n: int = -1) -> bytes:
        ...  # pragma: no cover

    async def readline(self) -> bytes:
        ...  # pragma: no cover


class EngineProcess(Protocol):
    """A running engine child process with piped stdout and stderr."""

    @property
    def pid(self) -> int:
        ...  # pragma: no cover

    @property
    def returncode(self) -> int | None:
        ...  # pragma: no cover

    @property
    def stdout(self) -> ByteReader:
        ...  # pragma: no cover

    @property
    def stderr(self) -> ByteReader:
        ...  # pragma: no cover

    async def wait(self) -> int:
        ...  # pragma: no cover

    def terminate(self) -> None:
        """Ask the process to exit (SIGTERM)."""
        ...  # pragma: no cover

    def kill(self) -> None:
        """Force the process to exit (SIGKILL)."""
        ...  # pragma: no cover

    async def release(self) -> None:
        """Drain what is left in the pipes so their handles close.

        Called once the process has exited.  Must be idempotent.
        """
        ...  # pragma: no cover


class ProcessLauncher(Protocol):
    """Spawns engine processes."""

    async def launch(self, argv: Sequence[str]) -> EngineProcess:
        """Start *argv* with stdout and stderr piped.

        Raises
        ------
        StartupError
            When the process cannot be created (missing executable,
            permission denied, resource exhaustion).
        """
        ...  # pragma: no cover


class ResponseSink(Protocol):
    """The live HTTP response body of one request.

    ``commit`` sends the status line and headers and may be called at
    most once.  After commit only ``write`` and ``finish`` are legal.
    """

    @property
    def committed(self) -> bool:
        ...  # pragma: no cover

    async def commit(self, status: int, headers: Mapping[str, str]) -> None:
        ...  # pragma: no cover

    async def write(self, chunk: bytes) -> None:
        ...  # pragma: no cover

    async def finish(self) -> None:
        """End the body normally."""
        ...  # pragma: no cover

    async def wait_closed(self) -> None:
        """Return once the client has gone away."""
        ...  # pragma: no cover
