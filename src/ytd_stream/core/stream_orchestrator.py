"""Stream orchestrator — pipe an engine process into a live HTTP response.

One :class:`StreamSession` per download request owns exactly one child
process and one response sink.  The session moves through explicit
states::

    SPAWNING ──► STREAMING ──► COMMITTED ──► DONE
        │            │             │
        │            └──► TERMINATING ◄──┘   (client disconnect)
        └──────────────────────────────► DONE

Commit rules
------------
* Headers (200, ``Content-Disposition``, content type) are sent when the
  first byte arrives from the process, never earlier.
* Before commit every failure is raised as a typed
  :class:`~ytd_stream.exceptions.YtdStreamError`; the caller still owns
  the status line and renders ``{"error": ...}``.
* After commit no status can change.  A failing process yields a short
  200 body, logged as :class:`~ytd_stream.exceptions.MidStreamError`
  and reported as :attr:`OutcomeKind.TRUNCATED`.
* A client disconnect is :attr:`OutcomeKind.CANCELLED`, logged at
  WARNING at most.

Whatever happens, DONE is reached exactly once and the process is
reaped before :meth:`StreamOrchestrator.stream_to_response` returns.

Backpressure is left to the pipe: each chunk is awaited into the sink
before the next read, so a slow client stalls the engine's own writes.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from collections.abc import Sequence

from ytd_stream.core.models import OutcomeKind, StreamOutcome, StreamState
from ytd_stream.core.naming import content_disposition
from ytd_stream.core.protocols import EngineProcess, ProcessLauncher, ResponseSink
from ytd_stream.exceptions import (
    MidStreamError,
    StartupError,
    StreamFailedError,
    YtdStreamError,
)

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_KILL_GRACE_SECONDS = 5.0
STDERR_TAIL_LINES = 20
STDERR_SETTLE_SECONDS = 1.0


class StreamSession:
    """Mutable state of one download; never shared between requests."""

    def __init__(self, sink: ResponseSink) -> None:
        self.sink: ResponseSink = sink
        self.process: EngineProcess | None = None
        self.headers_committed: bool = False
        self.bytes_sent: int = 0
        self.states: list[StreamState] = [StreamState.SPAWNING]
        self.stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self.stderr_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> StreamState:
        return self.states[-1]

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process is not None else None

    def transition(self, state: StreamState) -> None:
        if self.state is StreamState.DONE:
            raise RuntimeError("stream session already finished")
        logger.debug("pid=%s %s -> %s", self.pid, self.state.value, state.value)
        self.states.append(state)

    def outcome(self, kind: OutcomeKind) -> StreamOutcome:
        return StreamOutcome(
            kind=kind,
            bytes_sent=self.bytes_sent,
            returncode=self.process.returncode if self.process is not None else None,
            states=tuple(self.states),
            stderr_tail=tuple(self.stderr_tail),
        )


class StreamOrchestrator:
    """Runs engine processes and copies their stdout into response sinks.

    Parameters
    ----------
    launcher:
        Any object satisfying the :class:`ProcessLauncher` protocol.
    chunk_size:
        Maximum bytes per pipe read.
    kill_grace_seconds:
        How long a terminated process may take to exit before it is
        killed outright.
    """

    def __init__(
        self,
        launcher: ProcessLauncher,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
    ) -> None:
        self._launcher: ProcessLauncher = launcher
        self._chunk_size: int = chunk_size
        self._kill_grace: float = kill_grace_seconds

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def stream_to_response(
        self,
        argv: Sequence[str],
        sink: ResponseSink,
        *,
        filename: str,
        content_type: str,
    ) -> StreamOutcome:
        """Spawn *argv* and stream its stdout into *sink*.

        Returns
        -------
        StreamOutcome
            For every session that got its process running and did not
            fail before commit.

        Raises
        ------
        StartupError
            The process could not be spawned.  Nothing was committed.
        StreamFailedError
            The process exited before producing any output.  Nothing
            was committed.
        """
        headers = {
            "content-type": content_type,
            "content-disposition": content_disposition(filename),
            "cache-control": "no-store",
            "x-content-type-options": "nosniff",
        }
        session = StreamSession(sink)
        try:
            kind = await self._run(session, argv, headers)
        finally:
            await self._finish(session)
        return session.outcome(kind)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _run(
        self,
        session: StreamSession,
        argv: Sequence[str],
        headers: dict[str, str],
    ) -> OutcomeKind:
        try:
            session.process = await self._launcher.launch(argv)
        except StartupError as exc:
            logger.error("engine failed to start: %s", exc)
            raise
        session.transition(StreamState.STREAMING)
        logger.debug("pid=%s spawned: %s", session.pid, " ".join(argv))

        session.stderr_task = asyncio.create_task(self._drain_stderr(session))
        pump = asyncio.create_task(self._pump(session, headers))
        client_gone = asyncio.create_task(session.sink.wait_closed())
        try:
            done, _ = await asyncio.wait(
                {pump, client_gone},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if pump in done:
                return _pump_result(pump)

            pump.cancel()
            await asyncio.gather(pump, return_exceptions=True)
            return await self._cancel(session)
        finally:
            for task in (pump, client_gone):
                if not task.done():
                    task.cancel()
            await asyncio.gather(pump, client_gone, return_exceptions=True)

    async def _pump(self, session: StreamSession, headers: dict[str, str]) -> OutcomeKind:
        """Copy stdout to the sink, committing on the first byte."""
        process = session.process
        assert process is not None

        first = await process.stdout.read(self._chunk_size)
        if not first:
            return await self._fail_before_commit(session)

        await session.sink.commit(200, headers)
        session.headers_committed = True
        session.transition(StreamState.COMMITTED)

        try:
            chunk = first
            while chunk:
                await session.sink.write(chunk)
                session.bytes_sent += len(chunk)
                chunk = await process.stdout.read(self._chunk_size)
            returncode = await process.wait()
        except Exception as exc:
            error = MidStreamError(f"copy aborted after {session.bytes_sent} bytes: {exc}")
            logger.warning("pid=%s %s", session.pid, error)
            session.transition(StreamState.TERMINATING)
            await self._terminate(process)
            return OutcomeKind.TRUNCATED

        if returncode != 0:
            await self._settle_stderr(session)
            error = MidStreamError(
                f"engine exited with code {returncode} after {session.bytes_sent} bytes",
                hint=_last_line(session),
            )
            logger.warning(
                "pid=%s response truncated: %s (stderr: %s)",
                session.pid,
                error,
                error.hint or "-",
            )
            await session.sink.finish()
            return OutcomeKind.TRUNCATED

        await session.sink.finish()
        logger.info("pid=%s stream completed (%d bytes)", session.pid, session.bytes_sent)
        return OutcomeKind.COMPLETED

    async def _fail_before_commit(self, session: StreamSession) -> OutcomeKind:
        process = session.process
        assert process is not None
        returncode = await process.wait()
        await self._settle_stderr(session)
        if returncode == 0:
            message = "Engine finished without producing any data"
        else:
            message = f"Engine exited with code {returncode} before streaming"
        logger.error("pid=%s %s", session.pid, message)
        raise StreamFailedError(message, hint=_last_line(session))

    async def _cancel(self, session: StreamSession) -> OutcomeKind:
        """Client went away: stop copying and take the process down."""
        session.transition(StreamState.TERMINATING)
        logger.warning(
            "pid=%s client disconnected after %d bytes; terminating engine",
            session.pid,
            session.bytes_sent,
        )
        assert session.process is not None
        await self._terminate(session.process)
        return OutcomeKind.CANCELLED

    async def _finish(self, session: StreamSession) -> None:
        """Enter DONE: the process is reaped and every pipe drained."""
        process = session.process
        try:
            if process is not None:
                if process.returncode is None:
                    logger.debug("pid=%s still running at teardown; killing", process.pid)
                    with contextlib.suppress(ProcessLookupError):
                        process.kill()
                await process.wait()
                if session.stderr_task is not None:
                    session.stderr_task.cancel()
                    await asyncio.gather(session.stderr_task, return_exceptions=True)
                await process.release()
        finally:
            session.transition(StreamState.DONE)

    # ------------------------------------------------------------------
    # Process helpers
    # ------------------------------------------------------------------

    async def _terminate(self, process: EngineProcess) -> None:
        """SIGTERM, then SIGKILL once the grace period runs out."""
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self._kill_grace)
        except asyncio.TimeoutError:
            logger.warning(
                "pid=%s did not exit %.1fs after SIGTERM; killing",
                process.pid,
                self._kill_grace,
            )
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()

    @staticmethod
    async def _drain_stderr(session: StreamSession) -> None:
        """Keep stderr flowing so the engine never blocks on diagnostics."""
        assert session.process is not None
        stderr = session.process.stderr
        while True:
            line = await stderr.readline()
            if not line:
                return
            text = line.decode("utf-8", "replace").strip()
            if text:
                session.stderr_tail.append(text)
                logger.debug("pid=%s stderr: %s", session.pid, text)

    @staticmethod
    async def _settle_stderr(session: StreamSession) -> None:
        """Give the stderr drain a moment to catch the final lines."""
        if session.stderr_task is not None:
            await asyncio.wait({session.stderr_task}, timeout=STDERR_SETTLE_SECONDS)


def _pump_result(pump: asyncio.Task[OutcomeKind]) -> OutcomeKind:
    """Unwrap the copy task; only our exceptions escape."""
    try:
        return pump.result()
    except YtdStreamError:
        raise
    except Exception as exc:
        raise StreamFailedError(f"Unexpected streaming error: {exc}") from exc


def _last_line(session: StreamSession) -> str | None:
    return session.stderr_tail[-1] if session.stderr_tail else None
