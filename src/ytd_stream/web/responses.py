"""ASGI glue between Starlette responses and the core response sink.

:class:`SinkStreamResponse` hands a :class:`ASGIResponseSink` to a
producer coroutine (the stream orchestrator or the asset relay) and
acts as the error boundary for it:

* a :class:`~ytd_stream.exceptions.YtdStreamError` raised before the
  producer committed headers becomes a JSON ``{"error": ...}`` response
  with the exception's status;
* anything raised after commit is only logged, because the status line
  is already on the wire.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping

from starlette.responses import JSONResponse, Response
from starlette.types import Message, Receive, Scope, Send

from ytd_stream.core.protocols import ResponseSink
from ytd_stream.exceptions import YtdStreamError

logger = logging.getLogger(__name__)

Producer = Callable[[ResponseSink], Awaitable[object]]


def error_response(exc: YtdStreamError) -> JSONResponse:
    """Render *exc* as the uniform JSON error body."""
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


def internal_error_response() -> JSONResponse:
    return JSONResponse({"error": "Internal server error"}, status_code=500)


class ASGIResponseSink:
    """:class:`ResponseSink` over a raw ASGI ``receive``/``send`` pair.

    ``commit`` may run once; a second call raises ``RuntimeError`` so a
    late error path can never emit another status line.  Once the
    client is gone, writes become no-ops and :meth:`wait_closed`
    returns.
    """

    def __init__(self, receive: Receive, send: Send) -> None:
        self._receive = receive
        self._send = send
        self._committed = False
        self._finished = False
        self._closed = asyncio.Event()

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def commit(self, status: int, headers: Mapping[str, str]) -> None:
        if self._committed:
            raise RuntimeError("response headers already committed")
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in headers.items()
        ]
        self._committed = True
        await self._deliver({
            "type": "http.response.start",
            "status": status,
            "headers": raw_headers,
        })

    async def write(self, chunk: bytes) -> None:
        if not chunk or self.closed:
            return
        await self._deliver({"type": "http.response.body", "body": chunk, "more_body": True})

    async def finish(self) -> None:
        if self._finished or not self._committed or self.closed:
            return
        self._finished = True
        await self._deliver({"type": "http.response.body", "body": b"", "more_body": False})

    async def wait_closed(self) -> None:
        listener = asyncio.create_task(self._listen_for_disconnect())
        closed = asyncio.create_task(self._closed.wait())
        try:
            await asyncio.wait({listener, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (listener, closed):
                task.cancel()
            await asyncio.gather(listener, closed, return_exceptions=True)

    async def _listen_for_disconnect(self) -> None:
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                self._closed.set()
                return

    async def _deliver(self, message: Message) -> None:
        try:
            await self._send(message)
        except OSError:
            # ASGI 2.4 servers raise OSError once the client is gone.
            self._closed.set()


class SinkStreamResponse(Response):
    """A response whose body is produced by writing into a sink."""

    def __init__(self, producer: Producer, *, label: str) -> None:
        super().__init__()
        self._producer = producer
        self._label = label

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        sink = ASGIResponseSink(receive, send)
        try:
            outcome = await self._producer(sink)
        except YtdStreamError as exc:
            if sink.committed:
                logger.warning("%s failed after headers were sent: %s", self._label, exc)
                return
            logger.info("%s rejected: %s", self._label, exc)
            await error_response(exc)(scope, receive, send)
            return
        except Exception:
            if sink.committed:
                logger.exception("%s crashed after headers were sent", self._label)
                return
            logger.exception("%s crashed before streaming", self._label)
            await internal_error_response()(scope, receive, send)
            return

        logger.debug("%s finished: %s", self._label, outcome)
