"""Asset relay — copy a remote file (thumbnails) into a response sink.

No retry, no caching, no process management.  Upstream failures before
commit become :class:`~ytd_stream.exceptions.RelayError`; a client
disconnect closes the upstream connection and is not an error.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from ytd_stream.core.models import OutcomeKind, RelayOutcome
from ytd_stream.core.naming import attachment_name, content_disposition, extension_for
from ytd_stream.core.protocols import ResponseSink
from ytd_stream.exceptions import InvalidURLError, MidStreamError, RelayError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"
USER_AGENT = "Mozilla/5.0 (compatible; ytd-stream)"


class AssetRelay:
    """Streams ``GET remote_url`` into a :class:`ResponseSink`.

    Parameters
    ----------
    timeout:
        Connect/read timeout in seconds for the upstream request.
    transport:
        Optional httpx transport, used by tests to avoid the network.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def relay(
        self,
        remote_url: str,
        sink: ResponseSink,
        *,
        title: str | None = None,
        fallback_name: str = "thumbnail",
    ) -> RelayOutcome:
        """Copy *remote_url* into *sink*.

        Raises
        ------
        InvalidURLError
            If *remote_url* is empty or not http(s).
        RelayError
            If the upstream is unreachable or answers with a non-2xx
            status.  Raised only before commit.
        """
        url = (remote_url or "").strip()
        if not url:
            raise InvalidURLError("Missing thumbnail URL")
        if not url.startswith(("http://", "https://")):
            raise InvalidURLError(f"Invalid URL: {url}")

        async with httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            try:
                async with client.stream("GET", url) as upstream:
                    if not upstream.is_success:
                        raise RelayError(
                            f"Upstream responded with HTTP {upstream.status_code}",
                        )
                    return await self._copy(upstream, sink, title, fallback_name)
            except httpx.HTTPError as exc:
                raise RelayError(f"Could not fetch asset: {exc}") from exc

    async def _copy(
        self,
        upstream: httpx.Response,
        sink: ResponseSink,
        title: str | None,
        fallback_name: str,
    ) -> RelayOutcome:
        content_type = upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        filename = attachment_name(title, extension_for(content_type, "jpg"), fallback_name)
        sent = 0

        async def pump() -> OutcomeKind:
            nonlocal sent
            await sink.commit(200, {
                "content-type": content_type,
                "content-disposition": content_disposition(filename),
            })
            try:
                async for chunk in upstream.aiter_bytes():
                    await sink.write(chunk)
                    sent += len(chunk)
            except httpx.HTTPError as exc:
                logger.warning("%s", MidStreamError(f"relay aborted after {sent} bytes: {exc}"))
                return OutcomeKind.TRUNCATED
            await sink.finish()
            return OutcomeKind.COMPLETED

        copy_task = asyncio.create_task(pump())
        client_gone = asyncio.create_task(sink.wait_closed())
        try:
            done, _ = await asyncio.wait(
                {copy_task, client_gone},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if copy_task in done:
                kind = copy_task.result()
            else:
                logger.warning("client disconnected during relay after %d bytes", sent)
                kind = OutcomeKind.CANCELLED
        finally:
            for task in (copy_task, client_gone):
                if not task.done():
                    task.cancel()
            await asyncio.gather(copy_task, client_gone, return_exceptions=True)

        return RelayOutcome(
            kind=kind,
            bytes_sent=sent,
            upstream_status=upstream.status_code,
            content_type=content_type,
        )
