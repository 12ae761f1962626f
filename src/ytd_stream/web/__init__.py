"""Web layer — the FastAPI application and its ASGI response sink.

This is the HTTP counterpart of the ``cli`` package: the outermost
layer and the error boundary for requests.  It may import from
``core`` and ``infra``; nothing imports from ``web``.
"""

from ytd_stream.web.app import create_app

__all__: list[str] = ["create_app"]
