"""Core / service layer — pure business logic and orchestration.

Rules
-----
* No ``print()`` calls.
* No network I/O; processes and responses are reached only through
  the protocols in :mod:`ytd_stream.core.protocols`.
* No imports from ``cli``, ``infra`` or ``web``.
"""

from ytd_stream.core.catalog import build_catalog
from ytd_stream.core.format_selector import output_plan, select_format
from ytd_stream.core.metadata_service import MetadataService
from ytd_stream.core.models import (
    DownloadMode,
    DownloadRequest,
    MediaInfo,
    OutcomeKind,
    Rendition,
    RenditionCatalog,
    StreamOutcome,
)
from ytd_stream.core.naming import safe_file_name
from ytd_stream.core.protocols import MetadataProvider, ProcessLauncher, ResponseSink
from ytd_stream.core.stream_orchestrator import StreamOrchestrator

__all__: list[str] = [
    "DownloadMode",
    "DownloadRequest",
    "MediaInfo",
    "MetadataProvider",
    "MetadataService",
    "OutcomeKind",
    "ProcessLauncher",
    "Rendition",
    "RenditionCatalog",
    "ResponseSink",
    "StreamOrchestrator",
    "StreamOutcome",
    "build_catalog",
    "output_plan",
    "safe_file_name",
    "select_format",
]
