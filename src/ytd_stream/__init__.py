"""ytd-stream — analyze a video URL and stream its renditions over HTTP.

Built on yt-dlp and FastAPI with a strict layered architecture.
"""

from ytd_stream.version import __version__

__all__: list[str] = ["__version__"]
