"""
Exceptions raised while building the file cache, normalizing HTML,
writing reports, and resolving requests.
"""

from __future__ import annotations


class MirrorError(Exception):
    """Base class for all errors raised by Archive Mirror."""


class CacheBuildError(MirrorError):
    """
    Raised when the file cache cannot be built because a file or directory
    under the public root could not be walked, stat'ed, read, or classified.
    
    Always fatal at startup. The server never runs with a partial cache.
    """
    def __init__(self, path: str, cause: Exception) -> None:
        super().__init__(f'{path}: {cause}')
        self.path = path
        self.cause = cause


class HtmlParseError(MirrorError):
    """Raised when an HTML document cannot be parsed or re-rendered."""


class ReportWriteError(MirrorError):
    """Raised when a report file cannot be written to the data directory."""
    def __init__(self, path: str, cause: OSError) -> None:
        super().__init__(f'{path}: {cause}')
        self.path = path
        self.cause = cause


class NotFoundError(MirrorError):
    """No cached file matches a request path, even after all fallbacks."""


class MethodNotAllowedError(MirrorError):
    """A request used a method other than GET."""
