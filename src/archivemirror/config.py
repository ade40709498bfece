"""
Startup configuration, fixed for the lifetime of the process.
"""

from __future__ import annotations

from archivemirror.doc.html import DEFAULT_HTML_PARSER_TYPE, HtmlParserType
from archivemirror.util.url_prefix import PrefixSet
from dataclasses import dataclass, field


# The archived site that this tool was originally written to mirror
DEFAULT_URL_PREFIXES = (
    'http://playbymail.net/',
    'https://playbymail.net/',
)

DEFAULT_SERVER_HOST = '127.0.0.1'
DEFAULT_SERVER_PORT = 8080


@dataclass(frozen=True)
class MirrorConfig:
    # Directory containing the public files to serve
    public_dirpath: str
    # Directory to write reports to, or None to skip writing reports
    data_dirpath: str | None = None
    prefixes: PrefixSet = field(default_factory=lambda: PrefixSet(DEFAULT_URL_PREFIXES))
    host: str = DEFAULT_SERVER_HOST
    port: int = DEFAULT_SERVER_PORT
    parser_type: HtmlParserType = DEFAULT_HTML_PARSER_TYPE
    # Whether to log a line for every request
    log_requests: bool = True
    # Whether to serve after building the file cache, or just exit
    serve: bool = True
