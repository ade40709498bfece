"""
Implements an HTTP server that serves files from a FileCache,
normalizing links inside HTML files as they are served.

Each request is handled on its own thread. The FileCache and PrefixSet
are shared by all request threads and are never modified, so no locking
is needed.
"""

from __future__ import annotations

from archivemirror.cache import FileCache, FileRecord
from archivemirror.config import MirrorConfig
from archivemirror.doc.html import normalize_html
from archivemirror.errors import (
    HtmlParseError, MethodNotAllowedError, NotFoundError,
)
from archivemirror.util import http_date
from archivemirror.util.cli import print_error, print_info, print_success
from archivemirror.util.xcgi import known_charset
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from io import BytesIO, TextIOBase
import os
import socket
import socketserver
import threading
from typing import BinaryIO, Literal
from typing_extensions import override
from urllib.parse import urlparse, urlunparse


Outcome = Literal[
    'raw', 'normalized', 'redirect', 'not modified',
    'not found', 'rejected', 'error',
]

# Percent-encoded characters that some clients encode even though
# exported archive filenames contain them literally
_OVERENCODED_CHARS = [
    ('%2C', ','), ('%2c', ','),
    ('%7C', '|'), ('%7c', '|'),
]

_COPY_CHUNK_SIZE = 64 * 1024


# ------------------------------------------------------------------------------
# Resolve

@dataclass(frozen=True)
class Resolution:
    record: FileRecord
    # If not None then the client should be redirected to this URL
    # rather than being served the record directly
    redirect_url: str | None = None


def check_method(method: str | None) -> None:
    """
    Raises:
    * MethodNotAllowedError -- if the method is not GET.
    """
    if method != 'GET':
        raise MethodNotAllowedError(method)


def resolve(cache: FileCache, request_path: str) -> Resolution:
    """
    Locates the cached file for the specified request path,
    trying each of the following in order:

    1. The path itself, without its leading and trailing slash.
    2. The path with percent-encoded commas and pipes decoded.
    3. The path's "index.html" child, resolved as a redirect so that
       relative links inside that document keep working.

    Raises:
    * NotFoundError
    """
    path = request_path.removeprefix('/').removesuffix('/')

    record = cache.get(path)
    if record is not None:
        return Resolution(record)

    decoded_path = path
    for (encoded, char) in _OVERENCODED_CHARS:
        decoded_path = decoded_path.replace(encoded, char)  # reinterpret
    record = cache.get(decoded_path)
    if record is not None:
        return Resolution(record)

    index_path = f'{path}/index.html' if path != '' else 'index.html'
    record = cache.get(index_path)
    if record is not None:
        return Resolution(record, redirect_url='/' + index_path)

    raise NotFoundError(path)


# ------------------------------------------------------------------------------
# MirrorServer

class MirrorServer:
    """
    Serves a FileCache over HTTP.

    Use serve_forever() to serve on the calling thread,
    or start() to serve on a background daemon thread.
    """

    def __init__(self,
            cache: FileCache,
            config: MirrorConfig,
            *, stdout: TextIOBase | None=None,
            ) -> None:
        """
        Raises:
        * OSError (errno.EADDRINUSE) -- if the host:port combination is already in use.
        """
        server = _HttpServer((config.host, config.port), _RequestHandler)
        server.cache = cache
        server.config = config
        server.stdout = stdout

        self._server = server
        self._config = config
        self._stdout = stdout
        self._thread = None  # type: threading.Thread | None

    # === Properties ===

    @property
    def cache(self) -> FileCache:
        return self._server.cache

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        # NOTE: May differ from the configured port if that was 0
        return self._server.server_address[1]

    @property
    def url(self) -> str:
        return f'http://{self.host}:{self.port}/'

    # === Operations ===

    def serve_forever(self) -> None:
        print_success(f'Server started at: {self.url}', file=self._stdout)
        try:
            self._server.serve_forever()
        finally:
            self._server.server_close()

    def start(self) -> None:
        """Starts serving on a background daemon thread."""
        if self._thread is not None:
            raise ValueError('Server already started')
        self._thread = threading.Thread(
            target=self.serve_forever,
            name='MirrorServer',
            daemon=True)
        self._thread.start()

    def close(self) -> None:
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join()
            self._thread = None
        else:
            self._server.server_close()


class _HttpServer(ThreadingHTTPServer):
    cache: FileCache
    config: MirrorConfig
    stdout: TextIOBase | None

    # Wait for in-flight requests to finish when closing
    daemon_threads = False

    @override
    def server_bind(self):
        """
        Overrides server_bind to assume the server name is "localhost"
        when bound to 127.0.0.1, avoiding a slow reverse DNS lookup.
        """
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        if host == '127.0.0.1':
            self.server_name = 'localhost'
        else:
            self.server_name = socket.getfqdn(host)
        self.server_port = port


class _RequestHandler(BaseHTTPRequestHandler):
    server: _HttpServer

    # Prevent slow/broken request from holding its thread forever
    timeout = 30  # seconds

    @property
    def cache(self) -> FileCache:
        return self.server.cache

    @property
    def config(self) -> MirrorConfig:
        return self.server.config

    # === Handle ===

    @override
    def parse_request(self) -> bool:
        if not super().parse_request():
            return False

        # Reject unsafe methods before looking at the path
        try:
            check_method(self.command)
        except MethodNotAllowedError:
            self.close_connection = True
            self._log_outcome('rejected')
            self._send_plain_error(HTTPStatus.UNAUTHORIZED, extra_headers=[('Allow', 'GET')])
            return False
        return True

    def do_GET(self) -> None:
        try:
            self._do_GET()
        except (BrokenPipeError, ConnectionResetError):
            # Browser did drop connection before did finish sending response
            pass

    def _do_GET(self) -> None:
        request_path = self._request_path()

        try:
            resolution = resolve(self.cache, request_path)
        except NotFoundError:
            self._log_outcome('not found')
            self._send_plain_error(HTTPStatus.NOT_FOUND)
            return

        if resolution.redirect_url is not None:
            self._log_outcome('redirect', resolution.redirect_url)
            self.send_redirect(resolution.redirect_url)
            return

        record = resolution.record
        if not record.is_html:
            try:
                f = self.cache.open(record)
            except OSError as e:
                self._log_outcome('error', f'{record.path}: {e}')
                self._send_plain_error(HTTPStatus.INTERNAL_SERVER_ERROR)
                return
            with f:
                size = os.fstat(f.fileno()).st_size
                outcome = self.send_content(record, f, size, 'raw')
        else:
            # Render in the charset the Content-Type header will name
            charset = known_charset(record.charset)
            try:
                body = normalize_html(
                    self.cache.read_bytes(record),
                    self.config.prefixes,
                    declared_charset=charset,
                    parser_type=self.config.parser_type)
            except (OSError, HtmlParseError) as e:
                self._log_outcome('error', f'{record.path}: {e}')
                self._send_plain_error(HTTPStatus.INTERNAL_SERVER_ERROR)
                return
            outcome = self.send_content(
                record, BytesIO(body), len(body), 'normalized',
                content_type=f'text/html; charset={charset or "utf-8"}')
        self._log_outcome(outcome, f'{record.kind} {record.fingerprint}')

    def _request_path(self) -> str:
        # Parse self.path using RFC 2616 rules,
        # which in particular allows it to be an absolute URI
        if self.path.startswith('/'):
            return self.path
        pathurl_parts = urlparse(self.path)
        return urlunparse(pathurl_parts._replace(scheme='', netloc='')) or '/'

    # === Send ===

    def send_redirect(self, redirect_url: str) -> None:
        self.send_response(HTTPStatus.FOUND)
        self.send_header('Location', redirect_url)
        self.send_header('Content-Length', '0')
        self.end_headers()

    def send_content(self,
            record: FileRecord,
            body: BinaryIO,
            size: int,
            outcome: Outcome,
            *, content_type: str | None=None,
            ) -> Outcome:
        """
        Sends the specified body with the record's kind (or `content_type`,
        if specified) as its Content-Type and the record's modification time
        as its Last-Modified date.

        Honors If-Modified-Since and single-range Range headers.

        Returns the outcome to log.
        """
        last_modified = http_date.format(record.modified_at)

        # Handle If-Modified-Since
        since = http_date.try_parse(self.headers.get('If-Modified-Since'))
        if since is not None and not http_date.is_modified_since(record.modified_at, since):
            self.send_response(HTTPStatus.NOT_MODIFIED)
            self.send_header('Last-Modified', last_modified)
            self.end_headers()
            return 'not modified'

        # Handle Range
        range_header = self.headers.get('Range')
        try:
            byte_range = self._parse_range(range_header, size)
        except ValueError:
            self.send_response(HTTPStatus.REQUESTED_RANGE_NOT_SATISFIABLE)
            self.send_header('Content-Range', f'bytes */{size}')
            self.send_header('Content-Length', '0')
            self.end_headers()
            return outcome

        if byte_range is not None:
            (start, end) = byte_range
            self.send_response(HTTPStatus.PARTIAL_CONTENT)
            self.send_header('Content-Range', f'bytes {start}-{end}/{size}')
        else:
            (start, end) = (0, size - 1)
            self.send_response(HTTPStatus.OK)
        self.send_header('Content-Type', content_type or record.kind)
        self.send_header('Content-Length', str(end - start + 1))
        self.send_header('Last-Modified', last_modified)
        self.send_header('Accept-Ranges', 'bytes')
        self.end_headers()

        body.seek(start)
        remaining = end - start + 1
        while remaining > 0:
            chunk = body.read(min(_COPY_CHUNK_SIZE, remaining))
            if not chunk:
                break
            self.wfile.write(chunk)
            remaining -= len(chunk)
        return outcome

    @staticmethod
    def _parse_range(header: str | None, size: int) -> tuple[int, int] | None:
        """
        Parses an HTTP Range header, returning an inclusive (start, end)
        byte range or None if the whole body should be sent.

        Ranges in units other than bytes are ignored, as are multiple ranges,
        so the whole body is sent instead.

        Raises:
        * ValueError -- if the range is malformed or not satisfiable.
        """
        if header is None:
            return None
        if not header.startswith('bytes='):
            return None
        range_spec = header[len('bytes='):].strip()
        if ',' in range_spec:
            return None
        (start_str, sep, end_str) = range_spec.partition('-')
        if sep == '':
            raise ValueError()
        if start_str == '':
            # Suffix range: last N bytes
            suffix_length = int(end_str)
            if suffix_length <= 0 or size == 0:
                raise ValueError()
            return (max(0, size - suffix_length), size - 1)
        start = int(start_str)
        end = int(end_str) if end_str != '' else size - 1
        if start < 0 or start >= size or end < start:
            raise ValueError()
        return (start, min(end, size - 1))

    def _send_plain_error(self,
            status: HTTPStatus,
            *, extra_headers: list[tuple[str, str]] | None=None,
            ) -> None:
        body = (status.phrase + '\n').encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', 'text/plain; charset=utf-8')
        self.send_header('X-Content-Type-Options', 'nosniff')
        self.send_header('Content-Length', str(len(body)))
        for (name, value) in (extra_headers or []):
            self.send_header(name, value)
        self.end_headers()
        if self.command != 'HEAD':
            self.wfile.write(body)

    # === Utility: Logging ===

    def _log_outcome(self, outcome: Outcome, detail: str | None=None) -> None:
        message = f'{self.command} {self.path} -> {outcome}'
        if detail is not None:
            message += f' ({detail})'
        if outcome == 'error':
            print_error(message, file=self.server.stdout)
        elif self.config.log_requests:
            print_info(message, file=self.server.stdout)

    @override
    def log_request(self, code='-', size='-'):
        # Every request is logged by _log_outcome() instead
        pass

    @override
    def log_error(self, format, *args):
        print_error(format % args, file=self.server.stdout)

    @override
    def log_message(self, format, *args):
        if self.config.log_requests:
            print_info(format % args, file=self.server.stdout)


# ------------------------------------------------------------------------------
