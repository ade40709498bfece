"""
Home of the main function, which starts the program.

Startup builds the file cache (blocking until every file is fingerprinted),
optionally writes reports about it, and then serves the public directory.
"""

from __future__ import annotations

import argparse
from archivemirror import __version__
from archivemirror.cache import build_file_cache, FileCache
from archivemirror.config import (
    DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT, DEFAULT_URL_PREFIXES, MirrorConfig,
)
from archivemirror.doc.html import DEFAULT_HTML_PARSER_TYPE, HTML_PARSER_TYPE_CHOICES
from archivemirror.errors import MirrorError
from archivemirror.reports import write_reports
from archivemirror.server import MirrorServer
from archivemirror.util.cli import init_terminal, print_error, print_info
from archivemirror.util.url_prefix import PrefixSet, validate_url_prefix
import os
import sys
import time


def main(args: list[str] | None=None) -> None:
    """
    Runs Archive Mirror with the specified command line arguments,
    or with sys.argv if None.

    Exits with status 2 if the arguments are invalid and
    with status 1 if the file cache or reports cannot be built.
    """
    if args is None:
        args = sys.argv[1:]

    config = parse_args(args)  # may raise SystemExit

    # 1. Enable terminal colors on Windows, by wrapping stdout and stderr
    # 2. Strip colorizing ANSI escape sequences when printing to a log file
    init_terminal()

    started = time.monotonic()
    try:
        run(config)
    except (MirrorError, OSError) as e:
        print_error(f'error: {e}', file=sys.stderr)  # type: ignore[arg-type]
        sys.exit(1)
    except KeyboardInterrupt:
        pass
    print_info('Completed in %.3fs' % (time.monotonic() - started))


def parse_args(args: list[str]) -> MirrorConfig:
    """
    Parses command line arguments into a MirrorConfig.

    Raises:
    * SystemExit -- if the arguments are invalid or --help was requested.
    """
    parser = argparse.ArgumentParser(
        prog='archive-mirror',
        description=(
            'Archive Mirror: Serves an exported website archive from a directory, '
            'rewriting absolute links to the archived site as root-relative links.'
        ),
        add_help=False,
    )
    parser.add_argument(
        '--public',
        help='Location of public files to serve (default: current directory).',
        type=str,
        default='.',
    )
    parser.add_argument(
        '--data',
        help='Location to write reports to. If omitted then no reports are written.',
        type=str,
        default=None,
    )
    parser.add_argument(
        '--prefix',
        help=(
            'An absolute URL prefix referring to the served root, like "https://example.com/". '
            'May be repeated. Earlier prefixes take precedence. '
            f'(default: {" ".join(DEFAULT_URL_PREFIXES)})'
        ),
        action='append',
        dest='prefixes',
        default=None,
    )
    parser.add_argument(
        '--host',
        help=f'Specify the host to bind to (default: {DEFAULT_SERVER_HOST}).',
        type=str,
        default=DEFAULT_SERVER_HOST,
    )
    parser.add_argument(
        '--port', '-p',
        help=f'Specify the port to bind to (default: {DEFAULT_SERVER_PORT}).',
        type=int,
        default=DEFAULT_SERVER_PORT,
    )
    parser.add_argument(
        '--parser',
        help=f'HTML parsing library to use (default: {DEFAULT_HTML_PARSER_TYPE}).',
        choices=HTML_PARSER_TYPE_CHOICES,
        default=DEFAULT_HTML_PARSER_TYPE,
    )
    parser.add_argument(
        '--no-serve',
        help='Build the file cache and write reports, then exit without serving.',
        action='store_true',
    )
    parser.add_argument(
        '--quiet', '-q',
        help='Do not log a line for every request.',
        action='store_true',
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}',
        help='Show the version number and exit.',
    )
    parser.add_argument(
        '--help', '-h',
        action='help',
        help='Show this help message and exit.'
    )
    parsed_args = parser.parse_args(args)  # may raise SystemExit

    # Validate CLI arguments
    try:
        prefixes = [
            validate_url_prefix(p)
            for p in (parsed_args.prefixes or DEFAULT_URL_PREFIXES)
        ]
    except ValueError as e:
        parser.error(str(e))  # raises SystemExit
    if not os.path.isdir(parsed_args.public):
        parser.error(f'--public must be an existing directory: {parsed_args.public}')
    if not (0 <= parsed_args.port <= 65535):
        parser.error(f'--port must be between 0 and 65535: {parsed_args.port}')

    return MirrorConfig(
        public_dirpath=os.path.abspath(parsed_args.public),
        data_dirpath=(
            os.path.abspath(parsed_args.data)
            if parsed_args.data is not None
            else None
        ),
        prefixes=PrefixSet(prefixes),
        host=parsed_args.host,
        port=parsed_args.port,
        parser_type=parsed_args.parser,
        log_requests=not parsed_args.quiet,
        serve=not parsed_args.no_serve,
    )


def run(config: MirrorConfig) -> FileCache:
    """
    Builds the file cache for the configured public directory,
    writes reports if a data directory is configured,
    and then serves until interrupted if configured to serve.

    Raises:
    * CacheBuildError
    * ReportWriteError
    * OSError -- if the server cannot bind to its host and port.
    """
    print_info(f'Caching files in {config.public_dirpath}')
    started = time.monotonic()
    cache = build_file_cache(config.public_dirpath)
    print_info('Cached %d files in %.3fs' % (len(cache), time.monotonic() - started))

    if config.data_dirpath is not None:
        write_reports(cache, config.data_dirpath)

    if config.serve:
        server = MirrorServer(cache, config)
        server.serve_forever()
    return cache
