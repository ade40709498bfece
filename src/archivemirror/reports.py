"""
Writes plain-text reports about a built FileCache to a data directory:

* b58.sums -- one line per file: fingerprint, then path.
* b58.dups -- each fingerprint shared by several files, followed by
  the paths of those files, indented.
* b58.kinds -- each distinct kind, one per line.
"""

from __future__ import annotations

from archivemirror.cache import FileCache
from archivemirror.errors import ReportWriteError
from archivemirror.util.cli import print_info
from io import TextIOBase
import os


SUMS_FILENAME = 'b58.sums'
DUPS_FILENAME = 'b58.dups'
KINDS_FILENAME = 'b58.kinds'


def format_sums(cache: FileCache) -> str:
    return ''.join([
        '%-30s %s\n' % (cache[path].fingerprint, path)
        for path in sorted(cache)
    ])


def format_dups(cache: FileCache) -> str:
    lines = []
    for (fp, paths) in cache.duplicates().items():
        lines.append(f'{fp}\n')
        lines.extend([f'  {path}\n' for path in paths])
    return ''.join(lines)


def format_kinds(cache: FileCache) -> str:
    return ''.join([f'{kind}\n' for kind in cache.kinds()])


def write_reports(
        cache: FileCache,
        data_dirpath: str,
        *, stdout: TextIOBase | None=None,
        ) -> list[str]:
    """
    Writes all reports for the specified cache into `data_dirpath`,
    creating that directory if necessary.

    Returns the paths of the written files.

    Raises:
    * ReportWriteError
    """
    try:
        os.makedirs(data_dirpath, exist_ok=True)
    except OSError as e:
        raise ReportWriteError(data_dirpath, e) from e

    written = []
    for (filename, content) in [
            (SUMS_FILENAME, format_sums(cache)),
            (DUPS_FILENAME, format_dups(cache)),
            (KINDS_FILENAME, format_kinds(cache))]:
        filepath = os.path.join(data_dirpath, filename)
        try:
            with open(filepath, 'w', encoding='utf-8', newline='\n') as f:
                f.write(content)
        except OSError as e:
            raise ReportWriteError(filepath, e) from e
        print_info(f'Created {filepath}', file=stdout)
        written.append(filepath)
    return written
