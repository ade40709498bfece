"""
Builds an in-memory index of every file under a public root directory.

The index is built once, before the server accepts any request,
and is never modified afterward. Request handlers on many threads
may therefore read it concurrently without locking.
"""

from __future__ import annotations

from archivemirror.errors import CacheBuildError
from archivemirror.fingerprint import fingerprint_and_classify
from archivemirror.util.cli import print_warning
from archivemirror.util.xcgi import parse_header
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
import datetime
import os
from types import MappingProxyType
from typing import BinaryIO


@dataclass(frozen=True)
class FileRecord:
    # Root-relative path with forward slashes. Ex: 'images/logo.png'
    path: str
    # Base-58 SHA-1 digest of the content at cache-build time
    fingerprint: str
    # MIME type, possibly with a charset parameter. Ex: 'text/html; charset=utf-8'
    kind: str
    # Modification time, in UTC
    modified_at: datetime.datetime
    size: int

    @property
    def is_html(self) -> bool:
        return self.kind.startswith('text/html')

    @property
    def charset(self) -> str | None:  # ex: 'utf-8'
        """Returns the charset parameter of this record's kind, or None if absent."""
        (_, options) = parse_header(self.kind)
        return options.get('charset')


class FileCache(Mapping[str, FileRecord]):
    """
    An immutable mapping from root-relative path to FileRecord.

    Two records may share the same fingerprint when files have
    duplicate content. Such records are reported but kept.
    """

    def __init__(self, root: str, records: Mapping[str, FileRecord]) -> None:
        self._root = os.path.abspath(root)
        self._records = MappingProxyType(dict(records))

    # === Properties ===

    @property
    def root(self) -> str:
        return self._root

    # === Mapping ===

    def __getitem__(self, path: str) -> FileRecord:
        return self._records[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    # === Files ===

    def filepath_of(self, record: FileRecord) -> str:
        return os.path.join(self._root, *record.path.split('/'))

    def open(self, record: FileRecord) -> BinaryIO:
        """
        Opens the file behind the specified record for binary reading.
        The caller owns the returned file and must close it.

        Raises:
        * OSError
        """
        return open(self.filepath_of(record), 'rb')

    def read_bytes(self, record: FileRecord) -> bytes:
        """
        Raises:
        * OSError
        """
        with self.open(record) as f:
            return f.read()

    # === Reporting ===

    def duplicates(self) -> dict[str, list[str]]:
        """
        Returns a mapping from fingerprint to the sorted paths sharing it,
        for every fingerprint shared by two or more files.
        """
        paths_for_fingerprint = {}  # type: dict[str, list[str]]
        for record in self._records.values():
            paths_for_fingerprint.setdefault(record.fingerprint, []).append(record.path)
        return {
            fp: sorted(paths)
            for (fp, paths) in sorted(paths_for_fingerprint.items())
            if len(paths) >= 2
        }

    def kinds(self) -> list[str]:
        """Returns the sorted distinct kinds of all files."""
        return sorted({record.kind for record in self._records.values()})


FingerprintFunc = Callable[[bytes, str], tuple[str, str]]


def build_file_cache(
        root: str,
        *, fingerprint_func: FingerprintFunc=fingerprint_and_classify,
        ) -> FileCache:
    """
    Walks the directory tree at `root`, fingerprinting and classifying
    every regular file inside it.

    Directories are descended into but not recorded.
    Symlinks to directories are not followed.

    Raises:
    * CacheBuildError -- if any directory cannot be listed or
      any file cannot be stat'ed, read, or classified.
    """
    root = os.path.abspath(root)
    if not os.path.isdir(root):
        raise CacheBuildError(root, NotADirectoryError(f'Not a directory: {root}'))

    def raise_walk_error(e: OSError) -> None:
        raise CacheBuildError(e.filename or root, e) from e

    records = {}  # type: dict[str, FileRecord]
    for (dirpath, dirnames, filenames) in os.walk(root, onerror=raise_walk_error):
        dirnames.sort()  # visit subdirectories in a stable order
        for filename in sorted(filenames):
            filepath = os.path.join(dirpath, filename)
            path = os.path.relpath(filepath, root).replace(os.sep, '/')
            if not os.path.isfile(filepath):
                # Sockets, FIFOs, device files, and broken symlinks
                print_warning(f'Skipped {path}: Not a regular file')
                continue
            try:
                with open(filepath, 'rb') as f:
                    stat = os.fstat(f.fileno())
                    data = f.read()
            except OSError as e:
                raise CacheBuildError(path, e) from e

            try:
                (fp, kind) = fingerprint_func(data, path)
            except Exception as e:
                # ex: magic.MagicException
                raise CacheBuildError(path, e) from e
            records[path] = FileRecord(
                path=path,
                fingerprint=fp,
                kind=kind,
                modified_at=datetime.datetime.fromtimestamp(
                    stat.st_mtime, tz=datetime.timezone.utc),
                size=len(data),
            )
    return FileCache(root, records)
