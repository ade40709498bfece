"""
Unit tests for archivemirror.reports module.
"""

from archivemirror.cache import FileCache, FileRecord
from archivemirror.errors import ReportWriteError
from archivemirror.reports import (
    DUPS_FILENAME, format_dups, format_kinds, format_sums, KINDS_FILENAME,
    SUMS_FILENAME, write_reports,
)
import datetime
from io import StringIO
import os
import pytest


def _cache() -> FileCache:
    def record(path: str, fp: str, kind: str) -> FileRecord:
        return FileRecord(
            path=path,
            fingerprint=fp,
            kind=kind,
            modified_at=datetime.datetime(2023, 1, 1, tzinfo=datetime.timezone.utc),
            size=1,
        )
    return FileCache('/tmp', {
        'index.html': record('index.html', 'FpHtml', 'text/html; charset=utf-8'),
        'img/a.png': record('img/a.png', 'FpPng', 'image/png'),
        'img/copy-of-a.png': record('img/copy-of-a.png', 'FpPng', 'image/png'),
        'style.css': record('style.css', 'FpCss', 'text/css'),
    })


def test_sums_lists_fingerprint_then_path_for_every_file() -> None:
    lines = format_sums(_cache()).splitlines()
    assert 4 == len(lines)
    assert ('%-30s %s' % ('FpPng', 'img/a.png')) == lines[0]
    for line in lines:
        (fp, path) = line.split()
        assert _cache()[path].fingerprint == fp


def test_dups_lists_only_shared_fingerprints_with_indented_paths() -> None:
    assert (
        'FpPng\n'
        '  img/a.png\n'
        '  img/copy-of-a.png\n'
    ) == format_dups(_cache())


def test_kinds_lists_sorted_distinct_kinds() -> None:
    assert (
        'image/png\n'
        'text/css\n'
        'text/html; charset=utf-8\n'
    ) == format_kinds(_cache())


def test_write_reports_creates_all_three_files(tmp_path) -> None:
    data_dirpath = os.path.join(str(tmp_path), 'data')
    
    written = write_reports(_cache(), data_dirpath, stdout=StringIO())  # type: ignore[arg-type]
    
    assert [
        os.path.join(data_dirpath, SUMS_FILENAME),
        os.path.join(data_dirpath, DUPS_FILENAME),
        os.path.join(data_dirpath, KINDS_FILENAME),
    ] == written
    with open(os.path.join(data_dirpath, KINDS_FILENAME), encoding='utf-8') as f:
        assert format_kinds(_cache()) == f.read()


def test_write_reports_raises_if_data_directory_cannot_be_created(tmp_path) -> None:
    not_a_dirpath = os.path.join(str(tmp_path), 'file')
    with open(not_a_dirpath, 'wb'):
        pass
    
    with pytest.raises(ReportWriteError):
        write_reports(_cache(), not_a_dirpath, stdout=StringIO())  # type: ignore[arg-type]
