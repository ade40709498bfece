"""
Tests for command line parsing and startup in archivemirror.main.
"""

from archivemirror import main as main_module
from archivemirror.config import DEFAULT_URL_PREFIXES
from archivemirror.errors import CacheBuildError
from archivemirror.main import main, parse_args
from archivemirror.reports import DUPS_FILENAME, KINDS_FILENAME, SUMS_FILENAME
from archivemirror.util.cli import print_info, set_use_colors
from io import StringIO
import os
import pytest


@pytest.fixture(autouse=True)
def _plain_terminal(monkeypatch) -> None:
    # Avoid wrapping the test runner's captured stdout with colorama
    monkeypatch.setattr(main_module, 'init_terminal', lambda: None)


# === Tests: Parse Arguments ===

class TestParseArgs:
    def test_defaults(self, tmp_path) -> None:
        config = parse_args(['--public', str(tmp_path)])
        assert os.path.abspath(str(tmp_path)) == config.public_dirpath
        assert config.data_dirpath is None
        assert DEFAULT_URL_PREFIXES == config.prefixes.prefixes
        assert 'html5lib' == config.parser_type
        assert config.log_requests
        assert config.serve
    
    def test_prefixes_keep_command_line_order(self, tmp_path) -> None:
        config = parse_args([
            '--public', str(tmp_path),
            '--prefix', 'https://example.com/blog/',
            '--prefix', 'https://example.com',
        ])
        assert ('https://example.com/blog/', 'https://example.com/') == config.prefixes.prefixes
    
    def test_rejects_prefix_that_is_not_http_url(self, tmp_path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_args(['--public', str(tmp_path), '--prefix', 'ftp://example.com/'])
        assert 2 == exc_info.value.code
    
    def test_rejects_prefix_without_trailing_slash(self, tmp_path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_args(['--public', str(tmp_path), '--prefix', 'https://example.com/blog'])
        assert 2 == exc_info.value.code
    
    def test_rejects_public_directory_that_does_not_exist(self, tmp_path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_args(['--public', os.path.join(str(tmp_path), 'missing')])
        assert 2 == exc_info.value.code
    
    def test_rejects_unknown_parser(self, tmp_path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_args(['--public', str(tmp_path), '--parser', 'xml'])
        assert 2 == exc_info.value.code


# === Tests: Main ===

def test_main_writes_reports_and_exits_when_not_serving(tmp_path) -> None:
    public_dirpath = os.path.join(str(tmp_path), 'public')
    data_dirpath = os.path.join(str(tmp_path), 'data')
    os.makedirs(public_dirpath)
    for filename in ['a.txt', 'b.txt']:
        with open(os.path.join(public_dirpath, filename), 'w', encoding='utf-8') as f:
            f.write('same content\n')
    
    main(['--public', public_dirpath, '--data', data_dirpath, '--no-serve'])
    
    assert sorted([SUMS_FILENAME, DUPS_FILENAME, KINDS_FILENAME]) == sorted(os.listdir(data_dirpath))
    with open(os.path.join(data_dirpath, DUPS_FILENAME), encoding='utf-8') as f:
        dups_lines = f.read().splitlines()
    assert ['  a.txt', '  b.txt'] == dups_lines[1:]


def test_main_exits_with_status_1_if_cache_cannot_be_built(tmp_path, monkeypatch) -> None:
    def fail_to_build(root: str):
        raise CacheBuildError('bad.txt', PermissionError(13, 'Permission denied'))
    monkeypatch.setattr(main_module, 'build_file_cache', fail_to_build)
    
    with pytest.raises(SystemExit) as exc_info:
        main(['--public', str(tmp_path), '--no-serve'])
    assert 1 == exc_info.value.code


# === Tests: Logging ===

def test_print_never_raises_when_output_is_closed() -> None:
    old_colors = set_use_colors(False)
    try:
        stdout = StringIO()
        print_info('hello', file=stdout)  # type: ignore[arg-type]
        assert stdout.getvalue().endswith(' hello\n')
        
        stdout.close()
        print_info('goodbye', file=stdout)  # type: ignore[arg-type]
    finally:
        set_use_colors(old_colors)
