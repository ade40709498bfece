"""
HTML link normalizer implementation that uses BeautifulSoup.
"""

from __future__ import annotations

from archivemirror.doc.html import HTML_PARSER_TYPE_CHOICES, HtmlParserType
from archivemirror.errors import HtmlParseError
from archivemirror.util.fastsoup import BeautifulFastSoup, FindFunc, parse_html
from archivemirror.util.url_prefix import PrefixSet
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass


@dataclass
class _XPaths:
    A_HREF_XP: FindFunc
    LINK_HREF_XP: FindFunc
    SCRIPT_SRC_XP: FindFunc
    IMG_SRC_XP: FindFunc
    IMG_SRCSET_XP: FindFunc

_XPS = _XPaths(
    A_HREF_XP = BeautifulFastSoup.find_all_compile('a', 'href'),
    LINK_HREF_XP = BeautifulFastSoup.find_all_compile('link', 'href'),
    SCRIPT_SRC_XP = BeautifulFastSoup.find_all_compile('script', 'src'),
    IMG_SRC_XP = BeautifulFastSoup.find_all_compile('img', 'src'),
    IMG_SRCSET_XP = BeautifulFastSoup.find_all_compile('img', 'srcset'),
)


def normalize_html(
        html_bytes: bytes,
        prefixes: PrefixSet,
        declared_charset: str | None,
        parser_type: HtmlParserType,
        ) -> bytes:
    if parser_type not in HTML_PARSER_TYPE_CHOICES:
        raise ValueError(f'Unrecognized value for parser_type: {parser_type}')
    try:
        html = parse_html(html_bytes, declared_charset, parser_type)
    except Exception as e:
        raise HtmlParseError(f'Unable to parse HTML: {e}') from e
    
    # <a href=*>, <link href=*>
    for find_func in (_XPS.A_HREF_XP, _XPS.LINK_HREF_XP):
        for tag in find_func(html):
            _rewrite_attr(html.tag_attrs(tag), 'href', prefixes.strip)
    
    # <script src=*>, <img src=*>
    for find_func in (_XPS.SCRIPT_SRC_XP, _XPS.IMG_SRC_XP):
        for tag in find_func(html):
            _rewrite_attr(html.tag_attrs(tag), 'src', prefixes.strip)
    
    # <img srcset=*>
    for tag in _XPS.IMG_SRCSET_XP(html):
        _rewrite_attr(html.tag_attrs(tag), 'srcset',
            lambda value: normalize_srcset(value, prefixes))
    
    try:
        return html.encode(declared_charset or 'utf-8')
    except Exception as e:
        raise HtmlParseError(f'Unable to render HTML: {e}') from e


def normalize_srcset(srcset: str, prefixes: PrefixSet) -> str:
    """
    Strips prefixes from each comma-separated candidate in a srcset value.
    Each candidate (a URL with an optional descriptor like "2x") is treated
    as a unit, and surrounding whitespace is dropped.
    
    If no candidate starts with a prefix then the value is returned unchanged.
    
    Ex: 'http://example.com/a.png 1x, http://example.com/b.png 2x'
        -> '/a.png 1x,/b.png 2x'
    """
    candidates = [c.strip() for c in srcset.split(',')]
    new_candidates = [prefixes.strip(c) for c in candidates]
    if new_candidates == candidates:
        return srcset
    return ','.join(new_candidates)


def _rewrite_attr(
        attrs: MutableMapping[str, str | list[str]],
        attr_name: str,
        rewrite: Callable[[str], str],
        ) -> None:
    value = attrs.get(attr_name)
    if not isinstance(value, str):
        # Multi-valued attribute. Not a URL.
        return
    new_value = rewrite(value)
    if new_value != value:
        attrs[attr_name] = new_value
