"""
Normalizes links in HTML documents.
"""

from __future__ import annotations

from archivemirror.util.url_prefix import PrefixSet
from typing import Literal

# HTML parsing library to use. See comparison between options at:
# https://beautiful-soup-4.readthedocs.io/en/latest/#installing-a-parser
#
# NOTE: html5lib parses RCDATA elements like <textarea> the way browsers
#       do. html_parser drops end tags that appear inside them.
HtmlParserType = Literal['html5lib', 'html_parser', 'lxml']

HTML_PARSER_TYPE_CHOICES = (
    HtmlParserType.__args__  # type: ignore[attr-defined]
)  # type: tuple[HtmlParserType, ...]

DEFAULT_HTML_PARSER_TYPE = 'html5lib'  # type: HtmlParserType


def normalize_html(
        html_bytes: bytes,
        prefixes: PrefixSet,
        *, declared_charset: str | None=None,
        parser_type: HtmlParserType=DEFAULT_HTML_PARSER_TYPE,
        ) -> bytes:
    """
    Parses the specified HTML bytestring, rewrites every link attribute
    whose value starts with a prefix in `prefixes` to be root-relative,
    and returns the re-rendered document.

    The following attributes are rewritten:
    * <a href>, <link href>, <script src>, <img src>
    * <img srcset> -- each comma-separated candidate independently

    All other attributes and all text content, including the bodies of
    <script> and <style> tags, are left untouched.

    The document is decoded with `declared_charset` if it is not None and
    re-rendered in that same charset, so that a Content-Type header naming
    it still describes the output. Otherwise it is re-rendered as UTF-8.

    Normalizing a document that was already normalized with the same
    prefixes returns the same document.

    Raises:
    * HtmlParseError -- if the document cannot be parsed or rendered.
    """
    import archivemirror.doc.html.soup as soup

    return soup.normalize_html(html_bytes, prefixes, declared_charset, parser_type)
