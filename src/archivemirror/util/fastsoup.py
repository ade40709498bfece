from __future__ import annotations

import bs4
from bs4 import BeautifulSoup
from collections.abc import Callable, Iterable, MutableMapping
from typing import TYPE_CHECKING
from typing_extensions import override

if TYPE_CHECKING:
    from archivemirror.doc.html import HtmlParserType


# BeautifulSoup tree builder to use for each parser type
_FEATURES_FOR_PARSER_TYPE = {
    'html5lib': 'html5lib',
    'html_parser': 'html.parser',
    # NOTE: Parsed by lxml but rendered by BeautifulSoup,
    #       because lxml's own serializer percent-escapes
    #       non-ASCII characters in href and src attributes
    'lxml': 'lxml',
}


def parse_html(
        html_bytes: bytes,
        from_encoding: str | None,
        parser_type: HtmlParserType,
        ) -> FastSoup:
    """
    Parses an HTML document, returning a FastSoup object that can be
    examined through a BeautifulSoup-compatible API.

    If `from_encoding` is not None then it is tried first when decoding
    the document, before any encoding the document declares itself.

    Raises:
    * ValueError -- if the parser type is not recognized.
    * Exception -- if the underlying parser rejects the document.
    """
    features = _FEATURES_FOR_PARSER_TYPE.get(parser_type)
    if features is None:
        raise ValueError(f'Unrecognized value for parser_type: {parser_type}')
    return BeautifulFastSoup(BeautifulSoup(
        html_bytes, from_encoding=from_encoding, features=features))


Tag = bs4.Tag

FindFunc = Callable[['FastSoup'], Iterable[Tag]]


class FastSoup:  # abstract
    """A parsed HTML document, navigable with a BeautifulSoup-compatible API."""

    # === Document ===

    @classmethod
    def find_all_compile(cls, tag_name: str, attr_name: str) -> FindFunc:
        """
        Returns a function that finds every tag with the specified name
        that has the specified attribute, in document order.
        """
        raise NotImplementedError()

    def encode(self, encoding: str) -> bytes:
        """
        Renders this document as bytes in the specified encoding.

        Characters that the encoding cannot represent are written as
        numeric character references. Any <meta charset=...> is rewritten
        to name the output encoding.
        """
        raise NotImplementedError()

    # === Tags ===

    def tag_attrs(self, tag: Tag) -> MutableMapping[str, str | list[str]]:
        raise NotImplementedError()


class BeautifulFastSoup(FastSoup):
    def __init__(self, base: BeautifulSoup) -> None:
        self._base = base

    # === Document ===

    # NOTE: BeautifulFastSoup doesn't actually support precompiling find_all() queries
    @override
    @classmethod
    def find_all_compile(cls, tag_name: str, attr_name: str) -> FindFunc:
        def find_func(soup: FastSoup) -> Iterable[Tag]:
            if not isinstance(soup, BeautifulFastSoup):
                raise TypeError()
            return soup._base.find_all(tag_name, attrs={attr_name: True})
        return find_func

    @override
    def encode(self, encoding: str) -> bytes:
        return self._base.encode(encoding, errors='xmlcharrefreplace')

    # === Tags ===

    @override
    def tag_attrs(self, tag: Tag) -> MutableMapping[str, str | list[str]]:
        assert isinstance(tag, bs4.Tag)
        return tag.attrs  # type: ignore[return-value]
