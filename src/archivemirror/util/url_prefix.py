from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass(frozen=True)
class PrefixSet:
    """
    An ordered list of absolute URL prefixes that refer to the locally
    served root. Ex: ('http://example.com/', 'https://example.com/')

    When several prefixes match a value, the first one wins.
    """
    prefixes: tuple[str, ...]

    def __init__(self, prefixes: Iterable[str]) -> None:
        object.__setattr__(self, 'prefixes', tuple(prefixes))

    def strip(self, value: str) -> str:
        """
        If the value starts with a prefix in this set then returns a
        root-relative URL for the remainder of the value.
        Otherwise returns the value unchanged.

        A value that was already stripped starts with "/" and
        therefore never matches a prefix again.
        """
        for prefix in self.prefixes:
            if value.startswith(prefix):
                return '/' + value[len(prefix):]
        return value

    def __len__(self) -> int:
        return len(self.prefixes)


def validate_url_prefix(url_prefix: str) -> str:
    """
    Checks that the specified string is an absolute http(s) URL
    that ends with a slash. A bare domain URL like "https://example.com"
    is accepted and returned with a trailing slash.

    Raises:
    * ValueError
    """
    url_components = urlparse(url_prefix)
    if url_components.scheme not in ('http', 'https'):
        raise ValueError(f'URL prefix must start with http:// or https://: {url_prefix}')
    if url_components.netloc == '':
        raise ValueError(f'URL prefix must include a hostname: {url_prefix}')
    if url_components.path == '' and url_components.query == '' and url_components.fragment == '':
        url_prefix += '/'  # reinterpret
    if not url_prefix.endswith('/'):
        raise ValueError(f'URL prefix must end with a slash: {url_prefix}')
    return url_prefix

