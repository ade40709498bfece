"""
Computes content fingerprints and MIME classifications ("kinds") of files.

A fingerprint is the SHA-1 digest of a file's bytes, encoded as base-58 text
so that it can be printed safely in plain-text reports. It is used only to
detect byte-identical files, never as a security credential.

A kind is decided by running an ordered chain of classifiers. Each classifier
sees the file's bytes, its path, and the kind decided by earlier classifiers
(if any), and either returns a kind to adopt or None to defer.
"""

from __future__ import annotations

import base58
from collections.abc import Callable, Sequence
import filetype
from functools import lru_cache
import hashlib
import magic
import posixpath


# The kind that sniffers report when they cannot identify content
OCTET_STREAM = 'application/octet-stream'

Classifier = Callable[[bytes, str, 'str | None'], 'str | None']


# ------------------------------------------------------------------------------
# Fingerprint

def fingerprint(data: bytes) -> str:
    """
    Returns a base-58 encoded SHA-1 digest of the specified bytes.

    Identical inputs always yield identical fingerprints.
    """
    digest = hashlib.sha1(data).digest()
    return base58.b58encode(digest).decode('ascii')


# ------------------------------------------------------------------------------
# Classify

def sniff_with_libmagic(data: bytes, path: str, kind: str | None) -> str | None:
    """
    Sniffs content with libmagic's full magic-number database.

    Defers if libmagic only recognizes a generic binary stream.
    """
    if len(data) == 0:
        # libmagic reports 'inode/x-empty', which is not useful as a Content-Type
        return 'text/plain'
    mime_type = _libmagic().from_buffer(data)  # ex: 'text/html; charset=utf-8'
    mime_type = mime_type.removesuffix('; charset=binary')  # reinterpret
    if mime_type == OCTET_STREAM:
        return None
    return mime_type


def sniff_with_signatures(data: bytes, path: str, kind: str | None) -> str | None:
    """
    Sniffs content with a small built-in table of common binary signatures.

    Only consulted when no earlier classifier was confident. Its answer is
    trusted, including the generic binary stream fallback.
    """
    if kind is not None:
        return None
    return filetype.guess_mime(data) or OCTET_STREAM


def override_css_by_extension(data: bytes, path: str, kind: str | None) -> str | None:
    """
    Reclassifies plain text as CSS when the path ends in ".css".

    Stylesheets contain no distinguishing magic bytes,
    so content sniffers report them as plain text.
    """
    if kind is None or not kind.startswith('text/plain'):
        return None
    (path_without_query, _, _) = path.partition('?')
    (_, ext) = posixpath.splitext(path_without_query)
    if ext.lower() == '.css':
        return 'text/css'
    return None


DEFAULT_CLASSIFIERS = (
    sniff_with_libmagic,
    sniff_with_signatures,
    override_css_by_extension,
)  # type: tuple[Classifier, ...]


def classify(
        data: bytes,
        path: str,
        classifiers: Sequence[Classifier]=DEFAULT_CLASSIFIERS,
        ) -> str:
    """
    Returns the kind (MIME type, possibly with a charset parameter)
    of a file with the specified content and root-relative path.
    """
    kind = None  # type: str | None
    for classifier in classifiers:
        new_kind = classifier(data, path, kind)
        if new_kind is not None:
            kind = new_kind
    return kind if kind is not None else OCTET_STREAM


def fingerprint_and_classify(data: bytes, path: str) -> tuple[str, str]:
    return (fingerprint(data), classify(data, path))


@lru_cache(maxsize=1)
def _libmagic() -> magic.Magic:
    return magic.Magic(mime=True, mime_encoding=True)


# ------------------------------------------------------------------------------
