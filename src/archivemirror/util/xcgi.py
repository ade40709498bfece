from __future__ import annotations

import codecs


def parse_header(mime_header_value: str) -> tuple[str, dict[str, str]]:
    """
    Parse a MIME header (such as Content-Type) into a main value and
    a dictionary of parameters.

    Ex: 'text/html; charset=utf-8' -> ('text/html', {'charset': 'utf-8'})
    """
    from email.message import EmailMessage
    msg = EmailMessage()
    msg['content-type'] = mime_header_value
    return (msg.get_content_type(), dict(msg['content-type'].params))


def known_charset(charset: str | None) -> str | None:
    """
    Returns the specified charset if Python has a codec for it,
    or None otherwise. Ex: 'unknown-8bit' -> None
    """
    if charset is None:
        return None
    try:
        codecs.lookup(charset)
    except LookupError:
        return None
    return charset
