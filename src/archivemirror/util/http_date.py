from __future__ import annotations

import datetime

# https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Date#syntax
# https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/If-Modified-Since#syntax
#
# TODO: Rewrite related code to not assume an en-US locale.
_DATE_HEADER_FORMAT = '%a, %d %b %Y %H:%M:%S GMT'


def parse(date_str: str) -> datetime.datetime:
    """
    Parses an HTTP date, returning an aware datetime in UTC.

    Raises:
    * ValueError
    """
    return datetime.datetime.strptime(date_str.strip(), _DATE_HEADER_FORMAT).replace(
        tzinfo=datetime.timezone.utc)


def try_parse(date_str: str | None) -> datetime.datetime | None:
    if date_str is None:
        return None
    try:
        return parse(date_str)
    except ValueError:
        return None


def format(date: datetime.datetime) -> str:
    assert datetime_is_aware(date)
    return date.astimezone(datetime.timezone.utc).strftime(_DATE_HEADER_FORMAT)


def is_modified_since(modified_at: datetime.datetime, since: datetime.datetime) -> bool:
    """
    Returns whether `modified_at` is later than `since`,
    at the one-second granularity of HTTP dates.
    """
    return modified_at.replace(microsecond=0) > since


def datetime_is_aware(dt: datetime.datetime) -> bool:
    # https://docs.python.org/3/library/datetime.html#determining-if-an-object-is-aware-or-naive
    return (
        dt.tzinfo is not None and
        dt.tzinfo.utcoffset(dt) is not None
    )
