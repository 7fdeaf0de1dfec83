"""
Pre-flight URL validation.
"""

from __future__ import annotations

from yarl import URL

from webdigest.exceptions import InvalidUrlError


def validate_url(url: str) -> URL:
    """
    Strictly parse ``url`` as an absolute URL with a scheme and a host.

    Raises:
        InvalidUrlError: when the string does not parse or is relative
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError(str(url))
    try:
        parsed = URL(url)
        host = parsed.host
    except (ValueError, TypeError, UnicodeError) as e:
        raise InvalidUrlError(url) from e
    if not parsed.is_absolute() or not parsed.scheme or not host:
        raise InvalidUrlError(url)
    return parsed


def is_valid_url(url: str) -> bool:
    try:
        validate_url(url)
    except InvalidUrlError:
        return False
    return True
