"""
Text helpers: truncation, body decoding and URL-derived titles.
"""

from __future__ import annotations

import codecs
from typing import Optional
from urllib.parse import urlparse

import charset_normalizer

MAX_CONTENT_LENGTH = 10000
TRUNCATION_MARKER = "\n\n[Content truncated...]"


def truncate_content(text: str, limit: int = MAX_CONTENT_LENGTH) -> str:
    """Cap ``text`` at ``limit`` characters, appending the truncation marker."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def decode_body(body: bytes, charset: Optional[str] = None) -> str:
    """
    Decode a response body.

    The declared charset wins when Python knows it; otherwise
    charset-normalizer guesses, and UTF-8 with replacement is the last resort.
    """
    if not body:
        return ""

    if charset:
        try:
            codecs.lookup(charset)
            return body.decode(charset, errors="replace")
        except LookupError:
            pass

    try:
        return body.decode("utf-8")
    except UnicodeDecodeError:
        pass

    best = charset_normalizer.from_bytes(body).best()
    if best is not None:
        return str(best)
    return body.decode("utf-8", errors="replace")


def title_from_url(url: str) -> str:
    """Last path segment of ``url``, or the URL itself when there is none."""
    path = urlparse(url).path
    return path.split("/")[-1] or url
