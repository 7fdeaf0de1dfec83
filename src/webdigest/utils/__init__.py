"""Utility modules for webdigest."""

from .atomic import atomic_write_text
from .slugify import slugify, slugify_url
from .text import MAX_CONTENT_LENGTH, TRUNCATION_MARKER, decode_body, title_from_url, truncate_content

__all__ = [
    "MAX_CONTENT_LENGTH",
    "TRUNCATION_MARKER",
    "atomic_write_text",
    "decode_body",
    "slugify",
    "slugify_url",
    "title_from_url",
    "truncate_content",
]
