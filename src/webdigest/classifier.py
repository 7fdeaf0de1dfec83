"""
Content classification from the URL and the declared Content-Type.
"""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlparse

from webdigest.models import ContentKind

PDF_CONTENT_TYPES = ("application/pdf", "application/x-pdf")

BINARY_CONTENT_MARKERS = (
    "application/octet-stream",
    "image/",
    "audio/",
    "video/",
    "application/zip",
)

DEFAULT_RAW_TEXT_HOSTS = ("raw.githubusercontent.com", "gist.githubusercontent.com")


def base_content_type(content_type: str) -> str:
    """``text/html; charset=utf-8`` -> ``text/html``."""
    return content_type.split(";", 1)[0].strip().lower()


def is_pdf(url: str, content_type: str) -> bool:
    ct = content_type.lower()
    if any(pdf_type in ct for pdf_type in PDF_CONTENT_TYPES):
        return True
    try:
        path = urlparse(url).path
    except ValueError:
        return False
    return path.lower().endswith(".pdf")


def is_binary(content_type: str) -> bool:
    ct = content_type.lower()
    return any(marker in ct for marker in BINARY_CONTENT_MARKERS)


def is_plain_text(url: str, content_type: str, raw_text_hosts: Iterable[str] = DEFAULT_RAW_TEXT_HOSTS) -> bool:
    if "text/plain" in content_type.lower():
        return True
    try:
        hostname = urlparse(url).hostname or ""
    except ValueError:
        return False
    return hostname in set(raw_text_hosts)


def classify(url: str, content_type: str, raw_text_hosts: Iterable[str] = DEFAULT_RAW_TEXT_HOSTS) -> ContentKind:
    """Pick the extraction path for a response.

    PDF is checked first so that ``application/octet-stream`` served from a
    ``.pdf`` URL is still parsed as a document.
    """
    if is_pdf(url, content_type):
        return ContentKind.PDF
    if is_binary(content_type):
        return ContentKind.BINARY_UNSUPPORTED
    if is_plain_text(url, content_type, raw_text_hosts):
        return ContentKind.PLAIN_TEXT
    return ContentKind.HTML
