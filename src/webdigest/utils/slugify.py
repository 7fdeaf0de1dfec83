"""
Filesystem-safe names for the markdown files written for extracted PDFs.
"""

import hashlib
import re
from urllib.parse import urlparse

_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")

# Device names Windows refuses as file stems, whatever the extension.
_RESERVED_STEMS = frozenset({"con", "prn", "aux", "nul"} | {f"{p}{i}" for p in ("com", "lpt") for i in range(1, 10)})


def slugify(text: str, max_length: int = 200) -> str:
    """
    Lowercase ``text`` and join its alphanumeric runs with hyphens.

    Examples:
        >>> slugify("Hello World!")
        'hello-world'

        >>> slugify("My File (v2.1).txt")
        'my-file-v2-1-txt'

        >>> slugify("CON")
        'con-reserved'
    """
    slug = _SEPARATORS.sub("-", text).strip("-").lower()
    if slug.split("-", 1)[0] in _RESERVED_STEMS:
        slug += "-reserved"
    return slug[:max_length].rstrip("-")


def slugify_url(url: str, max_length: int = 120) -> str:
    """
    File stem for a URL: readable host and path plus a short digest so
    distinct URLs (query strings included) never collide.

    Examples:
        >>> slugify_url("https://example.com/papers/a.pdf")[:25]
        'example-com-papers-a-pdf-'
    """
    parsed = urlparse(url)
    readable = slugify(f"{parsed.hostname or ''} {parsed.path}", max_length=max_length) or "document"
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:8]
    return f"{readable}-{digest}"
