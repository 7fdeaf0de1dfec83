"""
Trafilatura-based HTML content extractor.

Not part of the default chain; enable it through
``extraction.strategy_order``.
"""

from __future__ import annotations

from typing import Optional

import structlog
import trafilatura

from .models import Article

logger = structlog.get_logger(__name__)


class TrafilaturaExtractor:
    """Extractor using Trafilatura for high-precision content extraction."""

    name = "trafilatura"

    def __init__(self) -> None:
        self.config = {
            "favor_precision": True,
            "include_comments": False,
            "include_tables": True,
            "include_images": False,
            "include_formatting": True,
            "include_links": True,
        }

    def extract(self, html: str, *, url: str | None = None) -> Optional[Article]:
        if not html.strip():
            return None

        markdown = trafilatura.extract(html, url=url, output_format="markdown", **self.config)
        if not markdown or not markdown.strip():
            logger.debug("Trafilatura found no main content", url=url)
            return None

        metadata = trafilatura.extract_metadata(html, default_url=url)
        title = metadata.title if metadata is not None and metadata.title else ""

        return Article(title=title, content=markdown.strip(), is_markdown=True, strategy=self.name)
