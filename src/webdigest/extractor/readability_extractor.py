"""
Readability-based HTML content extractor.
"""

from __future__ import annotations

from typing import Optional

import structlog
from lxml import html as lxml_html
from lxml.etree import ParserError
from readability import Document

from .models import Article

logger = structlog.get_logger(__name__)

# readability-lxml's placeholder when a document has no <title>
_NO_TITLE = "[no-title]"


class ReadabilityExtractor:
    """Primary strategy: readability-lxml's article distillation."""

    name = "readability"

    def __init__(self) -> None:
        self.config = {
            "min_text_length": 25,
            "retry_length": 250,
        }

    def extract(self, html: str, *, url: str | None = None) -> Optional[Article]:
        if not html.strip():
            return None

        doc = Document(
            html,
            url=url,
            min_text_length=self.config["min_text_length"],
            retry_length=self.config["retry_length"],
        )
        content_html = doc.summary(html_partial=True)

        if not self._visible_text(content_html):
            logger.debug("Readability summary has no visible text", url=url)
            return None

        title = doc.short_title() or ""
        if title == _NO_TITLE:
            title = ""

        return Article(title=title.strip(), content=content_html, is_markdown=False, strategy=self.name)

    def _visible_text(self, fragment: str) -> str:
        if not fragment or not fragment.strip():
            return ""
        try:
            element = lxml_html.fromstring(fragment)
        except (ParserError, ValueError):
            return ""
        return " ".join(element.text_content().split())
