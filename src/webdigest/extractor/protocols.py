"""
Protocols for pluggable HTML extraction strategies.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from .models import Article


@runtime_checkable
class ArticleStrategy(Protocol):
    """HTML-to-Article strategy tried in order by the extraction chain."""

    name: str

    def extract(self, html: str, *, url: str | None = None) -> Optional[Article]:
        """Extract the main content of a page.

        Args:
            html: Raw HTML document
            url: Optional URL for resolving relative links

        Returns:
            An Article, or None when the strategy finds nothing readable
        """
        ...
