"""
Data models for extraction strategies.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Article:
    """Title and main content recovered from an HTML page."""

    title: str
    content: str
    is_markdown: bool  # False: content is an HTML fragment that still needs rendering
    strategy: str = ""
