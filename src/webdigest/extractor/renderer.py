"""
HTML fragment to markdown rendering.
"""

from __future__ import annotations

import re

from markdownify import ATX, markdownify

_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")
_TRAILING_SPACES = re.compile(r"[ \t]+\n")


class MarkdownRenderer:
    """Renders readable HTML with ATX headings and fenced code blocks."""

    def __init__(self, bullets: str = "-") -> None:
        self.options = {
            "heading_style": ATX,
            "bullets": bullets,
            "code_language": "",
        }

    def render(self, fragment: str) -> str:
        if not fragment or not fragment.strip():
            return ""
        markdown = markdownify(fragment, **self.options)
        markdown = _TRAILING_SPACES.sub("\n", markdown)
        markdown = _EXCESS_BLANK_LINES.sub("\n\n", markdown)
        return markdown.strip()
