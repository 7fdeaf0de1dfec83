"""
React Server Components "flight data" fallback extractor.

Next.js App Router pages stream their component tree through inline scripts
of the form ``self.__next_f.push([1, "<chunk>"])``. When readability finds
nothing (the visible DOM is an empty hydration shell), the joined chunks can
still be parsed into rows of the form ``<hex id>:<payload>`` and the React
element tuples ``["$", tag, key, props]`` walked back into markdown.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Set

import structlog
from selectolax.parser import HTMLParser

from .models import Article

logger = structlog.get_logger(__name__)

FLIGHT_MARKER = "self.__next_f"

_PUSH_RE = re.compile(r"self\.__next_f\.push\((\[.*\])\)\s*;?\s*$", re.DOTALL)
_ROW_ID_RE = re.compile(r"([0-9a-fA-F]*):")
_TEXT_ROW_RE = re.compile(r"T([0-9a-fA-F]+),")
_REFERENCE_RE = re.compile(r"^\$(?:L|@)?([0-9a-fA-F]+)$")

SKIP_TAGS = frozenset(
    {"script", "style", "noscript", "template", "svg", "head", "meta", "link", "iframe", "button", "form", "nav"}
)
HEADING_TAGS = {f"h{level}": level for level in range(1, 7)}
BLOCK_TAGS = frozenset({"p", "blockquote", "figcaption", "dt", "dd", "td", "th", "summary"})
INLINE_TAGS = frozenset({"span", "a", "strong", "b", "em", "i", "code", "small", "sup", "sub", "mark", "time", "abbr"})


class _FlightRenderer:
    """Walks resolved flight rows and collects markdown blocks."""

    def __init__(self, rows: Dict[str, Any]) -> None:
        self.rows = rows
        self.visited: Set[str] = set()
        self.blocks: List[str] = []
        self.heading_title: Optional[str] = None
        self.metadata_title: Optional[str] = None

    def render_rows(self) -> None:
        for row_id in list(self.rows):
            if row_id in self.visited:
                continue
            self.visited.add(row_id)
            self.block(self.rows[row_id])

    def _resolve(self, reference: str) -> Any:
        match = _REFERENCE_RE.match(reference)
        if not match:
            return None
        row_id = match.group(1)
        if row_id in self.visited or row_id not in self.rows:
            return None
        self.visited.add(row_id)
        return self.rows[row_id]

    def _emit(self, text: str) -> None:
        text = text.strip()
        if text:
            self.blocks.append(text)

    def block(self, node: Any) -> None:
        if isinstance(node, str):
            if node.startswith("$"):
                if node.startswith("$$"):
                    self._emit(node[1:])
                    return
                resolved = self._resolve(node)
                if resolved is not None:
                    self.block(resolved)
                return
            self._emit(node)
            return

        if isinstance(node, dict):
            if "children" in node:
                self.block(node["children"])
            return

        if not isinstance(node, list):
            return

        if len(node) >= 4 and node[0] == "$" and isinstance(node[1], str):
            self._element_block(node[1], node[3] if isinstance(node[3], dict) else {})
            return

        for child in node:
            self.block(child)

    def _element_block(self, tag: str, props: Dict[str, Any]) -> None:
        children = props.get("children")

        if tag == "title":
            if self.metadata_title is None:
                self.metadata_title = self.inline(children).strip() or None
            return
        if tag in SKIP_TAGS:
            return

        if tag in HEADING_TAGS:
            text = self.inline(children).strip()
            if text:
                if tag == "h1" and self.heading_title is None:
                    self.heading_title = text
                self.blocks.append(f"{'#' * HEADING_TAGS[tag]} {text}")
            return
        if tag == "pre":
            code = self.raw_text(children).strip("\n")
            if code.strip():
                self.blocks.append(f"```\n{code}\n```")
            return
        if tag == "li":
            text = self.inline(children).strip()
            if text:
                self.blocks.append(f"- {text}")
            return
        if tag == "blockquote":
            text = self.inline(children).strip()
            if text:
                self.blocks.append("\n".join(f"> {line}" for line in text.splitlines()))
            return
        if tag in BLOCK_TAGS or tag in INLINE_TAGS:
            self._emit(self.inline(children))
            return

        self.block(children)

    def inline(self, node: Any) -> str:
        if node is None or isinstance(node, bool):
            return ""
        if isinstance(node, (int, float)):
            return str(node)
        if isinstance(node, str):
            if node.startswith("$$"):
                return node[1:]
            if node.startswith("$"):
                resolved = self._resolve(node)
                return self.inline(resolved) if resolved is not None else ""
            return node
        if isinstance(node, dict):
            return self.inline(node.get("children"))
        if not isinstance(node, list):
            return ""

        if len(node) >= 4 and node[0] == "$" and isinstance(node[1], str):
            tag = node[1]
            props = node[3] if isinstance(node[3], dict) else {}
            if tag in SKIP_TAGS or tag == "title":
                return ""
            if tag == "br":
                return "\n"
            text = self.inline(props.get("children"))
            if tag == "code" and text:
                return f"`{text}`"
            if tag in ("strong", "b") and text.strip():
                return f"**{text}**"
            if tag in ("em", "i") and text.strip():
                return f"*{text}*"
            return text

        return "".join(self.inline(child) for child in node)

    def raw_text(self, node: Any) -> str:
        if isinstance(node, str):
            if node.startswith("$") and not node.startswith("$$"):
                resolved = self._resolve(node)
                return self.raw_text(resolved) if resolved is not None else ""
            return node.removeprefix("$")
        if isinstance(node, dict):
            return self.raw_text(node.get("children"))
        if isinstance(node, list):
            if len(node) >= 4 and node[0] == "$" and isinstance(node[1], str):
                props = node[3] if isinstance(node[3], dict) else {}
                return self.raw_text(props.get("children"))
            return "".join(self.raw_text(child) for child in node)
        return ""


class RscFlightExtractor:
    """Fallback strategy reading Next.js flight data embedded in the HTML."""

    name = "rsc"

    def __init__(self, min_content_chars: int = 1) -> None:
        self.min_content_chars = min_content_chars

    def extract(self, html: str, *, url: str | None = None) -> Optional[Article]:
        if FLIGHT_MARKER not in html:
            return None

        tree = HTMLParser(html)
        flight = "".join(self._flight_chunks(tree))
        if not flight:
            logger.debug("No flight chunks found", url=url)
            return None

        rows = parse_flight_rows(flight)
        renderer = _FlightRenderer(rows)
        renderer.render_rows()

        content = "\n\n".join(renderer.blocks)
        if len(content.strip()) < self.min_content_chars:
            logger.debug("Flight data produced no text", url=url, rows=len(rows))
            return None

        title = renderer.metadata_title or self._document_title(tree) or renderer.heading_title or ""
        return Article(title=title, content=content, is_markdown=True, strategy=self.name)

    def _flight_chunks(self, tree: HTMLParser) -> List[str]:
        chunks: List[str] = []
        for script in tree.css("script"):
            source = script.text(deep=True, separator="", strip=False) or ""
            if FLIGHT_MARKER not in source:
                continue
            for statement in source.split("self.__next_f.push(")[1:]:
                match = _PUSH_RE.match("self.__next_f.push(" + statement.strip())
                if not match:
                    continue
                try:
                    payload = json.loads(match.group(1))
                except json.JSONDecodeError:
                    continue
                if isinstance(payload, list) and len(payload) >= 2 and payload[0] == 1 and isinstance(payload[1], str):
                    chunks.append(payload[1])
        return chunks

    def _document_title(self, tree: HTMLParser) -> str:
        node = tree.css_first("title")
        if node is None:
            return ""
        return node.text(strip=True)


def parse_flight_rows(flight: str) -> Dict[str, Any]:
    """
    Split a joined flight stream into ``{row_id: value}``.

    JSON rows end at a newline; text rows (``T<hexlen>,``) carry a UTF-8 byte
    length instead. Rows tagged with a letter (imports, hints, errors) are
    skipped.
    """
    rows: Dict[str, Any] = {}
    pos = 0
    length = len(flight)

    while pos < length:
        match = _ROW_ID_RE.match(flight, pos)
        if not match:
            newline = flight.find("\n", pos)
            if newline == -1:
                break
            pos = newline + 1
            continue

        row_id = match.group(1)
        pos = match.end()

        text_row = _TEXT_ROW_RE.match(flight, pos)
        if text_row:
            byte_length = int(text_row.group(1), 16)
            start = text_row.end()
            raw = flight[start : start + byte_length].encode("utf-8")[:byte_length]
            text = raw.decode("utf-8", errors="ignore")
            rows[row_id] = text
            pos = start + len(text)
            continue

        newline = flight.find("\n", pos)
        end = length if newline == -1 else newline
        line = flight[pos:end]
        pos = end + 1

        if not line or line[0].isalpha():
            continue
        try:
            rows[row_id] = json.loads(line)
        except json.JSONDecodeError:
            continue

    return rows
