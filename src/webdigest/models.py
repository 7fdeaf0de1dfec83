"""
Value objects shared across the extraction pipeline.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from webdigest.crawler.cancellation import CancellationSignal

DEFAULT_TIMEOUT_MS = 30000


class ContentKind(Enum):
    """Routing decision derived from the response headers and the URL."""

    PDF = "pdf"
    PLAIN_TEXT = "plain_text"
    BINARY_UNSUPPORTED = "binary_unsupported"
    HTML = "html"


@dataclass(slots=True, frozen=True)
class ExtractionRequest:
    """A single URL to extract, with its cancellation and time budget."""

    url: str
    signal: Optional["CancellationSignal"] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        if isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, int) or self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be a positive integer")


@dataclass(slots=True, frozen=True)
class ExtractionResult:
    """Outcome of extracting one URL. ``error`` is None iff extraction succeeded."""

    url: str
    title: str
    content: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, url: str, message: str) -> ExtractionResult:
        return cls(url=url, title="", content="", error=message)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class PdfExtractionOutcome:
    """Summary of a PDF whose full text was written to ``output_path``."""

    title: str
    output_path: str
    pages: int
    chars: int
