"""
Error taxonomy for the extraction pipeline.

Every exception here carries the exact user-visible message in ``str(exc)``.
The pipeline catches them at the single-URL boundary and reports the message
through ``ExtractionResult.error``; none of them escape to callers.
"""

from __future__ import annotations

import math


class WebDigestError(Exception):
    """Base class for all extraction failures."""


class InvalidUrlError(WebDigestError):
    def __init__(self, url: str) -> None:
        super().__init__("Invalid URL")
        self.url = url


class FetchAborted(WebDigestError):
    """The in-flight request was cancelled by the caller or by its timeout."""

    def __init__(self, reason: str = "external", timeout_ms: int | None = None) -> None:
        if reason == "timeout":
            message = f"Aborted: request timed out after {timeout_ms}ms"
        else:
            message = "Aborted"
        super().__init__(message)
        self.reason = reason
        self.timeout_ms = timeout_ms


class HttpStatusError(WebDigestError):
    def __init__(self, status: int, reason: str) -> None:
        super().__init__(f"HTTP {status}: {reason}")
        self.status = status
        self.reason = reason


class ResponseTooLarge(WebDigestError):
    def __init__(self, size: int, limit: int, status: int = 200) -> None:
        # Halves round up, so an exact 6.5MB reads as 7MB.
        super().__init__(f"Response too large ({math.floor(size / 1024 / 1024 + 0.5)}MB)")
        self.size = size
        self.limit = limit
        self.status = status


class UnsupportedContentType(WebDigestError):
    def __init__(self, content_type: str) -> None:
        super().__init__(f"Unsupported content type: {content_type}")
        self.content_type = content_type


class ContentNotFound(WebDigestError):
    """Neither the primary nor any fallback strategy produced content."""

    def __init__(self) -> None:
        super().__init__("Could not extract readable content")


class PdfExtractionError(WebDigestError):
    """Raised by the PDF extractor; the pipeline prefixes the message."""
