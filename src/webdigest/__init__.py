"""
webdigest - Readable text from arbitrary URLs under strict time and size limits.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .crawler.cancellation import CancellationSignal
from .crawler.limiter import ConcurrencyLimiter
from .models import ContentKind, ExtractionRequest, ExtractionResult, PdfExtractionOutcome
from .pipeline import ContentExtractor, extract_batch, extract_single

__all__ = [
    "__version__",
    "CancellationSignal",
    "ConcurrencyLimiter",
    "Config",
    "ContentExtractor",
    "ContentKind",
    "ExtractionRequest",
    "ExtractionResult",
    "PdfExtractionOutcome",
    "extract_batch",
    "extract_single",
]
