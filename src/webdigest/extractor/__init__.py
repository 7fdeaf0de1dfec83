"""
webdigest extraction strategies.

HTML goes through an ordered chain:
1. Primary: readability-lxml article distillation
2. Fallback: Next.js React Server Components flight data
3. Optional: trafilatura (opt-in through configuration)

PDFs are handled separately by pypdf and written to a markdown side file.
"""

from .manager import STRATEGY_FACTORIES, ExtractionChain
from .models import Article
from .pdf_extractor import PdfExtractor
from .protocols import ArticleStrategy
from .readability_extractor import ReadabilityExtractor
from .renderer import MarkdownRenderer
from .rsc_extractor import RscFlightExtractor, parse_flight_rows
from .trafilatura_extractor import TrafilaturaExtractor

__all__ = [
    "Article",
    "ArticleStrategy",
    "ExtractionChain",
    "MarkdownRenderer",
    "PdfExtractor",
    "ReadabilityExtractor",
    "RscFlightExtractor",
    "STRATEGY_FACTORIES",
    "TrafilaturaExtractor",
    "parse_flight_rows",
]
