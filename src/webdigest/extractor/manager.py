"""
Ordered chain of HTML extraction strategies.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from ..config.config import ExtractionSettings
from .models import Article
from .protocols import ArticleStrategy
from .readability_extractor import ReadabilityExtractor
from .rsc_extractor import RscFlightExtractor
from .trafilatura_extractor import TrafilaturaExtractor

logger = structlog.get_logger(__name__)

STRATEGY_FACTORIES: Dict[str, Callable[[], ArticleStrategy]] = {
    "readability": ReadabilityExtractor,
    "rsc": RscFlightExtractor,
    "trafilatura": TrafilaturaExtractor,
}


class ExtractionChain:
    """
    Tries each strategy in order and stops at the first one producing content.

    A strategy that raises is logged and treated as having found nothing, so
    a parser crash on hostile markup falls through to the next strategy.
    """

    def __init__(self, strategies: Sequence[ArticleStrategy]) -> None:
        if not strategies:
            raise ValueError("ExtractionChain needs at least one strategy")
        self.strategies: List[ArticleStrategy] = list(strategies)
        self.logger = logger.bind(component="ExtractionChain")
        self._metrics: Dict[str, Dict[str, float]] = {
            strategy.name: {"attempts": 0, "successes": 0, "total_time": 0.0} for strategy in self.strategies
        }

    @classmethod
    def from_settings(cls, settings: ExtractionSettings) -> ExtractionChain:
        unknown = [name for name in settings.strategy_order if name not in STRATEGY_FACTORIES]
        if unknown:
            raise ValueError(f"Unknown strategies {unknown}. Available strategies: {list(STRATEGY_FACTORIES)}")
        return cls([STRATEGY_FACTORIES[name]() for name in settings.strategy_order])

    @property
    def names(self) -> List[str]:
        return [strategy.name for strategy in self.strategies]

    def extract(self, html: str, *, url: str | None = None) -> Optional[Article]:
        for strategy in self.strategies:
            stats = self._metrics[strategy.name]
            stats["attempts"] += 1
            start_time = time.perf_counter()

            try:
                article = strategy.extract(html, url=url)
            except Exception as e:
                self.logger.warning(
                    "Strategy failed",
                    strategy=strategy.name,
                    url=url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            finally:
                stats["total_time"] += time.perf_counter() - start_time

            if article is None or not article.content.strip():
                self.logger.debug("Strategy found no content", strategy=strategy.name, url=url)
                continue

            stats["successes"] += 1
            self.logger.debug(
                "Strategy succeeded",
                strategy=strategy.name,
                url=url,
                content_length=len(article.content),
            )
            return article

        self.logger.info("No strategy produced content", url=url, chain=self.names)
        return None

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """Attempts, successes and timing per strategy."""
        metrics = {}
        for name, raw in self._metrics.items():
            attempts = raw["attempts"]
            metrics[name] = {
                "attempts": attempts,
                "successes": raw["successes"],
                "success_rate": raw["successes"] / attempts if attempts > 0 else 0.0,
                "total_time": raw["total_time"],
                "avg_time": raw["total_time"] / attempts if attempts > 0 else 0.0,
            }
        return metrics
