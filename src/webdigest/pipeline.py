"""
Single-URL extraction pipeline and bounded batch orchestration.

Flow for one URL: cancellation check -> URL validation -> bounded fetch ->
classification -> {PDF | plain text | binary rejection | HTML strategy chain
-> markdown rendering} -> truncation. Every failure is converted into
``ExtractionResult.error``; nothing is raised to the caller.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

import structlog

from webdigest.classifier import base_content_type, classify
from webdigest.config.config import Config, get_settings
from webdigest.crawler.cancellation import CancellationSignal
from webdigest.crawler.http_client import BoundedFetcher, FetchedResponse
from webdigest.crawler.limiter import ConcurrencyLimiter
from webdigest.exceptions import (
    ContentNotFound,
    FetchAborted,
    HttpStatusError,
    InvalidUrlError,
    PdfExtractionError,
    ResponseTooLarge,
    UnsupportedContentType,
)
from webdigest.extractor.manager import ExtractionChain
from webdigest.extractor.pdf_extractor import PdfExtractor
from webdigest.extractor.renderer import MarkdownRenderer
from webdigest.models import ContentKind, ExtractionRequest, ExtractionResult
from webdigest.observability.activity import ActivityMonitor
from webdigest.observability.metrics import increment
from webdigest.utils.text import decode_body, title_from_url, truncate_content
from webdigest.validation import validate_url

logger = structlog.get_logger(__name__)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class ContentExtractor:
    """
    Fetches URLs and turns each response into an ``ExtractionResult``.

    Owns one HTTP session; use as an async context manager. Collaborators
    can be injected, and passing the same ``ConcurrencyLimiter`` to several
    extractors makes them share one pool.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        fetcher: Optional[BoundedFetcher] = None,
        chain: Optional[ExtractionChain] = None,
        pdf_extractor: Optional[PdfExtractor] = None,
        renderer: Optional[MarkdownRenderer] = None,
        activity: Optional[ActivityMonitor] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
    ) -> None:
        self.config = config if config is not None else get_settings()
        self.fetcher = fetcher or BoundedFetcher(self.config.fetch)
        self.chain = chain or ExtractionChain.from_settings(self.config.extraction)
        self.pdf_extractor = pdf_extractor or PdfExtractor(self.config.pdf.output_dir)
        self.renderer = renderer or MarkdownRenderer()
        self.activity = activity or ActivityMonitor(
            history_size=self.config.monitoring.activity_history,
            metrics_enabled=self.config.monitoring.metrics_enabled,
        )
        self.limiter = limiter or ConcurrencyLimiter(self.config.fetch.concurrency_limit)

    async def initialize(self) -> None:
        await self.fetcher.initialize()

    async def close(self) -> None:
        await self.fetcher.close()

    async def __aenter__(self) -> ContentExtractor:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def extract(
        self,
        url: str,
        signal: Optional[CancellationSignal] = None,
        timeout_ms: Optional[int] = None,
    ) -> ExtractionResult:
        """
        Extract one URL. Never raises for per-URL failures.

        Raises:
            ValueError: ``timeout_ms`` is not a positive integer
        """
        request = ExtractionRequest(
            url=url,
            signal=signal,
            timeout_ms=timeout_ms if timeout_ms is not None else self.config.fetch.timeout_ms,
        )

        if signal is not None and signal.cancelled:
            return ExtractionResult.failure(url, "Aborted")

        try:
            validate_url(url)
        except InvalidUrlError as e:
            return ExtractionResult.failure(url, str(e))

        activity_id = self.activity.log_start(type="fetch", url=url)
        with structlog.contextvars.bound_contextvars(activity_id=activity_id):
            return await self._run(request, activity_id)

    async def _run(self, request: ExtractionRequest, activity_id: str) -> ExtractionResult:
        url = request.url

        try:
            response = await self.fetcher.fetch(url, signal=request.signal, timeout_ms=request.timeout_ms)
        except FetchAborted as e:
            self.activity.log_complete(activity_id, 0)
            return ExtractionResult.failure(url, str(e))
        except ResponseTooLarge as e:
            self.activity.log_complete(activity_id, e.status)
            return ExtractionResult.failure(url, str(e))
        except Exception as e:
            message = _error_message(e)
            self.activity.log_error(activity_id, message)
            return ExtractionResult.failure(url, message)

        if not response.ok:
            self.activity.log_complete(activity_id, response.status)
            return ExtractionResult.failure(url, str(HttpStatusError(response.status, response.reason)))

        try:
            result = await self._extract_response(url, response)
        except PdfExtractionError as e:
            message = _error_message(e)
            self.activity.log_error(activity_id, message)
            return ExtractionResult.failure(url, f"PDF extraction failed: {message}")
        except (UnsupportedContentType, ContentNotFound) as e:
            self.activity.log_complete(activity_id, response.status)
            return ExtractionResult.failure(url, str(e))
        except Exception as e:
            message = _error_message(e)
            logger.exception("Unexpected extraction failure", url=url)
            self.activity.log_error(activity_id, message)
            return ExtractionResult.failure(url, message)

        self.activity.log_complete(activity_id, response.status)
        return result

    def _record_extraction(self, kind: ContentKind, strategy: str) -> None:
        if self.config.monitoring.metrics_enabled:
            increment("extractions_total", kind=kind.value, strategy=strategy)

    async def _extract_response(self, url: str, response: FetchedResponse) -> ExtractionResult:
        content_type = response.content_type
        kind = classify(url, content_type, self.config.fetch.raw_text_hosts)
        limit = self.config.fetch.max_content_length
        logger.debug("Classified response", url=url, kind=kind.value, content_type=content_type)

        if kind is ContentKind.PDF:
            outcome = await self.pdf_extractor.extract(response.body, url)
            self._record_extraction(kind, "pypdf")
            return ExtractionResult(
                url=url,
                title=outcome.title,
                content=(
                    f"PDF extracted and saved to: {outcome.output_path}\n\n"
                    f"Pages: {outcome.pages}\nCharacters: {outcome.chars}"
                ),
                error=None,
            )

        if kind is ContentKind.BINARY_UNSUPPORTED:
            raise UnsupportedContentType(base_content_type(content_type))

        text = decode_body(response.body, response.charset)

        if kind is ContentKind.PLAIN_TEXT:
            self._record_extraction(kind, "raw")
            content = truncate_content(text, limit)
            return ExtractionResult(url=url, title=title_from_url(url), content=content, error=None)

        article = self.chain.extract(text, url=response.final_url or url)
        if article is None:
            raise ContentNotFound()

        content = article.content if article.is_markdown else self.renderer.render(article.content)
        self._record_extraction(kind, article.strategy or "unknown")
        return ExtractionResult(url=url, title=article.title or "", content=truncate_content(content, limit))

    async def extract_many(
        self,
        urls: Sequence[str],
        signal: Optional[CancellationSignal] = None,
        timeout_ms: Optional[int] = None,
    ) -> List[ExtractionResult]:
        """
        Extract every URL with at most ``limiter.limit`` in flight.

        Results are positional: ``results[i]`` belongs to ``urls[i]``.
        """
        if timeout_ms is not None:
            # Fail fast on a bad timeout instead of once per URL.
            ExtractionRequest(url="", timeout_ms=timeout_ms)

        async def run_one(url: str) -> ExtractionResult:
            async with self.limiter.slot():
                try:
                    return await self.extract(url, signal=signal, timeout_ms=timeout_ms)
                except Exception as e:
                    logger.exception("Pipeline raised unexpectedly", url=url)
                    return ExtractionResult.failure(url, _error_message(e))

        results = await asyncio.gather(*(run_one(url) for url in urls))
        failed = sum(1 for result in results if not result.ok)
        logger.info("Batch finished", urls=len(urls), failed=failed, peak_concurrency=self.limiter.peak)
        return list(results)


async def extract_single(
    url: str,
    signal: Optional[CancellationSignal] = None,
    timeout_ms: Optional[int] = None,
    *,
    config: Optional[Config] = None,
) -> ExtractionResult:
    """Extract one URL with a short-lived ``ContentExtractor``."""
    async with ContentExtractor(config) as extractor:
        return await extractor.extract(url, signal=signal, timeout_ms=timeout_ms)


async def extract_batch(
    urls: Sequence[str],
    signal: Optional[CancellationSignal] = None,
    timeout_ms: Optional[int] = None,
    *,
    config: Optional[Config] = None,
    limiter: Optional[ConcurrencyLimiter] = None,
) -> List[ExtractionResult]:
    """Extract many URLs, order-preserving, with a bounded number in flight."""
    async with ContentExtractor(config, limiter=limiter) as extractor:
        return await extractor.extract_many(urls, signal=signal, timeout_ms=timeout_ms)
