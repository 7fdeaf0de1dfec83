"""
Integration tests for bounded, order-preserving batch extraction.
"""

import asyncio

import pytest
from aioresponses import CallbackResult
from webdigest.crawler.cancellation import CancellationSignal
from webdigest.crawler.limiter import ConcurrencyLimiter
from webdigest.pipeline import ContentExtractor, extract_batch

pytestmark = pytest.mark.integration


def slow_text(delay: float, body: str):
    async def callback(url, **kwargs):
        await asyncio.sleep(delay)
        return CallbackResult(status=200, body=body, content_type="text/plain")

    return callback


class TestExtractBatch:
    async def test_order_is_preserved_regardless_of_finish_order(self, extractor, mock_http):
        urls = [f"https://example.com/{i}.txt" for i in range(6)]
        for i, url in enumerate(urls):
            # Earlier URLs finish later.
            mock_http.get(url, callback=slow_text(0.05 * (6 - i), f"body {i}"))

        results = await extractor.extract_many(urls)

        assert [result.url for result in results] == urls
        assert [result.content for result in results] == [f"body {i}" for i in range(6)]

    async def test_at_most_three_in_flight(self, extractor, mock_http):
        urls = [f"https://example.com/slow/{i}.txt" for i in range(10)]
        in_flight = 0
        peak = 0

        async def tracked(url, **kwargs):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.05)
            in_flight -= 1
            return CallbackResult(status=200, body="ok", content_type="text/plain")

        for url in urls:
            mock_http.get(url, callback=tracked)

        results = await extractor.extract_many(urls)

        assert all(result.ok for result in results)
        assert peak == 3
        assert extractor.limiter.peak == 3

    async def test_mixed_outcomes_never_raise(self, extractor, mock_http):
        mock_http.get("https://example.com/ok.txt", status=200, body="fine", content_type="text/plain")
        mock_http.get("https://example.com/missing", status=404, reason="Not Found")

        results = await extractor.extract_many(["https://example.com/ok.txt", "bad url", "https://example.com/missing"])

        assert [result.error for result in results] == [None, "Invalid URL", "HTTP 404: Not Found"]

    async def test_empty_batch(self, extractor):
        assert await extractor.extract_many([]) == []

    async def test_shared_signal_aborts_whole_batch(self, extractor, mock_http):
        urls = [f"https://example.com/wait/{i}.txt" for i in range(5)]
        for url in urls:
            mock_http.get(url, callback=slow_text(2, "late"))
        signal = CancellationSignal()
        asyncio.get_running_loop().call_later(0.05, signal.cancel)

        results = await extractor.extract_many(urls, signal=signal)

        assert [result.error for result in results] == ["Aborted"] * 5
        assert signal.listener_count == 0

    async def test_invalid_timeout_fails_fast(self, extractor):
        with pytest.raises(ValueError):
            await extractor.extract_many(["https://example.com"], timeout_ms=-1)

    async def test_shared_limiter_across_extractors(self, config, mock_http):
        limiter = ConcurrencyLimiter(2)
        in_flight = 0
        peak = 0

        async def tracked(url, **kwargs):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.03)
            in_flight -= 1
            return CallbackResult(status=200, body="ok", content_type="text/plain")

        for i in range(8):
            mock_http.get(f"https://example.com/shared/{i}.txt", callback=tracked)

        first = ContentExtractor(config, limiter=limiter)
        second = ContentExtractor(config, limiter=limiter)
        async with first, second:
            await asyncio.gather(
                first.extract_many([f"https://example.com/shared/{i}.txt" for i in range(4)]),
                second.extract_many([f"https://example.com/shared/{i}.txt" for i in range(4, 8)]),
            )

        assert peak == 2

    async def test_extract_batch_helper(self, config, mock_http):
        mock_http.get("https://example.com/a.txt", status=200, body="a", content_type="text/plain")
        mock_http.get("https://example.com/b.txt", status=200, body="b", content_type="text/plain")

        results = await extract_batch(["https://example.com/a.txt", "https://example.com/b.txt"], config=config)

        assert [result.content for result in results] == ["a", "b"]
