"""
Unit tests for BoundedFetcher: statuses, size ceilings, timeouts and aborts.
"""

import asyncio

import aiohttp
import pytest
from aioresponses import CallbackResult
from webdigest.config.config import FetchConfig
from webdigest.crawler.cancellation import CancellationSignal
from webdigest.crawler.http_client import BoundedFetcher
from webdigest.exceptions import FetchAborted, ResponseTooLarge

MB = 1024 * 1024


def slow_callback(delay: float, body: str = "late"):
    async def callback(url, **kwargs):
        await asyncio.sleep(delay)
        return CallbackResult(status=200, body=body, content_type="text/html")

    return callback


class TestBoundedFetcher:
    async def test_requires_initialize(self, config):
        client = BoundedFetcher(config.fetch)
        with pytest.raises(RuntimeError):
            await client.fetch("https://example.com/")

    async def test_success(self, fetcher, mock_http):
        mock_http.get(
            "https://example.com/page",
            status=200,
            body="<html><body>hi</body></html>",
            content_type="text/html",
            headers={"Content-Type": "text/html; charset=utf-8"},
        )

        response = await fetcher.fetch("https://example.com/page")

        assert response.ok
        assert response.status == 200
        assert response.body == b"<html><body>hi</body></html>"
        assert response.content_type.startswith("text/html")
        assert response.end_ts >= response.start_ts

    async def test_non_success_status_returns_empty_body(self, fetcher, mock_http):
        mock_http.get("https://example.com/missing", status=404, body="gone", reason="Not Found")

        response = await fetcher.fetch("https://example.com/missing")

        assert not response.ok
        assert response.status == 404
        assert response.reason == "Not Found"
        assert response.body == b""

    async def test_declared_length_over_ceiling(self, fetcher, mock_http):
        mock_http.get(
            "https://example.com/huge",
            status=200,
            body="small",
            headers={"Content-Type": "text/html", "Content-Length": str(6 * MB)},
        )

        with pytest.raises(ResponseTooLarge) as exc_info:
            await fetcher.fetch("https://example.com/huge")
        assert str(exc_info.value) == "Response too large (6MB)"
        assert exc_info.value.status == 200

    async def test_pdf_gets_larger_ceiling(self, fetcher, mock_http):
        mock_http.get(
            "https://example.com/doc.pdf",
            status=200,
            body=b"%PDF-1.4",
            headers={"Content-Type": "application/pdf", "Content-Length": str(6 * MB)},
        )
        # 6MB is over the page ceiling but under the PDF one, so only the
        # streamed byte count (8 bytes) matters.
        response = await fetcher.fetch("https://example.com/doc.pdf")
        assert response.body == b"%PDF-1.4"

    async def test_pdf_over_its_ceiling(self, fetcher, mock_http):
        mock_http.get(
            "https://example.com/big.pdf",
            status=200,
            body=b"%PDF",
            headers={"Content-Type": "application/pdf", "Content-Length": str(21 * MB)},
        )
        with pytest.raises(ResponseTooLarge, match=r"\(21MB\)"):
            await fetcher.fetch("https://example.com/big.pdf")

    async def test_streamed_body_over_ceiling(self, mock_http):
        client = BoundedFetcher(FetchConfig(max_response_bytes=1024, chunk_size=256))
        await client.initialize()
        try:
            mock_http.get("https://example.com/stream", status=200, body="x" * 4096, content_type="text/plain")
            with pytest.raises(ResponseTooLarge):
                await client.fetch("https://example.com/stream")
        finally:
            await client.close()

    async def test_binary_body_is_not_read(self, mock_http):
        client = BoundedFetcher(FetchConfig(max_response_bytes=1024, chunk_size=256))
        await client.initialize()
        try:
            mock_http.get("https://example.com/logo", status=200, body=b"\x89PNG" * 1024, content_type="image/png")
            response = await client.fetch("https://example.com/logo")
        finally:
            await client.close()

        assert response.ok
        assert response.body == b""
        assert response.content_type == "image/png"

    async def test_streamed_overflow_reports_bytes_read(self, mock_http):
        client = BoundedFetcher(FetchConfig(max_response_bytes=1024, chunk_size=256))
        await client.initialize()
        try:
            mock_http.get("https://example.com/stream", status=200, body="x" * 4096, content_type="text/plain")
            with pytest.raises(ResponseTooLarge) as exc_info:
                await client.fetch("https://example.com/stream")
        finally:
            await client.close()

        assert 1024 < exc_info.value.size <= 4096
        assert exc_info.value.limit == 1024

    async def test_timeout(self, fetcher, mock_http):
        mock_http.get("https://example.com/slow", callback=slow_callback(2))

        with pytest.raises(FetchAborted) as exc_info:
            await fetcher.fetch("https://example.com/slow", timeout_ms=50)
        assert str(exc_info.value) == "Aborted: request timed out after 50ms"

    async def test_external_abort(self, fetcher, mock_http):
        mock_http.get("https://example.com/slow", callback=slow_callback(2))
        signal = CancellationSignal()
        asyncio.get_running_loop().call_later(0.05, signal.cancel)

        with pytest.raises(FetchAborted) as exc_info:
            await fetcher.fetch("https://example.com/slow", signal=signal, timeout_ms=5000)
        assert str(exc_info.value) == "Aborted"
        assert signal.listener_count == 0

    async def test_network_error_propagates(self, fetcher, mock_http):
        mock_http.get("https://example.com/down", exception=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(aiohttp.ClientConnectionError):
            await fetcher.fetch("https://example.com/down")


class _FakeContent:
    def __init__(self, chunks):
        self.chunks = chunks

    async def iter_chunked(self, size):
        for chunk in self.chunks:
            yield chunk


class _FakeResponse:
    url = "https://example.com/stream"
    status = 200

    def __init__(self, chunks):
        self.content = _FakeContent(chunks)


class TestReadBounded:
    async def test_stops_once_over_limit(self):
        consumed = []

        class Tracking(_FakeContent):
            async def iter_chunked(self, size):
                for chunk in self.chunks:
                    consumed.append(chunk)
                    yield chunk

        response = _FakeResponse([])
        response.content = Tracking([b"a" * 600, b"b" * 600, b"c" * 600])
        client = BoundedFetcher(FetchConfig(max_response_bytes=1000))

        with pytest.raises(ResponseTooLarge):
            await client._read_bounded(response, 1000)
        assert len(consumed) == 2

    async def test_reads_everything_under_limit(self):
        client = BoundedFetcher(FetchConfig())
        body = await client._read_bounded(_FakeResponse([b"ab", b"cd"]), 10)
        assert body == b"abcd"
