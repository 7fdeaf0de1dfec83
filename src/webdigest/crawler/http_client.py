"""
Bounded HTTP fetcher with cooperative cancellation and a response-size ceiling.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from http import HTTPStatus
from typing import Dict, Optional

import aiohttp
import structlog

from webdigest.classifier import is_binary, is_pdf
from webdigest.config.config import FetchConfig
from webdigest.exceptions import ResponseTooLarge

from .cancellation import AbortScope, CancellationSignal

logger = structlog.get_logger(__name__)


@dataclass
class FetchedResponse:
    """Response from a bounded fetch, body fully read (empty for non-2xx and skipped binaries)."""

    url: str
    final_url: str
    status: int
    reason: str
    headers: Dict[str, str]
    body: bytes
    start_ts: float
    end_ts: float
    charset: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


def _status_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def _parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.debug("Ignoring malformed Content-Length", value=value)
        return None


class BoundedFetcher:
    """aiohttp-backed fetcher enforcing a per-request timeout and a size cap."""

    def __init__(self, config: FetchConfig):
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None
        self._is_initialized = False

    async def initialize(self) -> None:
        """Initialize the HTTP client session."""
        if self.session is None:
            connector = aiohttp.TCPConnector(limit=0, ttl_dns_cache=30, use_dns_cache=True)
            # Timeouts are enforced per request by AbortScope.
            self.session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=None),
                headers={"User-Agent": self.config.user_agent, "Accept": self.config.accept},
            )
            self._is_initialized = True
            logger.debug("HTTP session initialized", user_agent=self.config.user_agent)

    async def close(self) -> None:
        """Close the HTTP session and its connector."""
        if self.session is not None:
            await self.session.close()
            self.session = None
        self._is_initialized = False
        logger.debug("HTTP session closed")

    async def __aenter__(self) -> BoundedFetcher:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def size_limit_for(self, url: str, content_type: str) -> int:
        if is_pdf(url, content_type):
            return self.config.max_pdf_response_bytes
        return self.config.max_response_bytes

    async def fetch(
        self,
        url: str,
        *,
        signal: Optional[CancellationSignal] = None,
        timeout_ms: Optional[int] = None,
    ) -> FetchedResponse:
        """
        GET ``url`` and read its body within the time and size limits.

        Args:
            url: Absolute URL to fetch
            signal: Optional caller-owned cancellation signal
            timeout_ms: Request timeout, defaults to the configured one

        Returns:
            FetchedResponse; the body is left unread for non-2xx statuses
            and for binary types other than PDF

        Raises:
            FetchAborted: the signal or the timeout fired first
            ResponseTooLarge: declared or streamed size over the ceiling
            aiohttp.ClientError: network failures
        """
        if not self._is_initialized or self.session is None:
            raise RuntimeError("HTTP client not initialized. Call initialize() first.")

        timeout_ms = timeout_ms or self.config.timeout_ms
        start_time = time.time()

        async with AbortScope(signal, timeout_ms) as scope:
            response = await scope.run(self._send(url))
            try:
                headers = {key.lower(): value for key, value in response.headers.items()}
                reason = response.reason or _status_phrase(response.status)

                if not 200 <= response.status < 300:
                    logger.info("Non-success status", url=url, status=response.status, reason=reason)
                    return FetchedResponse(
                        url=url,
                        final_url=str(response.url),
                        status=response.status,
                        reason=reason,
                        headers=headers,
                        body=b"",
                        start_ts=start_time,
                        end_ts=time.time(),
                    )

                content_type = headers.get("content-type", "")
                limit = self.size_limit_for(url, content_type)
                declared = _parse_content_length(headers.get("content-length"))
                if declared is not None and declared > limit:
                    logger.info("Declared size over ceiling", url=url, size=declared, limit=limit)
                    raise ResponseTooLarge(declared, limit, status=response.status)

                if is_binary(content_type) and not is_pdf(url, content_type):
                    # Rejected by content type downstream, so the body is never needed.
                    logger.debug("Skipping binary body", url=url, content_type=content_type)
                    body = b""
                else:
                    body = await scope.run(self._read_bounded(response, limit))
                return FetchedResponse(
                    url=url,
                    final_url=str(response.url),
                    status=response.status,
                    reason=reason,
                    headers=headers,
                    body=body,
                    start_ts=start_time,
                    end_ts=time.time(),
                    charset=response.charset,
                )
            finally:
                response.close()

    async def _send(self, url: str) -> aiohttp.ClientResponse:
        assert self.session is not None
        return await self.session.get(url, allow_redirects=True)

    async def _read_bounded(self, response: aiohttp.ClientResponse, limit: int) -> bytes:
        """
        Read the body, failing as soon as it grows past ``limit`` bytes.

        The reported size is the byte count at the point of abort, not the
        full body size, which is unknown without a Content-Length header.
        """
        body = bytearray()
        async for chunk in response.content.iter_chunked(self.config.chunk_size):
            body.extend(chunk)
            if len(body) > limit:
                logger.info("Streamed size over ceiling", url=str(response.url), size=len(body), limit=limit)
                raise ResponseTooLarge(len(body), limit, status=response.status)
        return bytes(body)
