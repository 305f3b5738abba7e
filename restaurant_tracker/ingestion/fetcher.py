"""
Fetcher Module
==============

Provides HTTP fetching of upstream pages and payloads with content hashing.
Failures are reported in the result rather than raised, so the crawl
orchestrator can decide whether a failure ends the run.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Result of fetching a URL."""

    url: str
    content: bytes
    content_hash: str
    mime_type: str
    status_code: int
    fetched_at: datetime
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if fetch was successful."""
        return self.error is None and 200 <= self.status_code < 300


class Fetcher:
    """
    HTTP fetcher for upstream licensing data.

    One attempt per call: paging and fallback policy live in the
    orchestrator. The optional transport lets tests substitute
    httpx.MockTransport for the network.
    """

    def __init__(
        self,
        user_agent: str = "Mozilla/5.0 (compatible; RestaurantTracker/0.1)",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport

    @staticmethod
    def compute_hash(content: bytes) -> str:
        """
        Compute SHA-256 hash of content.

        Args:
            content: Raw bytes to hash

        Returns:
            Hex-encoded SHA-256 hash
        """
        return hashlib.sha256(content).hexdigest()

    async def fetch(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> FetchResult:
        """
        Fetch a URL.

        Args:
            url: URL to fetch
            params: Query parameters
            headers: Extra request headers (User-Agent is always sent)

        Returns:
            FetchResult with content or error
        """
        fetched_at = datetime.now(UTC)
        request_headers = {"User-Agent": self.user_agent, **(headers or {})}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    url,
                    params=params,
                    headers=request_headers,
                    follow_redirects=True,
                )
        except httpx.TimeoutException:
            logger.warning(f"Timeout fetching {url}")
            return self._failure(url, fetched_at, f"Timeout after {self.timeout}s")
        except httpx.HTTPError as e:
            logger.warning(f"HTTP error fetching {url}: {e}")
            return self._failure(url, fetched_at, str(e) or type(e).__name__)

        content = response.content
        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        error = None
        if not 200 <= response.status_code < 300:
            error = f"HTTP {response.status_code}"
            logger.warning(f"Non-success status fetching {url}: {response.status_code}")

        return FetchResult(
            url=str(response.url),
            content=content,
            content_hash=self.compute_hash(content),
            mime_type=mime_type,
            status_code=response.status_code,
            fetched_at=fetched_at,
            error=error,
        )

    @staticmethod
    def _failure(url: str, fetched_at: datetime, error: str) -> FetchResult:
        return FetchResult(
            url=url,
            content=b"",
            content_hash="",
            mime_type="",
            status_code=0,
            fetched_at=fetched_at,
            error=error,
        )
