"""Tests for the HTTP fetcher."""

import httpx
import pytest

from restaurant_tracker.ingestion.fetcher import Fetcher, FetchResult


def _fetcher(handler) -> Fetcher:
    return Fetcher(user_agent="TestAgent/1.0", timeout=5.0, transport=httpx.MockTransport(handler))


class TestFetcher:
    """Tests for the Fetcher class."""

    def test_compute_hash(self) -> None:
        content = b"test content"
        hash1 = Fetcher.compute_hash(content)
        hash2 = Fetcher.compute_hash(content)

        assert hash1 == hash2
        assert len(hash1) == 64
        assert Fetcher.compute_hash(b"other") != hash1

    @pytest.mark.asyncio
    async def test_fetch_success(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            seen["headers"] = request.headers
            return httpx.Response(
                200,
                content=b"<table></table>",
                headers={"content-type": "text/html; charset=utf-8"},
            )

        result = await _fetcher(handler).fetch(
            "https://example.test/list",
            params={"page": 2, "lang": "en-us"},
            headers={"X-Requested-With": "XMLHttpRequest"},
        )

        assert result.success
        assert result.content == b"<table></table>"
        assert result.mime_type == "text/html"
        assert result.content_hash == Fetcher.compute_hash(b"<table></table>")
        assert seen["params"] == {"page": "2", "lang": "en-us"}
        assert seen["headers"]["user-agent"] == "TestAgent/1.0"
        assert seen["headers"]["x-requested-with"] == "XMLHttpRequest"

    @pytest.mark.asyncio
    async def test_fetch_non_success_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, content=b"busy")

        result = await _fetcher(handler).fetch("https://example.test/list")

        assert not result.success
        assert result.status_code == 503
        assert result.error == "HTTP 503"

    @pytest.mark.asyncio
    async def test_fetch_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await _fetcher(handler).fetch("https://example.test/list")

        assert not result.success
        assert result.status_code == 0
        assert result.content == b""
        assert "connection refused" in result.error

    @pytest.mark.asyncio
    async def test_fetch_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = await _fetcher(handler).fetch("https://example.test/list")

        assert not result.success
        assert result.error == "Timeout after 5.0s"

    @pytest.mark.asyncio
    async def test_fetch_follows_redirects(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(302, headers={"location": "https://example.test/new"})
            return httpx.Response(200, content=b"moved")

        result = await _fetcher(handler).fetch("https://example.test/old")

        assert result.success
        assert result.url == "https://example.test/new"
        assert result.content == b"moved"


class TestFetchResult:
    """Tests for the FetchResult dataclass."""

    def test_success_requires_2xx_and_no_error(self) -> None:
        from datetime import UTC, datetime

        base = dict(url="u", content=b"", content_hash="", mime_type="", fetched_at=datetime.now(UTC))
        assert FetchResult(status_code=200, **base).success
        assert not FetchResult(status_code=404, **base).success
        assert not FetchResult(status_code=200, error="boom", **base).success
