"""
Crawl Orchestrator Module
=========================

Drives one crawl run against a configured source:
fetch -> extract entries -> normalize -> upsert -> commit, page by page,
followed by the recently-added sweep.

Two run kinds:
- preview: stops once `preview_limit` records have been processed
- full: crawls to the end, resuming after the preview when one was done

The orchestrator takes the current ingestion state as input and returns the
new state; it never reads or writes the status row itself.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from restaurant_tracker.core.enums import IngestionState
from restaurant_tracker.core.errors import (
    ConfigError,
    NoDataError,
    PayloadParseError,
    UpstreamUnavailableError,
)
from restaurant_tracker.db.repositories import RestaurantRepository
from restaurant_tracker.ingestion.adapters import RawEntry, get_adapter
from restaurant_tracker.ingestion.fetcher import Fetcher
from restaurant_tracker.ingestion.normalizer import Normalizer
from restaurant_tracker.ingestion.registry import GlobalConfig, SourceConfig
from restaurant_tracker.ingestion.resolver import RestaurantResolver

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass
class CrawlOptions:
    """Options for a single crawl run."""

    full: bool = False
    # Overrides the computed first page for paged sources
    start_page: int | None = None


@dataclass
class CrawlResult:
    """Counters for one crawl run."""

    total_records: int = 0
    new_records: int = 0
    updated_records: int = 0
    errors: int = 0
    ambiguous_matches: int = 0
    pages_fetched: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for API responses."""
        return {_camel(key): value for key, value in asdict(self).items()}


@dataclass
class CrawlOutcome:
    """New ingestion state plus the run's counters."""

    status: IngestionState
    result: CrawlResult


class CrawlOrchestrator:
    """
    Runs a crawl for one source.

    Handles:
    - Sequential page fetches with a fixed delay between requests
    - Mirror fallback for whole-payload sources
    - Stop conditions (empty page, page budget, preview limit,
      repeated page content, consecutive page failures)
    - Per-record savepoints and a commit after every page
    """

    def __init__(
        self,
        session: Session,
        source: SourceConfig,
        fetcher: Fetcher | None = None,
        settings: GlobalConfig | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.session = session
        self.source = source
        self.settings = settings or GlobalConfig()
        self.fetcher = fetcher or Fetcher(
            user_agent=self.settings.user_agent,
            timeout=self.settings.request_timeout,
        )
        self.sleep = sleep
        self.clock = clock

        adapter = get_adapter(source.format, source.adapter_options)
        if adapter is None:
            raise ConfigError(f"No adapter for format '{source.format}' (source '{source.name}')")
        self.adapter = adapter
        self.normalizer = Normalizer(source.fields)
        self.resolver = RestaurantResolver(session, clock=clock)
        self.repo = RestaurantRepository(session)

    async def run(
        self,
        current_status: IngestionState,
        options: CrawlOptions | None = None,
    ) -> CrawlOutcome:
        """
        Execute a crawl run.

        Args:
            current_status: Ingestion state before the run
            options: Run kind and paging overrides

        Returns:
            CrawlOutcome with the state to record and the run's counters

        Raises:
            UpstreamUnavailableError: If the source cannot be reached at all
            NoDataError: If a whole-payload source yields no entries
        """
        options = options or CrawlOptions()
        result = CrawlResult()
        limit = None if options.full else self.settings.preview_limit
        resuming = options.full and current_status == IngestionState.PREVIEW_DONE

        logger.info(
            f"Starting {'full' if options.full else 'preview'} crawl of '{self.source.name}'"
            + (" (resuming after preview)" if resuming else "")
        )

        if self.source.paged:
            await self._crawl_pages(result, limit, self._first_page(options, resuming))
        else:
            skip = self.settings.preview_limit if resuming else 0
            await self._crawl_payload(result, limit, skip)

        cutoff = self.clock() - timedelta(days=self.settings.recent_window_days)
        cleared = self.repo.clear_recent_flags(cutoff)
        self.session.commit()

        new_status = IngestionState.SEEDED if options.full else IngestionState.PREVIEW_DONE
        logger.info(
            f"Crawl of '{self.source.name}' finished: {result.total_records} records "
            f"({result.new_records} new, {result.updated_records} updated, "
            f"{result.errors} errors), {cleared} flags cleared"
        )
        return CrawlOutcome(status=new_status, result=result)

    def _first_page(self, options: CrawlOptions, resuming: bool) -> int:
        if options.start_page is not None:
            return max(1, options.start_page)
        if resuming:
            return self.settings.preview_limit // self.source.page_size + 1
        return 1

    async def _crawl_pages(self, result: CrawlResult, limit: int | None, page: int) -> None:
        """Fetch pages sequentially until a stop condition holds."""
        source = self.source
        max_pages = source.max_pages
        previous_hash: str | None = None
        consecutive_failures = 0
        any_success = False
        first_request = True

        while max_pages is None or page <= max_pages:
            if not first_request:
                await self.sleep(self.settings.request_delay_seconds)
            first_request = False

            params = {**source.params, source.page_param: page}
            fetch = await self.fetcher.fetch(source.url, params=params, headers=source.headers)

            entries: list[RawEntry] | None = None
            error = fetch.error
            if fetch.success:
                try:
                    entries = self.adapter.extract_entries(fetch.content, fetch.mime_type)
                except PayloadParseError as e:
                    error = str(e)

            if entries is None:
                if not any_success:
                    raise UpstreamUnavailableError(
                        f"Source '{source.name}' unavailable: page {page} failed ({error})"
                    )
                result.errors += 1
                consecutive_failures += 1
                logger.warning(f"Page {page} of '{source.name}' failed: {error}")
                if consecutive_failures >= self.settings.max_consecutive_page_failures:
                    logger.error(
                        f"Stopping '{source.name}' after {consecutive_failures} consecutive page failures"
                    )
                    break
                page += 1
                continue

            any_success = True
            consecutive_failures = 0
            result.pages_fetched += 1

            if not entries:
                logger.info(f"Page {page} of '{source.name}' is empty, end of data")
                break
            if fetch.content_hash == previous_hash:
                logger.warning(
                    f"Page {page} of '{source.name}' repeats the previous page, "
                    "upstream is ignoring the page parameter"
                )
                break
            previous_hash = fetch.content_hash

            limit_reached = self._process_entries(entries, result, limit)
            self.session.commit()
            logger.debug(f"Page {page}: {len(entries)} entries, {result.total_records} records so far")

            if limit_reached:
                logger.info(f"Preview limit of {limit} records reached")
                break
            page += 1

    async def _crawl_payload(self, result: CrawlResult, limit: int | None, skip: int) -> None:
        """Fetch a whole-payload source, trying mirrors in order."""
        source = self.source
        failures: list[str] = []
        responded = False
        entries: list[RawEntry] = []

        for index, url in enumerate(source.urls):
            if index:
                await self.sleep(self.settings.request_delay_seconds)

            fetch = await self.fetcher.fetch(url, params=source.params or None, headers=source.headers)
            if not fetch.success:
                failures.append(f"{url}: {fetch.error}")
                logger.warning(f"Fetch of {url} failed: {fetch.error}")
                continue

            responded = True
            try:
                entries = self.adapter.extract_entries(fetch.content, fetch.mime_type)
            except PayloadParseError as e:
                failures.append(f"{url}: {e}")
                logger.warning(f"Payload from {url} could not be parsed: {e}")
                continue

            if entries:
                result.pages_fetched = 1
                break
            failures.append(f"{url}: no entries")

        if not entries:
            message = f"Source '{source.name}': " + "; ".join(failures)
            if responded:
                raise NoDataError(message)
            raise UpstreamUnavailableError(message)

        if skip:
            logger.info(f"Skipping the first {skip} entries already covered by the preview")
        self._process_entries(entries[skip:], result, limit)
        self.session.commit()

    def _process_entries(
        self,
        entries: list[RawEntry],
        result: CrawlResult,
        limit: int | None,
    ) -> bool:
        """
        Normalize and upsert entries, updating the counters.

        Returns:
            True if the record limit was reached
        """
        for raw in entries:
            if limit is not None and result.total_records >= limit:
                return True

            normalized = self.normalizer.normalize(raw)
            if not normalized.accepted or normalized.record is None:
                result.errors += 1
                logger.debug(f"Rejected entry: {'; '.join(normalized.errors)}")
                continue

            try:
                with self.session.begin_nested():
                    upsert = self.resolver.upsert(normalized.record)
            except (SQLAlchemyError, ValueError) as e:
                result.errors += 1
                logger.warning(f"Failed to store '{normalized.record.name}': {e}")
                continue

            result.total_records += 1
            if upsert.is_new:
                result.new_records += 1
            else:
                result.updated_records += 1
            if upsert.ambiguous:
                result.ambiguous_matches += 1

        return limit is not None and result.total_records >= limit
