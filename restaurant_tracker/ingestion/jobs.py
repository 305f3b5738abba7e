"""
Crawl Jobs Module
=================

Entry points that wrap a crawl run with the ingestion status:
read the status, check the seeded gate, run the orchestrator for the
active source (then its fallback sources while a run fails outright), and
record the new status.

Crawls run in-process and one at a time; the seeded gate is checked once
per request and is not a lock.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from restaurant_tracker.core.enums import IngestionState
from restaurant_tracker.core.errors import (
    AlreadySeededError,
    CrawlError,
    NoDataError,
    UpstreamUnavailableError,
)
from restaurant_tracker.core.schema import IngestionStatus
from restaurant_tracker.db.repositories import SystemStatusRepository
from restaurant_tracker.ingestion.fetcher import Fetcher
from restaurant_tracker.ingestion.orchestrator import (
    CrawlOptions,
    CrawlOrchestrator,
    CrawlOutcome,
    SleepFn,
)
from restaurant_tracker.ingestion.registry import SourceRegistry, get_default_registry

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def get_status(session: Session) -> IngestionStatus:
    """Get the current ingestion status."""
    return SystemStatusRepository(session).get()


def ensure_crawl_allowed(status: IngestionState, full: bool) -> None:
    """
    Check the seeded gate.

    Raises:
        AlreadySeededError: If a preview crawl is requested after seeding
    """
    if status == IngestionState.SEEDED and not full:
        raise AlreadySeededError()


def _combined_failure(failures: list[CrawlError]) -> CrawlError:
    """Single error for a run where every source in the chain failed."""
    if len(failures) == 1:
        return failures[0]
    message = "; ".join(str(e) for e in failures)
    # Any source that responded means the upstream is up but yields no records
    if any(isinstance(e, NoDataError) for e in failures):
        return NoDataError(message)
    return UpstreamUnavailableError(message)


async def run_crawl(
    session: Session,
    full: bool = False,
    source_name: str | None = None,
    start_page: int | None = None,
    registry: SourceRegistry | None = None,
    fetcher: Fetcher | None = None,
    sleep: SleepFn = asyncio.sleep,
    clock: Callable[[], datetime] = _utc_now,
) -> CrawlOutcome:
    """
    Run a crawl and record the resulting ingestion status.

    Args:
        session: Database session (committed by the run)
        full: Crawl to the end instead of stopping at the preview limit
        source_name: Source to crawl; defaults to the registry's active source
        start_page: First page for paged sources
        registry: Source registry (defaults to the global one)
        fetcher: Fetcher override (tests inject a mock transport here)
        sleep: Delay function between page fetches
        clock: Source of "now"

    Returns:
        CrawlOutcome with the new status and counters

    Raises:
        AlreadySeededError: If a preview crawl is requested after seeding
        CrawlError: If the run fails; the status is left unchanged
        ConfigError: If no usable source is configured
    """
    registry = registry or get_default_registry()
    status_repo = SystemStatusRepository(session)

    current = status_repo.get().value
    ensure_crawl_allowed(current, full)

    chain = registry.fallback_chain(registry.get_active_source(source_name))
    options = CrawlOptions(full=full, start_page=start_page)
    failures: list[CrawlError] = []
    outcome: CrawlOutcome | None = None

    for index, source in enumerate(chain):
        if index:
            logger.warning(f"Falling back to source '{source.name}'")
            await sleep(registry.global_config.request_delay_seconds)

        orchestrator = CrawlOrchestrator(
            session=session,
            source=source,
            fetcher=fetcher,
            settings=registry.global_config,
            sleep=sleep,
            clock=clock,
        )
        try:
            outcome = await orchestrator.run(current, options)
        except CrawlError as e:
            logger.warning(f"Crawl of '{source.name}' failed: {e}")
            failures.append(e)
            continue
        break

    if outcome is None:
        raise _combined_failure(failures)

    status_repo.set(outcome.status, now=clock())
    session.commit()
    logger.info(f"Ingestion status: {current.value} -> {outcome.status.value}")
    return outcome
