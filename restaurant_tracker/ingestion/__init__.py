"""
Restaurant Tracker Ingestion Pipeline
=====================================

Crawls the public licensing register and keeps the restaurant store current.

Pipeline Stages:
1. Fetch - Sequential HTTP requests with a fixed delay between pages
2. Extract - Format adapters turn HTML/XML/CSV/JSON payloads into raw entries
3. Normalize - Declarative field mappings produce canonical records
4. Resolve - Match on licence number, then name+address; insert or update
5. Sweep - Clear the recently-added flag on records past the window
"""

from restaurant_tracker.ingestion.registry import (
    FieldMapping,
    GlobalConfig,
    SourceConfig,
    SourceRegistry,
    get_default_registry,
)
from restaurant_tracker.ingestion.fetcher import (
    Fetcher,
    FetchResult,
)
from restaurant_tracker.ingestion.normalizer import (
    NormalizationResult,
    NormalizedRestaurant,
    Normalizer,
)
from restaurant_tracker.ingestion.resolver import (
    RestaurantResolver,
    UpsertResult,
)
from restaurant_tracker.ingestion.orchestrator import (
    CrawlOptions,
    CrawlOrchestrator,
    CrawlOutcome,
    CrawlResult,
)
from restaurant_tracker.ingestion.jobs import (
    ensure_crawl_allowed,
    get_status,
    run_crawl,
)
from restaurant_tracker.ingestion.samples import (
    SAMPLE_RESTAURANTS,
    load_sample_data,
)

__all__ = [
    # Registry
    "FieldMapping",
    "GlobalConfig",
    "SourceConfig",
    "SourceRegistry",
    "get_default_registry",
    # Fetcher
    "Fetcher",
    "FetchResult",
    # Normalizer
    "NormalizationResult",
    "NormalizedRestaurant",
    "Normalizer",
    # Resolver
    "RestaurantResolver",
    "UpsertResult",
    # Orchestrator
    "CrawlOptions",
    "CrawlOrchestrator",
    "CrawlOutcome",
    "CrawlResult",
    # Jobs
    "ensure_crawl_allowed",
    "get_status",
    "run_crawl",
    "SAMPLE_RESTAURANTS",
    "load_sample_data",
]
