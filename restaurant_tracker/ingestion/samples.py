"""Diagnostic sample data: checks the store end to end without the upstream."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from restaurant_tracker.core.enums import IngestionState
from restaurant_tracker.core.schema import DEFAULT_LICENCE_TYPE
from restaurant_tracker.db.repositories import SystemStatusRepository
from restaurant_tracker.ingestion.normalizer import NormalizedRestaurant
from restaurant_tracker.ingestion.orchestrator import CrawlResult
from restaurant_tracker.ingestion.resolver import RestaurantResolver

logger = logging.getLogger(__name__)

SAMPLE_RESTAURANTS: list[NormalizedRestaurant] = [
    NormalizedRestaurant(
        name="Maxim's Palace",
        district="Central",
        address="2/F, City Hall, Central, Hong Kong",
        licence_no="TEST-001",
        licence_type=DEFAULT_LICENCE_TYPE,
        valid_til=date(2025, 12, 31),
    ),
    NormalizedRestaurant(
        name="Tsui Wah Restaurant",
        district="Causeway Bay",
        address="15-19 Percival Street, Causeway Bay",
        licence_no="TEST-002",
        licence_type=DEFAULT_LICENCE_TYPE,
        valid_til=date(2025, 11, 30),
    ),
    NormalizedRestaurant(
        name="Din Tai Fung",
        district="Tsim Sha Tsui",
        address="Shop 130, 3/F, Silvercord, 30 Canton Road, TST",
        licence_no="TEST-003",
        licence_type=DEFAULT_LICENCE_TYPE,
        valid_til=date(2025, 10, 31),
    ),
    NormalizedRestaurant(
        name="Cafe de Coral",
        district="Wan Chai",
        address="89 Hennessy Road, Wan Chai",
        licence_no="TEST-004",
        licence_type=DEFAULT_LICENCE_TYPE,
        valid_til=date(2025, 9, 30),
    ),
    NormalizedRestaurant(
        name="Tai Hing Roast Restaurant",
        district="Mong Kok",
        address="55 Dundas Street, Mong Kok",
        licence_no="TEST-005",
        licence_type=DEFAULT_LICENCE_TYPE,
        valid_til=date(2025, 8, 31),
    ),
]


def load_sample_data(
    session: Session,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> CrawlResult:
    """
    Upsert the sample restaurants and mark the status `test_data_loaded`.

    Samples are matched by licence number only.
    """
    resolver = RestaurantResolver(session, clock=clock, match_by_address=False)
    result = CrawlResult()

    for record in SAMPLE_RESTAURANTS:
        try:
            with session.begin_nested():
                upsert = resolver.upsert(record)
        except SQLAlchemyError as e:
            result.errors += 1
            logger.warning(f"Failed to store sample '{record.name}': {e}")
            continue

        result.total_records += 1
        if upsert.is_new:
            result.new_records += 1
        else:
            result.updated_records += 1

    SystemStatusRepository(session).set(IngestionState.TEST_DATA_LOADED, now=clock())
    session.commit()
    logger.info(f"Loaded {result.total_records} sample restaurants")
    return result
