"""
Identity Resolver Module
========================

Matches normalized restaurant records to stored restaurants and upserts them.

Identity precedence:
1. Stored records carrying the same licence number (when one is present)
2. Stored records with the same name and address (when an address is present)

Candidates are ordered by first_seen, then id; the first one wins. More than
one distinct candidate is an ambiguous match: it is logged and reported, and
the first candidate is still updated.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from restaurant_tracker.core.schema import DEFAULT_LICENCE_TYPE, Restaurant
from restaurant_tracker.db.repositories import RestaurantRepository
from restaurant_tracker.ingestion.normalizer import NormalizedRestaurant

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class UpsertResult:
    """Result of upserting one record."""

    is_new: bool
    restaurant: Restaurant
    ambiguous: bool = False


class RestaurantResolver:
    """
    Resolves normalized records to stored restaurants.

    Updates overwrite every mutable field and clear `new_flag`; `id` and
    `first_seen` of a matched record never change. Inserts get
    `first_seen = now` and `new_flag = True`.
    """

    def __init__(
        self,
        session: Session,
        clock: Callable[[], datetime] = _utc_now,
        match_by_address: bool = True,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            session: SQLAlchemy database session
            clock: Source of "now" for first_seen on inserts
            match_by_address: Fall back to name+address identity when the
                licence number finds nothing
        """
        self.session = session
        self.clock = clock
        self.match_by_address = match_by_address
        self.repo = RestaurantRepository(session)

    def find_candidates(self, record: NormalizedRestaurant) -> list[Restaurant]:
        """
        Find stored restaurants that may be the same as `record`.

        Returns:
            Distinct candidates in precedence order
        """
        candidates: list[Restaurant] = []
        if record.licence_no:
            candidates.extend(self.repo.get_by_licence_no(record.licence_no))
        if self.match_by_address and record.address:
            candidates.extend(self.repo.get_by_name_and_address(record.name, record.address))

        seen: set[str] = set()
        distinct: list[Restaurant] = []
        for candidate in candidates:
            if candidate.id not in seen:
                seen.add(candidate.id)
                distinct.append(candidate)
        return distinct

    def upsert(self, record: NormalizedRestaurant) -> UpsertResult:
        """
        Insert `record`, or update the stored restaurant it resolves to.

        Args:
            record: Normalized restaurant data

        Returns:
            UpsertResult with the stored restaurant
        """
        candidates = self.find_candidates(record)

        if not candidates:
            restaurant = self.repo.create(
                Restaurant(
                    name=record.name,
                    district=record.district,
                    address=record.address,
                    licence_no=record.licence_no,
                    licence_type=record.licence_type or DEFAULT_LICENCE_TYPE,
                    valid_til=record.valid_til,
                    first_seen=self.clock(),
                    new_flag=True,
                )
            )
            return UpsertResult(is_new=True, restaurant=restaurant)

        ambiguous = len(candidates) > 1
        if ambiguous:
            logger.warning(
                f"Ambiguous match for '{record.name}' (licence {record.licence_no or '-'}): "
                f"{len(candidates)} candidates, updating {candidates[0].id}"
            )

        existing = candidates[0]
        updated = existing.model_copy(
            update={
                "name": record.name,
                "district": record.district,
                "address": record.address,
                "licence_no": record.licence_no,
                "licence_type": record.licence_type or existing.licence_type,
                "valid_til": record.valid_til,
                "new_flag": False,
            }
        )
        restaurant = self.repo.update(updated)
        return UpsertResult(is_new=False, restaurant=restaurant, ambiguous=ambiguous)
