"""Tests for identity resolution and upsert."""

import tempfile
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from restaurant_tracker.core.schema import Restaurant
from restaurant_tracker.db.models import Base
from restaurant_tracker.db.repositories import RestaurantRepository
from restaurant_tracker.ingestion.normalizer import NormalizedRestaurant
from restaurant_tracker.ingestion.resolver import RestaurantResolver

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def session():
    """Create a database session on a temporary database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = create_engine(f"sqlite:///{Path(tmpdir) / 'test.db'}")
        Base.metadata.create_all(engine)
        session = sessionmaker(bind=engine)()
        yield session
        session.close()
        engine.dispose()


@pytest.fixture
def resolver(session: Session) -> RestaurantResolver:
    return RestaurantResolver(session, clock=lambda: NOW)


def _record(**overrides) -> NormalizedRestaurant:
    data = {
        "name": "Lucky Noodle",
        "district": "Central",
        "address": "1 Queen's Road",
        "licence_no": "2111801234",
        "licence_type": "General Restaurant Licence",
        "valid_til": date(2025, 9, 27),
    }
    data.update(overrides)
    return NormalizedRestaurant(**data)


class TestRestaurantResolver:
    """Tests for RestaurantResolver.upsert."""

    def test_insert_new(self, resolver: RestaurantResolver, session: Session) -> None:
        result = resolver.upsert(_record())

        assert result.is_new
        assert not result.ambiguous
        assert result.restaurant.first_seen == NOW
        assert result.restaurant.new_flag is True
        assert RestaurantRepository(session).count() == 1

    def test_repeat_upsert_is_idempotent(self, resolver: RestaurantResolver, session: Session) -> None:
        first = resolver.upsert(_record())
        second = resolver.upsert(_record())

        assert first.is_new
        assert not second.is_new
        assert second.restaurant.id == first.restaurant.id
        assert RestaurantRepository(session).count() == 1

        stored = second.restaurant
        assert stored.name == "Lucky Noodle"
        assert stored.district == "Central"
        assert stored.licence_no == "2111801234"
        assert stored.valid_til == date(2025, 9, 27)

    def test_licence_match_overwrites_fields(self, session: Session) -> None:
        RestaurantResolver(session, clock=lambda: NOW).upsert(
            _record(name="A", district="Central")
        )
        later = RestaurantResolver(session, clock=lambda: NOW + timedelta(days=7))

        result = later.upsert(_record(name="A", district="Wan Chai", address="New address"))

        assert not result.is_new
        assert result.restaurant.district == "Wan Chai"
        assert result.restaurant.address == "New address"
        assert result.restaurant.first_seen == NOW
        assert result.restaurant.new_flag is False
        assert RestaurantRepository(session).count() == 1

    def test_name_and_address_match_when_licence_changes(
        self, resolver: RestaurantResolver, session: Session
    ) -> None:
        first = resolver.upsert(_record(licence_no="OLD1"))
        second = resolver.upsert(_record(licence_no="NEW2"))

        assert not second.is_new
        assert second.restaurant.id == first.restaurant.id
        assert second.restaurant.licence_no == "NEW2"

    def test_missing_address_never_matches_by_name(
        self, resolver: RestaurantResolver, session: Session
    ) -> None:
        resolver.upsert(_record(licence_no="", address=None))
        result = resolver.upsert(_record(licence_no="", address=None))

        assert result.is_new
        assert RestaurantRepository(session).count() == 2

    def test_ambiguous_match_updates_oldest(self, session: Session) -> None:
        repo = RestaurantRepository(session)
        oldest = repo.create(
            Restaurant(name="A", address="X", licence_no="L1", first_seen=NOW - timedelta(days=2))
        )
        repo.create(Restaurant(name="A", address="X", licence_no="L2", first_seen=NOW))

        result = RestaurantResolver(session, clock=lambda: NOW).upsert(
            _record(name="A", address="X", licence_no="L3")
        )

        assert result.ambiguous
        assert not result.is_new
        assert result.restaurant.id == oldest.id
        assert result.restaurant.licence_no == "L3"

    def test_licence_match_precedes_name_and_address(self, session: Session) -> None:
        repo = RestaurantRepository(session)
        by_address = repo.create(
            Restaurant(name="A", address="X", licence_no="OTHER", first_seen=NOW - timedelta(days=9))
        )
        by_licence = repo.create(Restaurant(name="B", address="Y", licence_no="L1", first_seen=NOW))

        result = RestaurantResolver(session, clock=lambda: NOW).upsert(
            _record(name="A", address="X", licence_no="L1")
        )

        assert result.ambiguous
        assert result.restaurant.id == by_licence.id
        assert repo.get_by_id(by_address.id).licence_no == "OTHER"

    def test_licence_only_matching(self, session: Session) -> None:
        resolver = RestaurantResolver(session, clock=lambda: NOW, match_by_address=False)
        resolver.upsert(_record(licence_no="L1"))
        result = resolver.upsert(_record(licence_no="L2"))

        assert result.is_new
        assert RestaurantRepository(session).count() == 2
