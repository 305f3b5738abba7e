"""Tests for the restaurant query service."""

import tempfile
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from restaurant_tracker.core.enums import SortOrder
from restaurant_tracker.core.schema import Restaurant, RestaurantQuery
from restaurant_tracker.db.models import Base
from restaurant_tracker.db.repositories import RestaurantRepository
from restaurant_tracker.services.restaurant_service import RestaurantService

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
def service(session: Session) -> RestaurantService:
    repo = RestaurantRepository(session)
    rows = [
        ("Lucky Noodle", "Central", date(2025, 9, 27), NOW - timedelta(days=40), False),
        ("Harbour Dim Sum", "Wan Chai", date(2026, 12, 31), NOW - timedelta(days=2), True),
        ("Noodle Bar", "Wan Chai", None, NOW - timedelta(days=1), True),
        ("Tea House", "Mong Kok", date(2025, 1, 1), NOW - timedelta(days=60), False),
    ]
    for i, (name, district, valid_til, first_seen, new_flag) in enumerate(rows):
        repo.create(
            Restaurant(
                name=name,
                district=district,
                licence_no=f"L{i}",
                valid_til=valid_til,
                first_seen=first_seen,
                new_flag=new_flag,
            )
        )
    session.commit()
    return RestaurantService(session)


class TestRestaurantService:
    """Tests for RestaurantService."""

    def test_default_listing(self, service: RestaurantService) -> None:
        page = service.list_restaurants()

        assert page.total == 4
        assert [r.name for r in page.restaurants] == [
            "Noodle Bar",
            "Harbour Dim Sum",
            "Lucky Noodle",
            "Tea House",
        ]

    def test_sort_by_valid_til(self, service: RestaurantService) -> None:
        page = service.list_restaurants(RestaurantQuery(sort=SortOrder.VALID_TIL))
        assert [r.name for r in page.restaurants] == [
            "Harbour Dim Sum",
            "Lucky Noodle",
            "Tea House",
            "Noodle Bar",
        ]

    def test_total_ignores_pagination(self, service: RestaurantService) -> None:
        page = service.list_restaurants(RestaurantQuery(limit=1, offset=1))
        assert page.total == 4
        assert [r.name for r in page.restaurants] == ["Harbour Dim Sum"]

    def test_filters(self, service: RestaurantService) -> None:
        page = service.list_restaurants(RestaurantQuery(district="Wan Chai", search="NOODLE"))
        assert page.total == 1
        assert page.restaurants[0].name == "Noodle Bar"

    def test_list_districts(self, service: RestaurantService) -> None:
        assert service.list_districts() == ["Central", "Mong Kok", "Wan Chai"]

    def test_unknown_sort_value_falls_back(self) -> None:
        assert SortOrder.parse("bogus") == SortOrder.NEWEST
        assert SortOrder.parse(None) == SortOrder.NEWEST
        assert SortOrder.parse("VALID_TIL") == SortOrder.VALID_TIL
