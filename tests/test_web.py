"""Tests for web routes."""

import tempfile
from contextlib import contextmanager
from datetime import UTC, date, datetime, timedelta
from functools import partial
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from restaurant_tracker.core.enums import IngestionState
from restaurant_tracker.core.errors import UpstreamUnavailableError
from restaurant_tracker.core.schema import Restaurant
from restaurant_tracker.db.models import Base
from restaurant_tracker.db.repositories import RestaurantRepository, SystemStatusRepository
from restaurant_tracker.ingestion.fetcher import Fetcher
from restaurant_tracker.ingestion.jobs import run_crawl
from restaurant_tracker.ingestion.registry import SourceRegistry

FEED = b"""<DATA>
<RESTAURANT><NAME>Lucky Noodle</NAME><DISTRICT>Central</DISTRICT><ADDRESS>1 Queen's Road</ADDRESS>
<LICENCE_NO>2111801234</LICENCE_NO><EXPIRY>27-09-2025</EXPIRY></RESTAURANT>
<RESTAURANT><NAME>Harbour Dim Sum</NAME><DISTRICT>Wan Chai</DISTRICT><ADDRESS>8 Harbour Road</ADDRESS>
<LICENCE_NO>2112005678</LICENCE_NO><EXPIRY>31/12/2026</EXPIRY></RESTAURANT>
</DATA>"""


@pytest.fixture
def temp_db_path():
    """Create a temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def test_engine(temp_db_path):
    """Create a test database engine."""
    url = f"sqlite:///{temp_db_path}"
    engine = create_engine(url, echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_session(test_engine):
    """Create a database session for testing."""
    SessionLocal = sessionmaker(bind=test_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def registry() -> SourceRegistry:
    registry = SourceRegistry()
    registry.load_dict(
        {
            "global": {"default_source": "feed"},
            "sources": [
                {
                    "name": "feed",
                    "format": "xml",
                    "url": "https://upstream.test/feed.xml",
                    "fields": {
                        "name": ["NAME"],
                        "district": ["DISTRICT"],
                        "address": ["ADDRESS"],
                        "licence_no": ["LICENCE_NO"],
                        "valid_til": ["EXPIRY"],
                    },
                }
            ],
        }
    )
    return registry


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def client(test_engine, registry, monkeypatch):
    """Create a test client with mocked database and upstream."""
    TestSessionLocal = sessionmaker(bind=test_engine)

    @contextmanager
    def mock_get_session():
        session = TestSessionLocal()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr("restaurant_tracker.web.routes.restaurants.get_session", mock_get_session)
    monkeypatch.setattr("restaurant_tracker.web.routes.jobs.get_session", mock_get_session)
    monkeypatch.setattr("restaurant_tracker.web.routes.samples.get_session", mock_get_session)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=FEED, headers={"content-type": "application/xml"})

    fetcher = Fetcher(transport=httpx.MockTransport(handler))
    monkeypatch.setattr(
        "restaurant_tracker.web.routes.jobs.run_crawl",
        partial(run_crawl, registry=registry, fetcher=fetcher, sleep=_no_sleep),
    )

    # Also mock the init_db in app creation to prevent it from touching the default DB
    monkeypatch.setattr("restaurant_tracker.web.app.init_db", lambda: None)

    from restaurant_tracker.web.app import create_app

    app = create_app()
    return TestClient(app)


class TestHealth:
    """Tests for the liveness route."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert datetime.fromisoformat(data["timestamp"])

    def test_cors_any_origin(self, client: TestClient) -> None:
        response = client.get("/health", headers={"Origin": "https://frontend.test"})
        assert response.headers["access-control-allow-origin"] == "*"


class TestRestaurantRoutes:
    """Tests for listing routes."""

    @pytest.fixture
    def seeded(self, test_session) -> None:
        repo = RestaurantRepository(test_session)
        now = datetime(2025, 6, 1, tzinfo=UTC)
        repo.create(
            Restaurant(
                name="Lucky Noodle",
                district="Central",
                address="1 Queen's Road",
                licence_no="L1",
                valid_til=date(2025, 9, 27),
                first_seen=now - timedelta(days=40),
                new_flag=False,
            )
        )
        repo.create(
            Restaurant(
                name="Noodle Bar",
                district="Wan Chai",
                licence_no="L2",
                first_seen=now,
            )
        )
        repo.create(
            Restaurant(
                name="Harbour Dim Sum",
                district="Wan Chai",
                licence_no="L3",
                valid_til=date(2026, 12, 31),
                first_seen=now - timedelta(days=1),
            )
        )
        test_session.commit()

    def test_list_empty(self, client: TestClient) -> None:
        response = client.get("/api/restaurants")
        assert response.status_code == 200
        assert response.json() == {"restaurants": [], "total": 0}

    def test_list_wire_format(self, client: TestClient, seeded) -> None:
        response = client.get("/api/restaurants", params={"search": "lucky"})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        record = data["restaurants"][0]
        assert record["name"] == "Lucky Noodle"
        assert record["licence_no"] == "L1"
        assert record["valid_til"] == "2025-09-27"
        assert record["new_flag"] is False
        assert "first_seen" in record
        assert "id" in record

    def test_list_default_order(self, client: TestClient, seeded) -> None:
        data = client.get("/api/restaurants").json()
        assert [r["name"] for r in data["restaurants"]] == [
            "Noodle Bar",
            "Harbour Dim Sum",
            "Lucky Noodle",
        ]

    def test_list_sort_valid_til(self, client: TestClient, seeded) -> None:
        data = client.get("/api/restaurants", params={"sort": "valid_til"}).json()
        assert [r["name"] for r in data["restaurants"]] == [
            "Harbour Dim Sum",
            "Lucky Noodle",
            "Noodle Bar",
        ]

    def test_unknown_sort_uses_default(self, client: TestClient, seeded) -> None:
        data = client.get("/api/restaurants", params={"sort": "rating"}).json()
        assert data["restaurants"][0]["name"] == "Noodle Bar"

    def test_list_district_and_paging(self, client: TestClient, seeded) -> None:
        data = client.get(
            "/api/restaurants", params={"district": "Wan Chai", "limit": 1, "offset": 1}
        ).json()
        assert data["total"] == 2
        assert [r["name"] for r in data["restaurants"]] == ["Harbour Dim Sum"]

    def test_large_limit_accepted(self, client: TestClient, seeded) -> None:
        response = client.get("/api/restaurants", params={"limit": 5000})
        assert response.status_code == 200
        assert response.json()["total"] == 3
        assert len(response.json()["restaurants"]) == 3

    def test_limit_and_offset_out_of_range(self, client: TestClient) -> None:
        response = client.get("/api/restaurants", params={"limit": 0})
        assert response.status_code == 400
        assert response.json() == {"error": "limit must be a positive integer"}

        response = client.get("/api/restaurants", params={"offset": -1})
        assert response.status_code == 400
        assert response.json() == {"error": "offset must not be negative"}

    def test_non_integer_limit(self, client: TestClient) -> None:
        response = client.get("/api/restaurants", params={"limit": "lots"})
        assert response.status_code == 400
        assert set(response.json()) == {"error"}
        assert "limit" in response.json()["error"]

    def test_districts(self, client: TestClient, seeded) -> None:
        response = client.get("/api/districts")
        assert response.status_code == 200
        assert response.json() == {"districts": ["Central", "Wan Chai"]}


class TestJobRoutes:
    """Tests for crawl and status routes."""

    def test_status_not_started(self, client: TestClient) -> None:
        response = client.get("/jobs/status")
        assert response.status_code == 200
        assert response.json() == {"status": "not_started", "lastUpdated": None}

    def test_preview_crawl(self, client: TestClient, test_session) -> None:
        response = client.post("/jobs/crawl")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "preview_done"
        assert data["result"]["totalRecords"] == 2
        assert data["result"]["newRecords"] == 2
        assert data["result"]["errors"] == 0

        status = client.get("/jobs/status").json()
        assert status["status"] == "preview_done"
        assert status["lastUpdated"] is not None
        assert RestaurantRepository(test_session).count() == 2

    def test_preview_refused_when_seeded(self, client: TestClient, test_session) -> None:
        SystemStatusRepository(test_session).set(IngestionState.SEEDED)
        test_session.commit()

        response = client.post("/jobs/crawl", params={"full": "false"})

        assert response.status_code == 400
        assert response.json() == {"error": "Database already seeded. Use weekly cron job for updates."}
        assert RestaurantRepository(test_session).count() == 0

    def test_full_crawl_when_seeded(self, client: TestClient, test_session) -> None:
        SystemStatusRepository(test_session).set(IngestionState.SEEDED)
        test_session.commit()

        response = client.post("/jobs/crawl", params={"full": "true"})

        assert response.status_code == 200
        assert response.json()["status"] == "seeded"

    def test_full_flag_other_than_true_is_preview(self, client: TestClient, test_session) -> None:
        SystemStatusRepository(test_session).set(IngestionState.SEEDED)
        test_session.commit()

        for value in ("maybe", "1", "TRUE"):
            response = client.post("/jobs/crawl", params={"full": value})
            assert response.status_code == 400
            assert response.json() == {"error": "Database already seeded. Use weekly cron job for updates."}

    def test_unrecognized_full_flag_runs_preview(self, client: TestClient) -> None:
        response = client.post("/jobs/crawl", params={"full": "maybe"})
        assert response.status_code == 200
        assert response.json()["status"] == "preview_done"

    def test_crawl_failure_returns_500(self, client: TestClient, monkeypatch) -> None:
        async def failing_crawl(session, full=False):
            raise UpstreamUnavailableError("Source 'feed' unavailable")

        monkeypatch.setattr("restaurant_tracker.web.routes.jobs.run_crawl", failing_crawl)

        response = client.post("/jobs/crawl")

        assert response.status_code == 500
        assert response.json() == {"error": "Source 'feed' unavailable"}
        assert client.get("/jobs/status").json()["status"] == "not_started"


class TestSampleRoutes:
    """Tests for the diagnostic sample loader route."""

    def test_load_sample_data(self, client: TestClient) -> None:
        response = client.post("/test/load-sample-data")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Sample data loaded successfully"
        assert data["result"]["totalRecords"] == 5

        assert client.get("/jobs/status").json()["status"] == "test_data_loaded"
        assert client.get("/api/restaurants").json()["total"] == 5
