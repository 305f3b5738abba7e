"""Repository classes for restaurant and status database operations."""

from datetime import UTC, datetime

from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import Session

from restaurant_tracker.core.enums import IngestionState, SortOrder
from restaurant_tracker.core.schema import (
    STATUS_KEY,
    IngestionStatus,
    Restaurant,
    RestaurantQuery,
)
from restaurant_tracker.db.models import RestaurantDB, SystemStatusDB


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


def _as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the store."""
    if value is None:
        return None
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class RestaurantRepository:
    """Repository for Restaurant persistence and querying."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, restaurant: Restaurant) -> Restaurant:
        """Insert a new restaurant."""
        db_item = RestaurantDB(
            id=restaurant.id,
            name=restaurant.name,
            district=restaurant.district,
            address=restaurant.address,
            licence_no=restaurant.licence_no,
            licence_type=restaurant.licence_type,
            valid_til=restaurant.valid_til,
            first_seen=restaurant.first_seen,
            new_flag=restaurant.new_flag,
            updated_at=restaurant.first_seen,
        )
        self.session.add(db_item)
        self.session.flush()
        return self._to_domain(db_item)

    def get_by_id(self, restaurant_id: str) -> Restaurant | None:
        """Get a restaurant by ID."""
        stmt = select(RestaurantDB).where(RestaurantDB.id == restaurant_id)
        db_item = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    def get_by_licence_no(self, licence_no: str) -> list[Restaurant]:
        """Get all restaurants carrying a licence number, oldest first."""
        stmt = (
            select(RestaurantDB)
            .where(RestaurantDB.licence_no == licence_no)
            .order_by(RestaurantDB.first_seen, RestaurantDB.id)
        )
        result = self.session.execute(stmt).scalars().all()
        return [self._to_domain(r) for r in result]

    def get_by_name_and_address(self, name: str, address: str) -> list[Restaurant]:
        """Get all restaurants with an exact name and address, oldest first."""
        stmt = (
            select(RestaurantDB)
            .where(and_(RestaurantDB.name == name, RestaurantDB.address == address))
            .order_by(RestaurantDB.first_seen, RestaurantDB.id)
        )
        result = self.session.execute(stmt).scalars().all()
        return [self._to_domain(r) for r in result]

    def update(self, restaurant: Restaurant) -> Restaurant:
        """
        Overwrite the mutable fields of an existing restaurant.

        `id` and `first_seen` are never changed.
        """
        stmt = select(RestaurantDB).where(RestaurantDB.id == restaurant.id)
        db_item = self.session.execute(stmt).scalar_one_or_none()
        if db_item is None:
            raise ValueError(f"Restaurant with id {restaurant.id} not found")

        db_item.name = restaurant.name
        db_item.district = restaurant.district
        db_item.address = restaurant.address
        db_item.licence_no = restaurant.licence_no
        db_item.licence_type = restaurant.licence_type
        db_item.valid_til = restaurant.valid_til
        db_item.new_flag = restaurant.new_flag
        db_item.updated_at = _utc_now()

        self.session.flush()
        return self._to_domain(db_item)

    def clear_recent_flags(self, cutoff: datetime) -> int:
        """
        Clear `new_flag` on every restaurant first seen before `cutoff`.

        Returns:
            Number of rows whose flag was cleared.
        """
        self.session.flush()
        stmt = (
            update(RestaurantDB)
            .where(RestaurantDB.first_seen < cutoff, RestaurantDB.new_flag.is_(True))
            .values(new_flag=False)
        )
        result = self.session.execute(stmt, execution_options={"synchronize_session": False})
        # Loaded rows may hold a stale flag after a bulk update
        self.session.expire_all()
        return result.rowcount or 0

    def search(self, query: RestaurantQuery) -> tuple[list[Restaurant], int]:
        """
        Filter, sort and paginate restaurants.

        Returns:
            Tuple of (page of restaurants, total matching the filters).
        """
        conditions = []
        if query.district:
            conditions.append(RestaurantDB.district == query.district)
        if query.search:
            conditions.append(RestaurantDB.name.icontains(query.search, autoescape=True))

        count_stmt = select(func.count()).select_from(RestaurantDB).where(*conditions)
        total = self.session.execute(count_stmt).scalar() or 0

        stmt = select(RestaurantDB).where(*conditions)
        if query.sort == SortOrder.VALID_TIL:
            # Nulls last, portable across dialects
            stmt = stmt.order_by(
                RestaurantDB.valid_til.is_(None),
                RestaurantDB.valid_til.desc(),
                RestaurantDB.id,
            )
        else:
            stmt = stmt.order_by(
                RestaurantDB.new_flag.desc(),
                RestaurantDB.first_seen.desc(),
                RestaurantDB.id,
            )
        stmt = stmt.limit(query.limit).offset(query.offset)

        result = self.session.execute(stmt).scalars().all()
        return [self._to_domain(r) for r in result], total

    def list_districts(self) -> list[str]:
        """Get distinct non-null districts in alphabetical order."""
        stmt = (
            select(RestaurantDB.district)
            .where(RestaurantDB.district.is_not(None), RestaurantDB.district != "")
            .distinct()
            .order_by(RestaurantDB.district)
        )
        return list(self.session.execute(stmt).scalars().all())

    def count(self) -> int:
        """Get total count of restaurants."""
        stmt = select(func.count()).select_from(RestaurantDB)
        return self.session.execute(stmt).scalar() or 0

    def _to_domain(self, db_item: RestaurantDB) -> Restaurant:
        """Convert DB model to domain model."""
        return Restaurant(
            id=db_item.id,
            name=db_item.name,
            district=db_item.district,
            address=db_item.address,
            licence_no=db_item.licence_no or "",
            licence_type=db_item.licence_type or "",
            valid_til=db_item.valid_til,
            first_seen=_as_utc(db_item.first_seen),
            new_flag=bool(db_item.new_flag),
        )


class SystemStatusRepository:
    """Repository for the singleton ingestion status row."""

    def __init__(self, session: Session):
        self.session = session

    def get(self) -> IngestionStatus:
        """Get the ingestion status; a missing row reads as not started."""
        stmt = select(SystemStatusDB).where(SystemStatusDB.key == STATUS_KEY)
        db_item = self.session.execute(stmt).scalar_one_or_none()
        if db_item is None:
            return IngestionStatus()
        return IngestionStatus(
            key=db_item.key,
            value=IngestionState(db_item.value),
            updated_at=_as_utc(db_item.updated_at),
        )

    def set(self, value: IngestionState, now: datetime | None = None) -> IngestionStatus:
        """Create or overwrite the ingestion status."""
        now = now or _utc_now()
        stmt = select(SystemStatusDB).where(SystemStatusDB.key == STATUS_KEY)
        db_item = self.session.execute(stmt).scalar_one_or_none()
        if db_item is None:
            db_item = SystemStatusDB(key=STATUS_KEY, value=value.value, updated_at=now)
            self.session.add(db_item)
        else:
            db_item.value = value.value
            db_item.updated_at = now

        self.session.flush()
        return IngestionStatus(key=STATUS_KEY, value=value, updated_at=_as_utc(now))
