"""Restaurant service for the read side of the store.

This service provides business logic for:
- Listing restaurants with district and name filters, sorting and paging
- Listing the districts present in the store
"""

import logging

from sqlalchemy.orm import Session

from restaurant_tracker.core.schema import RestaurantPage, RestaurantQuery
from restaurant_tracker.db.repositories import RestaurantRepository

logger = logging.getLogger(__name__)


class RestaurantService:
    """Read-only queries over the restaurant store."""

    def __init__(self, session: Session):
        """
        Initialize the restaurant service.

        Args:
            session: SQLAlchemy session
        """
        self.session = session
        self.repo = RestaurantRepository(session)

    def list_restaurants(self, query: RestaurantQuery | None = None) -> RestaurantPage:
        """
        List restaurants matching a query.

        Args:
            query: Filters, sort order and pagination (defaults apply when omitted)

        Returns:
            RestaurantPage with one page of restaurants and the filtered total
        """
        query = query or RestaurantQuery()
        restaurants, total = self.repo.search(query)
        logger.debug(f"Listed {len(restaurants)} of {total} restaurants")
        return RestaurantPage(restaurants=restaurants, total=total)

    def list_districts(self) -> list[str]:
        """Get the distinct districts present in the store, ascending."""
        return self.repo.list_districts()
