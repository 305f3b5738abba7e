"""Restaurant listing routes."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from restaurant_tracker.core.enums import SortOrder
from restaurant_tracker.core.schema import RestaurantQuery
from restaurant_tracker.db.engine import get_session
from restaurant_tracker.services.restaurant_service import RestaurantService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["restaurants"])


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


@router.get("/restaurants")
async def api_list_restaurants(
    district: str | None = None,
    search: str | None = None,
    sort: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> JSONResponse:
    """
    List restaurants.

    `sort=valid_til` orders by licence expiry (latest first, unknown last);
    anything else gives the default order, recently added first.
    """
    if limit < 1:
        return JSONResponse({"error": "limit must be a positive integer"}, status_code=400)
    if offset < 0:
        return JSONResponse({"error": "offset must not be negative"}, status_code=400)

    query = RestaurantQuery(
        district=_blank_to_none(district),
        search=_blank_to_none(search),
        sort=SortOrder.parse(sort),
        limit=limit,
        offset=offset,
    )

    try:
        with get_session() as session:
            page = RestaurantService(session).list_restaurants(query)
    except SQLAlchemyError as e:
        logger.error(f"Failed to list restaurants: {e}")
        return JSONResponse({"error": "Failed to fetch restaurants"}, status_code=500)

    return JSONResponse({
        "restaurants": [r.model_dump(mode="json") for r in page.restaurants],
        "total": page.total,
    })


@router.get("/districts")
async def api_list_districts() -> JSONResponse:
    """List the distinct districts in the store."""
    try:
        with get_session() as session:
            districts = RestaurantService(session).list_districts()
    except SQLAlchemyError as e:
        logger.error(f"Failed to list districts: {e}")
        return JSONResponse({"error": "Failed to fetch districts"}, status_code=500)

    return JSONResponse({"districts": districts})
