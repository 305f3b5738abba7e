"""Crawl job routes.

POST /jobs/crawl runs a crawl in-process and blocks until it finishes.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from restaurant_tracker.core.errors import AlreadySeededError, RestaurantTrackerError
from restaurant_tracker.db.engine import get_session
from restaurant_tracker.ingestion.jobs import get_status, run_crawl

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("/crawl")
async def crawl(full: str = "false") -> JSONResponse:
    """
    Run a crawl.

    Only `full=true` requests a full crawl; any other value is a preview
    crawl, refused once the store is seeded.
    """
    try:
        with get_session() as session:
            outcome = await run_crawl(session, full=full == "true")
    except AlreadySeededError as e:
        return JSONResponse({"error": e.reason}, status_code=400)
    except (RestaurantTrackerError, SQLAlchemyError) as e:
        logger.error(f"Crawl failed: {e}")
        return JSONResponse({"error": str(e) or "Crawl failed"}, status_code=500)

    return JSONResponse({
        "success": True,
        "result": outcome.result.to_dict(),
        "status": outcome.status.value,
    })


@router.get("/status")
async def status() -> JSONResponse:
    """Get the ingestion status."""
    try:
        with get_session() as session:
            current = get_status(session)
    except SQLAlchemyError as e:
        logger.error(f"Failed to read ingestion status: {e}")
        return JSONResponse({"error": "Failed to get status"}, status_code=500)

    return JSONResponse({
        "status": current.value.value,
        "lastUpdated": current.updated_at.isoformat() if current.updated_at else None,
    })
