"""Diagnostic route that loads the sample restaurants."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from restaurant_tracker.db.engine import get_session
from restaurant_tracker.ingestion.samples import load_sample_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/test", tags=["diagnostics"])


@router.post("/load-sample-data")
async def load_samples() -> JSONResponse:
    """Upsert the sample restaurants and mark the status `test_data_loaded`."""
    try:
        with get_session() as session:
            result = load_sample_data(session)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load sample data: {e}")
        return JSONResponse({"error": str(e) or "Failed to load sample data"}, status_code=500)

    return JSONResponse({
        "success": True,
        "message": "Sample data loaded successfully",
        "result": result.to_dict(),
    })
