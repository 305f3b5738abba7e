"""Liveness probe."""

from datetime import UTC, datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> JSONResponse:
    """Report that the process is up."""
    return JSONResponse({"status": "ok", "timestamp": datetime.now(UTC).isoformat()})
