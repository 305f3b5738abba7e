"""FastAPI application factory for Restaurant Tracker."""

import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from restaurant_tracker import __version__
from restaurant_tracker.db.engine import init_db

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


def _cors_origins() -> list[str]:
    """Allowed origins from CORS_ORIGINS (comma-separated); any origin by default."""
    raw = os.environ.get("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Restaurant Tracker",
        description="Tracks newly licensed general restaurants in Hong Kong",
        version=__version__,
    )

    # Initialize database tables
    init_db()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers (import here to avoid circular imports)
    from restaurant_tracker.web.routes import health, jobs, restaurants, samples

    app.include_router(restaurants.router)
    app.include_router(jobs.router)
    app.include_router(samples.router)
    app.include_router(health.router)

    _setup_exception_handlers(app)

    return app


def _setup_exception_handlers(app: FastAPI) -> None:
    """Report malformed request parameters in the `{error}` shape every route uses."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'][1:]) or 'request'}: {err['msg']}"
            for err in exc.errors()
        )
        return JSONResponse({"error": f"Invalid request: {problems}"}, status_code=400)


# Application instance
app = create_app()
