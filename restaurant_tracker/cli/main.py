"""Restaurant Tracker CLI using Typer."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import httpx
import typer
from dotenv import load_dotenv
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from restaurant_tracker import __version__
from restaurant_tracker.cli.sources import sources_app

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

DEFAULT_BACKEND_URL = "http://localhost:8000"
# A full crawl over HTTP blocks until it finishes
CRON_REQUEST_TIMEOUT = 600.0

console = Console()

app = typer.Typer(
    name="restaurant-tracker",
    help="Restaurant Tracker - Tracks newly licensed general restaurants in Hong Kong",
    add_completion=False,
)
app.add_typer(sources_app, name="sources")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Restaurant Tracker command line."""
    _configure_logging(verbose)


@app.command()
def run(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(
        False, "--reload", "-r", help="Enable auto-reload for development"
    ),
) -> None:
    """Start the Restaurant Tracker API server."""
    import uvicorn

    typer.echo(f"Starting Restaurant Tracker on http://{host}:{port}")
    typer.echo("Press Ctrl+C to stop the server")
    typer.echo("")

    uvicorn.run(
        "restaurant_tracker.web.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def init_db() -> None:
    """Initialize the database (create tables)."""
    from restaurant_tracker.db.engine import init_db as db_init

    typer.echo("Initializing database...")
    db_init()
    typer.echo("Database initialized successfully!")


@app.command()
def version() -> None:
    """Show the Restaurant Tracker version."""
    typer.echo(f"Restaurant Tracker v{__version__}")


@app.command()
def crawl(
    full: bool = typer.Option(False, "--full", "-f", help="Crawl everything instead of a preview"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Source name to crawl"),
    start_page: Optional[int] = typer.Option(
        None, "--start-page", help="First page for paged sources"
    ),
) -> None:
    """
    Run a crawl in-process.

    Examples:
        restaurant-tracker crawl
        restaurant-tracker crawl --full
        restaurant-tracker crawl --full --source fehd-html --start-page 21
    """
    from restaurant_tracker.core.errors import AlreadySeededError, RestaurantTrackerError
    from restaurant_tracker.db.engine import get_session
    from restaurant_tracker.db.engine import init_db as db_init
    from restaurant_tracker.ingestion.jobs import run_crawl

    db_init()
    kind = "full" if full else "preview"

    try:
        with get_session() as session:
            with console.status(f"[bold blue]Running {kind} crawl...[/bold blue]"):
                outcome = asyncio.run(
                    run_crawl(session, full=full, source_name=source, start_page=start_page)
                )
    except AlreadySeededError as e:
        rprint(f"[yellow]Refused:[/yellow] {e.reason}")
        rprint("Run with --full to update a seeded database")
        raise typer.Exit(1)
    except RestaurantTrackerError as e:
        rprint(f"[red]Error:[/red] Crawl failed: {e}")
        raise typer.Exit(1)

    _display_crawl_result(outcome.result.to_dict(), outcome.status.value)


@app.command()
def status() -> None:
    """Show the ingestion status."""
    from restaurant_tracker.db.engine import get_session
    from restaurant_tracker.db.engine import init_db as db_init
    from restaurant_tracker.db.repositories import RestaurantRepository
    from restaurant_tracker.ingestion.jobs import get_status

    db_init()
    with get_session() as session:
        current = get_status(session)
        count = RestaurantRepository(session).count()

    updated = current.updated_at.isoformat() if current.updated_at else "never"
    rprint(f"\n[bold]Ingestion status:[/bold] {current.value.value}")
    rprint(f"  Last updated: {updated}")
    rprint(f"  Restaurants stored: {count}")


@app.command()
def load_samples() -> None:
    """Load the sample restaurants (checks the database without the upstream)."""
    from restaurant_tracker.db.engine import get_session
    from restaurant_tracker.db.engine import init_db as db_init
    from restaurant_tracker.ingestion.samples import load_sample_data

    db_init()
    with get_session() as session:
        result = load_sample_data(session)

    _display_crawl_result(result.to_dict(), "test_data_loaded")


@app.command()
def cron(
    backend_url: Optional[str] = typer.Option(
        None, "--backend-url", help="API base URL (default: BACKEND_URL or localhost)"
    ),
) -> None:
    """
    Weekly update trigger.

    Skips unless the database is seeded, then asks the API server to run a
    full crawl.
    """
    from restaurant_tracker.core.enums import IngestionState
    from restaurant_tracker.db.engine import get_session
    from restaurant_tracker.db.engine import init_db as db_init
    from restaurant_tracker.ingestion.jobs import get_status

    db_init()
    with get_session() as session:
        current = get_status(session).value

    if current != IngestionState.SEEDED:
        typer.echo("System not seeded yet. Skipping cron job.")
        raise typer.Exit(0)

    base_url = (backend_url or os.environ.get("BACKEND_URL") or DEFAULT_BACKEND_URL).rstrip("/")

    try:
        response = httpx.post(
            f"{base_url}/jobs/crawl",
            params={"full": "true"},
            timeout=CRON_REQUEST_TIMEOUT,
        )
    except httpx.HTTPError as e:
        typer.echo(f"Weekly crawl failed: {e}", err=True)
        raise typer.Exit(1)

    if response.status_code != 200:
        typer.echo(f"Weekly crawl failed: HTTP {response.status_code} {response.text}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Weekly crawl completed: {response.text}")


def _display_crawl_result(result: dict, status_value: str) -> None:
    """Display crawl counters in a formatted table."""
    table = Table(title="Crawl Results")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Total records", str(result.get("totalRecords", 0)))
    table.add_row("New records", str(result.get("newRecords", 0)))
    table.add_row("Updated records", str(result.get("updatedRecords", 0)))
    table.add_row("Errors", str(result.get("errors", 0)))
    table.add_row("Ambiguous matches", str(result.get("ambiguousMatches", 0)))
    table.add_row("Pages fetched", str(result.get("pagesFetched", 0)))

    console.print(table)
    rprint(f"Status: [green]{status_value}[/green]")


if __name__ == "__main__":
    app()
