"""
Source CLI Commands
===================

CLI commands for inspecting the configured upstream sources.
"""

from __future__ import annotations

import asyncio

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from restaurant_tracker.core.errors import PayloadParseError
from restaurant_tracker.ingestion.adapters import get_adapter, get_adapter_info
from restaurant_tracker.ingestion.fetcher import Fetcher
from restaurant_tracker.ingestion.normalizer import Normalizer
from restaurant_tracker.ingestion.registry import SourceConfig, get_default_registry

console = Console()
sources_app = typer.Typer(help="Source inspection commands")


def _require_source(name: str) -> SourceConfig:
    registry = get_default_registry()
    source = registry.get_source(name)
    if source is None:
        rprint(f"[red]Error:[/red] Source '{name}' not found")
        rprint("\nAvailable sources:")
        for s in registry.list_sources():
            state = "[green]enabled[/green]" if s.enabled else "[yellow]disabled[/yellow]"
            rprint(f"  • {s.name} ({state})")
        raise typer.Exit(1)
    return source


@sources_app.command("list")
def list_sources(
    all_sources: bool = typer.Option(False, "--all", "-a", help="Show all sources including disabled"),
) -> None:
    """
    List configured sources.

    Examples:
        restaurant-tracker sources list
        restaurant-tracker sources list --all
    """
    registry = get_default_registry()
    sources = registry.list_sources() if all_sources else registry.list_enabled_sources()

    if not sources:
        rprint("[yellow]No sources configured[/yellow]")
        rprint("\nAdd sources to config/sources.yaml")
        return

    default = registry.global_config.default_source

    table = Table(title="Licensing Sources")
    table.add_column("Name", style="bold")
    table.add_column("Format")
    table.add_column("Paged")
    table.add_column("Status")
    table.add_column("URL")

    for source in sources:
        state = "[green]enabled[/green]" if source.enabled else "[yellow]disabled[/yellow]"
        name = f"{source.name} (default)" if source.name == default else source.name
        paged = f"{source.page_size}/page" if source.paged else "-"
        table.add_row(name, source.format.value, paged, state, source.url)

    console.print(table)


@sources_app.command("show")
def show_source(
    name: str = typer.Argument(..., help="Source name"),
) -> None:
    """
    Show detailed information about a source.

    Examples:
        restaurant-tracker sources show fehd-html
    """
    source = _require_source(name)
    state = "[green]enabled[/green]" if source.enabled else "[yellow]disabled[/yellow]"

    rprint(f"\n[bold]Source: {source.name}[/bold]")
    rprint(f"  Status: {state}")
    rprint(f"  Format: {source.format.value}")
    rprint(f"  URL: {source.url}")
    if source.description:
        rprint(f"  Description: {source.description}")

    if source.mirror_urls:
        rprint("\n[bold]Mirrors:[/bold]")
        for url in source.mirror_urls:
            rprint(f"  • {url}")

    if source.fallback_source:
        rprint(f"\n[bold]Fallback source:[/bold] {source.fallback_source}")

    if source.paged:
        rprint("\n[bold]Paging:[/bold]")
        rprint(f"  Parameter: {source.page_param}")
        rprint(f"  Page size: {source.page_size}")
        if source.max_pages:
            rprint(f"  Page budget: {source.max_pages} (estimate {source.total_records_estimate})")

    rprint("\n[bold]Field Mapping:[/bold]")
    for field_name in ("name", "district", "address", "licence_no", "licence_type", "valid_til", "licence_with_expiry"):
        candidates = getattr(source.fields, field_name)
        if candidates:
            rprint(f"  {field_name}: {', '.join(str(c) for c in candidates)}")
    rprint(f"  licence required: {source.fields.licence_required}")

    adapter_info = get_adapter_info(source.format.value)
    if adapter_info:
        rprint("\n[bold]Adapter Info:[/bold]")
        rprint(f"  Name: {adapter_info['name']}")
        rprint(f"  Version: {adapter_info['version']}")
        rprint(f"  Class: {adapter_info['class']}")


@sources_app.command("probe")
def probe_source(
    name: str = typer.Argument(..., help="Source name"),
    page: int = typer.Option(1, "--page", "-p", help="Page to fetch (paged sources)"),
    rows: int = typer.Option(5, "--rows", "-n", help="Normalized rows to show"),
) -> None:
    """
    Fetch one page of a source and show how it normalizes.

    Nothing is written to the database.

    Examples:
        restaurant-tracker sources probe fehd-json
        restaurant-tracker sources probe fehd-html --page 3
    """
    source = _require_source(name)
    settings = get_default_registry().global_config
    fetcher = Fetcher(user_agent=settings.user_agent, timeout=settings.request_timeout)

    params = dict(source.params)
    if source.paged:
        params[source.page_param] = page

    with console.status(f"[bold blue]Fetching {source.url}...[/bold blue]"):
        result = asyncio.run(fetcher.fetch(source.url, params=params or None, headers=source.headers))

    rprint(f"\n[bold]Response:[/bold] {result.url}")
    rprint(f"  Status: {result.status_code}")
    rprint(f"  Content-Type: {result.mime_type or '-'}")
    rprint(f"  Size: {len(result.content)} bytes")
    rprint(f"  SHA-256: {result.content_hash or '-'}")

    if not result.success:
        rprint(f"[red]Error:[/red] {result.error}")
        raise typer.Exit(1)

    adapter = get_adapter(source.format, source.adapter_options)
    if adapter is None:
        rprint(f"[red]Error:[/red] No adapter for format '{source.format.value}'")
        raise typer.Exit(1)

    try:
        entries = adapter.extract_entries(result.content, result.mime_type)
    except PayloadParseError as e:
        rprint(f"[red]Error:[/red] {e}")
        rprint(f"\n[dim]{result.content[:500].decode('utf-8', errors='replace')}[/dim]")
        raise typer.Exit(1)

    normalizer = Normalizer(source.fields)
    outcomes = [normalizer.normalize(entry) for entry in entries]
    accepted = [o.record for o in outcomes if o.accepted and o.record is not None]
    rprint(f"  Entries: {len(entries)} ({len(accepted)} accepted, {len(entries) - len(accepted)} rejected)")

    if not accepted:
        for outcome in outcomes[:rows]:
            rprint(f"  • rejected: {'; '.join(outcome.errors)}")
        return

    table = Table(title=f"First {min(rows, len(accepted))} records")
    table.add_column("Licence", style="bold")
    table.add_column("Name")
    table.add_column("District")
    table.add_column("Address")
    table.add_column("Valid Til")

    for record in accepted[:rows]:
        valid_til = record.valid_til.isoformat() if record.valid_til else f"? {record.raw_expiry or ''}"
        table.add_row(record.licence_no, record.name, record.district or "", record.address or "", valid_til)

    console.print(table)
