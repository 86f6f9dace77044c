"""Command-line interface for the FacultyTrack project."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table

from facultrack import exporters
from facultrack.logging_config import configure_logging
from facultrack.models import FacultyProfile
from facultrack.services import (
    AssemblyError,
    DashboardFilter,
    LocalDirectory,
    OpenAlexClient,
    OrcidClient,
    ProfileAssembler,
    ScopusSource,
    ToolExecutor,
    WosSource,
    build_dashboard,
)
from facultrack.settings import Settings, get_settings

console = Console()
app = typer.Typer(help="FacultyTrack – faculty research output tracker")
EXPORT_FORMATS = {"bibtex", "csl", "csv"}


def _load_settings() -> Settings:
    settings = get_settings()
    configure_logging(settings.log_level)
    return settings


async def _handle_add(orcid_id: str, position: str, department: str) -> FacultyProfile:
    settings = _load_settings()
    directory = LocalDirectory(settings)
    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        assembler = ProfileAssembler(
            identity=OrcidClient(client=client, settings=settings),
            repository=directory,
            metrics=OpenAlexClient(client=client, settings=settings),
            sources=[
                ScopusSource(client=client, settings=settings),
                WosSource(client=client, settings=settings),
            ],
        )
        return await assembler.add(orcid_id, position, department)


def _print_profile(profile: FacultyProfile) -> None:
    table = Table(title=f"{profile.name} ({profile.orcid_id})")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("Position", profile.position or "—")
    table.add_row("Department", profile.department or "—")
    table.add_row("Country", profile.country or "—")
    table.add_row("Publications", str(len(profile.publications)))
    if profile.metrics:
        table.add_row("h-index", str(profile.metrics.h_index))
        table.add_row("Citations", str(profile.metrics.citation_count))
        table.add_row("Topics", ", ".join(topic.name for topic in profile.metrics.topics) or "—")
        table.add_row("Institutions", ", ".join(profile.metrics.institutions) or "—")
    console.print(table)

    pubs = Table(title="Publications")
    pubs.add_column("Year")
    pubs.add_column("Title", overflow="fold")
    pubs.add_column("Venue", overflow="fold")
    pubs.add_column("Cited")
    pubs.add_column("Sources")
    for record in profile.publications:
        pubs.add_row(
            str(record.year or "—"),
            record.title,
            record.journal or "—",
            str(record.citation_count or 0),
            ", ".join(record.source_labels),
        )
    console.print(pubs)


@app.command()
def init(data_dir: Optional[Path] = typer.Option(None, help="Override data directory")) -> None:
    """Create the data directory and bootstrap configuration."""
    settings = get_settings()
    target = data_dir or settings.data_dir
    target.mkdir(parents=True, exist_ok=True)
    console.print(f"[green]Directory ready:[/green] {target}")
    if data_dir:
        _write_env_var("FACULTRACK_DATA_DIR", str(target))
        console.print("Updated .env with FACULTRACK_DATA_DIR")


def _write_env_var(key: str, value: str) -> None:
    env_path = Path(".env")
    lines = []
    if env_path.exists():
        lines = [line for line in env_path.read_text().splitlines() if not line.startswith(f"{key}=")]
    lines.append(f"{key}={value}")
    env_path.write_text("\n".join(lines) + "\n")


@app.command()
def config(
    json_output: bool = typer.Option(False, "--json", help="Output settings as JSON"),
) -> None:
    """Display the resolved settings."""
    settings = get_settings()
    payload = settings.model_dump(mode="json")
    for secret in ("scopus_api_key", "wos_api_key"):
        if payload.get(secret):
            payload[secret] = "***"
    if json_output:
        typer.echo(json.dumps(payload, indent=2))
        return
    table = Table(title="FacultyTrack Settings")
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for key, value in payload.items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def add(
    orcid_id: str = typer.Argument(..., help="ORCID iD, e.g. 0000-0002-1825-0097"),
    position: str = typer.Option("Associate Professor", help="Local position title"),
    department: str = typer.Option("", help="Local department"),
) -> None:
    """Fetch a researcher from every registry and add them to the directory."""
    try:
        profile = asyncio.run(_handle_add(orcid_id, position, department))
    except AssemblyError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    console.print(
        f"[green]Added[/green]: {profile.name} • {len(profile.publications)} publications"
    )


@app.command()
def search(
    affiliation: str = typer.Argument(..., help="Institution name as it appears on ORCID"),
    rows: int = typer.Option(20, help="Maximum people to return"),
) -> None:
    """Search ORCID for researchers by affiliation."""

    async def runner():
        settings = _load_settings()
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            return await OrcidClient(client=client, settings=settings).search_by_affiliation(
                affiliation, rows=rows
            )

    hits = asyncio.run(runner())
    if not hits:
        console.print("[yellow]No researchers found.")
        return
    table = Table(title=f"ORCID results for {affiliation}")
    table.add_column("ORCID")
    table.add_column("Name")
    for hit in hits:
        table.add_row(hit.orcid_id, hit.name)
    console.print(table)


@app.command("list")
def list_profiles(
    department: Optional[str] = typer.Option(None, help="Filter by department"),
) -> None:
    """List faculty in the directory."""
    settings = _load_settings()
    profiles = asyncio.run(LocalDirectory(settings).list_all())
    if department:
        profiles = [profile for profile in profiles if profile.department == department]
    if not profiles:
        console.print("[yellow]No faculty in the directory.")
        return
    table = Table(title="Faculty")
    table.add_column("ORCID")
    table.add_column("Name")
    table.add_column("Department")
    table.add_column("Publications")
    table.add_column("h-index")
    for profile in profiles:
        table.add_row(
            profile.orcid_id,
            profile.name,
            profile.department or "—",
            str(len(profile.publications)),
            str(profile.metrics.h_index) if profile.metrics else "—",
        )
    console.print(table)


@app.command()
def show(orcid_id: str = typer.Argument(..., help="ORCID iD")) -> None:
    """Show one profile with its merged publication list."""
    settings = _load_settings()
    profile = asyncio.run(LocalDirectory(settings).get(orcid_id))
    if profile is None:
        console.print(f"[red]No faculty member with ORCID {orcid_id}.[/red]")
        raise typer.Exit(code=1)
    _print_profile(profile)


@app.command()
def remove(identifier: str = typer.Argument(..., help="ORCID iD or display name")) -> None:
    """Remove a faculty member from the directory."""
    settings = _load_settings()
    removed = asyncio.run(LocalDirectory(settings).delete(identifier))
    if removed is None:
        console.print(f"[red]No faculty member matched {identifier!r}.[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Removed[/green]: {removed.name}")


@app.command()
def stats(
    department: Optional[str] = typer.Option(None, help="Filter by department"),
    faculty: Optional[str] = typer.Option(None, help="Filter by ORCID iD"),
    start: Optional[int] = typer.Option(None, help="First year (default: five years ago)"),
    end: Optional[int] = typer.Option(None, help="Last year (default: this year)"),
) -> None:
    """Print dashboard statistics for the directory."""
    settings = _load_settings()
    profiles = asyncio.run(LocalDirectory(settings).list_all())
    summary = build_dashboard(
        profiles,
        DashboardFilter(department=department, orcid_id=faculty, start_year=start, end_year=end),
    )
    table = Table(title="Research output")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Faculty", str(summary.total_faculty))
    table.add_row("Publications (range)", str(summary.total_publications))
    table.add_row("Publications (this year)", str(summary.publications_this_year))
    table.add_row("Citations (range)", str(summary.total_citations))
    table.add_row("Average h-index", f"{summary.average_h_index:.1f}")
    table.add_row("Scopus-indexed", str(summary.scopus_publications))
    table.add_row("WoS-indexed", str(summary.wos_publications))
    console.print(table)

    trend = Table(title="Trend")
    trend.add_column("Year")
    trend.add_column("Publications")
    trend.add_column("Citations")
    for point in summary.trend:
        trend.add_row(str(point.year), str(point.publications), str(point.citations))
    console.print(trend)

    if summary.top_authors:
        label = "Citations" if summary.ranked_by_citations else "Publications"
        top = Table(title="Top authors")
        top.add_column("Name")
        top.add_column(label)
        for author in summary.top_authors:
            top.add_row(author.name, str(author.value))
        console.print(top)


@app.command()
def export(
    orcid_id: str = typer.Argument(..., help="ORCID iD"),
    fmt: str = typer.Option("bibtex", "--format", "-f", help="bibtex, csl, or csv"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file"),
) -> None:
    """Export a profile's publications."""
    if fmt not in EXPORT_FORMATS:
        raise typer.BadParameter(f"Format must be one of: {', '.join(sorted(EXPORT_FORMATS))}")
    settings = _load_settings()
    profile = asyncio.run(LocalDirectory(settings).get(orcid_id))
    if profile is None or not profile.publications:
        console.print("[yellow]No publications to export.")
        return
    if fmt == "bibtex":
        content = exporters.export_bibtex(profile.publications)
    elif fmt == "csl":
        content = exporters.export_csl_json(profile.publications)
    else:
        content = exporters.export_csv(profile.publications)
    if output:
        output.write_text(content, encoding="utf-8")
        console.print(f"[green]Wrote {len(profile.publications)} records to {output}")
    else:
        typer.echo(content)


@app.command()
def tool(
    name: str = typer.Argument(..., help="Tool name, e.g. get_author_metrics"),
    args: str = typer.Option("{}", "--args", help="JSON object of tool arguments"),
) -> None:
    """Run one assistant tool and print its JSON result."""
    try:
        arguments = json.loads(args)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"--args must be JSON: {exc}") from exc

    async def runner():
        settings = _load_settings()
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            executor = ToolExecutor(OpenAlexClient(client=client, settings=settings))
            return await executor.execute(name, arguments)

    result = asyncio.run(runner())
    typer.echo(json.dumps(result, indent=2, default=str))
    if isinstance(result, dict) and "error" in result:
        raise typer.Exit(code=1)
