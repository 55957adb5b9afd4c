"""Command-line interface for the sports warehouse loader."""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import load_job_config
from .database import DatabaseConfig, drop_db, init_db
from .errors import LoadOrderError, StagingFileError, StorageUnavailableError
from .loading import (
    ENTITY_SPECS,
    LOAD_ORDER,
    EntityLoader,
    EntityType,
    FieldKind,
    LoadReport,
    SQLModelProductionStore,
)
from .loading.converters import DEFAULT_DATE_FORMAT
from .pipeline import WarehouseLoadOrchestrator, WarehouseLoadResult
from .staging import StagingRepository, read_staging_csv

app = typer.Typer(
    name="sports-etl",
    help="Sports Warehouse - staging to production loader",
    add_completion=False,
)
console = Console()


def configure_logging(level: int = logging.INFO) -> None:
    """Route library log records through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Sports Warehouse - staging to production loader."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)


def _db_config(database_url: Optional[str]) -> DatabaseConfig:
    if database_url:
        return DatabaseConfig.from_url(database_url)
    return DatabaseConfig.from_env()


@app.command("init-db")
def init_database(
    database_url: Optional[str] = typer.Option(None, "--database-url", help="SQLAlchemy URL (default: env)"),
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables first"),
):
    """Create staging and production tables."""
    config = _db_config(database_url)
    console.print(f"[bold green]Initializing warehouse:[/bold green] {config!r}")

    if drop:
        drop_db(config)
        console.print("[yellow]✓ Dropped existing tables[/yellow]")

    init_db(config)
    console.print("[green]✓ Tables ready[/green]")


@app.command()
def stage(
    entity: EntityType = typer.Argument(..., help="Entity the file holds"),
    file: Path = typer.Argument(..., help="CSV file with a header row"),
    max_errors: int = typer.Option(1000, "--max-errors", help="Malformed lines tolerated"),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="SQLAlchemy URL (default: env)"),
):
    """Land a CSV file into its staging table."""
    config = _db_config(database_url)

    try:
        batch = read_staging_csv(file, entity, max_errors=max_errors)
        staged = StagingRepository(config).stage(entity, batch.rows)
    except StagingFileError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)
    except StorageUnavailableError as e:
        console.print(f"[red]✗ Staging aborted, storage unavailable: {e}[/red]")
        raise typer.Exit(2)

    console.print(
        f"[green]✓[/green] Staged [yellow]{staged}[/yellow] {entity.value} rows "
        f"from {file}"
    )
    if batch.errors:
        console.print(f"[yellow]⚠ Skipped {len(batch.errors)} malformed lines[/yellow]")
    if batch.ignored_columns:
        console.print(f"[dim]Ignored columns: {', '.join(batch.ignored_columns)}[/dim]")


@app.command()
def load(
    entity: EntityType = typer.Argument(..., help="Entity to load"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Load a CSV directly instead of the staging table"),
    date_format: str = typer.Option(DEFAULT_DATE_FORMAT, "--date-format", help="strptime format for date fields"),
    keep_staging: bool = typer.Option(False, "--keep-staging", help="Do not truncate the staging table"),
    output_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="SQLAlchemy URL (default: env)"),
):
    """Load one entity into its production table."""
    config = _db_config(database_url)
    loader = EntityLoader(SQLModelProductionStore(config), date_format=date_format)
    staging = StagingRepository(config)

    try:
        if file is not None:
            rows = read_staging_csv(file, entity).rows
        else:
            rows = staging.fetch(entity)
        report = loader.load(entity, rows)
        if file is None and not keep_staging:
            staging.truncate(entity)
    except StagingFileError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)
    except StorageUnavailableError as e:
        console.print(f"[red]✗ Load aborted, storage unavailable: {e}[/red]")
        if e.report is not None:
            _display_report(e.report)
        raise typer.Exit(2)

    if output_json:
        console.print_json(json.dumps(report.to_dict(), default=str))
    else:
        _display_report(report)


@app.command()
def run(
    job: Path = typer.Option(..., "--job", "-j", help="Path to load job YAML"),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Overrides the job's database_url"),
    create_tables: bool = typer.Option(True, "--create-tables/--no-create-tables", help="Create missing tables first"),
):
    """Stage every source file of a job and load all entities in order."""
    try:
        job_config = load_job_config(job)
    except (FileNotFoundError, ValidationError) as e:
        console.print(f"[red]✗ Invalid job config: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold green]Starting load job:[/bold green] {job_config.name}")
    config = _db_config(database_url or job_config.database_url)

    if create_tables:
        init_db(config)

    orchestrator = WarehouseLoadOrchestrator(
        EntityLoader(
            SQLModelProductionStore(config, retry_config=job_config.retry),
            date_format=job_config.date_format,
        ),
        StagingRepository(config, retry_config=job_config.retry),
        truncate_staging=job_config.truncate_staging,
    )

    try:
        result = orchestrator.run_files(
            job_config.resolve_sources(job.parent),
            max_errors=job_config.max_errors,
        )
    except (StagingFileError, LoadOrderError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)
    except StorageUnavailableError as e:
        console.print(f"[red]✗ Load aborted, storage unavailable: {e}[/red]")
        raise typer.Exit(2)

    _display_result(result)


@app.command()
def entities():
    """Show the field-type table used to convert staged rows."""
    table = Table(title="Entity Field Types")
    table.add_column("Entity", style="cyan")
    table.add_column("Table", style="magenta")
    table.add_column("Flag", style="green")
    table.add_column("Date", style="yellow")
    table.add_column("Plain-copy")
    table.add_column("Foreign Keys", style="blue")

    for entity_type in LOAD_ORDER:
        spec = ENTITY_SPECS[entity_type]
        plain = spec.fields_of_kind(FieldKind.INTEGER) + spec.fields_of_kind(FieldKind.TEXT)
        table.add_row(
            entity_type.value,
            spec.table_name,
            ", ".join(spec.fields_of_kind(FieldKind.FLAG)) or "-",
            ", ".join(spec.fields_of_kind(FieldKind.DATE)) or "-",
            ", ".join(name for name in spec.columns if name in plain),
            ", ".join(f"{k} → {v.value}" for k, v in spec.foreign_keys.items()) or "-",
        )

    console.print(table)
    console.print(f"\nLoad order: {' → '.join(e.value for e in LOAD_ORDER)}")


def _display_report(report: LoadReport) -> None:
    """Display a single entity load report."""
    console.print(
        f"\n[bold]{report.entity_type}[/bold]: "
        f"[green]{report.accepted_count} accepted[/green], "
        f"[red]{report.rejected_count} rejected[/red]"
    )
    if report.nullified_fields:
        console.print(
            f"  [yellow]{len(report.nullified_fields)} optional values could not be "
            f"converted and were stored as NULL[/yellow]"
        )

    if not report.rejections:
        return

    rejected = Table(title="Rejected Rows", show_header=True)
    rejected.add_column("Row", style="cyan", justify="right")
    rejected.add_column("Reason", style="red")
    rejected.add_column("Detail")
    for rejection in report.rejections[:20]:  # Limit to first 20
        rejected.add_row(str(rejection.row), rejection.reason.value, rejection.detail)
    console.print(rejected)
    if report.rejected_count > 20:
        console.print(f"  ... and {report.rejected_count - 20} more rejections")


def _display_result(result: WarehouseLoadResult) -> None:
    """Display a multi-entity load result."""
    summary = Table(title="Warehouse Load")
    summary.add_column("Entity", style="cyan")
    summary.add_column("Staged", justify="right")
    summary.add_column("Accepted", justify="right", style="green")
    summary.add_column("Rejected", justify="right", style="red")
    for entity_type in result.load_order:
        report = result.reports.get(entity_type)
        batch = result.staged.get(entity_type)
        summary.add_row(
            entity_type.value,
            str(len(batch)) if batch is not None else "-",
            str(report.accepted_count) if report else "-",
            str(report.rejected_count) if report else "-",
        )
    console.print(summary)

    for report in result.reports.values():
        if report.rejections:
            _display_report(report)

    console.print(f"\n[green]✓ Load complete[/green] in {result.duration_seconds:.2f}s")


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"[bold]Sports Warehouse[/bold] version: [green]{__version__}[/green]")


if __name__ == "__main__":
    app()
