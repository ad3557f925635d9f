"""Database Export CLI - Main entry point."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .catalog import CatalogProvider, PostgresCatalogProvider, PostgrestCatalogProvider
from .config import load_settings, settings
from .errors import ExportError
from .exporter import DatabaseExporter
from .models import ExportOptions, ExportResult

app = typer.Typer(
    name="db-export",
    help="Export a Supabase/PostgreSQL schema to SQL scripts and Dart models",
    add_completion=False,
)

console = Console()

INSTALL_SCRIPT = Path(__file__).parent / "sql" / "install_functions.sql"


def configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_provider(
    url: Optional[str],
    key: Optional[str],
    connection_string: Optional[str],
    direct: bool,
    schema: Optional[str] = None,
) -> CatalogProvider:
    """Create the catalog provider for the requested connection mode."""
    if direct or (connection_string and not url):
        return PostgresCatalogProvider(connection_string=connection_string, schema=schema)
    return PostgrestCatalogProvider(supabase_url=url, service_key=key, schema=schema)


def parse_table_list(tables: Optional[str]) -> Optional[list]:
    """Split a comma separated table list, dropping blanks."""
    if not tables:
        return None
    names = [name.strip() for name in tables.split(",") if name.strip()]
    return names or None


def print_summary(result: ExportResult):
    summary = Table(title="Export Summary")
    summary.add_column("Artifact", style="cyan")
    summary.add_column("Count", style="green", justify="right")
    summary.add_row("Types", str(result.stats.types))
    summary.add_row("Tables", str(result.stats.tables))
    summary.add_row("Data files", str(result.stats.data_files))
    summary.add_row("Functions", str(result.stats.functions))
    summary.add_row("Triggers", str(result.stats.triggers))
    if result.stats.models:
        summary.add_row("Dart models", str(result.stats.models))
    console.print(summary)

    if result.stats.skipped_rows:
        console.print(f"[yellow]Skipped {result.stats.skipped_rows} row(s) that could not be rendered[/yellow]")
    for table_name, message in result.failed_tables.items():
        console.print(f"[yellow]Data for table {table_name} was not exported: {message}[/yellow]")
    console.print(f"\n[green]Output written to {result.output_dir}[/green]")


@app.command()
def export(
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output directory (or DB_EXPORT_OUTPUT_DIR env)"),
    url: Optional[str] = typer.Option(None, "--url", help="Supabase project URL (or SUPABASE_URL env)"),
    key: Optional[str] = typer.Option(None, "--key", help="Supabase service role key (or SUPABASE_SERVICE_KEY env)"),
    connection_string: Optional[str] = typer.Option(None, "--connection-string", help="PostgreSQL connection string (or DATABASE_URL env)"),
    direct: bool = typer.Option(False, "--direct", help="Read the catalog over a direct PostgreSQL connection"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Database schema to export (default: public)"),
    schema_only: bool = typer.Option(False, "--schema-only", help="Export the schema without table data"),
    tables: Optional[str] = typer.Option(None, "--tables", help="Comma separated list of tables to export"),
    dart: bool = typer.Option(False, "--dart", help="Generate Dart model classes"),
    dart_output: Optional[str] = typer.Option(None, "--dart-output", help="Dart models directory (default: <output>/dart_models)"),
    dart_no_docs: bool = typer.Option(False, "--dart-no-docs", help="Omit documentation comments from Dart models"),
    dart_no_equality: bool = typer.Option(False, "--dart-no-equality", help="Omit == and hashCode from Dart models"),
    dart_no_copy_with: bool = typer.Option(False, "--dart-no-copy-with", help="Omit copyWith from Dart models"),
    workers: int = typer.Option(1, "--workers", min=1, help="Parallel workers for fetching table data"),
    env_file: Optional[Path] = typer.Option(None, "--env", "-e", exists=True, dir_okay=False, help="Path to a .env file with connection settings"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging and full error details"),
):
    """
    Export the database schema, data and functions to SQL files.

    Examples:
        db-export export -o ./backup
        db-export export --schema-only --tables users,posts
        db-export export --direct --connection-string postgresql://localhost/app --dart
    """
    configure_logging(verbose)
    env = load_settings(str(env_file) if env_file else None)

    output_dir = Path(output or env.db_export_output_dir)
    options = ExportOptions(
        output_directory=output_dir,
        schema_only=schema_only,
        table_filter=parse_table_list(tables),
        generate_model_source=dart,
        model_output_directory=Path(dart_output) if dart_output else None,
        generate_docs=not dart_no_docs,
        generate_equality=not dart_no_equality,
        generate_copy_with=not dart_no_copy_with,
        max_workers=workers,
        verbose=verbose,
    )

    console.print(Panel(
        f"[bold blue]Exporting database[/bold blue]\n"
        f"Output: {output_dir}\n"
        f"Mode: {'schema only' if schema_only else 'schema and data'}",
        title="Database Export",
    ))

    try:
        with create_provider(
            url or env.supabase_url,
            key or env.supabase_service_key,
            connection_string or env.database_url,
            direct,
            schema or env.db_export_schema,
        ) as provider:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task("Exporting database...", total=None)
                result = DatabaseExporter(provider, options).export()
    except ImportError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except ExportError as e:
        console.print(f"[red]Export failed during {e.stage}: {e.message}[/red]")
        if verbose:
            if e.details:
                console.print(e.to_dict())
            console.print_exception()
        else:
            console.print("[dim]Run with --verbose for full error details[/dim]")
        raise typer.Exit(1)

    console.print("[green]Export completed[/green]")
    print_summary(result)


@app.command("install-functions")
def install_functions(
    connection_string: Optional[str] = typer.Option(None, "--connection-string", help="PostgreSQL connection string (or DATABASE_URL env)"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Database schema (default: public)"),
    print_only: bool = typer.Option(False, "--print", help="Print the install script instead of running it"),
    env_file: Optional[Path] = typer.Option(None, "--env", "-e", exists=True, dir_okay=False, help="Path to a .env file with connection settings"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
):
    """Install the catalog helper functions the REST export relies on."""
    configure_logging(verbose)
    script = INSTALL_SCRIPT.read_text(encoding="utf-8")

    if print_only:
        console.print(script, markup=False, highlight=False)
        return

    try:
        env = load_settings(str(env_file) if env_file else None)
        with PostgresCatalogProvider(
            connection_string=connection_string or env.database_url,
            schema=schema or env.db_export_schema,
        ) as provider:
            provider.install_functions(script)
    except ImportError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except ExportError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    console.print("[green]Catalog functions installed[/green]")


@app.command()
def config():
    """Show current configuration."""
    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Supabase URL: {settings.supabase_url or 'Not set'}")
    console.print(f"  Service key configured: {'Yes' if settings.supabase_service_key else 'No'}")
    console.print(f"  Database URL configured: {'Yes' if settings.database_url else 'No'}")
    console.print(f"  Schema: {settings.db_export_schema}")
    console.print(f"  Output directory: {settings.db_export_output_dir}")
    console.print(f"  Page size: {settings.db_export_page_size}")
    console.print(f"  Timeout: {settings.db_export_timeout}s")


@app.callback()
def main():
    """
    Database Export - dump a Supabase/PostgreSQL database to SQL and Dart.

    Examples:

        db-export export -o ./exported_database

        db-export export --dart --schema-only

        db-export install-functions --connection-string postgresql://...
    """
    pass


if __name__ == "__main__":
    app()
