"""Export orchestration: fetch, build, render and write."""

import datetime
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .catalog.base import CatalogProvider, Row
from .catalog.builder import fetch_snapshot
from .catalog.models import SchemaSnapshot
from .errors import ProviderError, RenderError
from .files import FileWriter
from .models import ExportOptions, ExportResult, ExportStats
from .render.dart import DartModelGenerator
from .render.sql import SqlRenderer

logger = logging.getLogger(__name__)

TYPES_FILE = "01_types.sql"
TABLES_FILE = "02_tables.sql"
FUNCTIONS_FILE = "04_functions.sql"
TRIGGERS_FILE = "05_triggers.sql"
MANIFEST_FILE = "manifest.sql"


def data_file_name(table_name: str) -> str:
    return f"03_data_{table_name}.sql"


class DatabaseExporter:
    """Exports a database schema (and optionally data and Dart models) to files.

    Nothing is written until the snapshot is built, so catalog errors leave
    the output directory untouched. The manifest is always written last.
    """

    def __init__(
        self,
        provider: CatalogProvider,
        options: Optional[ExportOptions] = None,
        writer: Optional[FileWriter] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ):
        """Initialize the exporter.

        Args:
            provider: Catalog data provider
            options: Export options
            writer: File writer (a new FileWriter by default)
            clock: Timestamp source for the manifest header
        """
        self.provider = provider
        self.options = options or ExportOptions()
        self.writer = writer or FileWriter()
        self.clock = clock or (lambda: datetime.datetime.now(datetime.timezone.utc))

    def export(self) -> ExportResult:
        """Run the export.

        Returns:
            ExportResult with per-artifact counts and written files

        Raises:
            ProviderError: If catalog or table data cannot be fetched
            BuildError: If the catalog data is empty or inconsistent
            WriteError: If an output file cannot be written
        """
        options = self.options
        output_dir = Path(options.output_directory)

        logger.info("Fetching database catalog")
        snapshot = fetch_snapshot(
            self.provider,
            table_filter=options.table_filter,
            strict=options.strict_table_filter,
        )
        logger.info(
            "Snapshot built: %d types, %d tables, %d functions, %d triggers",
            len(snapshot.enums), len(snapshot.tables), len(snapshot.functions), len(snapshot.triggers),
        )

        stats = ExportStats(
            types=len(snapshot.enums),
            tables=len(snapshot.tables),
            functions=len(snapshot.functions),
            triggers=len(snapshot.triggers),
        )
        result = ExportResult(stats=stats, output_dir=str(output_dir))

        renderer = SqlRenderer(snapshot)
        sections: List[Tuple[str, str]] = [
            (TYPES_FILE, renderer.render_types()),
            (TABLES_FILE, renderer.render_tables()),
        ]
        if not options.schema_only:
            sections.extend(self._render_data(renderer, snapshot, result))
        sections.append((FUNCTIONS_FILE, renderer.render_functions()))
        sections.append((TRIGGERS_FILE, renderer.render_triggers()))

        models: Dict[str, str] = {}
        if options.generate_model_source:
            generator = DartModelGenerator(
                snapshot,
                generate_docs=options.generate_docs,
                generate_equality=options.generate_equality,
                generate_copy_with=options.generate_copy_with,
            )
            models = generator.render_all()

        for file_name, content in sections:
            self.writer.write(output_dir / file_name, content)
            result.files.append(file_name)

        model_dir = options.resolved_model_directory
        for file_name, content in models.items():
            path = self.writer.write(model_dir / file_name, content)
            result.model_files.append(str(path))
        result.stats.models = len(models)

        manifest = renderer.render_manifest(result.files, generated_at=self.clock())
        self.writer.write(output_dir / MANIFEST_FILE, manifest)
        result.files.append(MANIFEST_FILE)

        result.success = not result.failed_tables
        logger.info("Export complete: %d files written to %s", len(result.files), output_dir)
        return result

    def _render_data(
        self,
        renderer: SqlRenderer,
        snapshot: SchemaSnapshot,
        result: ExportResult,
    ) -> List[Tuple[str, str]]:
        """Render one isolated data section per table, in table order."""
        table_names = [t.name for t in snapshot.tables]
        workers = min(self.options.max_workers, len(table_names)) or 1

        if workers > 1:
            logger.debug("Fetching table data with %d workers", workers)
            with ThreadPoolExecutor(max_workers=workers) as executor:
                all_rows = list(executor.map(self._fetch_rows, table_names))
        else:
            all_rows = [self._fetch_rows(name) for name in table_names]

        sections = []
        for table, rows in zip(snapshot.tables, all_rows):
            try:
                content, skipped = renderer.render_data(table, rows)
            except RenderError as e:
                logger.error("Skipping data for table %s: %s", table.name, e.message)
                result.failed_tables[table.name] = e.message
                continue
            result.stats.skipped_rows += skipped
            result.stats.data_files += 1
            sections.append((data_file_name(table.name), content))
        return sections

    def _fetch_rows(self, table_name: str) -> List[Row]:
        logger.info("Fetching data for table: %s", table_name)
        try:
            return list(self.provider.get_table_rows(table_name) or [])
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Failed to fetch data for table {table_name}: {e}",
                details={"table": table_name},
            ) from e
