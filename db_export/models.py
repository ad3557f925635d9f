"""Pydantic models for export options and results."""

from pathlib import Path
from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class ExportOptions(BaseModel):
    """Options consumed by the exporter."""
    output_directory: Path = Path("./exported_database")
    schema_only: bool = False
    table_filter: Optional[List[str]] = None
    strict_table_filter: bool = True
    generate_model_source: bool = False
    model_output_directory: Optional[Path] = None
    generate_docs: bool = True
    generate_equality: bool = True
    generate_copy_with: bool = True
    max_workers: int = Field(default=1, ge=1)
    verbose: bool = False

    @property
    def resolved_model_directory(self) -> Path:
        """Model directory, defaulting to <output>/dart_models."""
        return self.model_output_directory or self.output_directory / "dart_models"


class ExportStats(BaseModel):
    """Per-artifact counts for one export run."""
    types: int = 0
    tables: int = 0
    functions: int = 0
    triggers: int = 0
    models: int = 0
    data_files: int = 0
    skipped_rows: int = 0


class ExportResult(BaseModel):
    """Result of one export run."""
    success: bool = True
    stats: ExportStats = Field(default_factory=ExportStats)
    files: List[str] = []
    model_files: List[str] = []
    failed_tables: Dict[str, str] = {}
    output_dir: str = ""
