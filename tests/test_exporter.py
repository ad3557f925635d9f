"""Tests for the export orchestrator."""

import pytest

from db_export.errors import BuildError, ProviderError, WriteError
from db_export.exporter import DatabaseExporter
from db_export.files import FileWriter
from db_export.models import ExportOptions
from tests.conftest import FIXED_TIME
from tests.fixtures.fake_provider import FakeCatalogProvider


def _exporter(provider, tmp_path, **options):
    return DatabaseExporter(
        provider,
        ExportOptions(output_directory=tmp_path / "out", **options),
        clock=lambda: FIXED_TIME,
    )


class TestExport:
    """Tests for a full export run."""

    def test_writes_all_sections(self, fake_provider, tmp_path):
        result = _exporter(fake_provider, tmp_path).export()
        out = tmp_path / "out"

        assert result.success
        assert result.files == [
            "01_types.sql",
            "02_tables.sql",
            "03_data_users.sql",
            "03_data_posts.sql",
            "04_functions.sql",
            "05_triggers.sql",
            "manifest.sql",
        ]
        for name in result.files:
            assert (out / name).exists()
        assert result.output_dir == str(out)

    def test_stats(self, fake_provider, tmp_path):
        stats = _exporter(fake_provider, tmp_path).export().stats

        assert stats.types == 1
        assert stats.tables == 2
        assert stats.functions == 1
        assert stats.triggers == 1
        assert stats.data_files == 2
        assert stats.models == 0
        assert stats.skipped_rows == 0

    def test_file_contents(self, fake_provider, tmp_path):
        _exporter(fake_provider, tmp_path).export()
        out = tmp_path / "out"

        assert "CREATE TYPE user_role AS ENUM ('admin', 'member');" in (out / "01_types.sql").read_text()
        assert "CREATE TABLE IF NOT EXISTS posts (" in (out / "02_tables.sql").read_text()
        assert "(1, 'ada@example.com', '2024-01-01T09:30:00')," in (out / "03_data_users.sql").read_text()

    def test_empty_table_placeholder(self, fake_provider, tmp_path):
        _exporter(fake_provider, tmp_path).export()

        assert (tmp_path / "out" / "03_data_posts.sql").read_text() == "-- No data found in table posts\n"

    def test_manifest_lists_files_in_order(self, fake_provider, tmp_path):
        _exporter(fake_provider, tmp_path).export()
        manifest = (tmp_path / "out" / "manifest.sql").read_text()

        includes = [line[3:] for line in manifest.splitlines() if line.startswith("\\i ")]
        assert includes == [
            "01_types.sql",
            "02_tables.sql",
            "03_data_users.sql",
            "03_data_posts.sql",
            "04_functions.sql",
            "05_triggers.sql",
        ]
        assert "-- Generated at: 2024-01-15T12:00:00+00:00" in manifest

    def test_schema_only(self, fake_provider, tmp_path):
        result = _exporter(fake_provider, tmp_path, schema_only=True).export()

        assert not any(name.startswith("03_") for name in result.files)
        assert not any(call[0] == "get_table_rows" for call in fake_provider.calls)
        assert "03_data" not in (tmp_path / "out" / "manifest.sql").read_text()

    def test_table_filter(self, fake_provider, tmp_path):
        result = _exporter(fake_provider, tmp_path, table_filter=["users"]).export()

        assert "03_data_users.sql" in result.files
        assert "03_data_posts.sql" not in result.files
        assert result.stats.tables == 1

    def test_dart_models(self, fake_provider, tmp_path):
        result = _exporter(fake_provider, tmp_path, generate_model_source=True).export()
        models = tmp_path / "out" / "dart_models"

        assert result.stats.models == 2
        assert (models / "users.dart").exists()
        assert (models / "posts.dart").exists()
        assert result.model_files == [str(models / "users.dart"), str(models / "posts.dart")]

    def test_dart_model_directory(self, fake_provider, tmp_path):
        _exporter(
            fake_provider, tmp_path, generate_model_source=True, model_output_directory=tmp_path / "lib" / "models"
        ).export()

        assert (tmp_path / "lib" / "models" / "users.dart").exists()

    def test_idempotent(self, fake_provider, tmp_path):
        """Test that two runs over the same catalog write identical files."""
        first = _exporter(fake_provider, tmp_path / "a", generate_model_source=True)
        second = _exporter(fake_provider, tmp_path / "b", generate_model_source=True)
        first.export()
        second.export()

        for path in sorted((tmp_path / "a" / "out").rglob("*.*")):
            twin = tmp_path / "b" / "out" / path.relative_to(tmp_path / "a" / "out")
            assert path.read_text() == twin.read_text()

    def test_worker_pool_keeps_table_order(self, fake_provider, tmp_path):
        result = _exporter(fake_provider, tmp_path, max_workers=4).export()

        data_files = [name for name in result.files if name.startswith("03_")]
        assert data_files == ["03_data_users.sql", "03_data_posts.sql"]


class TestExportFailures:
    """Tests for error propagation and isolation."""

    def test_zero_tables_writes_nothing(self, tmp_path):
        with pytest.raises(BuildError):
            _exporter(FakeCatalogProvider(), tmp_path).export()

        assert not (tmp_path / "out").exists()

    def test_render_error_isolated_to_table(self, fake_provider, tmp_path):
        """Test a table whose data cannot be rendered is skipped while others export."""
        fake_provider.rows["users"] = ["not a row"]
        result = _exporter(fake_provider, tmp_path).export()

        assert not result.success
        assert "users" in result.failed_tables
        assert "03_data_users.sql" not in result.files
        assert "03_data_posts.sql" in result.files
        assert not (tmp_path / "out" / "03_data_users.sql").exists()
        assert "03_data_users.sql" not in (tmp_path / "out" / "manifest.sql").read_text()

    def test_skipped_rows_counted(self, fake_provider, tmp_path):
        fake_provider.rows["users"] = [
            {"id": 1, "email": float("inf"), "created_at": None},
            {"id": 2, "email": "b@example.com", "created_at": None},
        ]
        result = _exporter(fake_provider, tmp_path).export()

        assert result.success
        assert result.stats.skipped_rows == 1

    def test_data_fetch_failure_aborts(self, fake_provider, tmp_path):
        """Test a provider failure while reading data aborts before the manifest."""
        fake_provider.failures["get_table_rows:posts"] = RuntimeError("timeout")

        with pytest.raises(ProviderError, match="posts"):
            _exporter(fake_provider, tmp_path).export()

        assert not (tmp_path / "out" / "manifest.sql").exists()

    def test_write_error(self, fake_provider, tmp_path):
        blocker = tmp_path / "out"
        blocker.write_text("a file, not a directory")

        with pytest.raises(WriteError) as exc_info:
            _exporter(fake_provider, tmp_path).export()

        assert exc_info.value.stage == "write"
        assert "01_types.sql" in exc_info.value.path


class TestFileWriter:
    """Tests for FileWriter."""

    def test_creates_parents(self, tmp_path):
        writer = FileWriter()
        path = writer.write(tmp_path / "a" / "b" / "c.sql", "SELECT 1;")

        assert path.read_text() == "SELECT 1;"
        assert writer.written == [path]
