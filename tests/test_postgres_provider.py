"""Tests for the direct PostgreSQL catalog provider."""

import re
from pathlib import Path
from unittest.mock import MagicMock

import psycopg2
import pytest

from db_export.catalog import postgres
from db_export.catalog.postgres import CATALOG_FUNCTIONS, PostgresCatalogProvider
from db_export.errors import ProviderError

INSTALL_SCRIPT = Path(postgres.__file__).parent.parent / "sql" / "install_functions.sql"


def _provider_with_rows(rows=None, error=None):
    """Provider whose connection is a mock cursor returning rows."""
    provider = PostgresCatalogProvider(connection_string="postgresql://localhost/app", schema="public")
    cursor = MagicMock()
    cursor.fetchall.return_value = rows or []
    if error:
        cursor.execute.side_effect = error
    connection = MagicMock()
    connection.cursor.return_value.__enter__.return_value = cursor
    provider._connection = connection
    return provider, connection, cursor


class TestPostgresCatalogProvider:
    """Tests for PostgresCatalogProvider."""

    def test_missing_connection_string(self, monkeypatch):
        monkeypatch.setattr(postgres.settings, "database_url", None)

        with pytest.raises(ProviderError, match="DATABASE_URL"):
            PostgresCatalogProvider()

    def test_query_parameters(self):
        provider, _, cursor = _provider_with_rows([{"column_name": "id"}])

        assert provider.get_table_columns("users") == [{"column_name": "id"}]
        query, params = cursor.execute.call_args[0]
        assert "information_schema.columns" in query
        assert params == ("public", "users")

    def test_system_tables_excluded(self):
        provider, _, _ = _provider_with_rows([{"table_name": "users"}, {"table_name": "pg_audit"}])

        assert provider.list_tables() == [{"table_name": "users"}]

    def test_functions_exclude_catalog_helpers(self):
        provider, _, cursor = _provider_with_rows()
        provider.list_functions()

        _, params = cursor.execute.call_args[0]
        assert params == ("public", list(CATALOG_FUNCTIONS))

    def test_query_error_wrapped(self):
        provider, _, _ = _provider_with_rows(error=psycopg2.ProgrammingError("relation does not exist"))

        with pytest.raises(ProviderError, match="relation does not exist"):
            provider.list_enum_types()

    def test_close(self):
        provider, connection, _ = _provider_with_rows()
        provider.close()

        connection.close.assert_called_once()
        assert provider._connection is None

    def test_install_functions_restores_read_only(self):
        provider, connection, cursor = _provider_with_rows()
        provider.install_functions("SELECT 1;")

        cursor.execute.assert_called_once_with("SELECT 1;")
        connection.set_session.assert_called_with(readonly=True, autocommit=True)


class TestInstallScript:
    """Tests for the bundled catalog function script."""

    def test_defines_every_catalog_function(self):
        script = INSTALL_SCRIPT.read_text()

        for name in CATALOG_FUNCTIONS:
            assert f"CREATE OR REPLACE FUNCTION {name}(" in script

    def test_execute_revoked_from_public(self):
        script = INSTALL_SCRIPT.read_text()
        revoked = re.findall(r"^REVOKE EXECUTE ON FUNCTION (\w+)\([^)]*\) FROM PUBLIC;$", script, re.MULTILINE)
        granted = re.findall(r"GRANT EXECUTE ON FUNCTION (\w+)\([^)]*\) TO service_role;", script)

        assert sorted(revoked) == sorted(CATALOG_FUNCTIONS)
        assert sorted(granted) == sorted(CATALOG_FUNCTIONS)
        assert script.index("FROM PUBLIC") < script.index("TO service_role")
