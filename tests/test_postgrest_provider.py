"""Tests for the Supabase REST catalog provider."""

import json

import httpx
import pytest

from db_export.catalog.postgrest import PostgrestCatalogProvider
from db_export.errors import ProviderError


def _provider(handler, **kwargs):
    kwargs.setdefault("page_size", 2)
    return PostgrestCatalogProvider(
        supabase_url="https://project.supabase.co/",
        service_key="service-key",
        schema="public",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestConfiguration:
    """Tests for provider setup."""

    def test_missing_credentials(self, monkeypatch):
        from db_export.catalog import postgrest

        monkeypatch.setattr(postgrest.settings, "supabase_url", None)
        monkeypatch.setattr(postgrest.settings, "supabase_service_key", None)

        with pytest.raises(ProviderError, match="SUPABASE_URL"):
            PostgrestCatalogProvider()

    def test_headers_and_base_url(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            return httpx.Response(200, json=[])

        with _provider(handler) as provider:
            provider.list_enum_types()

        assert seen["url"] == "https://project.supabase.co/rest/v1/rpc/get_enum_types"
        assert seen["headers"]["apikey"] == "service-key"
        assert seen["headers"]["authorization"] == "Bearer service-key"
        assert seen["headers"]["accept-profile"] == "public"


class TestCatalogCalls:
    """Tests for RPC-backed catalog methods."""

    def test_table_scoped_rpc_params(self):
        bodies = []

        def handler(request):
            bodies.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200, json=[{"column_name": "id", "data_type": "integer"}])

        with _provider(handler) as provider:
            rows = provider.get_table_columns("users")

        assert rows == [{"column_name": "id", "data_type": "integer"}]
        assert bodies == [("/rest/v1/rpc/get_column_definitions", {"p_schema": "public", "p_table_name": "users"})]

    def test_system_tables_excluded(self):
        def handler(request):
            return httpx.Response(200, json=[{"table_name": "users"}, {"table_name": "pg_stat_statements"}])

        with _provider(handler) as provider:
            assert provider.list_tables() == [{"table_name": "users"}]

    def test_null_result_is_empty(self):
        def handler(request):
            return httpx.Response(200, content=b"null", headers={"Content-Type": "application/json"})

        with _provider(handler) as provider:
            assert provider.list_triggers() == []

    def test_error_object_in_result(self):
        def handler(request):
            return httpx.Response(200, json={"error": "permission denied for schema public"})

        with _provider(handler) as provider:
            with pytest.raises(ProviderError, match="permission denied"):
                provider.list_functions()

    def test_http_error(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Could not find the function public.get_tables"})

        with _provider(handler) as provider:
            with pytest.raises(ProviderError) as exc_info:
                provider.list_tables()

        assert "Could not find the function" in exc_info.value.message
        assert exc_info.value.details["status_code"] == 404

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with _provider(handler) as provider:
            with pytest.raises(ProviderError, match="connection refused"):
                provider.list_enum_types()


class TestTableRows:
    """Tests for paged table data reads."""

    def test_pages_until_short_page(self):
        pages = {"0-1": [{"id": 1}, {"id": 2}], "2-3": [{"id": 3}]}
        ranges = []

        def handler(request):
            ranges.append(request.headers["range"])
            assert request.url.params["select"] == "*"
            return httpx.Response(200, json=pages[request.headers["range"]])

        with _provider(handler) as provider:
            rows = provider.get_table_rows("users")

        assert rows == [{"id": 1}, {"id": 2}, {"id": 3}]
        assert ranges == ["0-1", "2-3"]

    def test_range_not_satisfiable_ends_paging(self):
        def handler(request):
            if request.headers["range"] == "0-1":
                return httpx.Response(200, json=[{"id": 1}, {"id": 2}])
            return httpx.Response(416, json={"message": "Requested range not satisfiable"})

        with _provider(handler) as provider:
            assert provider.get_table_rows("users") == [{"id": 1}, {"id": 2}]

    def test_empty_table(self):
        with _provider(lambda request: httpx.Response(200, json=[])) as provider:
            assert provider.get_table_rows("posts") == []

    def test_fetch_failure(self):
        def handler(request):
            return httpx.Response(500, text="upstream failure")

        with _provider(handler) as provider:
            with pytest.raises(ProviderError) as exc_info:
                provider.get_table_rows("users")

        assert exc_info.value.details == {"table": "users", "status_code": 500}
        assert "upstream failure" in exc_info.value.message
