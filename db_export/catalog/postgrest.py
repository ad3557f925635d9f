"""Supabase catalog provider using PostgREST RPC calls."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..errors import ProviderError
from .base import CatalogProvider, Row

logger = logging.getLogger(__name__)


class PostgrestCatalogProvider(CatalogProvider):
    """Client for introspecting a Supabase database over its REST API.

    Requires the catalog functions from sql/install_functions.sql.
    """

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        service_key: Optional[str] = None,
        schema: Optional[str] = None,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the provider.

        Args:
            supabase_url: Supabase project URL (or SUPABASE_URL env)
            service_key: Supabase service role key (or SUPABASE_SERVICE_KEY env)
            schema: Database schema to export
            page_size: Rows per request when reading table data
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.supabase_url = (supabase_url or settings.supabase_url or "").rstrip("/")
        self.service_key = service_key or settings.supabase_service_key
        self.schema = schema or settings.db_export_schema
        self.page_size = page_size or settings.db_export_page_size
        self.timeout = timeout or settings.db_export_timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

        if not self.supabase_url or not self.service_key:
            raise ProviderError(
                "Missing Supabase configuration: provide SUPABASE_URL and SUPABASE_SERVICE_KEY "
                "(or --url and --key)"
            )

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {
                "apikey": self.service_key,
                "Authorization": f"Bearer {self.service_key}",
                "Content-Type": "application/json",
                "Accept-Profile": self.schema,
                "Content-Profile": self.schema,
            }
            self._client = httpx.Client(
                base_url=f"{self.supabase_url}/rest/v1",
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def close(self):
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def _rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a catalog function and return its decoded JSON result."""
        logger.debug("RPC %s %s", function, params or {})
        try:
            response = self.client.post(f"/rpc/{function}", json=params or {})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Failed to call {function}: {self._error_message(e.response)}",
                details={"function": function, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Failed to call {function}: {e}", details={"function": function}) from e
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or str(body)
        return str(body)

    def _params(self, table_name: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"p_schema": self.schema}
        if table_name is not None:
            params["p_table_name"] = table_name
        return params

    def _rows(self, result: Any, function: str) -> List[Row]:
        if result is None:
            return []
        if isinstance(result, dict):
            if "error" in result:
                raise ProviderError(f"{function} failed: {result['error']}", details={"function": function})
            return [result]
        return list(result)

    def list_enum_types(self) -> List[Row]:
        return self._rows(self._rpc("get_enum_types", self._params()), "get_enum_types")

    def list_tables(self) -> List[Row]:
        rows = self._rows(self._rpc("get_tables", self._params()), "get_tables")
        return [
            row for row in rows
            if not str(row.get("table_name", "")).startswith(self.EXCLUDED_TABLE_PREFIXES)
        ]

    def get_table_columns(self, table_name: str) -> List[Row]:
        return self._rows(
            self._rpc("get_column_definitions", self._params(table_name)), "get_column_definitions"
        )

    def get_table_constraints(self, table_name: str) -> List[Row]:
        return self._rows(
            self._rpc("get_table_constraints", self._params(table_name)), "get_table_constraints"
        )

    def get_table_indexes(self, table_name: str) -> List[Row]:
        return self._rows(
            self._rpc("get_table_indexes", self._params(table_name)), "get_table_indexes"
        )

    def list_functions(self) -> List[Row]:
        return self._rows(self._rpc("get_db_functions", self._params()), "get_db_functions")

    def list_triggers(self) -> List[Row]:
        return self._rows(self._rpc("get_db_triggers", self._params()), "get_db_triggers")

    def get_table_rows(self, table_name: str) -> List[Row]:
        """Read all rows of a table, one Range-limited page at a time."""
        rows: List[Row] = []
        start = 0
        while True:
            end = start + self.page_size - 1
            try:
                response = self.client.get(
                    f"/{table_name}",
                    params={"select": "*"},
                    headers={"Range-Unit": "items", "Range": f"{start}-{end}"},
                )
                if response.status_code == 416:
                    # Range starts past the last row
                    break
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ProviderError(
                    f"Failed to fetch data from {table_name}: {self._error_message(e.response)}",
                    details={"table": table_name, "status_code": e.response.status_code},
                ) from e
            except httpx.HTTPError as e:
                raise ProviderError(
                    f"Failed to fetch data from {table_name}: {e}", details={"table": table_name}
                ) from e

            page = response.json() or []
            rows.extend(page)
            if len(page) < self.page_size:
                break
            start += self.page_size

        logger.debug("Fetched %d rows from %s", len(rows), table_name)
        return rows
