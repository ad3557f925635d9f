"""PostgreSQL catalog provider using a direct connection."""

import logging
from typing import Any, List, Optional, Sequence

from ..config import settings
from ..errors import ProviderError
from .base import CatalogProvider, Row

logger = logging.getLogger(__name__)

# Helper functions installed by sql/install_functions.sql
CATALOG_FUNCTIONS = (
    "get_enum_types",
    "get_tables",
    "get_column_definitions",
    "get_table_constraints",
    "get_table_indexes",
    "get_db_functions",
    "get_db_triggers",
)

ENUM_TYPES_SQL = """
    SELECT t.typname::text AS name,
           array_agg(e.enumlabel::text ORDER BY e.enumsortorder) AS values
    FROM pg_type t
    JOIN pg_enum e ON t.oid = e.enumtypid
    JOIN pg_namespace n ON n.oid = t.typnamespace
    WHERE n.nspname = %s
    GROUP BY t.typname
    ORDER BY t.typname
"""

TABLES_SQL = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s
      AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""

COLUMNS_SQL = """
    SELECT column_name,
           data_type,
           udt_name,
           is_nullable,
           column_default,
           character_maximum_length,
           numeric_precision,
           numeric_scale,
           ordinal_position
    FROM information_schema.columns
    WHERE table_schema = %s
      AND table_name = %s
    ORDER BY ordinal_position
"""

CONSTRAINTS_SQL = """
    SELECT con.conname::text AS constraint_name,
           CASE con.contype
               WHEN 'p' THEN 'PRIMARY KEY'
               WHEN 'f' THEN 'FOREIGN KEY'
               WHEN 'u' THEN 'UNIQUE'
               WHEN 'c' THEN 'CHECK'
           END AS constraint_type,
           att.attname::text AS column_name,
           k.ord AS ordinal_position,
           ref.relname::text AS foreign_table_name,
           ratt.attname::text AS foreign_column_name,
           CASE WHEN con.contype = 'c' THEN pg_get_constraintdef(con.oid) END AS check_clause,
           con.confupdtype::text AS confupdtype,
           con.confdeltype::text AS confdeltype
    FROM pg_constraint con
    JOIN pg_class rel ON rel.oid = con.conrelid
    JOIN pg_namespace nsp ON nsp.oid = rel.relnamespace
    LEFT JOIN LATERAL unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord) ON TRUE
    LEFT JOIN pg_attribute att ON att.attrelid = con.conrelid AND att.attnum = k.attnum
    LEFT JOIN pg_class ref ON ref.oid = con.confrelid
    LEFT JOIN pg_attribute ratt ON ratt.attrelid = con.confrelid AND ratt.attnum = con.confkey[k.ord]
    WHERE nsp.nspname = %s
      AND rel.relname = %s
      AND con.contype IN ('p', 'f', 'u', 'c')
    ORDER BY con.conname, k.ord
"""

INDEXES_SQL = """
    SELECT i.relname AS index_name,
           pg_get_indexdef(i.oid) AS index_definition,
           ix.indisprimary AS is_primary,
           ix.indisunique AS is_unique
    FROM pg_index ix
    JOIN pg_class i ON i.oid = ix.indexrelid
    JOIN pg_class t ON t.oid = ix.indrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    WHERE n.nspname = %s
      AND t.relname = %s
    ORDER BY i.relname
"""

FUNCTIONS_SQL = """
    SELECT p.proname AS routine_name,
           pg_get_functiondef(p.oid) AS routine_definition
    FROM pg_proc p
    JOIN pg_namespace n ON n.oid = p.pronamespace
    WHERE n.nspname = %s
      AND p.prokind = 'f'
      AND NOT (p.proname = ANY (%s))
      AND NOT EXISTS (
          SELECT 1 FROM pg_depend d
          WHERE d.objid = p.oid AND d.deptype = 'e'
      )
    ORDER BY p.proname
"""

TRIGGERS_SQL = """
    SELECT tg.tgname AS trigger_name,
           c.relname AS event_object_table,
           pg_get_triggerdef(tg.oid) AS trigger_definition
    FROM pg_trigger tg
    JOIN pg_class c ON c.oid = tg.tgrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s
      AND NOT tg.tgisinternal
    ORDER BY tg.tgname
"""


class PostgresCatalogProvider(CatalogProvider):
    """Client for introspecting PostgreSQL through a direct connection."""

    def __init__(
        self,
        connection_string: Optional[str] = None,
        schema: Optional[str] = None,
    ):
        """Initialize the provider.

        Args:
            connection_string: PostgreSQL DSN (or DATABASE_URL env)
            schema: Database schema to export
        """
        self.connection_string = connection_string or settings.database_url
        self.schema = schema or settings.db_export_schema
        self._connection = None

        if not self.connection_string:
            raise ProviderError(
                "Missing DATABASE_URL: provide a connection string (or --connection-string)"
            )

    def connect(self):
        """Connect to the database."""
        if self._connection is not None:
            return self._connection

        try:
            import psycopg2
        except ImportError:
            raise ImportError(
                "psycopg2 is required for direct connections. "
                "Install it with: pip install psycopg2-binary"
            )

        try:
            self._connection = psycopg2.connect(self.connection_string)
            self._connection.set_session(readonly=True, autocommit=True)
        except psycopg2.Error as e:
            raise ProviderError(f"Failed to connect to database: {e}") from e
        return self._connection

    def close(self):
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None

    def _execute_query(self, query: Any, params: Sequence[Any] = ()) -> List[Row]:
        """Execute a query and return rows as dicts."""
        import psycopg2
        from psycopg2.extras import RealDictCursor

        connection = self.connect()
        try:
            with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                return [dict(row) for row in cursor.fetchall()]
        except psycopg2.Error as e:
            raise ProviderError(f"Catalog query failed: {e}") from e

    def list_enum_types(self) -> List[Row]:
        return self._execute_query(ENUM_TYPES_SQL, (self.schema,))

    def list_tables(self) -> List[Row]:
        rows = self._execute_query(TABLES_SQL, (self.schema,))
        return [row for row in rows if not row["table_name"].startswith(self.EXCLUDED_TABLE_PREFIXES)]

    def get_table_columns(self, table_name: str) -> List[Row]:
        return self._execute_query(COLUMNS_SQL, (self.schema, table_name))

    def get_table_constraints(self, table_name: str) -> List[Row]:
        return self._execute_query(CONSTRAINTS_SQL, (self.schema, table_name))

    def get_table_indexes(self, table_name: str) -> List[Row]:
        return self._execute_query(INDEXES_SQL, (self.schema, table_name))

    def list_functions(self) -> List[Row]:
        return self._execute_query(FUNCTIONS_SQL, (self.schema, list(CATALOG_FUNCTIONS)))

    def list_triggers(self) -> List[Row]:
        return self._execute_query(TRIGGERS_SQL, (self.schema,))

    def get_table_rows(self, table_name: str) -> List[Row]:
        from psycopg2 import sql

        query = sql.SQL("SELECT * FROM {}.{}").format(
            sql.Identifier(self.schema), sql.Identifier(table_name)
        )
        rows = self._execute_query(query)
        logger.debug("Fetched %d rows from %s", len(rows), table_name)
        return rows

    def install_functions(self, script: str):
        """Run the catalog function install script."""
        import psycopg2

        connection = self.connect()
        connection.set_session(readonly=False, autocommit=True)
        try:
            with connection.cursor() as cursor:
                cursor.execute(script)
        except psycopg2.Error as e:
            raise ProviderError(f"Failed to install catalog functions: {e}") from e
        finally:
            connection.set_session(readonly=True, autocommit=True)
