"""Shared pytest fixtures for db-export tests."""

import datetime

import pytest
from typing import Dict, Any

from db_export.catalog.builder import fetch_snapshot
from db_export.catalog.models import ColumnDefinition, ConstraintDefinition, ConstraintKind, TableDefinition
from tests.fixtures.fake_provider import FakeCatalogProvider

FIXED_TIME = datetime.datetime(2024, 1, 15, 12, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def catalog_rows() -> Dict[str, Any]:
    """Raw catalog rows for a small blog schema, shaped like the catalog functions return them."""
    return {
        "enum_types": [
            {"name": "user_role", "values": ["admin", "member"]},
        ],
        "tables": [
            {"table_name": "users"},
            {"table_name": "posts"},
        ],
        "columns": {
            "users": [
                {"column_name": "id", "data_type": "integer", "is_nullable": "NO",
                 "column_default": None, "ordinal_position": 1},
                {"column_name": "email", "data_type": "text", "is_nullable": "YES",
                 "column_default": None, "ordinal_position": 2},
                {"column_name": "created_at", "data_type": "timestamp", "is_nullable": "NO",
                 "column_default": "now()", "ordinal_position": 3},
            ],
            "posts": [
                {"column_name": "id", "data_type": "bigint", "is_nullable": "NO",
                 "column_default": "nextval('posts_id_seq'::regclass)", "ordinal_position": 1},
                {"column_name": "user_id", "data_type": "integer", "is_nullable": "NO",
                 "column_default": None, "ordinal_position": 2},
                {"column_name": "title", "data_type": "character varying", "is_nullable": "NO",
                 "character_maximum_length": 200, "ordinal_position": 3},
                {"column_name": "status", "data_type": "text", "is_nullable": "NO",
                 "column_default": "'draft'::text", "ordinal_position": 4},
                {"column_name": "views", "data_type": "integer", "is_nullable": "NO",
                 "column_default": "42", "ordinal_position": 5},
                {"column_name": "tags", "data_type": "ARRAY", "udt_name": "_text", "is_nullable": "YES",
                 "ordinal_position": 6},
                {"column_name": "metadata", "data_type": "jsonb", "is_nullable": "YES",
                 "ordinal_position": 7},
                {"column_name": "role", "data_type": "USER-DEFINED", "udt_name": "user_role",
                 "is_nullable": "YES", "ordinal_position": 8},
            ],
        },
        "constraints": {
            "users": [
                {"constraint_name": "users_pkey", "constraint_type": "PRIMARY KEY",
                 "column_name": "id", "ordinal_position": 1, "confupdtype": " ", "confdeltype": " "},
            ],
            "posts": [
                {"constraint_name": "posts_pkey", "constraint_type": "PRIMARY KEY",
                 "column_name": "id", "ordinal_position": 1, "confupdtype": " ", "confdeltype": " "},
                {"constraint_name": "posts_user_id_fkey", "constraint_type": "FOREIGN KEY",
                 "column_name": "user_id", "ordinal_position": 1,
                 "foreign_table_name": "users", "foreign_column_name": "id",
                 "confupdtype": "a", "confdeltype": "c"},
                {"constraint_name": "posts_status_check", "constraint_type": "CHECK",
                 "column_name": "status",
                 "check_clause": "CHECK ((status = ANY (ARRAY['draft'::text, 'published'::text])))"},
            ],
        },
        "indexes": {
            "users": [
                {"index_name": "users_pkey", "is_primary": True, "is_unique": True,
                 "index_definition": "CREATE UNIQUE INDEX users_pkey ON public.users USING btree (id)"},
            ],
            "posts": [
                {"index_name": "idx_posts_user_id", "is_primary": False, "is_unique": False,
                 "index_definition": "CREATE INDEX idx_posts_user_id ON public.posts USING btree (user_id)"},
                {"index_name": "posts_pkey", "is_primary": True, "is_unique": True,
                 "index_definition": "CREATE UNIQUE INDEX posts_pkey ON public.posts USING btree (id)"},
            ],
        },
        "functions": [
            {"routine_name": "handle_updated_at",
             "routine_definition": "CREATE OR REPLACE FUNCTION public.handle_updated_at()\n"
                                   " RETURNS trigger\n LANGUAGE plpgsql\nAS $function$\n"
                                   "BEGIN\n  NEW.updated_at = now();\n  RETURN NEW;\nEND;\n$function$"},
        ],
        "triggers": [
            {"trigger_name": "set_updated_at", "event_object_table": "posts",
             "trigger_definition": "CREATE TRIGGER set_updated_at BEFORE UPDATE ON public.posts "
                                   "FOR EACH ROW EXECUTE FUNCTION handle_updated_at()"},
        ],
        "rows": {
            "users": [
                {"id": 1, "email": "ada@example.com", "created_at": "2024-01-01T09:30:00"},
                {"id": 2, "email": None, "created_at": "2024-01-02T10:00:00"},
            ],
            "posts": [],
        },
    }


@pytest.fixture
def fake_provider(catalog_rows):
    """In-memory provider serving catalog_rows."""
    return FakeCatalogProvider(
        enum_types=catalog_rows["enum_types"],
        tables=catalog_rows["tables"],
        columns=catalog_rows["columns"],
        constraints=catalog_rows["constraints"],
        indexes=catalog_rows["indexes"],
        functions=catalog_rows["functions"],
        triggers=catalog_rows["triggers"],
        rows=catalog_rows["rows"],
    )


@pytest.fixture
def snapshot(fake_provider):
    """SchemaSnapshot built from the fake provider."""
    return fetch_snapshot(fake_provider)


@pytest.fixture
def users_table():
    """The users table from the reference scenario."""
    return TableDefinition(
        name="users",
        columns=[
            ColumnDefinition(name="id", data_type="integer", is_nullable=False),
            ColumnDefinition(name="email", data_type="text", is_nullable=True),
            ColumnDefinition(name="created_at", data_type="timestamp", is_nullable=False, column_default="now()"),
        ],
        constraints=[
            ConstraintDefinition(name="users_pkey", kind=ConstraintKind.PRIMARY_KEY, columns=["id"]),
        ],
    )
