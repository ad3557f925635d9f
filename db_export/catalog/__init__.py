"""Catalog introspection module for db-export.

This module turns raw catalog rows from a provider into an immutable
SchemaSnapshot, with providers for Supabase's REST API and for direct
PostgreSQL connections.
"""

from .models import (
    ConstraintKind,
    ReferentialAction,
    EnumType,
    ColumnDefinition,
    ConstraintDefinition,
    IndexDefinition,
    TableDefinition,
    FunctionDefinition,
    TriggerDefinition,
    SchemaSnapshot,
)
from .base import CatalogProvider
from .builder import SchemaBuilder, fetch_snapshot
from .check_parser import CheckEnum, parse_enum_check
from .type_mappers import TargetType, MappedType, TypeMapper, DartTypeMapper, map_type, map_column
from .postgrest import PostgrestCatalogProvider
from .postgres import PostgresCatalogProvider

__all__ = [
    # Data models
    "ConstraintKind",
    "ReferentialAction",
    "EnumType",
    "ColumnDefinition",
    "ConstraintDefinition",
    "IndexDefinition",
    "TableDefinition",
    "FunctionDefinition",
    "TriggerDefinition",
    "SchemaSnapshot",
    # Building
    "CatalogProvider",
    "SchemaBuilder",
    "fetch_snapshot",
    "CheckEnum",
    "parse_enum_check",
    # Type mapping
    "TargetType",
    "MappedType",
    "TypeMapper",
    "DartTypeMapper",
    "map_type",
    "map_column",
    # Providers
    "PostgrestCatalogProvider",
    "PostgresCatalogProvider",
]
