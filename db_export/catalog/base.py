"""Abstract base class for catalog data providers."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

Row = Dict[str, Any]


class CatalogProvider(ABC):
    """Abstract base class for catalog introspection.

    Subclasses run the introspection queries against one kind of
    connection and return raw rows. Row shapes:

    - enum types: {name, values}
    - tables: {table_name}
    - columns: {column_name, data_type, udt_name, is_nullable, column_default,
      character_maximum_length, numeric_precision, numeric_scale, ordinal_position}
    - constraints: one row per constrained column, {constraint_name,
      constraint_type, column_name, ordinal_position, foreign_table_name,
      foreign_column_name, check_clause, confupdtype, confdeltype}
    - indexes: {index_name, index_definition, is_primary, is_unique}
    - functions: {routine_name, routine_definition}
    - triggers: {trigger_name, event_object_table, trigger_definition}
    """

    # Tables that belong to the export tooling itself
    EXCLUDED_TABLE_PREFIXES: tuple = ("pg_",)

    @abstractmethod
    def list_enum_types(self) -> List[Row]:
        """Get all enum types with their ordered values."""
        pass

    @abstractmethod
    def list_tables(self) -> List[Row]:
        """Get all base tables in catalog order."""
        pass

    @abstractmethod
    def get_table_columns(self, table_name: str) -> List[Row]:
        """Get columns for a table, ordered by physical position."""
        pass

    @abstractmethod
    def get_table_constraints(self, table_name: str) -> List[Row]:
        """Get raw constraint rows for a table (one row per key column)."""
        pass

    @abstractmethod
    def get_table_indexes(self, table_name: str) -> List[Row]:
        """Get indexes for a table."""
        pass

    @abstractmethod
    def list_functions(self) -> List[Row]:
        """Get user-defined functions with their definitions."""
        pass

    @abstractmethod
    def list_triggers(self) -> List[Row]:
        """Get triggers with their definitions."""
        pass

    @abstractmethod
    def get_table_rows(self, table_name: str) -> List[Row]:
        """Get all data rows of a table."""
        pass

    def close(self):
        """Release any connection held by the provider."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
