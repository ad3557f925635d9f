"""Normalizes raw catalog rows into a SchemaSnapshot."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..errors import BuildError, ProviderError
from .base import CatalogProvider, Row
from .models import (
    ColumnDefinition,
    ConstraintDefinition,
    ConstraintKind,
    EnumType,
    FunctionDefinition,
    IndexDefinition,
    ReferentialAction,
    SchemaSnapshot,
    TableDefinition,
    TriggerDefinition,
)

logger = logging.getLogger(__name__)


def _first(row: Row, *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among keys."""
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return default


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().upper() in ("YES", "TRUE", "T", "1")


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_list(value: Any) -> List[str]:
    """Accept a list, a Postgres array literal ('{a,b}') or a single value."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    text = str(value).strip()
    if text.startswith("{") and text.endswith("}"):
        inner = text[1:-1]
        return [part.strip().strip('"') for part in inner.split(",") if part.strip()]
    return [text] if text else []


class SchemaBuilder:
    """Builds the canonical schema model from provider rows."""

    def __init__(self, table_filter: Optional[Iterable[str]] = None, strict: bool = True):
        """Initialize the builder.

        Args:
            table_filter: Optional allow-list of table names
            strict: Raise BuildError when an allow-listed table is missing
                    (otherwise log a warning and continue)
        """
        self.table_filter = list(table_filter) if table_filter else None
        self.strict = strict
        self.missing_tables: List[str] = []

    def select_tables(self, raw_tables: Sequence[Row]) -> List[str]:
        """Apply the allow-list to the provider's table list, keeping provider order."""
        names = [_first(row, "table_name", "name") for row in raw_tables]
        names = [name for name in names if name]

        if self.table_filter is not None:
            allowed = set(self.table_filter)
            known = set(names)
            self.missing_tables = [name for name in self.table_filter if name not in known]
            names = [name for name in names if name in allowed]

            if self.missing_tables:
                message = f"Requested tables not found: {', '.join(self.missing_tables)}"
                if self.strict:
                    raise BuildError(message, details={"missing_tables": self.missing_tables})
                logger.warning(message)

        if not names:
            raise BuildError("No tables found in the database" + (
                " matching the table filter" if self.table_filter is not None else ""
            ))
        return names

    def build(
        self,
        raw_types: Sequence[Row],
        raw_tables: Sequence[Row],
        raw_columns_by_table: Dict[str, Sequence[Row]],
        raw_constraints_by_table: Dict[str, Sequence[Row]],
        raw_indexes_by_table: Dict[str, Sequence[Row]],
        raw_functions: Sequence[Row],
        raw_triggers: Sequence[Row],
    ) -> SchemaSnapshot:
        """Build a SchemaSnapshot from raw provider rows.

        Raises:
            BuildError: If no tables remain, or table data is inconsistent
        """
        return self.build_selected(
            self.select_tables(raw_tables),
            raw_types,
            raw_columns_by_table,
            raw_constraints_by_table,
            raw_indexes_by_table,
            raw_functions,
            raw_triggers,
        )

    def build_selected(
        self,
        table_names: Sequence[str],
        raw_types: Sequence[Row],
        raw_columns_by_table: Dict[str, Sequence[Row]],
        raw_constraints_by_table: Dict[str, Sequence[Row]],
        raw_indexes_by_table: Dict[str, Sequence[Row]],
        raw_functions: Sequence[Row],
        raw_triggers: Sequence[Row],
    ) -> SchemaSnapshot:
        """Build a snapshot for tables already chosen by select_tables."""
        tables = []
        for table_name in table_names:
            table = TableDefinition(
                name=table_name,
                columns=self.build_columns(table_name, raw_columns_by_table.get(table_name, [])),
                constraints=self.build_constraints(table_name, raw_constraints_by_table.get(table_name, [])),
                indexes=self.build_indexes(raw_indexes_by_table.get(table_name, [])),
            )
            tables.append(table)

        snapshot = SchemaSnapshot(
            enums=self.build_enums(raw_types),
            tables=tables,
            functions=[
                FunctionDefinition(
                    name=_first(row, "routine_name", "name"),
                    definition=_first(row, "routine_definition", "definition", default=""),
                )
                for row in raw_functions
            ],
            triggers=[
                TriggerDefinition(
                    name=_first(row, "trigger_name", "name"),
                    table=_first(row, "event_object_table", "table", default=""),
                    definition=_first(row, "trigger_definition", "definition", default=""),
                )
                for row in raw_triggers
            ],
        )
        logger.debug(
            "Built snapshot: %d enums, %d tables, %d functions, %d triggers",
            len(snapshot.enums), len(snapshot.tables), len(snapshot.functions), len(snapshot.triggers),
        )
        return snapshot

    def build_enums(self, raw_types: Sequence[Row]) -> List[EnumType]:
        enums = []
        for row in raw_types:
            name = _first(row, "name", "type_name")
            if not name:
                continue
            enums.append(EnumType(name=name, values=_as_list(_first(row, "values", "enum_values"))))
        return enums

    def build_columns(self, table_name: str, rows: Sequence[Row]) -> List[ColumnDefinition]:
        """Build columns ordered by ordinal position."""
        if not rows:
            raise BuildError(f"Could not find column information for {table_name}", details={"table": table_name})

        indexed = list(enumerate(rows))
        # Rows without a position keep provider order after positioned ones
        indexed.sort(key=lambda item: (
            _as_int(item[1].get("ordinal_position")) is None,
            _as_int(item[1].get("ordinal_position")) or 0,
            item[0],
        ))

        columns = []
        seen = set()
        for _, row in indexed:
            name = _first(row, "column_name", "name")
            if name in seen:
                raise BuildError(
                    f"Duplicate column {name} in table {table_name}",
                    details={"table": table_name, "column": name},
                )
            seen.add(name)
            columns.append(ColumnDefinition(
                name=name,
                data_type=_first(row, "data_type", "type", default="USER-DEFINED"),
                udt_name=row.get("udt_name"),
                is_nullable=_as_bool(_first(row, "is_nullable", default=True)),
                column_default=_first(row, "column_default", "default"),
                character_maximum_length=_as_int(row.get("character_maximum_length")),
                numeric_precision=_as_int(row.get("numeric_precision")),
                numeric_scale=_as_int(row.get("numeric_scale")),
                ordinal_position=_as_int(row.get("ordinal_position")),
            ))
        return columns

    def build_constraints(self, table_name: str, rows: Sequence[Row]) -> List[ConstraintDefinition]:
        """Collapse per-column constraint rows into one definition per constraint."""
        grouped: Dict[str, Dict[str, Any]] = {}

        for position, row in enumerate(rows):
            name = _first(row, "constraint_name", "name")
            raw_kind = _first(row, "constraint_type", "type")
            if not name or not raw_kind:
                continue
            try:
                kind = ConstraintKind.parse(raw_kind)
            except ValueError:
                logger.debug("Skipping constraint %s on %s with type %s", name, table_name, raw_kind)
                continue

            entry = grouped.setdefault(name, {
                "kind": kind,
                "columns": [],
                "referenced_table": None,
                "referenced_columns": [],
                "on_update": _first(row, "confupdtype", "update_rule"),
                "on_delete": _first(row, "confdeltype", "delete_rule"),
                "check_clause": None,
            })

            ordinal = _as_int(row.get("ordinal_position"))
            for column in _as_list(_first(row, "column_name", "columns")):
                entry["columns"].append((ordinal if ordinal is not None else 1_000_000 + position, column))

            foreign_table = _first(row, "foreign_table_name", "referenced_table")
            if foreign_table:
                entry["referenced_table"] = foreign_table
            ref_ordinal = _as_int(_first(row, "position_in_unique_constraint", "ordinal_position"))
            for column in _as_list(_first(row, "foreign_column_name", "referenced_columns")):
                entry["referenced_columns"].append(
                    (ref_ordinal if ref_ordinal is not None else 1_000_000 + position, column)
                )

            clause = _first(row, "check_clause")
            if clause:
                entry["check_clause"] = clause

        constraints = []
        for name, entry in grouped.items():
            kind = entry["kind"]
            columns = [] if kind == ConstraintKind.CHECK else self._ordered_unique(entry["columns"])
            on_update = on_delete = ReferentialAction.NO_ACTION
            if kind == ConstraintKind.FOREIGN_KEY:
                try:
                    on_update = ReferentialAction.parse(entry["on_update"])
                    on_delete = ReferentialAction.parse(entry["on_delete"])
                except ValueError as e:
                    raise BuildError(str(e), details={"table": table_name, "constraint": name}) from e

            constraints.append(ConstraintDefinition(
                name=name,
                kind=kind,
                columns=columns,
                referenced_table=entry["referenced_table"] if kind == ConstraintKind.FOREIGN_KEY else None,
                referenced_columns=(
                    self._ordered_unique(entry["referenced_columns"]) if kind == ConstraintKind.FOREIGN_KEY else []
                ),
                on_update=on_update,
                on_delete=on_delete,
                check_clause=entry["check_clause"] if kind == ConstraintKind.CHECK else None,
            ))

        primary_keys = [c for c in constraints if c.kind == ConstraintKind.PRIMARY_KEY]
        if len(primary_keys) > 1:
            raise BuildError(
                f"Table {table_name} reports {len(primary_keys)} primary keys",
                details={"table": table_name, "constraints": [c.name for c in primary_keys]},
            )
        return constraints

    def build_indexes(self, rows: Sequence[Row]) -> List[IndexDefinition]:
        return [
            IndexDefinition(
                name=_first(row, "index_name", "name"),
                definition=_first(row, "index_definition", "definition", default=""),
                is_primary=_as_bool(row.get("is_primary")),
                is_unique=_as_bool(row.get("is_unique")),
            )
            for row in rows
        ]

    @staticmethod
    def _ordered_unique(pairs: List[tuple]) -> List[str]:
        """Sort (ordinal, name) pairs by ordinal and drop repeated names."""
        result = []
        for _, name in sorted(pairs, key=lambda pair: pair[0]):
            if name not in result:
                result.append(name)
        return result


def fetch_snapshot(
    provider: CatalogProvider,
    table_filter: Optional[Iterable[str]] = None,
    strict: bool = True,
) -> SchemaSnapshot:
    """Fetch all catalog rows from a provider and build a snapshot.

    Args:
        provider: Catalog data provider
        table_filter: Optional allow-list of table names
        strict: Fail when allow-listed tables are missing

    Returns:
        SchemaSnapshot for the selected tables

    Raises:
        ProviderError: If the provider fails
        BuildError: If the catalog data is empty or inconsistent
    """
    builder = SchemaBuilder(table_filter=table_filter, strict=strict)

    raw_types = _call(provider.list_enum_types, "enum types")
    raw_tables = _call(provider.list_tables, "tables")
    table_names = builder.select_tables(raw_tables)

    columns: Dict[str, List[Row]] = {}
    constraints: Dict[str, List[Row]] = {}
    indexes: Dict[str, List[Row]] = {}
    for table_name in table_names:
        logger.info("Fetching definition for table: %s", table_name)
        columns[table_name] = _call(provider.get_table_columns, "columns", table_name)
        constraints[table_name] = _call(provider.get_table_constraints, "constraints", table_name)
        indexes[table_name] = _call(provider.get_table_indexes, "indexes", table_name)

    raw_functions = _call(provider.list_functions, "functions")
    raw_triggers = _call(provider.list_triggers, "triggers")

    return builder.build_selected(
        table_names,
        raw_types,
        columns,
        constraints,
        indexes,
        raw_functions,
        raw_triggers,
    )


def _call(method, what: str, table_name: Optional[str] = None) -> List[Row]:
    """Call a provider method, wrapping unexpected failures in ProviderError."""
    try:
        if table_name is None:
            return list(method() or [])
        return list(method(table_name) or [])
    except ProviderError:
        raise
    except Exception as e:
        target = f" for table {table_name}" if table_name else ""
        raise ProviderError(
            f"Failed to fetch {what}{target}: {e}",
            details={"table": table_name} if table_name else None,
        ) from e
