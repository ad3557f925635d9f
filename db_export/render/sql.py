"""SQL script renderer for schema snapshots."""

import datetime
import decimal
import json
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..catalog.models import (
    ColumnDefinition,
    ConstraintDefinition,
    ConstraintKind,
    EnumType,
    ReferentialAction,
    SchemaSnapshot,
    TableDefinition,
)
from ..catalog.check_parser import wraps_whole
from ..errors import RenderError

logger = logging.getLogger(__name__)

# Types that take a length modifier
_LENGTH_TYPES = {"character varying", "varchar", "character", "char", "bit", "bit varying"}
# Types that take precision and scale
_PRECISION_TYPES = {"numeric", "decimal"}


def quote_literal(text: str) -> str:
    """Single-quote a string, doubling embedded quotes."""
    return "'" + text.replace("'", "''") + "'"


def escape_sql_value(value: Any, _seen: Optional[set] = None) -> str:
    """Render a Python value as a SQL literal.

    Raises:
        RenderError: If the value is circular or a non-finite number
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise RenderError(f"Cannot render non-finite number {value!r}")
        return repr(value)
    if isinstance(value, decimal.Decimal):
        if not value.is_finite():
            raise RenderError(f"Cannot render non-finite number {value!r}")
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return quote_literal(value.isoformat())
    if isinstance(value, (bytes, bytearray, memoryview)):
        return quote_literal("\\x" + bytes(value).hex())
    if isinstance(value, str):
        return quote_literal(value)

    seen = _seen if _seen is not None else set()
    if id(value) in seen:
        raise RenderError("Cannot render circular value")

    if isinstance(value, (list, tuple)):
        seen.add(id(value))
        try:
            return "ARRAY[" + ", ".join(escape_sql_value(item, seen) for item in value) + "]"
        finally:
            seen.discard(id(value))
    if isinstance(value, dict):
        try:
            text = json.dumps(value, default=_json_default)
        except (TypeError, ValueError) as e:
            raise RenderError(f"Cannot render object as JSON: {e}") from e
        return quote_literal(text)
    return quote_literal(str(value))


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, decimal.Decimal):
        return float(value)
    return str(value)


class SqlRenderer:
    """Renders a SchemaSnapshot into ordered SQL sections."""

    def __init__(self, snapshot: SchemaSnapshot):
        self.snapshot = snapshot

    # Types
    def render_enum(self, enum: EnumType) -> str:
        values = ", ".join(quote_literal(v) for v in enum.values)
        return f"CREATE TYPE {enum.name} AS ENUM ({values});"

    def render_types(self) -> str:
        """Render CREATE TYPE statements for all enums."""
        if not self.snapshot.enums:
            return "-- No custom types found\n"
        lines = ["-- Custom types", ""]
        lines.append("\n\n".join(self.render_enum(e) for e in self.snapshot.enums))
        return "\n".join(lines) + "\n"

    # Tables
    def column_type(self, column: ColumnDefinition) -> str:
        """Physical type with length or precision modifiers."""
        physical = column.physical_type
        base = physical.lower()
        if base in _LENGTH_TYPES and column.character_maximum_length:
            return f"{physical}({column.character_maximum_length})"
        if base in _PRECISION_TYPES and column.numeric_precision:
            if column.numeric_scale is not None:
                return f"{physical}({column.numeric_precision},{column.numeric_scale})"
            return f"{physical}({column.numeric_precision})"
        return physical

    def render_column(self, column: ColumnDefinition) -> str:
        parts = [column.name, self.column_type(column)]
        if not column.is_nullable:
            parts.append("NOT NULL")
        if column.column_default is not None and column.column_default != "":
            parts.append(f"DEFAULT {column.column_default}")
        return " ".join(parts)

    def render_constraint(self, constraint: ConstraintDefinition) -> str:
        columns = ", ".join(constraint.columns)
        prefix = f"CONSTRAINT {constraint.name}"

        if constraint.kind == ConstraintKind.PRIMARY_KEY:
            return f"{prefix} PRIMARY KEY ({columns})"
        if constraint.kind == ConstraintKind.UNIQUE:
            return f"{prefix} UNIQUE ({columns})"
        if constraint.kind == ConstraintKind.CHECK:
            return f"{prefix} {self._check_expression(constraint.check_clause or '')}"

        referenced = ", ".join(constraint.referenced_columns)
        line = f"{prefix} FOREIGN KEY ({columns}) REFERENCES {constraint.referenced_table}({referenced})"
        if constraint.on_update != ReferentialAction.NO_ACTION:
            line += f" ON UPDATE {constraint.on_update.value}"
        if constraint.on_delete != ReferentialAction.NO_ACTION:
            line += f" ON DELETE {constraint.on_delete.value}"
        return line

    @staticmethod
    def _check_expression(clause: str) -> str:
        """CHECK (<clause>), without doubling a keyword or parentheses already present."""
        text = clause.strip()
        if text.upper().startswith("CHECK"):
            return text
        if text.startswith("(") and text.endswith(")") and wraps_whole(text):
            return f"CHECK {text}"
        return f"CHECK ({text})"

    def render_table(self, table: TableDefinition) -> str:
        """Render CREATE TABLE plus secondary indexes for one table."""
        body = [self.render_column(c) for c in table.columns]
        body.extend(self.render_constraint(c) for c in table.constraints)

        lines = [f"CREATE TABLE IF NOT EXISTS {table.name} ("]
        lines.append(",\n".join(f"  {line}" for line in body))
        lines.append(");")

        for index in table.secondary_indexes:
            if index.is_unique and any(
                c.name == index.name and c.kind == ConstraintKind.UNIQUE for c in table.constraints
            ):
                # Created by the UNIQUE constraint above
                continue
            definition = index.definition.strip().rstrip(";")
            if definition:
                lines.append(f"{definition};")
        return "\n".join(lines)

    def render_tables(self) -> str:
        """Render all tables in snapshot order."""
        return "\n\n".join(self.render_table(t) for t in self.snapshot.tables) + "\n"

    # Data
    def render_data(self, table: TableDefinition, rows: Sequence[Dict[str, Any]]) -> Tuple[str, int]:
        """Render a multi-row INSERT for a table.

        Rows that cannot be rendered are replaced with a comment.

        Returns:
            Tuple of (sql text, number of skipped rows)
        """
        if not rows:
            return f"-- No data found in table {table.name}\n", 0
        for row in rows:
            if not isinstance(row, Mapping):
                raise RenderError(
                    f"Unexpected row shape in table {table.name}: {type(row).__name__}",
                    details={"table": table.name},
                )

        columns = [c.name for c in table.columns]
        for row in rows:
            for key in row:
                if key not in columns:
                    columns.append(key)

        values: List[str] = []
        skipped: List[str] = []
        for number, row in enumerate(rows, start=1):
            try:
                rendered = ", ".join(escape_sql_value(row.get(col)) for col in columns)
            except RenderError as e:
                logger.warning("Skipping row %d of %s: %s", number, table.name, e.message)
                skipped.append(f"-- Skipped row {number}: {e.message}")
                continue
            values.append(f"({rendered})")

        lines = [f"-- Data for table {table.name}"]
        lines.extend(skipped)
        if values:
            lines.append(f"INSERT INTO {table.name} ({', '.join(columns)}) VALUES")
            lines.append(",\n".join(values) + ";")
        else:
            lines.append(f"-- No renderable rows in table {table.name}")
        return "\n".join(lines) + "\n", len(skipped)

    # Functions and triggers
    @staticmethod
    def _terminated(definition: str) -> str:
        text = definition.strip()
        return text if text.endswith(";") else f"{text};"

    def render_functions(self) -> str:
        if not self.snapshot.functions:
            return "-- No functions found\n"
        return "\n\n".join(
            f"-- Function: {f.name}\n{self._terminated(f.definition)}" for f in self.snapshot.functions
        ) + "\n"

    def render_triggers(self) -> str:
        if not self.snapshot.triggers:
            return "-- No triggers found\n"
        return "\n\n".join(
            f"-- Trigger: {t.name} on {t.table}\n{self._terminated(t.definition)}" for t in self.snapshot.triggers
        ) + "\n"

    # Manifest
    def render_manifest(
        self,
        file_names: Sequence[str],
        generated_at: Optional[datetime.datetime] = None,
    ) -> str:
        """Render the master file that includes every section in order."""
        generated_at = generated_at or datetime.datetime.now(datetime.timezone.utc)
        lines = [
            "-- Master file to recreate database",
            f"-- Generated at: {generated_at.isoformat()}",
            f"-- Tables: {len(self.snapshot.tables)}",
            "",
        ]
        groups = [
            ("-- Custom types", lambda name: name.startswith("01_")),
            ("-- Tables", lambda name: name.startswith("02_")),
            ("-- Table data", lambda name: name.startswith("03_")),
            ("-- Functions and triggers", lambda name: name.startswith(("04_", "05_"))),
        ]
        for title, matches in groups:
            names = [name for name in file_names if matches(name)]
            if not names:
                continue
            lines.append(title)
            lines.extend(f"\\i {name}" for name in names)
            lines.append("")
        return "\n".join(lines)
