"""Dart model generator for schema snapshots.

Generates one Dart source file per table containing:
- enhanced enums for CHECK constraints that list allowed values
- an immutable model class with fromJson/toJson, toString and,
  optionally, copyWith and value equality
- private decoding helpers that never throw on loosely typed JSON
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..catalog.check_parser import parse_enum_check, wraps_whole
from ..catalog.models import ColumnDefinition, SchemaSnapshot, TableDefinition
from ..catalog.type_mappers import DartTypeMapper, MappedType, TargetType, map_column
from .naming import dart_identifier, to_pascal_case, unique_identifiers

logger = logging.getLogger(__name__)

# Object.hash accepts at most this many arguments
MAX_HASH_ARITY = 20

_TRAILING_CAST = re.compile(r"::\s*\"?[A-Za-z_][A-Za-z0-9_ ]*\"?(\[\])?\s*$")
_INTEGER = re.compile(r"^[+-]?\d+$")
_DECIMAL = re.compile(r"^[+-]?(\d+\.\d*|\.\d+)([eE][+-]?\d+)?$")
_QUOTED = re.compile(r"^'((?:[^']|'')*)'$", re.DOTALL)
_INNER_TEXT_CAST = re.compile(r"::\s*text\b")

_NOW_DEFAULTS = {
    "now()": "DateTime.now()",
    "current_timestamp": "DateTime.now()",
    "localtimestamp": "DateTime.now()",
    "transaction_timestamp()": "DateTime.now()",
    "statement_timestamp()": "DateTime.now()",
    "clock_timestamp()": "DateTime.now()",
    "timezone('utc', now())": "DateTime.now().toUtc()",
    "(now() at time zone 'utc')": "DateTime.now().toUtc()",
    "now() at time zone 'utc'": "DateTime.now().toUtc()",
}

_DECODERS = {
    TargetType.INTEGER: "_parseInt",
    TargetType.DOUBLE: "_parseDouble",
    TargetType.BOOLEAN: "_parseBool",
    TargetType.DATE_TIME: "_parseDateTime",
    TargetType.TIME_OF_DAY: "_parseTimeOfDay",
    TargetType.TEXT: "_parseString",
    TargetType.JSON_OBJECT: "_parseJsonObject",
    TargetType.BYTE_SEQUENCE: "_parseBytes",
}

_ENCODERS = {
    TargetType.DATE_TIME: "{}.toIso8601String()",
    TargetType.TIME_OF_DAY: "_formatTimeOfDay({})",
    TargetType.BYTE_SEQUENCE: "_formatBytes({})",
}

_HELPERS = {
    "_parseInt": r"""int _parseInt(dynamic value) {
  if (value is int) return value;
  if (value is num) return value.toInt();
  if (value is String) {
    return int.tryParse(value.trim()) ?? double.tryParse(value.trim())?.toInt() ?? 0;
  }
  return 0;
}""",
    "_parseDouble": r"""double _parseDouble(dynamic value) {
  if (value is double) return value;
  if (value is num) return value.toDouble();
  if (value is String) return double.tryParse(value.trim()) ?? 0.0;
  return 0.0;
}""",
    "_parseBool": r"""bool _parseBool(dynamic value) {
  if (value is bool) return value;
  if (value is num) return value != 0;
  if (value is String) {
    final normalized = value.trim().toLowerCase();
    return normalized == 'true' || normalized == 't' || normalized == '1';
  }
  return false;
}""",
    "_parseDateTime": r"""DateTime _parseDateTime(dynamic value) {
  if (value is DateTime) return value;
  if (value is String) {
    return DateTime.tryParse(value) ?? DateTime.fromMillisecondsSinceEpoch(0, isUtc: true);
  }
  if (value is num) {
    // Epoch seconds
    return DateTime.fromMillisecondsSinceEpoch((value * 1000).toInt(), isUtc: true);
  }
  return DateTime.fromMillisecondsSinceEpoch(0, isUtc: true);
}""",
    "_parseTimeOfDay": r"""TimeOfDay _parseTimeOfDay(dynamic value) {
  if (value is TimeOfDay) return value;
  if (value is String) {
    final parts = value.split(':');
    final hour = int.tryParse(parts[0].trim());
    final minute = parts.length > 1 ? int.tryParse(parts[1].trim()) : 0;
    if (hour != null && minute != null) {
      return TimeOfDay(hour: hour, minute: minute);
    }
  }
  return const TimeOfDay(hour: 0, minute: 0);
}""",
    "_formatTimeOfDay": r"""String _formatTimeOfDay(TimeOfDay value) {
  final hour = value.hour.toString().padLeft(2, '0');
  final minute = value.minute.toString().padLeft(2, '0');
  return '$hour:$minute:00';
}""",
    "_parseString": r"""String _parseString(dynamic value) {
  if (value == null) return '';
  return value.toString();
}""",
    "_parseJsonObject": r"""Map<String, dynamic> _parseJsonObject(dynamic value) {
  if (value is Map) return Map<String, dynamic>.from(value);
  if (value is String) {
    try {
      final decoded = jsonDecode(value);
      if (decoded is Map) return Map<String, dynamic>.from(decoded);
    } on FormatException {
      return <String, dynamic>{};
    }
  }
  return <String, dynamic>{};
}""",
    "_parseBytes": r"""Uint8List _parseBytes(dynamic value) {
  if (value is Uint8List) return value;
  if (value is List) return Uint8List.fromList(value.map(_parseInt).toList());
  if (value is String) {
    final hex = value.startsWith('\\x') ? value.substring(2) : value;
    final bytes = <int>[];
    for (var i = 0; i + 1 < hex.length; i += 2) {
      final byte = int.tryParse(hex.substring(i, i + 2), radix: 16);
      if (byte == null) return Uint8List(0);
      bytes.add(byte);
    }
    return Uint8List.fromList(bytes);
  }
  return Uint8List(0);
}""",
    "_formatBytes": r"""String _formatBytes(Uint8List value) {
  return '\\x${value.map((b) => b.toRadixString(16).padLeft(2, '0')).join()}';
}""",
    "_parseList": r"""List<T> _parseList<T>(dynamic value, T Function(dynamic) parse) {
  if (value is List) return value.map(parse).toList();
  return <T>[];
}""",
}

# Helpers that call other helpers
_HELPER_DEPENDENCIES = {
    "_parseBytes": ["_parseInt"],
}


def dart_string(text: str) -> str:
    """Render text as a single-quoted Dart string literal."""
    escaped = (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("$", "\\$")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f"'{escaped}'"


def strip_default(default: str) -> str:
    """Remove casts and wrapping parentheses from a column default."""
    text = default.strip()
    while True:
        previous = text
        if text.startswith("(") and text.endswith(")") and wraps_whole(text):
            text = text[1:-1].strip()
        if not _QUOTED.match(text):
            text = _TRAILING_CAST.sub("", text).strip()
        if text == previous:
            return text


@dataclass
class DartEnum:
    """Enum synthesized from a CHECK constraint."""
    name: str
    column: str
    values: List[str]
    members: List[str]

    def member_for(self, value: str) -> Optional[str]:
        for member, raw in zip(self.members, self.values):
            if raw == value:
                return member
        return None


@dataclass
class DartField:
    """A model field derived from one column."""
    column: ColumnDefinition
    name: str
    mapped: MappedType
    dart_type: str
    nullable: bool
    enum: Optional[DartEnum] = None
    default_expression: Optional[str] = None
    docs: List[str] = field(default_factory=list)

    @property
    def required(self) -> bool:
        return not self.nullable and self.default_expression is None

    @property
    def has_default(self) -> bool:
        return not self.nullable and self.default_expression is not None

    @property
    def field_type(self) -> str:
        if self.nullable:
            return DartTypeMapper().nullable(self.dart_type)
        return self.dart_type

    @property
    def json_key(self) -> str:
        return dart_string(self.column.name)

    @property
    def deep_equality(self) -> bool:
        return self.enum is None and (
            self.mapped.is_list
            or self.mapped.target in (TargetType.JSON_OBJECT, TargetType.BYTE_SEQUENCE)
        )


class DartModelGenerator:
    """Generates Dart model sources from a schema snapshot."""

    def __init__(
        self,
        snapshot: SchemaSnapshot,
        generate_docs: bool = True,
        generate_equality: bool = True,
        generate_copy_with: bool = True,
    ):
        self.snapshot = snapshot
        self.generate_docs = generate_docs
        self.generate_equality = generate_equality
        self.generate_copy_with = generate_copy_with
        self.type_mapper = DartTypeMapper()

    # Model building
    def detect_enums(self, table: TableDefinition, class_name: str) -> Dict[str, DartEnum]:
        """Find CHECK constraints that enumerate a text column's values."""
        enums: Dict[str, DartEnum] = {}
        used_names = {class_name}
        for constraint in table.check_constraints:
            parsed = parse_enum_check(constraint.check_clause)
            if parsed is None:
                continue
            column = table.get_column(parsed.column)
            if column is None or column.name in enums:
                continue
            mapped = map_column(column)
            if mapped.target != TargetType.TEXT or mapped.is_list:
                continue

            name = f"{to_pascal_case(column.name)}Type"
            while name in used_names:
                name += "Enum"
            used_names.add(name)

            members = unique_identifiers(dart_identifier(v) for v in parsed.values)
            enums[column.name] = DartEnum(name=name, column=column.name, values=parsed.values, members=members)
            logger.debug("Detected enum %s on %s.%s", name, table.name, column.name)
        return enums

    def translate_default(self, column: ColumnDefinition, mapped: MappedType,
                          enum: Optional[DartEnum] = None) -> Optional[str]:
        """Translate a column default into a Dart expression.

        Returns None for sequence defaults and anything unrecognized.
        """
        if column.column_default is None or mapped.is_list:
            return None
        raw = column.column_default.strip()
        if raw.lower().startswith("nextval("):
            return None

        text = strip_default(raw)
        lowered = " ".join(text.lower().split())
        target = mapped.target

        if target == TargetType.DATE_TIME:
            return _NOW_DEFAULTS.get(_INNER_TEXT_CAST.sub("", lowered))

        quoted = _QUOTED.match(text)
        if quoted and target != TargetType.TEXT:
            # '42'::integer style literals
            text = quoted.group(1).strip()
            lowered = text.lower()
        if target == TargetType.TEXT and quoted:
            value = quoted.group(1).replace("''", "'")
            if enum is not None:
                member = enum.member_for(value)
                return f"{enum.name}.{member}" if member else None
            return dart_string(value)

        if target == TargetType.INTEGER and _INTEGER.match(text):
            return str(int(text))
        if target == TargetType.DOUBLE:
            if _INTEGER.match(text):
                return f"{int(text)}.0"
            if _DECIMAL.match(text):
                return repr(float(text))
        if target == TargetType.BOOLEAN and lowered in ("true", "false"):
            return lowered
        return None

    def build_fields(self, table: TableDefinition, enums: Dict[str, DartEnum]) -> List[DartField]:
        names = unique_identifiers(dart_identifier(c.name, fallback="column") for c in table.columns)
        fields = []
        for column, name in zip(table.columns, names):
            mapped = map_column(column)
            enum = enums.get(column.name)
            dart_type = enum.name if enum else self.type_mapper.to_source_type(mapped)
            dart_field = DartField(
                column=column,
                name=name,
                mapped=mapped,
                dart_type=dart_type,
                nullable=column.is_nullable,
                enum=enum,
                default_expression=None if column.is_nullable else self.translate_default(column, mapped, enum),
            )
            if self.generate_docs:
                dart_field.docs = self._field_docs(table, column)
            fields.append(dart_field)
        return fields

    def _field_docs(self, table: TableDefinition, column: ColumnDefinition) -> List[str]:
        docs = [f"`{column.name}` column ({column.physical_type})."]
        if column.name in table.primary_key_columns:
            docs.append("Primary key.")
        fk = table.foreign_key_for(column.name)
        if fk and fk.referenced_table:
            docs.append(f"References {fk.referenced_table}({fk.referenced_column}).")
        if column.column_default is not None:
            docs.append(f"Default: {column.column_default}")
        return docs

    # Rendering
    def render_enum(self, enum: DartEnum, table: TableDefinition) -> str:
        lines = []
        if self.generate_docs:
            lines.append(f"/// Allowed values for {table.name}.{enum.column}.")
        lines.append(f"enum {enum.name} {{")
        entries = [f"  {member}({dart_string(raw)})" for member, raw in zip(enum.members, enum.values)]
        lines.append(",\n".join(entries) + ";")
        lines.append("")
        lines.append(f"  const {enum.name}(this.value);")
        lines.append("")
        lines.append("  final String value;")
        lines.append("")
        lines.append(f"  static {enum.name} fromJson(dynamic json) {{")
        lines.append(f"    for (final item in {enum.name}.values) {{")
        lines.append("      if (item.value == json) return item;")
        lines.append("    }")
        lines.append(f"    return {enum.name}.values.first;")
        lines.append("  }")
        lines.append("")
        lines.append("  String toJson() => value;")
        lines.append("}")
        return "\n".join(lines)

    def _decode(self, dart_field: DartField, value: str) -> str:
        """Dart expression decoding a non-null JSON value."""
        if dart_field.enum is not None:
            return f"{dart_field.enum.name}.fromJson({value})"
        mapped = dart_field.mapped
        decoder = _DECODERS.get(mapped.target)
        if mapped.is_list:
            element = self.type_mapper.to_source_type(MappedType(mapped.target))
            parse = decoder or "(e) => e"
            return f"_parseList<{element}>({value}, {parse})"
        if decoder is None:
            return value
        return f"{decoder}({value})"

    def _encode(self, dart_field: DartField) -> str:
        """Dart expression encoding a field for toJson."""
        name = dart_field.name
        if dart_field.enum is not None:
            return f"{name}?.toJson()" if dart_field.nullable else f"{name}.toJson()"

        mapped = dart_field.mapped
        template = _ENCODERS.get(mapped.target)
        if template is None:
            return name
        if mapped.is_list:
            mapped_list = f".map((e) => {template.format('e')}).toList()"
            return f"{name}?{mapped_list}" if dart_field.nullable else f"{name}{mapped_list}"
        if dart_field.nullable:
            if mapped.target == TargetType.DATE_TIME:
                return f"{name}?.toIso8601String()"
            return f"{name} == null ? null : {template.format(name + '!')}"
        return template.format(name)

    def _helpers_for(self, fields: List[DartField]) -> List[str]:
        needed = []

        def add(helper: str):
            for dependency in _HELPER_DEPENDENCIES.get(helper, []):
                add(dependency)
            if helper not in needed:
                needed.append(helper)

        for dart_field in fields:
            if dart_field.enum is not None:
                continue
            mapped = dart_field.mapped
            if mapped.is_list:
                add("_parseList")
            decoder = _DECODERS.get(mapped.target)
            if decoder:
                add(decoder)
            if mapped.target == TargetType.TIME_OF_DAY:
                add("_formatTimeOfDay")
            if mapped.target == TargetType.BYTE_SEQUENCE:
                add("_formatBytes")
        return [name for name in _HELPERS if name in needed]

    def _imports(self, fields: List[DartField]) -> List[str]:
        targets = {f.mapped.target for f in fields if f.enum is None}
        imports = []
        if TargetType.JSON_OBJECT in targets:
            imports.append("import 'dart:convert';")
        if TargetType.BYTE_SEQUENCE in targets:
            imports.append("import 'dart:typed_data';")
        if TargetType.TIME_OF_DAY in targets:
            imports.append("import 'package:flutter/material.dart';")
        if self.generate_equality and any(f.deep_equality for f in fields):
            imports.append("import 'package:collection/collection.dart';")
        return imports

    def _render_equality(self, class_name: str, fields: List[DartField]) -> List[str]:
        lines = ["  @override", "  bool operator ==(Object other) {"]
        lines.append("    if (identical(this, other)) return true;")
        comparisons = []
        for f in fields:
            if f.deep_equality:
                comparisons.append(f"const DeepCollectionEquality().equals(other.{f.name}, {f.name})")
            else:
                comparisons.append(f"other.{f.name} == {f.name}")
        lines.append(f"    return other is {class_name} &&")
        lines.append(" &&\n".join(f"        {c}" for c in comparisons) + ";")
        lines.append("  }")
        lines.append("")

        hashed = [
            f"const DeepCollectionEquality().hash({f.name})" if f.deep_equality else f.name
            for f in fields
        ]
        lines.append("  @override")
        if len(hashed) == 1:
            single = hashed[0] if fields[0].deep_equality else f"{hashed[0]}.hashCode"
            lines.append(f"  int get hashCode => {single};")
        elif len(hashed) <= MAX_HASH_ARITY:
            lines.append("  int get hashCode => Object.hash(")
            lines.append(",\n".join(f"        {h}" for h in hashed) + ",")
            lines.append("      );")
        else:
            # Object.hashAll keeps field order stable beyond Object.hash's arity
            lines.append("  int get hashCode => Object.hashAll([")
            lines.append(",\n".join(f"        {h}" for h in hashed) + ",")
            lines.append("      ]);")
        return lines

    def render_class(self, table: TableDefinition, class_name: str, fields: List[DartField]) -> str:
        lines = []
        if self.generate_docs:
            lines.append(f"/// {class_name} model representing the {table.name} table in the database.")
            lines.append("/// This model was auto-generated from the database schema.")
        lines.append(f"class {class_name} {{")
        lines.append(f"  static const String tableName = {dart_string(table.name)};")
        lines.append("")
        lines.append("  static const Map<String, String> columnNames = {")
        for f in fields:
            lines.append(f"    {dart_string(f.name)}: {f.json_key},")
        lines.append("  };")
        lines.append("")

        # Fields
        for f in fields:
            for doc in f.docs:
                lines.append(f"  /// {doc}")
            lines.append(f"  final {f.field_type} {f.name};")
            lines.append("")

        # Constructor
        lines.append(f"  {class_name}({{")
        for f in fields:
            if f.required:
                lines.append(f"    required this.{f.name},")
            elif f.has_default:
                lines.append(f"    {self.type_mapper.nullable(f.dart_type)} {f.name},")
            else:
                lines.append(f"    this.{f.name},")
        defaulted = [f for f in fields if f.has_default]
        if defaulted:
            initializers = ",\n".join(f"        {f.name} = {f.name} ?? {f.default_expression}" for f in defaulted)
            lines.append(f"  }}) : {initializers.lstrip()};")
        else:
            lines.append("  });")
        lines.append("")

        # fromJson
        lines.append(f"  factory {class_name}.fromJson(Map<String, dynamic> json) {{")
        lines.append(f"    return {class_name}(")
        for f in fields:
            value = f"json[{f.json_key}]"
            if f.required and f.dart_type != "dynamic":
                expression = self._decode(f, value)
            elif f.dart_type == "dynamic":
                expression = value
            else:
                expression = f"{value} == null ? null : {self._decode(f, value)}"
            lines.append(f"      {f.name}: {expression},")
        lines.append("    );")
        lines.append("  }")
        lines.append("")

        # toJson
        lines.append("  Map<String, dynamic> toJson() {")
        lines.append("    return {")
        for f in fields:
            lines.append(f"      {f.json_key}: {self._encode(f)},")
        lines.append("    };")
        lines.append("  }")
        lines.append("")

        # copyWith
        if self.generate_copy_with:
            lines.append(f"  {class_name} copyWith({{")
            for f in fields:
                lines.append(f"    {self.type_mapper.nullable(f.dart_type)} {f.name},")
            lines.append("  }) {")
            lines.append(f"    return {class_name}(")
            for f in fields:
                lines.append(f"      {f.name}: {f.name} ?? this.{f.name},")
            lines.append("    );")
            lines.append("  }")
            lines.append("")

        # toString
        summary = ", ".join(f"{f.name}: ${{{f.name}}}" for f in fields)
        lines.append("  @override")
        lines.append("  String toString() {")
        lines.append(f"    return '{class_name}({summary})';")
        lines.append("  }")

        if self.generate_equality:
            lines.append("")
            lines.extend(self._render_equality(class_name, fields))

        lines.append("}")
        return "\n".join(lines)

    def render_table(self, table: TableDefinition) -> str:
        """Render the complete Dart source for one table."""
        class_name = to_pascal_case(table.name) or "Model"
        enums = self.detect_enums(table, class_name)
        fields = self.build_fields(table, enums)

        parts = [
            "// GENERATED CODE - DO NOT MODIFY BY HAND\n"
            f"// Source table: {table.name}"
        ]
        imports = self._imports(fields)
        if imports:
            parts.append("\n".join(imports))
        for column in table.columns:
            if column.name in enums:
                parts.append(self.render_enum(enums[column.name], table))
        parts.append(self.render_class(table, class_name, fields))
        for helper in self._helpers_for(fields):
            parts.append(_HELPERS[helper])
        return "\n\n".join(parts) + "\n"

    @staticmethod
    def file_name(table: TableDefinition) -> str:
        return f"{table.name}.dart"

    def render_all(self) -> Dict[str, str]:
        """Render every table, keyed by output file name."""
        return {self.file_name(t): self.render_table(t) for t in self.snapshot.tables}
