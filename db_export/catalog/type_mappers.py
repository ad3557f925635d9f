"""Catalog type mapping to target-language types."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from .models import ColumnDefinition


class TargetType(str, Enum):
    """Language-neutral field types."""
    INTEGER = "Integer"
    DOUBLE = "Double"
    BOOLEAN = "Boolean"
    DATE_TIME = "DateTime"
    TIME_OF_DAY = "TimeOfDay"
    TEXT = "Text"
    JSON_OBJECT = "JsonObject"
    BYTE_SEQUENCE = "ByteSequence"
    UNKNOWN_DYNAMIC = "UnknownDynamic"


@dataclass(frozen=True)
class MappedType:
    """Result of mapping a catalog type."""
    target: TargetType
    is_list: bool = False

    @property
    def is_lossless(self) -> bool:
        """Whether JSON round-trips preserve the exact value."""
        return self.target in (TargetType.INTEGER, TargetType.BOOLEAN, TargetType.TEXT)


_EXACT_TYPES = {
    # Integer family
    "smallint": TargetType.INTEGER,
    "integer": TargetType.INTEGER,
    "int": TargetType.INTEGER,
    "bigint": TargetType.INTEGER,
    "serial": TargetType.INTEGER,
    "bigserial": TargetType.INTEGER,
    "smallserial": TargetType.INTEGER,
    "int2": TargetType.INTEGER,
    "int4": TargetType.INTEGER,
    "int8": TargetType.INTEGER,
    # Float family
    "numeric": TargetType.DOUBLE,
    "decimal": TargetType.DOUBLE,
    "real": TargetType.DOUBLE,
    "double precision": TargetType.DOUBLE,
    "float4": TargetType.DOUBLE,
    "float8": TargetType.DOUBLE,
    # Boolean
    "boolean": TargetType.BOOLEAN,
    "bool": TargetType.BOOLEAN,
    # JSON
    "json": TargetType.JSON_OBJECT,
    "jsonb": TargetType.JSON_OBJECT,
    # Text family
    "uuid": TargetType.TEXT,
    "text": TargetType.TEXT,
    "character varying": TargetType.TEXT,
    "varchar": TargetType.TEXT,
    "character": TargetType.TEXT,
    "char": TargetType.TEXT,
    "bpchar": TargetType.TEXT,
    "user-defined": TargetType.TEXT,
    # Binary
    "bytea": TargetType.BYTE_SEQUENCE,
}

_TYPE_MODIFIERS = re.compile(r"\s*\([^)]*\)")


def _normalize(declared_type: str):
    """Lowercase the type, strip modifiers and detect array spellings."""
    text = declared_type.strip()
    is_array = False
    if text.upper().startswith("ARRAY[") and text.endswith("]"):
        text = text[6:-1].strip()
        is_array = True
    while text.endswith("[]"):
        text = text[:-2].strip()
        is_array = True
    if text.startswith("_"):
        # udt spelling of array types (_int4, _text)
        text = text[1:]
        is_array = True
    text = _TYPE_MODIFIERS.sub("", text).lower()
    return " ".join(text.split()), is_array


def map_type(declared_type: str, is_array: bool = False) -> MappedType:
    """Map a catalog type name to a target type.

    Never raises; unrecognized types map to UNKNOWN_DYNAMIC.

    Args:
        declared_type: Physical catalog type name
        is_array: Whether the caller already knows the column is an array

    Returns:
        MappedType with the scalar target and list flag
    """
    name, spelled_array = _normalize(declared_type or "")
    is_list = is_array or spelled_array

    if name in _EXACT_TYPES:
        return MappedType(_EXACT_TYPES[name], is_list)
    if name.startswith("timestamp") or name == "date":
        return MappedType(TargetType.DATE_TIME, is_list)
    if name.startswith("time"):
        return MappedType(TargetType.TIME_OF_DAY, is_list)
    return MappedType(TargetType.UNKNOWN_DYNAMIC, is_list)


def map_column(column: ColumnDefinition) -> MappedType:
    """Map a column, resolving array sentinels through its udt name."""
    if column.is_array:
        return map_type(column.element_type, is_array=True)
    return map_type(column.data_type)


class TypeMapper(ABC):
    """Abstract base class for target-language type naming."""

    @abstractmethod
    def to_source_type(self, mapped: MappedType) -> str:
        """Convert a mapped type to a source-language type name."""
        pass

    def nullable(self, type_name: str) -> str:
        """Mark a source-language type as nullable."""
        return type_name


class DartTypeMapper(TypeMapper):
    """Type mapper for Dart model sources."""

    DART_TYPES = {
        TargetType.INTEGER: "int",
        TargetType.DOUBLE: "double",
        TargetType.BOOLEAN: "bool",
        TargetType.DATE_TIME: "DateTime",
        TargetType.TIME_OF_DAY: "TimeOfDay",
        TargetType.TEXT: "String",
        TargetType.JSON_OBJECT: "Map<String, dynamic>",
        TargetType.BYTE_SEQUENCE: "Uint8List",
        TargetType.UNKNOWN_DYNAMIC: "dynamic",
    }

    def to_source_type(self, mapped: MappedType) -> str:
        """Convert a mapped type to a Dart type name."""
        base = self.DART_TYPES[mapped.target]
        if mapped.is_list:
            return f"List<{base}>"
        return base

    def nullable(self, type_name: str) -> str:
        """Add Dart's nullable marker (dynamic is already nullable)."""
        if type_name == "dynamic" or type_name.endswith("?"):
            return type_name
        return f"{type_name}?"
