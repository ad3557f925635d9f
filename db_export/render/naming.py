"""Naming convention helpers for generated sources."""

import re
from typing import Iterable

# Dart reserved words and built-in identifiers that cannot name a member
DART_RESERVED = frozenset({
    "abstract", "as", "assert", "async", "await", "break", "case", "catch", "class",
    "const", "continue", "covariant", "default", "deferred", "do", "dynamic", "else",
    "enum", "export", "extends", "extension", "external", "factory", "false", "final",
    "finally", "for", "function", "get", "hide", "if", "implements", "import", "in",
    "interface", "is", "late", "library", "mixin", "new", "null", "on", "operator",
    "part", "required", "rethrow", "return", "set", "show", "static", "super",
    "switch", "sync", "this", "throw", "true", "try", "typedef", "var", "void",
    "while", "with", "yield",
    # Members every generated class or enum already defines
    "values", "index", "name", "hashCode", "runtimeType", "toString", "toJson",
    "fromJson", "copyWith", "tableName", "columnNames", "other", "value",
})

_WORD_SPLIT = re.compile(r"[^A-Za-z0-9]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _words(text: str) -> list:
    parts = []
    for chunk in _WORD_SPLIT.split(text):
        parts.extend(p for p in _CAMEL_BOUNDARY.split(chunk) if p)
    return parts


def to_pascal_case(text: str) -> str:
    """Convert snake_case (or any separated text) to PascalCase."""
    return "".join(word[:1].upper() + word[1:].lower() for word in _words(text))


def to_camel_case(text: str) -> str:
    """Convert snake_case (or any separated text) to camelCase."""
    pascal = to_pascal_case(text)
    return pascal[:1].lower() + pascal[1:]


def dart_identifier(text: str, fallback: str = "value") -> str:
    """camelCase identifier that is legal as a Dart member name."""
    name = to_camel_case(text) or fallback
    if name[0].isdigit():
        name = fallback + name
    if name in DART_RESERVED:
        name = f"{name}Value"
    return name


def unique_identifiers(names: Iterable[str]) -> list:
    """Suffix repeated identifiers with a counter, keeping order."""
    seen = {}
    result = []
    for name in names:
        if name in seen:
            seen[name] += 1
            candidate = f"{name}{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}{seen[name]}"
            seen[candidate] = 1
            result.append(candidate)
        else:
            seen[name] = 1
            result.append(name)
    return result
