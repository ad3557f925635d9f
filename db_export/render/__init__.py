"""Output renderers for SQL scripts and Dart model sources."""

from .sql import SqlRenderer, escape_sql_value, quote_literal
from .dart import DartModelGenerator
from .naming import to_pascal_case, to_camel_case, dart_identifier

__all__ = [
    "SqlRenderer",
    "escape_sql_value",
    "quote_literal",
    "DartModelGenerator",
    "to_pascal_case",
    "to_camel_case",
    "dart_identifier",
]
