"""Parser for CHECK constraints that enumerate allowed values.

Supports:
- PostgreSQL's normalized form: (status = ANY (ARRAY['a'::text, 'b'::text]))
- The same with a cast on the array: status = ANY ((ARRAY['a', 'b'])::text[])
- Standard IN lists: status IN ('a', 'b')

Anything else (ranges, function calls, OR chains) is not an enum and
yields None.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

_IDENTIFIER = r'(?:"(?P<quoted>(?:[^"]|"")+)"|(?P<bare>[A-Za-z_][A-Za-z0-9_$]*))'
_CAST = r"(?:\s*::\s*[A-Za-z_][A-Za-z0-9_ ]*(?:\[\])?)*"

_ANY_ARRAY = re.compile(
    r"^\(?\s*" + _IDENTIFIER + r"\s*\)?" + _CAST + r"\s*=\s*ANY\s*\(\s*\(?\s*ARRAY\s*\[(?P<body>.*)\]\s*\)?" + _CAST + r"\s*\)$",
    re.IGNORECASE | re.DOTALL,
)
_IN_LIST = re.compile(
    r"^\(?\s*" + _IDENTIFIER + r"\s*\)?" + _CAST + r"\s+IN\s*\((?P<body>.*)\)$",
    re.IGNORECASE | re.DOTALL,
)
_LITERAL = re.compile(r"'((?:[^']|'')*)'" + _CAST)


@dataclass(frozen=True)
class CheckEnum:
    """Allowed-value list extracted from a CHECK clause."""
    column: str
    values: List[str] = field(default_factory=list)


def _strip_wrapping(clause: str) -> str:
    """Remove a leading CHECK keyword and balanced outer parentheses."""
    text = clause.strip().rstrip(";").strip()
    if text.upper().startswith("CHECK"):
        text = text[5:].strip()
    # NOT VALID / NO INHERIT suffixes from pg_get_constraintdef
    text = re.sub(r"\s+(NOT\s+VALID|NO\s+INHERIT)\s*$", "", text, flags=re.IGNORECASE)
    while text.startswith("(") and text.endswith(")") and wraps_whole(text):
        text = text[1:-1].strip()
    return text


def wraps_whole(text: str) -> bool:
    """Check that the first '(' closes at the last character."""
    depth = 0
    in_quote = False
    for index, char in enumerate(text):
        if char == "'":
            in_quote = not in_quote
        elif in_quote:
            continue
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and index != len(text) - 1:
                return False
    return depth == 0


def _parse_literals(body: str) -> Optional[List[str]]:
    """Split a comma separated literal list; None if any item is not a quoted literal."""
    values: List[str] = []
    position = 0
    body = body.strip()
    while position < len(body):
        match = _LITERAL.match(body, position)
        if not match:
            return None
        values.append(match.group(1).replace("''", "'"))
        position = match.end()
        rest = body[position:].lstrip()
        if not rest:
            break
        if not rest.startswith(","):
            return None
        position = len(body) - len(rest) + 1
        while position < len(body) and body[position].isspace():
            position += 1
    return values or None


def parse_enum_check(clause: Optional[str]) -> Optional[CheckEnum]:
    """Parse a CHECK clause into a column and its allowed values.

    Args:
        clause: Raw CHECK clause, with or without the CHECK keyword

    Returns:
        CheckEnum if the clause is a single-column allowed-value list, None otherwise
    """
    if not clause:
        return None

    text = _strip_wrapping(clause)
    for pattern in (_ANY_ARRAY, _IN_LIST):
        match = pattern.match(text)
        if not match:
            continue
        column = match.group("bare") or match.group("quoted").replace('""', '"')
        values = _parse_literals(match.group("body"))
        if values:
            return CheckEnum(column=column, values=values)
    return None
