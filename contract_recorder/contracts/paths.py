"""
Field path resolution against JSON-like payloads.

Supported syntax:
    total                     top-level key
    products[].quantity       every element of an array
    products[0].product.name  a single array index
    _links['cart:order']      bracketed key (for keys containing dots)
    [].id                     top-level array

A path "resolves" when its final segment matches at least once. A trailing
`[]` resolves as soon as the array exists, even when it is empty, and
resolves to the array rather than to its elements.
"""

import re
from functools import lru_cache
from typing import Any, List, Tuple

KEY = "key"
INDEX = "index"
EACH = "each"

Segment = Tuple[str, Any]

JSON_TYPES = ("object", "array", "string", "number", "integer", "boolean", "null")

_TOKEN = re.compile(
    r"""
      (?P<each>\[\])
    | \[(?P<index>\d+)\]
    | \['(?P<quoted>[^']+)'\]
    | (?P<dot>\.)?(?P<plain>[^.\[\]']+)
    """,
    re.VERBOSE,
)


@lru_cache(maxsize=1024)
def parse_path(path: str) -> Tuple[Segment, ...]:
    """
    Split a field path into (kind, argument) segments.

    Raises:
        ValueError: If the path is empty or malformed
    """
    if not path or not path.strip():
        raise ValueError("Field path must not be empty")

    segments = []
    pos = 0
    while pos < len(path):
        m = _TOKEN.match(path, pos)
        if not m:
            raise ValueError(f"Malformed field path {path!r} at offset {pos}")
        if m.group("each"):
            segments.append((EACH, None))
        elif m.group("index") is not None:
            segments.append((INDEX, int(m.group("index"))))
        elif m.group("quoted") is not None:
            segments.append((KEY, m.group("quoted")))
        else:
            # A plain key needs a dot separator unless it opens the path
            if pos == 0 and m.group("dot"):
                raise ValueError(f"Field path {path!r} must not start with '.'")
            if pos > 0 and not m.group("dot"):
                raise ValueError(f"Missing '.' before {m.group('plain')!r} in {path!r}")
            segments.append((KEY, m.group("plain")))
        pos = m.end()

    return tuple(segments)


def _walk(body: Any, path: str) -> Tuple[bool, List[Any]]:
    segments = parse_path(path)
    last = len(segments) - 1
    nodes = [body]
    matched = False
    for position, (kind, arg) in enumerate(segments):
        found = []
        matched = False
        for node in nodes:
            if kind == KEY:
                if isinstance(node, dict) and arg in node:
                    found.append(node[arg])
                    matched = True
            elif kind == INDEX:
                if isinstance(node, list) and arg < len(node):
                    found.append(node[arg])
                    matched = True
            elif isinstance(node, list):
                # A trailing [] names the array itself, not its elements
                if position == last:
                    found.append(node)
                else:
                    found.extend(node)
                matched = True
        if not matched:
            return False, []
        nodes = found
    return matched, nodes


def has_path(body: Any, path: str) -> bool:
    """True if the path resolves at least once in body."""
    return _walk(body, path)[0]


def resolve(body: Any, path: str) -> List[Any]:
    """Return every value the path reaches in body (possibly empty)."""
    return _walk(body, path)[1]


def top_level_key(path: str) -> Any:
    """First key of a path, or None for paths into a top-level array."""
    kind, arg = parse_path(path)[0]
    return arg if kind == KEY else None


def json_type(value: Any) -> str:
    """Name the JSON type of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def matches_type(value: Any, expected: str) -> bool:
    """
    Check a decoded value against a declared JSON type.

    Integers satisfy "number"; null never matches (callers skip nulls).
    """
    actual = json_type(value)
    if actual == expected:
        return True
    return expected == "number" and actual == "integer"
