# pgboss_dashboard/query/encoder.py
"""
Builds structured queries from values found in a job payload ("click to filter").

Strings are embedded as base64 literals so the generated query is valid no
matter what quotes, newlines or operator characters the value contains.
"""
import base64
import math
from typing import Any, Iterator, Tuple, Union

from pgboss_dashboard.query.expressions import (
    Comparison,
    Contains,
    Expression,
    Field,
    Index,
    Literal,
    Path,
    Wildcard,
    is_bare_name,
    to_query_text,
)
from pgboss_dashboard.query.parser import parse_path


def encode_string(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def decode_string(encoded: str) -> str:
    return base64.b64decode(encoded.encode("ascii"), validate=True).decode("utf-8")


def _literal(value: Any) -> Literal:
    if isinstance(value, str):
        return Literal(value, encoded=True)
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"{value!r} has no query literal")
    if value is None or isinstance(value, (bool, int, float)):
        return Literal(value)
    raise ValueError(f"Only scalar values can be turned into a filter, got {type(value).__name__}")


def encode(path: Union[str, Path], value: Any) -> Expression:
    """
    Expression selecting the records whose value at ``path`` equals ``value``.

    A path that points at an array element produces an array membership test
    on the whole array instead of a positional comparison.
    """
    if isinstance(path, str):
        path = parse_path(path)
    head = path.segments[0] if path.segments else None
    if not isinstance(head, Field) or not is_bare_name(head.name):
        raise ValueError(f"Path must start with a plain field name: {path.render()!r}")
    literal = _literal(value)
    if path.is_element:
        return Contains(path.parent().with_segment(Wildcard()), literal)
    return Comparison(path, "==", literal)


def encode_query(path: Union[str, Path], value: Any) -> str:
    return to_query_text(encode(path, value))


def clickable_values(payload: Any, root: str = "data") -> Iterator[Tuple[Path, Any]]:
    """Yield ``(path, value)`` for every scalar leaf of a job payload."""
    yield from _walk(Path((Field(root),)), payload)


def _walk(path: Path, value: Any) -> Iterator[Tuple[Path, Any]]:
    if isinstance(value, dict):
        for key, item in value.items():
            yield from _walk(path.with_segment(Field(str(key))), item)
    elif isinstance(value, list):
        for position, item in enumerate(value):
            yield from _walk(path.with_segment(Index(position)), item)
    else:
        yield path, value
