# pgboss_dashboard/query/evaluator.py
"""
Evaluation of structured queries and plain-text search against job records.

A record is either a :class:`~pgboss_dashboard.common.job.Job` or the
JSON-shaped mapping returned by ``Job.as_record()``. Evaluation is pure: the
same record and expression always give the same answer, and nothing here
raises for a malformed query or a path that does not exist in the record.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Union

from pgboss_dashboard.common.exceptions import QueryParseError
from pgboss_dashboard.common.job import Job
from pgboss_dashboard.query.expressions import (
    BOOLEAN_NODES,
    And,
    Comparison,
    Contains,
    Expression,
    Field,
    Index,
    Literal,
    Not,
    Or,
    Path,
    Wildcard,
    is_structured_query,
    strip_prefix,
)
from pgboss_dashboard.query.parser import parse

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


@dataclass(frozen=True)
class EvalError:
    """Result of evaluating a query that could not be parsed."""

    message: str


Record = Union[Job, Mapping[str, Any]]


def _as_mapping(record: Record) -> Mapping[str, Any]:
    if isinstance(record, Job):
        return record.as_record()
    return record


def resolve(record: Record, path: Path) -> Any:
    """Value at ``path`` inside ``record``, or ``MISSING`` when it does not exist."""
    return _resolve(_as_mapping(record), path.segments)


def _resolve(value: Any, segments) -> Any:
    for position, segment in enumerate(segments):
        if isinstance(segment, Field):
            if not isinstance(value, dict) or segment.name not in value:
                return MISSING
            value = value[segment.name]
        elif isinstance(segment, Index):
            if not isinstance(value, list):
                return MISSING
            try:
                value = value[segment.index]
            except IndexError:
                return MISSING
        elif isinstance(segment, Wildcard):
            if not isinstance(value, list):
                return MISSING
            rest = segments[position + 1:]
            if not rest:
                return list(value)
            projected = (_resolve(item, rest) for item in value)
            return [item for item in projected if item is not MISSING]
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def deep_equal(left: Any, right: Any) -> bool:
    """JSON value equality; booleans never equal numbers, "3" never equals 3."""
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(
            deep_equal(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(
            deep_equal(left[key], right[key]) for key in left
        )
    return False


def _compare(operator: str, left: Any, right: Any) -> bool:
    if left is MISSING or right is MISSING:
        return False
    if operator == "==":
        return deep_equal(left, right)
    if operator == "!=":
        return not deep_equal(left, right)
    comparable = (_is_number(left) and _is_number(right)) or (
        isinstance(left, str) and isinstance(right, str)
    )
    if not comparable:
        return False
    if operator == "<":
        return left < right
    if operator == "<=":
        return left <= right
    if operator == ">":
        return left > right
    return left >= right


def as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True)


def _evaluate(record: Mapping[str, Any], node: Expression) -> Any:
    if isinstance(node, Path):
        return _resolve(record, node.segments)
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Comparison):
        return _compare(
            node.operator, _evaluate(record, node.left), _evaluate(record, node.right)
        )
    if isinstance(node, Contains):
        items = _resolve(record, node.path.segments)
        if not isinstance(items, list):
            return False
        wanted = as_text(node.item.value)
        return any(as_text(item) == wanted for item in items)
    if isinstance(node, Not):
        return not _selects(record, node.operand)
    if isinstance(node, And):
        return _selects(record, node.left) and _selects(record, node.right)
    if isinstance(node, Or):
        return _selects(record, node.left) or _selects(record, node.right)
    raise TypeError(f"Unknown expression node {node!r}")


def _selects(record: Mapping[str, Any], node: Expression) -> bool:
    result = _evaluate(record, node)
    if isinstance(node, BOOLEAN_NODES):
        return result is True
    return result is not MISSING and result is not None and result is not False


def evaluate(record: Record, expression: Union[str, Expression]) -> Any:
    """
    Evaluate ``expression`` against one record.

    Comparisons and other boolean forms give ``True``/``False``; a bare path or
    literal gives the value itself (``None`` when the path does not resolve).
    Text that fails to parse gives an :class:`EvalError` instead of raising.
    """
    if isinstance(expression, str):
        try:
            expression = parse(expression)
        except QueryParseError as e:
            return EvalError(str(e))
    result = _evaluate(_as_mapping(record), expression)
    return None if result is MISSING else result


def matches(record: Record, expression: Union[str, Expression]) -> bool:
    """Whether ``expression`` selects ``record``. Unparseable text selects nothing."""
    if isinstance(expression, str):
        try:
            expression = parse(expression)
        except QueryParseError:
            return False
    return _selects(_as_mapping(record), expression)


def matches_text(record: Record, term: str) -> bool:
    """Case-insensitive substring search over the id and the data/output payloads."""
    mapping = _as_mapping(record)
    needle = term.lower()
    if needle in str(mapping.get("id", "")).lower():
        return True
    for key in ("data", "output"):
        payload = mapping.get(key)
        serialized = json.dumps(
            payload if payload is not None else {},
            ensure_ascii=False,
            separators=(",", ":"),
            default=str,
        )
        if needle in serialized.lower():
            return True
    return False


def matches_search(record: Record, search: str) -> bool:
    """Apply a search-box value: ``jq:`` queries are structured, the rest is text."""
    if not search:
        return True
    if is_structured_query(search):
        return matches(record, strip_prefix(search))
    return matches_text(record, search)
