# pgboss_dashboard/query/expressions.py
"""
Typed expression tree for the structured job query language.

Every node renders back to query text with ``render()``; parsing the rendered
text yields an equal tree.
"""
import base64
import json
import re
from dataclasses import dataclass
from typing import Any, Tuple, Union

QUERY_PREFIX = "jq:"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_KEYWORDS = {"true", "false", "null", "contains"}


@dataclass(frozen=True)
class Field:
    name: str


@dataclass(frozen=True)
class Index:
    index: int


@dataclass(frozen=True)
class Wildcard:
    pass


Segment = Union[Field, Index, Wildcard]


def is_bare_name(name: str) -> bool:
    return bool(_IDENTIFIER.match(name)) and name not in _KEYWORDS


def _render_field(name: str, first: bool) -> str:
    if is_bare_name(name):
        return name if first else f".{name}"
    quoted = json.dumps(name, ensure_ascii=False)
    # Quoted keys only parse after a dot; a leading one reads as a string literal.
    return quoted if first else f".{quoted}"


@dataclass(frozen=True)
class Path:
    segments: Tuple[Segment, ...]

    @property
    def is_element(self) -> bool:
        return bool(self.segments) and isinstance(self.segments[-1], Index)

    def parent(self) -> "Path":
        return Path(self.segments[:-1])

    def with_segment(self, segment: Segment) -> "Path":
        return Path(self.segments + (segment,))

    def render(self) -> str:
        parts = []
        for position, segment in enumerate(self.segments):
            if isinstance(segment, Field):
                parts.append(_render_field(segment.name, position == 0))
            elif isinstance(segment, Index):
                parts.append(f"[{segment.index}]")
            else:
                parts.append("[*]")
        return "".join(parts)


@dataclass(frozen=True)
class Literal:
    value: Any
    # Strings written as b64"..." keep that form when rendered again.
    encoded: bool = False

    def render(self) -> str:
        if isinstance(self.value, str) and self.encoded:
            raw = base64.b64encode(self.value.encode("utf-8")).decode("ascii")
            return f'b64"{raw}"'
        return json.dumps(self.value, ensure_ascii=False)


@dataclass(frozen=True)
class Comparison:
    left: "Expression"
    operator: str
    right: "Expression"

    def render(self) -> str:
        return f"{self.left.render()} {self.operator} {self.right.render()}"


@dataclass(frozen=True)
class Contains:
    path: Path
    item: Literal

    def render(self) -> str:
        return f"contains({self.path.render()}, {self.item.render()})"


@dataclass(frozen=True)
class Not:
    operand: "Expression"

    def render(self) -> str:
        return f"!{_grouped(self.operand)}"


@dataclass(frozen=True)
class And:
    left: "Expression"
    right: "Expression"

    def render(self) -> str:
        return f"{_grouped(self.left)} && {_grouped(self.right)}"


@dataclass(frozen=True)
class Or:
    left: "Expression"
    right: "Expression"

    def render(self) -> str:
        return f"{_grouped(self.left)} || {_grouped(self.right)}"


Expression = Union[Path, Literal, Comparison, Contains, Not, And, Or]

# Nodes whose evaluation is always a strict boolean.
BOOLEAN_NODES = (Comparison, Contains, Not, And, Or)


def _grouped(node: "Expression") -> str:
    if isinstance(node, (Comparison, And, Or)):
        return f"({node.render()})"
    return node.render()


def is_structured_query(search: str) -> bool:
    return search.startswith(QUERY_PREFIX)


def strip_prefix(search: str) -> str:
    return search[len(QUERY_PREFIX):].strip()


def to_query_text(expression: Expression) -> str:
    """Search-box text selecting the records ``expression`` selects."""
    return f"{QUERY_PREFIX}{expression.render()}"
