# pgboss_dashboard/query/parser.py
import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List

from pgboss_dashboard.common.exceptions import QueryParseError
from pgboss_dashboard.query.expressions import (
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
)

logger = logging.getLogger(__name__)

COMPARISON_OPERATORS = ("==", "!=", "<=", ">=", "<", ">")

_TOKEN_SPEC = [
    ("WS", r"\s+"),
    ("B64", r'b64"[A-Za-z0-9+/=]*"'),
    ("NUMBER", r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?"),
    ("STRING", r'"(?:[^"\\]|\\.)*"'),
    ("RAW", r"'(?:[^'\\]|\\.)*'"),
    ("OP", r"==|!=|<=|>=|<|>"),
    ("AND", r"&&"),
    ("OR", r"\|\|"),
    ("NOT", r"!"),
    ("IDENT", r"[A-Za-z_][A-Za-z0-9_]*"),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
    ("LBRACKET", r"\["),
    ("RBRACKET", r"\]"),
    ("DOT", r"\."),
    ("COMMA", r","),
    ("STAR", r"\*"),
]
_TOKEN_RE = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _TOKEN_SPEC))


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    position = 0
    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if match is None:
            raise QueryParseError(f"Unexpected character {text[position]!r}", position)
        kind = match.lastgroup
        if kind != "WS":
            tokens.append(Token(kind, match.group(), position))
        position = match.end()
    tokens.append(Token("EOF", "", len(text)))
    return tokens


def _decode_string(token: Token) -> str:
    if token.kind == "STRING":
        try:
            return json.loads(token.text, strict=False)
        except json.JSONDecodeError as e:
            raise QueryParseError(f"Invalid string literal: {e.msg}", token.position) from e
    if token.kind == "RAW":
        body = token.text[1:-1]
        return body.replace("\\'", "'").replace("\\\\", "\\")
    raw = token.text[4:-1]
    try:
        return base64.b64decode(raw, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise QueryParseError("Invalid base64 string literal", token.position) from e


def _number(text: str):
    if any(c in text for c in ".eE"):
        return float(text)
    return int(text)


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != "EOF":
            self.pos += 1
        return token

    def expect(self, kind: str) -> Token:
        token = self.current
        if token.kind != kind:
            found = token.text or "end of query"
            raise QueryParseError(f"Expected {kind.lower()}, found {found!r}", token.position)
        return self.advance()

    def parse(self) -> Expression:
        if self.current.kind == "EOF":
            raise QueryParseError("Empty query", 0)
        expression = self.parse_or()
        if self.current.kind != "EOF":
            raise QueryParseError(f"Unexpected {self.current.text!r}", self.current.position)
        return expression

    def parse_or(self) -> Expression:
        node = self.parse_and()
        while self.current.kind == "OR":
            self.advance()
            node = Or(node, self.parse_and())
        return node

    def parse_and(self) -> Expression:
        node = self.parse_unary()
        while self.current.kind == "AND":
            self.advance()
            node = And(node, self.parse_unary())
        return node

    def parse_unary(self) -> Expression:
        if self.current.kind == "NOT":
            self.advance()
            return Not(self.parse_unary())
        return self.parse_comparison()

    def parse_comparison(self) -> Expression:
        left = self.parse_operand()
        if self.current.kind == "OP":
            operator = self.advance().text
            right = self.parse_operand()
            return Comparison(left, operator, right)
        return left

    def parse_operand(self) -> Expression:
        token = self.current
        if token.kind == "LPAREN":
            self.advance()
            node = self.parse_or()
            self.expect("RPAREN")
            return node
        if token.kind in ("STRING", "RAW", "B64", "NUMBER"):
            return self.parse_literal()
        if token.kind == "IDENT":
            if token.text in ("true", "false", "null"):
                return self.parse_literal()
            if token.text == "contains" and self.tokens[self.pos + 1].kind == "LPAREN":
                return self.parse_contains()
            return self.parse_path()
        found = token.text or "end of query"
        raise QueryParseError(f"Unexpected {found!r}", token.position)

    def parse_literal(self) -> Literal:
        token = self.advance()
        if token.kind == "NUMBER":
            return Literal(_number(token.text))
        if token.kind in ("STRING", "RAW"):
            return Literal(_decode_string(token))
        if token.kind == "B64":
            return Literal(_decode_string(token), encoded=True)
        if token.kind == "IDENT" and token.text in ("true", "false", "null"):
            return Literal({"true": True, "false": False, "null": None}[token.text])
        raise QueryParseError(f"Expected a literal, found {token.text!r}", token.position)

    def parse_contains(self) -> Contains:
        self.expect("IDENT")
        self.expect("LPAREN")
        if self.current.kind != "IDENT":
            raise QueryParseError("contains() expects a path", self.current.position)
        path = self.parse_path()
        self.expect("COMMA")
        item = self.parse_literal()
        self.expect("RPAREN")
        return Contains(path, item)

    def parse_path(self) -> Path:
        segments = [Field(self.expect("IDENT").text)]
        while True:
            token = self.current
            if token.kind == "DOT":
                self.advance()
                name = self.current
                if name.kind == "IDENT":
                    segments.append(Field(self.advance().text))
                elif name.kind == "STRING":
                    segments.append(Field(_decode_string(self.advance())))
                else:
                    raise QueryParseError("Expected a field name after '.'", name.position)
            elif token.kind == "LBRACKET":
                self.advance()
                if self.current.kind == "STAR":
                    self.advance()
                    segments.append(Wildcard())
                else:
                    number = self.expect("NUMBER")
                    if not re.fullmatch(r"-?\d+", number.text):
                        raise QueryParseError("Array index must be an integer", number.position)
                    segments.append(Index(int(number.text)))
                self.expect("RBRACKET")
            else:
                return Path(tuple(segments))


@lru_cache(maxsize=256)
def parse(text: str) -> Expression:
    """Parse a structured query (without its ``jq:`` prefix)."""
    return _Parser(text).parse()


def parse_path(text: str) -> Path:
    parser = _Parser(text)
    if parser.current.kind != "IDENT":
        raise QueryParseError("Expected a path", 0)
    path = parser.parse_path()
    if parser.current.kind != "EOF":
        raise QueryParseError(f"Unexpected {parser.current.text!r}", parser.current.position)
    return path


def try_parse(text: str):
    """Return the parsed expression, or ``None`` when the text is not valid."""
    try:
        return parse(text)
    except QueryParseError as e:
        logger.debug(f"Ignoring unparseable query {text!r}: {e}")
        return None
