"""
Recursive-descent parser for mapping template expressions.

Grammar (the leading `$` is consumed by the scanner for the outermost
reference, and by the parser for nested references):

    reference := ROOT ( "." NAME [ "(" [ arg ( "," arg )* ] ")" ] )*
    arg       := STRING | NUMBER | "true" | "false" | "null" | "$" reference

The parser stops at the first character that cannot continue the reference
and reports how many characters it consumed.
"""

import re
from typing import List, Tuple

from ..core.exceptions import TemplateTokenError
from .nodes import Call, Literal, Member, Node, Root

ROOT_NAMES = ("input", "context", "util", "stageVariables")

MAX_NESTING = 4
MAX_CHAIN = 32

_ROOT = re.compile(r"(?:%s)(?![A-Za-z0-9_])" % "|".join(ROOT_NAMES))
_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_KEYWORDS = {"true": True, "false": False, "null": None}
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


class ExpressionSyntaxError(TemplateTokenError):
    """Raised when a reference is malformed past its root name."""


def match_root(text: str, pos: int = 0):
    """Return the root-name match at `pos`, or None."""
    return _ROOT.match(text, pos)


class ExpressionParser:
    def __init__(self, source: str):
        self.source = source
        self.pos = 0

    def parse(self) -> Tuple[Node, int]:
        """Parse one reference starting at the root name. Returns (node, consumed)."""
        node = self._reference(depth=0)
        return node, self.pos

    # ------------------------------------------------------------------

    def _reference(self, depth: int) -> Node:
        if depth > MAX_NESTING:
            raise ExpressionSyntaxError("Expression nesting too deep")

        root = _ROOT.match(self.source, self.pos)
        if not root:
            raise ExpressionSyntaxError(f"Unknown reference at {self.pos}")
        self.pos = root.end()
        node: Node = Root(root.group())

        links = 0
        while self._peek() == "." and _NAME.match(self.source, self.pos + 1):
            name = _NAME.match(self.source, self.pos + 1)
            self.pos = name.end()
            links += 1
            if links > MAX_CHAIN:
                raise ExpressionSyntaxError("Expression chain too long")

            if self._peek() == "(":
                self.pos += 1
                node = Call(node, name.group(), tuple(self._arguments(depth)))
            else:
                node = Member(node, name.group())

        return node

    def _arguments(self, depth: int) -> List[Node]:
        args: List[Node] = []
        self._skip_ws()
        if self._peek() == ")":
            self.pos += 1
            return args

        while True:
            self._skip_ws()
            args.append(self._argument(depth))
            self._skip_ws()
            ch = self._peek()
            if ch == ",":
                self.pos += 1
            elif ch == ")":
                self.pos += 1
                return args
            else:
                raise ExpressionSyntaxError(f"Expected ',' or ')' at {self.pos}")

    def _argument(self, depth: int) -> Node:
        ch = self._peek()
        if ch in ("'", '"'):
            return Literal(self._string(ch))
        if ch == "$":
            self.pos += 1
            return self._reference(depth + 1)

        number = _NUMBER.match(self.source, self.pos)
        if number:
            self.pos = number.end()
            text = number.group()
            return Literal(float(text) if "." in text else int(text))

        word = _NAME.match(self.source, self.pos)
        if word and word.group() in _KEYWORDS:
            self.pos = word.end()
            return Literal(_KEYWORDS[word.group()])

        raise ExpressionSyntaxError(f"Invalid argument at {self.pos}")

    def _string(self, quote: str) -> str:
        self.pos += 1
        chars: List[str] = []
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == "\\" and self.pos + 1 < len(self.source):
                nxt = self.source[self.pos + 1]
                chars.append(_ESCAPES.get(nxt, nxt))
                self.pos += 2
                continue
            if ch == quote:
                self.pos += 1
                return "".join(chars)
            chars.append(ch)
            self.pos += 1
        raise ExpressionSyntaxError("Unterminated string literal")

    def _peek(self) -> str:
        return self.source[self.pos] if self.pos < len(self.source) else ""

    def _skip_ws(self) -> None:
        while self._peek() in (" ", "\t"):
            self.pos += 1


def parse_expression(source: str) -> Tuple[Node, int]:
    """Parse a reference (without its leading `$`). Returns (node, consumed)."""
    return ExpressionParser(source).parse()
