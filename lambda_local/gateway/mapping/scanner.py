"""
Quote-aware scanner for mapping templates.

Walks the template one character at a time, tracking whether the cursor is
bare, inside a double-quoted region or inside a single-quoted region, and
splits it into literal text and expression tokens.
"""

import functools
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .nodes import Node
from .parser import ExpressionSyntaxError, match_root, parse_expression

QUOTES = ('"', "'")


@dataclass(frozen=True)
class TextSegment:
    text: str


@dataclass(frozen=True)
class TokenSegment:
    raw: str
    expression: Node
    quote: Optional[str] = None
    wrapped: bool = False


Segment = Union[TextSegment, TokenSegment]


def _token_view(template: str, start: int, quote: Optional[str]) -> Tuple[str, List[int]]:
    """
    Build the parser's view of the text after `$`.

    Inside a quoted region escaped quotes are unescaped and the view ends at
    the closing quote. `offsets[i]` is the template index of view character i.
    """
    chars: List[str] = []
    offsets: List[int] = []
    pos = start
    while pos < len(template):
        ch = template[pos]
        if quote is not None:
            if ch == "\\" and pos + 1 < len(template) and template[pos + 1] in QUOTES:
                chars.append(template[pos + 1])
                offsets.append(pos + 1)
                pos += 2
                continue
            if ch == quote:
                break
        chars.append(ch)
        offsets.append(pos)
        pos += 1
    return "".join(chars), offsets


def _read_token(template: str, dollar: int, quote: Optional[str]):
    """Return (expression, end index) for a token at `dollar`, or None."""
    if not match_root(template, dollar + 1):
        return None

    view, offsets = _token_view(template, dollar + 1, quote)
    try:
        expression, consumed = parse_expression(view)
    except ExpressionSyntaxError:
        if quote is None:
            return None
        # The region quote may delimit the token's own arguments (`don't $input.params('id')`).
        view, offsets = _token_view(template, dollar + 1, None)
        try:
            expression, consumed = parse_expression(view)
        except ExpressionSyntaxError:
            return None
    return expression, offsets[consumed - 1] + 1


@functools.lru_cache(maxsize=256)
def scan(template: str) -> Tuple[Segment, ...]:
    """Split a template into literal text and expression tokens."""
    segments: List[Segment] = []
    text: List[str] = []
    quote: Optional[str] = None
    region_start = -1
    pos = 0

    def flush() -> None:
        if text:
            segments.append(TextSegment("".join(text)))
            text.clear()

    while pos < len(template):
        ch = template[pos]

        if quote is not None and ch == "\\" and pos + 1 < len(template):
            text.append(template[pos : pos + 2])
            pos += 2
            continue

        if ch == "$":
            token = _read_token(template, pos, quote)
            if token is not None:
                expression, end = token
                wrapped = (
                    quote is not None
                    and pos == region_start
                    and end < len(template)
                    and template[end] == quote
                )
                if wrapped:
                    # The token is the whole quoted region: replace the quotes too.
                    text.pop()
                    flush()
                    segments.append(
                        TokenSegment(
                            raw=template[pos - 1 : end + 1],
                            expression=expression,
                            quote=quote,
                            wrapped=True,
                        )
                    )
                    quote = None
                    pos = end + 1
                else:
                    flush()
                    segments.append(
                        TokenSegment(raw=template[pos:end], expression=expression, quote=quote)
                    )
                    pos = end
                continue

        if quote is None and ch in QUOTES:
            quote = ch
            region_start = pos + 1
        elif ch == quote:
            quote = None

        text.append(ch)
        pos += 1

    flush()
    return tuple(segments)
