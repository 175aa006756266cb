"""
AST nodes of the mapping template expression language.

An expression is a root binding followed by a chain of member accesses and
method calls. Arguments are literals or nested expressions.
"""

from dataclasses import dataclass
from typing import Any, Tuple, Union


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Root:
    name: str


@dataclass(frozen=True)
class Member:
    target: "Node"
    name: str


@dataclass(frozen=True)
class Call:
    target: "Node"
    name: str
    args: Tuple["Node", ...] = ()


Node = Union[Literal, Root, Member, Call]
