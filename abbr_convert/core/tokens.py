from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Literal, Optional, Union


BracketContext = Literal["attribute", "expression", "group"]


@dataclass(frozen=True)
class Repeater:
    """Multiplicity marker of a statement.

    ``implicit`` repeaters have no stated count: it is taken from the number of
    text items supplied to the converter.
    """

    count: Optional[int] = None
    value: int = 0
    implicit: bool = False


@dataclass(frozen=True)
class LiteralToken:
    value: str


@dataclass(frozen=True)
class FieldToken:
    """Editor tab stop (``${1:name}``) or, without index, a variable (``${name}``)."""

    index: Optional[int] = None
    name: str = ""


@dataclass(frozen=True)
class VariableToken:
    name: str


@dataclass(frozen=True)
class QuoteToken:
    single: bool = False


@dataclass(frozen=True)
class BracketToken:
    context: BracketContext
    open: bool


@dataclass(frozen=True)
class RepeaterPlaceholderToken:
    pass


@dataclass(frozen=True)
class RepeaterNumberToken:
    size: int = 1
    reverse: bool = False
    base: int = 1
    # how many repeaters up the stack to add numbering from
    parent: int = 0


@dataclass(frozen=True)
class WhiteSpaceToken:
    pass


Value = Union[
    LiteralToken,
    FieldToken,
    VariableToken,
    QuoteToken,
    BracketToken,
    RepeaterPlaceholderToken,
    RepeaterNumberToken,
    WhiteSpaceToken,
]


@dataclass(frozen=True)
class TokenAttribute:
    name: Optional[list[Value]] = None
    value: Optional[list[Value]] = None


@dataclass(frozen=True)
class TokenElement:
    name: Optional[list[Value]] = None
    value: Optional[list[Value]] = None
    attributes: Optional[list[TokenAttribute]] = None
    elements: list["TokenStatement"] = field(default_factory=list)
    repeat: Optional[Repeater] = None
    self_close: bool = False


@dataclass(frozen=True)
class TokenGroup:
    elements: list["TokenStatement"] = field(default_factory=list)
    repeat: Optional[Repeater] = None


TokenStatement = Union[TokenGroup, TokenElement]


def is_quote(token: Optional[Value]) -> bool:
    return isinstance(token, QuoteToken)


def is_bracket(token: Optional[Value], context: Optional[BracketContext] = None, is_open: Optional[bool] = None) -> bool:
    if not isinstance(token, BracketToken):
        return False
    if context is not None and token.context != context:
        return False
    return is_open is None or token.open == is_open


def is_group(node: TokenStatement) -> bool:
    return isinstance(node, TokenGroup)


def iter_statements(group: TokenGroup, path: str = "tree") -> Iterator[tuple[str, TokenStatement]]:
    """Yield (path, statement) for every statement below ``group``, depth-first, in order."""
    for i, child in enumerate(group.elements):
        child_path = f"{path}.elements[{i}]"
        yield child_path, child
        if isinstance(child, TokenGroup):
            yield from iter_statements(child, child_path)
        else:
            yield from iter_statements(TokenGroup(elements=child.elements), child_path)
