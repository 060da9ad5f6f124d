from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Union

from abbr_convert.core.tokens import FieldToken, Repeater


AttributeType = Literal["raw", "singleQuote", "doubleQuote", "expression"]

# Stringified value entry: literal text run or an indexed field kept as-is.
TokenValue = Union[str, FieldToken]


@dataclass
class AbbreviationAttribute:
    name: Optional[str]
    value: Optional[list[TokenValue]] = None
    boolean: bool = False
    implied: bool = False
    value_type: AttributeType = "raw"


@dataclass
class AbbreviationNode:
    name: Optional[str] = None
    value: Optional[list[TokenValue]] = None
    attributes: Optional[list[AbbreviationAttribute]] = None
    children: list["AbbreviationNode"] = field(default_factory=list)
    repeat: Optional[Repeater] = None
    self_closing: bool = False


@dataclass
class Abbreviation:
    children: list[AbbreviationNode] = field(default_factory=list)
