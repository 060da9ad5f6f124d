from __future__ import annotations

import logging
from typing import Optional

from abbr_convert.core.convert.state import ConvertState
from abbr_convert.core.tokens import (
    BracketToken,
    FieldToken,
    LiteralToken,
    QuoteToken,
    Repeater,
    RepeaterNumberToken,
    RepeaterPlaceholderToken,
    Value,
    VariableToken,
    WhiteSpaceToken,
)


logger = logging.getLogger(__name__)

BRACKETS: dict[str, tuple[str, str]] = {
    "attribute": ("[", "]"),
    "expression": ("{", "}"),
    "group": ("(", ")"),
}


def stringify(token: Value, state: ConvertState) -> str:
    """Render a single value token as text in the context of the conversion state."""

    if isinstance(token, LiteralToken):
        return token.value

    if isinstance(token, QuoteToken):
        return "'" if token.single else '"'

    if isinstance(token, BracketToken):
        opening, closing = BRACKETS[token.context]
        return opening if token.open else closing

    if isinstance(token, FieldToken):
        if token.index is not None:
            # TextMate-compatible field; the downstream renderer may remap it
            return f"${{{token.index}:{token.name}}}" if token.name else f"${{{token.index}}}"
        if token.name:
            return _variable(token.name, state)
        return ""

    if isinstance(token, VariableToken):
        return _variable(token.name, state)

    if isinstance(token, RepeaterPlaceholderToken):
        repeater = _closest_implicit(state)
        # text goes here, so no implicit insertion into the deepest node
        state.inserted = True
        return state.get_text(repeater.value if repeater else None)

    if isinstance(token, RepeaterNumberToken):
        return _repeater_number(token, state)

    if isinstance(token, WhiteSpaceToken):
        return " "

    raise TypeError(f"unsupported token: {token!r}")


def repeater_count(repeater: Repeater, state: ConvertState) -> int:
    """Effective iteration count of a repeater."""
    items = state.text_items()
    if repeater.implicit and items is not None:
        return len(items)
    return repeater.count or 1


def _variable(name: str, state: ConvertState) -> str:
    value = state.get_variable(name)
    if value == name and not (state.variables and name in state.variables):
        logger.debug("unresolved variable %r rendered as its name", name)
    return value


def _closest_implicit(state: ConvertState) -> Optional[Repeater]:
    for repeater in reversed(state.repeaters):
        if repeater.implicit:
            return repeater
    return None


def _repeater_number(token: RepeaterNumberToken, state: ConvertState) -> str:
    value = 1
    last_ix = len(state.repeaters) - 1
    if last_ix >= 0:
        repeater = state.repeaters[last_ix]
        count = repeater_count(repeater, state)
        if token.reverse:
            value = token.base + count - repeater.value - 1
        else:
            value = token.base + repeater.value

        if token.parent:
            parent_ix = max(0, last_ix - token.parent)
            if parent_ix != last_ix:
                value += count * state.repeaters[parent_ix].value

    return str(value).zfill(token.size)
