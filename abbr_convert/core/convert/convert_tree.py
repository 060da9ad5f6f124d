from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, Mapping, Optional, cast

import yaml

from abbr_convert.core.convert.state import ConvertState, TextSource
from abbr_convert.core.convert.stringify import repeater_count, stringify
from abbr_convert.core.model import (
    Abbreviation,
    AbbreviationAttribute,
    AbbreviationNode,
    AttributeType,
    TokenValue,
)
from abbr_convert.core.tokens import (
    FieldToken,
    QuoteToken,
    Repeater,
    TokenAttribute,
    TokenElement,
    TokenGroup,
    TokenStatement,
    Value,
    is_bracket,
    is_group,
    is_quote,
)


logger = logging.getLogger(__name__)


def convert(
    tree: TokenGroup,
    *,
    text: TextSource = None,
    variables: Optional[Mapping[str, Optional[str]]] = None,
) -> Abbreviation:
    """Convert a token tree into a simplified, unrolled node tree.

    - repeated statements are expanded into sibling copies
    - attribute names/values are normalized (implied, boolean, quoted, expression)
    - values are stringified, keeping indexed fields as separate entries

    ``text`` feeds implicit repeaters (one item per copy) and ``$#`` placeholders;
    ``variables`` resolves variable references. Nothing here raises for a
    well-formed tree: missing data degrades to best-effort output.
    """

    state = ConvertState(text=text, variables=variables)
    return Abbreviation(children=_convert_group(tree, state))


def _convert_statement(node: TokenStatement, state: ConvertState) -> list[AbbreviationNode]:
    if node.repeat is None:
        if is_group(node):
            return _convert_group(node, state)  # type: ignore[arg-type]
        return [_convert_element(node, state, node.repeat)]  # type: ignore[arg-type]

    # Node is repeated: expand a copy per iteration, each under its own
    # repeater snapshot. The token itself is never mutated.
    original = node.repeat
    count = repeater_count(original, state)
    result: list[AbbreviationNode] = []

    state.repeaters.append(original)
    logger.debug("expanding repeater count=%s implicit=%s", count, original.implicit)

    for i in range(count):
        repeat = replace(original, value=i)
        state.repeaters[-1] = repeat

        if is_group(node):
            items = _convert_group(node, state)  # type: ignore[arg-type]
        else:
            items = [_convert_element(node, state, repeat)]  # type: ignore[arg-type]

        if repeat.implicit and not state.inserted and items:
            # Implicit repeater without text placeholders inside: put the text
            # into the deepest node of this copy
            insert_text(deepest_node(items[-1]), state.get_text(repeat.value))

        result.extend(items)

    state.repeaters.pop()

    if original.implicit:
        if not state.inserted:
            logger.debug("inserted implicit repeater text into %d copies", count)
        state.inserted = True

    return result


def _convert_element(node: TokenElement, state: ConvertState, repeat: Optional[Repeater]) -> AbbreviationNode:
    children: list[AbbreviationNode] = []
    for child in node.elements:
        children.extend(_convert_statement(child, state))

    attributes: Optional[list[AbbreviationAttribute]] = None
    if node.attributes is not None:
        attributes = [_convert_attribute(attr, state) for attr in node.attributes]

    return AbbreviationNode(
        name=stringify_name(node.name, state) if node.name else None,
        value=stringify_value(node.value, state) if node.value else None,
        attributes=attributes,
        children=children,
        repeat=repeat,
        self_closing=node.self_close,
    )


def _convert_group(node: TokenGroup, state: ConvertState) -> list[AbbreviationNode]:
    result: list[AbbreviationNode] = []
    for child in node.elements:
        result.extend(_convert_statement(child, state))
    return result


def _convert_attribute(node: TokenAttribute, state: ConvertState) -> AbbreviationAttribute:
    value_type: AttributeType = "raw"
    value: Optional[list[TokenValue]] = None
    name = stringify_name(node.name, state) if node.name else None

    implied = bool(name) and name[0] == "!"  # type: ignore[index]
    is_boolean = bool(name) and name[-1] == "."  # type: ignore[index]

    if node.value is not None:
        tokens = list(node.value)

        if tokens and is_quote(tokens[0]):
            # Quoted value: drop the quotes but remember the quote kind
            quote = cast(QuoteToken, tokens.pop(0))
            if tokens and is_quote(tokens[-1]):
                tokens.pop()
            else:
                logger.warning("attribute %r: unmatched quote in value", name)
            value_type = "singleQuote" if quote.single else "doubleQuote"
        elif tokens and is_bracket(tokens[0], "expression", True):
            value_type = "expression"
            tokens.pop(0)
            if tokens and is_bracket(tokens[-1], "expression", False):
                tokens.pop()
            else:
                logger.warning("attribute %r: unmatched expression bracket in value", name)

        value = stringify_value(tokens, state)

    if implied or is_boolean:
        name = name[1 if implied else 0 : -1 if is_boolean else None]  # type: ignore[index]

    return AbbreviationAttribute(
        name=name,
        value=value,
        boolean=is_boolean,
        implied=implied,
        value_type=value_type,
    )


def stringify_name(tokens: list[Value], state: ConvertState) -> str:
    """Concatenate rendered tokens; names never carry fields."""
    return "".join(stringify(token, state) for token in tokens)


def stringify_value(tokens: list[Value], state: ConvertState) -> list[TokenValue]:
    """Render tokens into text runs, keeping indexed fields as standalone entries.

    Fields are preserved so a downstream renderer can map them to its own
    tab-stop syntax (or drop them when the editor has none).
    """

    result: list[TokenValue] = []
    buf = ""
    for token in tokens:
        if isinstance(token, FieldToken) and token.index is not None:
            if buf:
                result.append(buf)
                buf = ""
            result.append(token)
        else:
            buf += stringify(token, state)

    if buf:
        result.append(buf)

    return result


def deepest_node(node: AbbreviationNode) -> AbbreviationNode:
    while node.children:
        node = node.children[-1]
    return node


def insert_text(node: AbbreviationNode, text: str) -> None:
    if node.value:
        last = node.value[-1]
        if isinstance(last, str):
            node.value[-1] = last + text
        else:
            node.value.append(text)
    else:
        node.value = [text]


def abbreviation_to_dict(abbr: Abbreviation) -> dict[str, Any]:
    """Plain dict/list form of a node tree (for YAML/JSON output)."""
    return {"children": [_node_to_dict(n) for n in abbr.children]}


def dump_abbreviation_yaml(abbr: Abbreviation, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(abbreviation_to_dict(abbr), f, sort_keys=False, default_flow_style=False, allow_unicode=True)


def dump_abbreviation_json(abbr: Abbreviation, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(abbreviation_to_dict(abbr), f, indent=2, ensure_ascii=False)
        f.write("\n")


def _node_to_dict(node: AbbreviationNode) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if node.name is not None:
        out["name"] = node.name
    if node.value is not None:
        out["value"] = _value_to_list(node.value)
    if node.attributes is not None:
        out["attributes"] = [
            {
                "name": a.name,
                "value": _value_to_list(a.value) if a.value is not None else None,
                "boolean": a.boolean,
                "implied": a.implied,
                "value_type": a.value_type,
            }
            for a in node.attributes
        ]
    if node.repeat is not None:
        out["repeat"] = {
            "count": node.repeat.count,
            "value": node.repeat.value,
            "implicit": node.repeat.implicit,
        }
    out["self_closing"] = node.self_closing
    out["children"] = [_node_to_dict(c) for c in node.children]
    return out


def _value_to_list(value: list[TokenValue]) -> list[Any]:
    out: list[Any] = []
    for item in value:
        if isinstance(item, FieldToken):
            out.append({"field": item.index, "name": item.name})
        else:
            out.append(item)
    return out
