from __future__ import annotations

from typing import Any, Optional, cast

from abbr_convert.core.errors import TreeValidationError, sort_errors
from abbr_convert.core.tokens import (
    BracketContext,
    BracketToken,
    FieldToken,
    LiteralToken,
    QuoteToken,
    Repeater,
    RepeaterNumberToken,
    RepeaterPlaceholderToken,
    TokenAttribute,
    TokenElement,
    TokenGroup,
    TokenStatement,
    Value,
    VariableToken,
    WhiteSpaceToken,
    iter_statements,
)


ALLOWED_STATEMENT_TYPES: set[str] = {"element", "group"}
ALLOWED_TOKEN_TYPES: set[str] = {
    "literal",
    "field",
    "variable",
    "quote",
    "bracket",
    "repeater_placeholder",
    "repeater_number",
    "whitespace",
}
ALLOWED_BRACKET_CONTEXTS: set[str] = {"attribute", "expression", "group"}


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def validate_tree(doc: dict[str, Any]) -> tuple[Optional[TokenGroup], list[TreeValidationError]]:
    """Validate a token tree document and build the token tree.

    Returns (tree, errors). Tree is None when errors exist.
    """

    file = cast(Optional[str], doc.get("__file__"))
    errors: list[TreeValidationError] = []

    schema_version = doc.get("schema_version")
    if not isinstance(schema_version, str) or not schema_version.strip():
        errors.append(
            TreeValidationError(
                code="E_REQUIRED_FIELD",
                message="schema_version is required and must be a non-empty string",
                file=file,
                path="schema_version",
            )
        )

    abbreviation = doc.get("abbreviation")
    if abbreviation is not None and not isinstance(abbreviation, str):
        errors.append(
            TreeValidationError(
                code="E_INVALID_TYPE",
                message="abbreviation must be a string",
                file=file,
                path="abbreviation",
            )
        )

    raw_tree = doc.get("tree")
    if not isinstance(raw_tree, dict):
        errors.append(
            TreeValidationError(
                code="E_REQUIRED_FIELD",
                message="tree is required and must be an object",
                file=file,
                path="tree",
            )
        )
        return None, sort_errors(errors)

    builder = _TreeBuilder(file)
    tree = builder.group(raw_tree, "tree")
    errors.extend(builder.errors)

    if errors or tree is None:
        return None, sort_errors(errors)
    return tree, []


class _TreeBuilder:
    """Builds token objects from raw mappings, collecting errors instead of stopping."""

    def __init__(self, file: Optional[str]) -> None:
        self.file = file
        self.errors: list[TreeValidationError] = []

    def _error(self, code: str, message: str, path: str) -> None:
        self.errors.append(TreeValidationError(code=code, message=message, file=self.file, path=path))

    def group(self, raw: dict[str, Any], path: str) -> Optional[TokenGroup]:
        elements = raw.get("elements")
        if not isinstance(elements, list):
            self._error("E_REQUIRED_FIELD", "elements is required and must be an array", f"{path}.elements")
            return None

        repeat = self.repeat(raw.get("repeat"), f"{path}.repeat")
        statements = self.statements(elements, f"{path}.elements")
        if statements is None:
            return None
        return TokenGroup(elements=statements, repeat=repeat)

    def statements(self, raw_list: list[Any], path: str) -> Optional[list[TokenStatement]]:
        out: list[TokenStatement] = []
        ok = True
        for i, raw in enumerate(raw_list):
            stmt = self.statement(raw, f"{path}[{i}]")
            if stmt is None:
                ok = False
            else:
                out.append(stmt)
        return out if ok else None

    def statement(self, raw: Any, path: str) -> Optional[TokenStatement]:
        if not isinstance(raw, dict):
            self._error("E_INVALID_TYPE", "statement must be an object", path)
            return None

        stype = raw.get("type", "element")
        if not isinstance(stype, str) or stype not in ALLOWED_STATEMENT_TYPES:
            self._error("E_INVALID_ENUM", f"type must be one of {sorted(ALLOWED_STATEMENT_TYPES)}", f"{path}.type")
            return None

        if stype == "group":
            return self.group(raw, path)
        return self.element(raw, path)

    def element(self, raw: dict[str, Any], path: str) -> Optional[TokenElement]:
        errors_before = len(self.errors)

        name = self.tokens(raw.get("name"), f"{path}.name")
        value = self.tokens(raw.get("value"), f"{path}.value")

        attributes: Optional[list[TokenAttribute]] = None
        raw_attrs = raw.get("attributes")
        if raw_attrs is not None:
            if not isinstance(raw_attrs, list):
                self._error("E_INVALID_TYPE", "attributes must be an array", f"{path}.attributes")
            else:
                attributes = []
                for i, raw_attr in enumerate(raw_attrs):
                    attr = self.attribute(raw_attr, f"{path}.attributes[{i}]")
                    if attr is not None:
                        attributes.append(attr)

        children: Optional[list[TokenStatement]] = []
        raw_children = raw.get("elements")
        if raw_children is not None:
            if not isinstance(raw_children, list):
                self._error("E_INVALID_TYPE", "elements must be an array", f"{path}.elements")
            else:
                children = self.statements(raw_children, f"{path}.elements")

        self_close = raw.get("self_close", False)
        if not isinstance(self_close, bool):
            self._error("E_INVALID_TYPE", "self_close must be a boolean", f"{path}.self_close")

        repeat = self.repeat(raw.get("repeat"), f"{path}.repeat")

        if len(self.errors) != errors_before or children is None:
            return None

        return TokenElement(
            name=name,
            value=value,
            attributes=attributes,
            elements=children,
            repeat=repeat,
            self_close=self_close,
        )

    def attribute(self, raw: Any, path: str) -> Optional[TokenAttribute]:
        if not isinstance(raw, dict):
            self._error("E_INVALID_TYPE", "attribute must be an object", path)
            return None
        return TokenAttribute(
            name=self.tokens(raw.get("name"), f"{path}.name"),
            value=self.tokens(raw.get("value"), f"{path}.value"),
        )

    def repeat(self, raw: Any, path: str) -> Optional[Repeater]:
        if raw is None:
            return None
        if not isinstance(raw, dict):
            self._error("E_INVALID_TYPE", "repeat must be an object", path)
            return None

        count = raw.get("count")
        if count is not None:
            if not _is_int(count):
                self._error("E_INVALID_TYPE", "repeat.count must be an integer", f"{path}.count")
                return None
            if count < 0:
                self._error("E_INVALID_REPEAT_COUNT", f"repeat.count must be >= 0, got {count}", f"{path}.count")
                return None

        value = raw.get("value", 0)
        if not _is_int(value):
            self._error("E_INVALID_TYPE", "repeat.value must be an integer", f"{path}.value")
            return None

        implicit = raw.get("implicit", False)
        if not isinstance(implicit, bool):
            self._error("E_INVALID_TYPE", "repeat.implicit must be a boolean", f"{path}.implicit")
            return None

        return Repeater(count=count, value=value, implicit=implicit)

    def tokens(self, raw: Any, path: str) -> Optional[list[Value]]:
        if raw is None:
            return None
        if isinstance(raw, str):
            return [LiteralToken(raw)]
        if not isinstance(raw, list):
            self._error("E_INVALID_TYPE", "token list must be a string or an array", path)
            return None

        out: list[Value] = []
        for i, item in enumerate(raw):
            token = self.token(item, f"{path}[{i}]")
            if token is not None:
                out.append(token)
        return out

    def token(self, raw: Any, path: str) -> Optional[Value]:
        if isinstance(raw, str):
            return LiteralToken(raw)
        if not isinstance(raw, dict):
            self._error("E_INVALID_TYPE", "token must be a string or an object", path)
            return None

        ttype = raw.get("type")
        if not isinstance(ttype, str) or ttype not in ALLOWED_TOKEN_TYPES:
            self._error("E_INVALID_ENUM", f"token type must be one of {sorted(ALLOWED_TOKEN_TYPES)}", f"{path}.type")
            return None

        if ttype == "literal":
            value = raw.get("value")
            if not isinstance(value, str):
                self._error("E_REQUIRED_FIELD", "literal value is required and must be a string", f"{path}.value")
                return None
            return LiteralToken(value)

        if ttype == "field":
            index = raw.get("index")
            name = raw.get("name", "")
            if index is not None and not _is_int(index):
                self._error("E_INVALID_TYPE", "field index must be an integer", f"{path}.index")
                return None
            if not isinstance(name, str):
                self._error("E_INVALID_TYPE", "field name must be a string", f"{path}.name")
                return None
            return FieldToken(index=index, name=name)

        if ttype == "variable":
            name = raw.get("name")
            if not isinstance(name, str) or not name.strip():
                self._error("E_REQUIRED_FIELD", "variable name is required and must be a non-empty string", f"{path}.name")
                return None
            return VariableToken(name)

        if ttype == "quote":
            single = raw.get("single", False)
            if not isinstance(single, bool):
                self._error("E_INVALID_TYPE", "quote.single must be a boolean", f"{path}.single")
                return None
            return QuoteToken(single=single)

        if ttype == "bracket":
            context = raw.get("context")
            is_open = raw.get("open")
            if not isinstance(context, str) or context not in ALLOWED_BRACKET_CONTEXTS:
                self._error(
                    "E_INVALID_ENUM",
                    f"bracket context must be one of {sorted(ALLOWED_BRACKET_CONTEXTS)}",
                    f"{path}.context",
                )
                return None
            if not isinstance(is_open, bool):
                self._error("E_REQUIRED_FIELD", "bracket.open is required and must be a boolean", f"{path}.open")
                return None
            return BracketToken(context=cast(BracketContext, context), open=is_open)

        if ttype == "repeater_number":
            size = raw.get("size", 1)
            reverse = raw.get("reverse", False)
            base = raw.get("base", 1)
            parent = raw.get("parent", 0)
            if not _is_int(size) or size < 1:
                self._error("E_INVALID_TYPE", "repeater_number.size must be a positive integer", f"{path}.size")
                return None
            if not isinstance(reverse, bool):
                self._error("E_INVALID_TYPE", "repeater_number.reverse must be a boolean", f"{path}.reverse")
                return None
            if not _is_int(base):
                self._error("E_INVALID_TYPE", "repeater_number.base must be an integer", f"{path}.base")
                return None
            if not _is_int(parent) or parent < 0:
                self._error("E_INVALID_TYPE", "repeater_number.parent must be a non-negative integer", f"{path}.parent")
                return None
            return RepeaterNumberToken(size=size, reverse=reverse, base=base, parent=parent)

        if ttype == "repeater_placeholder":
            return RepeaterPlaceholderToken()

        return WhiteSpaceToken()


def summarize_tree(tree: TokenGroup) -> str:
    stats = tree_stats(tree)
    return (
        f"OK: {stats['element_count']} elements, {stats['group_count']} groups, "
        f"{stats['attribute_count']} attributes\n"
        f"Repeats: explicit={stats['explicit_repeats']}, implicit={stats['implicit_repeats']}"
    )


def tree_stats(tree: TokenGroup) -> dict[str, int]:
    stats = {
        "element_count": 0,
        "group_count": 0,
        "attribute_count": 0,
        "explicit_repeats": 0,
        "implicit_repeats": 0,
    }
    for _, stmt in iter_statements(tree):
        if isinstance(stmt, TokenGroup):
            stats["group_count"] += 1
        else:
            stats["element_count"] += 1
            stats["attribute_count"] += len(stmt.attributes or [])
        if stmt.repeat is not None:
            key = "implicit_repeats" if stmt.repeat.implicit else "explicit_repeats"
            stats[key] += 1
    return stats
