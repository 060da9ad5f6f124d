from __future__ import annotations

from typing import Iterator, Mapping, Optional

from abbr_convert.core.errors import TreeLintError, sort_errors
from abbr_convert.core.tokens import (
    FieldToken,
    QuoteToken,
    TokenElement,
    TokenGroup,
    Value,
    VariableToken,
    is_bracket,
    iter_statements,
)


# Lint rules (on top of document validation). Conversion never fails on these;
# they flag trees whose output is probably not what the author meant:
# - L_UNMATCHED_QUOTE: quoted attribute value without a closing quote
# - L_UNMATCHED_EXPRESSION: expression attribute value without a closing bracket
# - L_MULTIPLE_IMPLICIT_REPEAT: only one implicit repeater per tree receives text
# - L_EMPTY_REPEAT: explicit repeat count 0 (converted as a single copy)
# - L_UNKNOWN_VARIABLE: variable reference not found in the known variables


def lint_tree(
    tree: TokenGroup,
    *,
    file: Optional[str] = None,
    variables: Optional[Mapping[str, str]] = None,
) -> list[TreeLintError]:
    """Lint a validated token tree.

    ``variables`` enables L_UNKNOWN_VARIABLE; without it variable references are not checked.
    """

    errors: list[TreeLintError] = []
    implicit_paths: list[str] = []

    for path, stmt in iter_statements(tree):
        repeat = stmt.repeat
        if repeat is not None:
            if repeat.implicit:
                implicit_paths.append(path)
            elif repeat.count == 0:
                errors.append(
                    TreeLintError(
                        code="L_EMPTY_REPEAT",
                        message="repeat count 0 produces a single copy",
                        file=file,
                        path=f"{path}.repeat.count",
                    )
                )

        if not isinstance(stmt, TokenElement):
            continue

        for i, attr in enumerate(stmt.attributes or []):
            attr_path = f"{path}.attributes[{i}].value"
            tokens = attr.value or []
            if not tokens:
                continue
            first = tokens[0]
            if isinstance(first, QuoteToken):
                last = tokens[-1] if len(tokens) > 1 else None
                if not isinstance(last, QuoteToken):
                    errors.append(
                        TreeLintError(
                            code="L_UNMATCHED_QUOTE",
                            message="quoted value has no closing quote",
                            file=file,
                            path=attr_path,
                        )
                    )
            elif is_bracket(first, "expression", True):
                if len(tokens) < 2 or not is_bracket(tokens[-1], "expression", False):
                    errors.append(
                        TreeLintError(
                            code="L_UNMATCHED_EXPRESSION",
                            message="expression value has no closing bracket",
                            file=file,
                            path=attr_path,
                        )
                    )

        if variables is not None:
            for token_path, name in _variable_refs(stmt, path):
                if name not in variables:
                    errors.append(
                        TreeLintError(
                            code="L_UNKNOWN_VARIABLE",
                            message=f"unknown variable: {name} (rendered as its name)",
                            file=file,
                            path=token_path,
                        )
                    )

    for path in implicit_paths[1:]:
        errors.append(
            TreeLintError(
                code="L_MULTIPLE_IMPLICIT_REPEAT",
                message=f"only one implicit repeater receives text; also found at {implicit_paths[0]}",
                file=file,
                path=f"{path}.repeat",
            )
        )

    return sort_errors(errors)


def _variable_refs(elem: TokenElement, path: str) -> Iterator[tuple[str, str]]:
    lists: list[tuple[str, Optional[list[Value]]]] = [
        (f"{path}.name", elem.name),
        (f"{path}.value", elem.value),
    ]
    for i, attr in enumerate(elem.attributes or []):
        lists.append((f"{path}.attributes[{i}].name", attr.name))
        lists.append((f"{path}.attributes[{i}].value", attr.value))

    for list_path, tokens in lists:
        for ti, token in enumerate(tokens or []):
            if isinstance(token, VariableToken):
                yield f"{list_path}[{ti}]", token.name
            elif isinstance(token, FieldToken) and token.index is None and token.name:
                yield f"{list_path}[{ti}]", token.name
