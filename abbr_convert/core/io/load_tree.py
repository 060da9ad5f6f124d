from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

import yaml

from abbr_convert.core.errors import TreeLoadError


logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_MAJOR = "0"
DOCUMENT_KEYS = ("schema_version", "abbreviation", "tree")

# suffix -> (parse error code, parser)
_PARSERS: dict[str, tuple[str, Callable[[str], Any]]] = {
    ".yaml": ("E_YAML_PARSE", yaml.safe_load),
    ".yml": ("E_YAML_PARSE", yaml.safe_load),
    ".json": ("E_JSON_PARSE", json.loads),
}


def load_tree(path: str) -> dict[str, Any]:
    """Load a token tree document from YAML or JSON.

    Returns ``{schema_version, tree, abbreviation?, __file__}``. The root ``tree``
    may be written either as a group mapping or as a bare list of statements;
    the list form is wrapped as ``{"elements": [...]}``. Everything below the
    root is left to the validator.
    """

    p = Path(path)
    file = str(p)
    if not p.exists():
        raise TreeLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file=file)

    parser = _PARSERS.get(p.suffix.lower())
    if parser is None:
        raise TreeLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message=f"supported formats are {', '.join(sorted(_PARSERS))}",
            file=file,
        )
    parse_code, parse = parser

    try:
        raw_text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TreeLoadError(code="E_FILE_READ", message=str(e), file=file) from e

    try:
        data = parse(raw_text)
    except (yaml.YAMLError, ValueError) as e:
        raise TreeLoadError(code=parse_code, message=str(e), file=file) from e

    return _normalize(data, file)


def _normalize(data: Any, file: str) -> dict[str, Any]:
    if data is None:
        raise TreeLoadError(code="E_EMPTY_DOCUMENT", message="document is empty", file=file)
    if not isinstance(data, dict):
        raise TreeLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=file,
        )

    unknown = sorted(str(k) for k in data if k not in DOCUMENT_KEYS)
    if unknown:
        logger.warning("%s: ignoring unknown top-level keys: %s", file, ", ".join(unknown))

    schema_version = data.get("schema_version")
    if isinstance(schema_version, str) and schema_version.strip():
        major = schema_version.strip().split(".", 1)[0]
        if major != SUPPORTED_SCHEMA_MAJOR:
            raise TreeLoadError(
                code="E_UNSUPPORTED_SCHEMA",
                message=f"schema_version {schema_version} is not supported (expected {SUPPORTED_SCHEMA_MAJOR}.x)",
                file=file,
                path="schema_version",
            )

    tree = data.get("tree")
    if isinstance(tree, list):
        tree = {"elements": tree}

    normalized: dict[str, Any] = {"schema_version": schema_version, "tree": tree}
    if "abbreviation" in data:
        normalized["abbreviation"] = data["abbreviation"]
    normalized["__file__"] = file
    return normalized
