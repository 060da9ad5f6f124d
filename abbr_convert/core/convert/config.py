from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml


DEFAULT_VARIABLES: dict[str, str] = {
    "lang": "en",
    "locale": "en-US",
    "charset": "UTF-8",
    "indentation": "\t",
    "newline": "\n",
}


class ConvertConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ConvertConfig:
    text: Union[str, list[str], None] = None
    variables: dict[str, str] = field(default_factory=dict)


def load_config_file(path: str | Path) -> ConvertConfig:
    """Load conversion settings from a YAML file.

    Format:
      text: "single text" | ["item 1", "item 2", ...]
      variables:
        <name>: <value>
    """
    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConvertConfigError(f"config file is not valid YAML: {e}") from e
    if raw is None:
        return ConvertConfig()
    if not isinstance(raw, dict):
        raise ConvertConfigError("config file must be a mapping with optional 'text' and 'variables'")

    unknown = sorted(str(k) for k in raw.keys() if k not in ("text", "variables"))
    if unknown:
        raise ConvertConfigError(f"unknown config keys: {', '.join(unknown)}")

    text = raw.get("text")
    if text is not None and not isinstance(text, str):
        if not isinstance(text, list) or any(not isinstance(x, str) for x in text):
            raise ConvertConfigError("'text' must be a string or a list of strings")

    variables_raw = raw.get("variables") or {}
    if not isinstance(variables_raw, dict):
        raise ConvertConfigError("'variables' must be a mapping of name -> string")

    variables: dict[str, str] = {}
    for k, v in variables_raw.items():
        if not isinstance(k, str) or not k.strip():
            raise ConvertConfigError("variable names must be non-empty strings")
        if not isinstance(v, (str, int, float)) or isinstance(v, bool):
            raise ConvertConfigError(f"variable '{k}' must be a string")
        variables[k.strip()] = str(v)

    return ConvertConfig(text=text, variables=variables)


def merged_variables(overrides: dict[str, str] | None = None) -> dict[str, str]:
    """Return DEFAULT_VARIABLES merged with optional overrides.

    Overrides replace variables of the same name, and may add new ones.
    """
    merged = dict(DEFAULT_VARIABLES)
    if overrides:
        merged.update(overrides)
    return merged


def parse_var_assignments(items: list[str] | None) -> dict[str, str]:
    """Parse ``name=value`` pairs given on the command line."""
    out: dict[str, str] = {}
    for item in items or []:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise ConvertConfigError(f"variable must be given as name=value, got: {item}")
        out[name.strip()] = value
    return out


def load_and_merge(
    config_file: Optional[str],
    *,
    text: Union[str, list[str], None] = None,
    variables: dict[str, str] | None = None,
) -> ConvertConfig:
    """Resolve the effective config: defaults < config file < explicit values."""
    base = load_config_file(config_file) if config_file else ConvertConfig()

    merged = merged_variables(base.variables)
    if variables:
        merged.update(variables)

    return ConvertConfig(text=text if text is not None else base.text, variables=merged)
