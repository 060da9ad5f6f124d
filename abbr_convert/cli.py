from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from abbr_convert.core.convert.config import ConvertConfig, ConvertConfigError, load_and_merge, parse_var_assignments
from abbr_convert.core.convert.convert_tree import convert, dump_abbreviation_json, dump_abbreviation_yaml
from abbr_convert.core.errors import AbbrError, ConfigError, TreeLoadError, sort_errors
from abbr_convert.core.io.load_tree import load_tree
from abbr_convert.core.lint.lint_tree import lint_tree
from abbr_convert.core.model import Abbreviation, AbbreviationNode, TokenValue
from abbr_convert.core.tokens import FieldToken, TokenGroup
from abbr_convert.core.validate.validate_tree import summarize_tree, tree_stats, validate_tree

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log conversion details to stderr"),
) -> None:
    """Abbreviation token tree converter."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(message)s")


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a token tree file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate a token tree document."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    def _emit_json(ok: bool, *, exit_code: int, errors: list[AbbrError], summary: dict | None) -> None:
        payload = {
            "tool": "abbr",
            "command": "validate",
            "ok": ok,
            "error_count": len(errors),
            "errors": [e.to_item() for e in errors],
            "summary": summary,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        doc = load_tree(path)
    except TreeLoadError as e:
        if format == "json":
            _emit_json(False, exit_code=1, errors=[e], summary=None)
        _print_errors([e])
        raise typer.Exit(code=1)

    tree, errors = validate_tree(doc)
    if errors or tree is None:
        if format == "json":
            _emit_json(False, exit_code=2, errors=list(errors), summary=None)
        _print_errors(list(errors))
        raise typer.Exit(code=2)

    if format == "text":
        typer.echo(summarize_tree(tree))
        return

    _emit_json(True, exit_code=0, errors=[], summary=tree_stats(tree))


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a token tree file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    config: Optional[str] = typer.Option(None, "--config", help="YAML file with text/variables"),
) -> None:
    """Lint a token tree (rules beyond document validation)."""
    _check_format(format, "E_LINT_UNKNOWN_FORMAT")

    def _emit_json(ok: bool, errors: list[AbbrError], exit_code: int) -> None:
        payload = {
            "tool": "abbr",
            "command": "lint",
            "ok": ok,
            "error_count": len(errors),
            "errors": [e.to_item() for e in errors],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        doc = load_tree(path)
    except TreeLoadError as e:
        if format == "json":
            _emit_json(False, [e], 1)
        _print_errors([e])
        raise typer.Exit(code=1)

    cfg = _load_config(config, file=doc.get("__file__"))

    tree, validation_errors = validate_tree(doc)
    errors: list[AbbrError] = list(validation_errors)
    if tree is not None:
        errors.extend(lint_tree(tree, file=doc.get("__file__"), variables=cfg.variables))

    if format == "text":
        if errors:
            _print_errors(errors)
            raise typer.Exit(code=2)
        typer.echo("OK: lint passed")
        return

    if errors:
        _emit_json(False, errors, 2)
    _emit_json(True, [], 0)


@app.command("convert")
def convert_cmd(
    path: str = typer.Argument(..., help="Path to a token tree file (.yaml/.yml/.json)"),
    out: str = typer.Option(..., "--out", help="Path to write the expanded node tree"),
    text: Optional[list[str]] = typer.Option(None, "--text", help="Text item for implicit repeaters (repeatable)"),
    text_file: Optional[str] = typer.Option(None, "--text-file", help="File with one text item per line"),
    var: Optional[list[str]] = typer.Option(None, "--var", help="Variable as name=value (repeatable)"),
    config: Optional[str] = typer.Option(None, "--config", help="YAML file with text/variables"),
    format: str = typer.Option("yaml", "--format", help="Output format: yaml|json"),
) -> None:
    """Expand a token tree into a node tree."""
    if format not in ("yaml", "json"):
        _print_errors(
            [
                ConfigError(
                    code="E_CONVERT_UNKNOWN_FORMAT",
                    message=f"unknown format: {format} (choose one of: yaml, json)",
                    file=None,
                    path="format",
                )
            ]
        )
        raise typer.Exit(code=2)

    tree, doc = _load_valid_tree(path)
    cfg = _load_config(config, file=doc.get("__file__"), text=text, text_file=text_file, var=var)

    abbr = convert(tree, text=cfg.text, variables=cfg.variables)

    p = Path(out)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    if format == "json":
        dump_abbreviation_json(abbr, str(p))
    else:
        dump_abbreviation_yaml(abbr, str(p))
    typer.echo(f"OK: wrote {len(abbr.children)} top-level nodes to {out}")


@app.command("show")
def show(
    path: str = typer.Argument(..., help="Path to a token tree file (.yaml/.yml/.json)"),
    text: Optional[list[str]] = typer.Option(None, "--text", help="Text item for implicit repeaters (repeatable)"),
    text_file: Optional[str] = typer.Option(None, "--text-file", help="File with one text item per line"),
    var: Optional[list[str]] = typer.Option(None, "--var", help="Variable as name=value (repeatable)"),
    config: Optional[str] = typer.Option(None, "--config", help="YAML file with text/variables"),
) -> None:
    """Print the expanded node tree."""
    tree, doc = _load_valid_tree(path)
    cfg = _load_config(config, file=doc.get("__file__"), text=text, text_file=text_file, var=var)

    abbr = convert(tree, text=cfg.text, variables=cfg.variables)
    console.print(render_tree(abbr, label=doc.get("abbreviation") or Path(path).name))


@app.command("variables")
def variables(
    config: Optional[str] = typer.Option(None, "--config", help="YAML file to add/override variables"),
) -> None:
    """List the variables available to conversion."""
    cfg = _load_config(config, file=None)

    typer.echo("Variables:")
    for name in sorted(cfg.variables.keys()):
        typer.echo(f"- {name}: {json.dumps(cfg.variables[name])}")


def render_tree(abbr: Abbreviation, *, label: str) -> Tree:
    root = Tree(escape(label))
    for node in abbr.children:
        _add_node(root, node)
    return root


def _add_node(parent: Tree, node: AbbreviationNode) -> None:
    branch = parent.add(_node_label(node))
    for child in node.children:
        _add_node(branch, child)


def _node_label(node: AbbreviationNode) -> str:
    parts = [f"[bold]{escape(node.name)}[/bold]" if node.name else "[dim]<text>[/dim]"]
    for attr in node.attributes or []:
        name = attr.name or ""
        if attr.implied:
            name = "!" + name
        if attr.boolean or attr.value is None:
            parts.append(f"[cyan]{escape(name)}[/cyan]")
        else:
            parts.append(f"[cyan]{escape(name)}[/cyan]={escape(json.dumps(_value_text(attr.value)))}")
    if node.value:
        parts.append(escape(json.dumps(_value_text(node.value))))
    if node.repeat is not None:
        parts.append(f"[magenta]#{node.repeat.value}[/magenta]")
    if node.self_closing:
        parts.append("/")
    return " ".join(parts)


def _value_text(value: list[TokenValue]) -> str:
    out: list[str] = []
    for item in value:
        if isinstance(item, FieldToken):
            out.append(f"${{{item.index}:{item.name}}}" if item.name else f"${{{item.index}}}")
        else:
            out.append(item)
    return "".join(out)


def _load_valid_tree(path: str) -> tuple[TokenGroup, dict[str, Any]]:
    try:
        doc = load_tree(path)
    except TreeLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    tree, errors = validate_tree(doc)
    if errors or tree is None:
        _print_errors(list(errors))
        raise typer.Exit(code=2)
    return tree, doc


def _load_config(
    config_file: Optional[str],
    *,
    file: Optional[str],
    text: Optional[list[str]] = None,
    text_file: Optional[str] = None,
    var: Optional[list[str]] = None,
) -> ConvertConfig:
    texts: Optional[list[str]] = list(text) if text else None
    if text_file:
        try:
            lines = Path(text_file).read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            _print_errors(
                [
                    ConfigError(
                        code="E_TEXT_FILE_NOT_FOUND",
                        message=f"text file not found: {text_file}",
                        file=file,
                        path="text_file",
                    )
                ]
            )
            raise typer.Exit(code=1)
        texts = (texts or []) + lines

    try:
        overrides = parse_var_assignments(var)
        return load_and_merge(config_file, text=texts, variables=overrides)
    except FileNotFoundError:
        _print_errors(
            [
                ConfigError(
                    code="E_CONFIG_FILE_NOT_FOUND",
                    message=f"config file not found: {config_file}",
                    file=file,
                    path="config",
                )
            ]
        )
        raise typer.Exit(code=1)
    except ConvertConfigError as e:
        _print_errors(
            [
                ConfigError(
                    code="E_CONFIG_INVALID",
                    message=str(e),
                    file=file,
                    path="config",
                )
            ]
        )
        raise typer.Exit(code=2)


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        err = ConfigError(
            code=code,
            message=f"unknown format: {format} (choose one of: text, json)",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _print_errors(errors: list[AbbrError]) -> None:
    for e in sort_errors(errors):
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="abbr")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
