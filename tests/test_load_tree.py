import logging

from abbr_convert.core.errors import TreeLoadError
from abbr_convert.core.io.load_tree import load_tree


def test_load_yaml_success():
    doc = load_tree("examples/list-input.yaml")
    assert doc["schema_version"] == "0.1.0"
    assert isinstance(doc["tree"], dict)
    assert doc["abbreviation"].startswith("ul#nav")
    assert doc["__file__"].endswith("list-input.yaml")


def test_load_json_success(tmp_path):
    p = tmp_path / "tree.json"
    p.write_text('{"schema_version": "0.1.0", "tree": {"elements": []}}', encoding="utf-8")
    doc = load_tree(str(p))
    assert doc["tree"] == {"elements": []}
    assert "abbreviation" not in doc


def test_load_missing_file():
    try:
        load_tree("examples/does-not-exist.yaml")
        assert False, "expected TreeLoadError"
    except TreeLoadError as e:
        assert e.code == "E_FILE_NOT_FOUND"


def test_load_unsupported_format(tmp_path):
    p = tmp_path / "tree.txt"
    p.write_text("hello", encoding="utf-8")
    try:
        load_tree(str(p))
        assert False, "expected TreeLoadError"
    except TreeLoadError as e:
        assert e.code == "E_UNSUPPORTED_FORMAT"


def test_load_broken_json(tmp_path):
    p = tmp_path / "tree.json"
    p.write_text("{nope", encoding="utf-8")
    try:
        load_tree(str(p))
        assert False, "expected TreeLoadError"
    except TreeLoadError as e:
        assert e.code == "E_JSON_PARSE"
        assert str(e).startswith(str(p))


def test_load_top_level_list(tmp_path):
    p = tmp_path / "tree.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    try:
        load_tree(str(p))
        assert False, "expected TreeLoadError"
    except TreeLoadError as e:
        assert e.code == "E_INVALID_TOP_LEVEL"


def test_load_tree_as_bare_statement_list(tmp_path):
    p = tmp_path / "tree.yaml"
    p.write_text('schema_version: "0.1.0"\ntree:\n  - name: ul\n  - name: p\n', encoding="utf-8")
    doc = load_tree(str(p))
    assert doc["tree"] == {"elements": [{"name": "ul"}, {"name": "p"}]}


def test_load_empty_document(tmp_path):
    p = tmp_path / "tree.yaml"
    p.write_text("", encoding="utf-8")
    try:
        load_tree(str(p))
        assert False, "expected TreeLoadError"
    except TreeLoadError as e:
        assert e.code == "E_EMPTY_DOCUMENT"


def test_load_unsupported_schema_major(tmp_path):
    p = tmp_path / "tree.json"
    p.write_text('{"schema_version": "1.0.0", "tree": {"elements": []}}', encoding="utf-8")
    try:
        load_tree(str(p))
        assert False, "expected TreeLoadError"
    except TreeLoadError as e:
        assert e.code == "E_UNSUPPORTED_SCHEMA"
        assert e.path == "schema_version"


def test_load_leaves_bad_schema_type_to_validator(tmp_path):
    p = tmp_path / "tree.yaml"
    p.write_text("schema_version: 1\ntree: {elements: []}\n", encoding="utf-8")
    doc = load_tree(str(p))
    assert doc["schema_version"] == 1


def test_load_drops_unknown_keys_with_warning(tmp_path, caplog):
    p = tmp_path / "tree.yaml"
    p.write_text('schema_version: "0.1.0"\nextra: 1\ntree: {elements: []}\n', encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        doc = load_tree(str(p))
    assert "extra" not in doc
    assert "unknown top-level keys: extra" in caplog.text
