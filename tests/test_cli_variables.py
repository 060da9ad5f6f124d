from typer.testing import CliRunner

from abbr_convert.cli import app


runner = CliRunner()


def test_variables_lists_defaults():
    r = runner.invoke(app, ["variables"])
    assert r.exit_code == 0, r.stdout + r.stderr
    assert "Variables:" in r.stdout
    assert '- charset: "UTF-8"' in r.stdout


def test_variables_accepts_config_file():
    r = runner.invoke(app, ["variables", "--config", "examples/config.yaml"])
    assert r.exit_code == 0, r.stdout + r.stderr
    assert '- author: "Jane"' in r.stdout
    assert '- charset: "latin-1"' in r.stdout


def test_variables_invalid_config():
    r = runner.invoke(app, ["variables", "--config", "examples/config-invalid.yaml"])
    assert r.exit_code == 2
    assert "E_CONFIG_INVALID" in (r.stdout + r.stderr)


def test_variables_malformed_yaml_config():
    r = runner.invoke(app, ["variables", "--config", "examples/config-broken.yaml"])
    assert r.exit_code == 2
    assert "E_CONFIG_INVALID" in (r.stdout + r.stderr)
    assert "not valid YAML" in (r.stdout + r.stderr)
