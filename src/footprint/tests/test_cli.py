"""Tests for CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from footprint.cli import app


@pytest.fixture
def cli_runner():
    """Return a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Create a footprint.toml with a User -> Role association."""
    config = tmp_path / "footprint.toml"
    config.write_text(
        f"""
[database]
backend = "sqlite"
path = "{(tmp_path / 'data.db').as_posix()}"

[logging]
level = "WARNING"

[models.User]
fields = {{ name = "str", roles = {{ ref = "Role", cardinality = "array" }} }}

[models.Role]
collection = "roles"
fields = {{ name = "str" }}
"""
    )
    return config


def _invoke(cli_runner: CliRunner, config: Path, *args: str):
    return cli_runner.invoke(app, ["--config", str(config), *args])


def _json(result) -> object:
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_models_command(cli_runner: CliRunner, config_file: Path):
    """Test models lists configured models and references."""
    result = _invoke(cli_runner, config_file, "models")
    assert result.exit_code == 0
    assert "User" in result.stdout
    assert "roles" in result.stdout
    assert "Role" in result.stdout


def test_create_and_find(cli_runner: CliRunner, config_file: Path):
    created = _json(_invoke(cli_runner, config_file, "create", "User", '{"_id": "u1", "name": "ada"}'))
    assert created == {"_id": "u1", "name": "ada"}

    # Non-JSON criteria are taken as a literal id
    assert _json(_invoke(cli_runner, config_file, "find", "User", "u1")) == created
    assert _json(_invoke(cli_runner, config_file, "find", "User", '{"name": "ada"}')) == [created]


def test_find_limit(cli_runner: CliRunner, config_file: Path):
    _invoke(cli_runner, config_file, "create", "User", '[{"name": "a"}, {"name": "b"}]')
    records = _json(_invoke(cli_runner, config_file, "find", "User", "--limit", "1"))
    assert len(records) == 1


def test_update_and_destroy(cli_runner: CliRunner, config_file: Path):
    _invoke(cli_runner, config_file, "create", "User", '{"_id": "u1", "name": "ada"}')

    updated = _json(_invoke(cli_runner, config_file, "update", "User", "u1", '{"name": "grace"}'))
    assert updated["name"] == "grace"

    destroyed = _json(_invoke(cli_runner, config_file, "destroy", "User", '{"name": "grace"}'))
    assert [r["_id"] for r in destroyed] == ["u1"]
    assert _json(_invoke(cli_runner, config_file, "find", "User", "u1")) is None


def test_association_commands(cli_runner: CliRunner, config_file: Path):
    _invoke(cli_runner, config_file, "create", "User", '{"_id": "u1", "name": "ada", "roles": []}')

    role = _json(_invoke(cli_runner, config_file, "assoc-create", "User", "u1", "roles", '{"name": "admin"}'))
    assert role["name"] == "admin"

    roles = _json(_invoke(cli_runner, config_file, "assoc-find", "User", "u1", "roles"))
    assert [r["_id"] for r in roles] == [role["_id"]]

    updated = _json(
        _invoke(cli_runner, config_file, "assoc-update", "User", "u1", "roles", "{}", '{"name": "owner"}')
    )
    assert updated[0]["name"] == "owner"

    removed = _json(
        _invoke(cli_runner, config_file, "assoc-destroy", "User", "u1", "roles", '{"name": "owner"}')
    )
    assert removed == [role["_id"]]
    assert _json(_invoke(cli_runner, config_file, "find", "User", "u1"))["roles"] == []


def test_unknown_model_fails(cli_runner: CliRunner, config_file: Path):
    result = _invoke(cli_runner, config_file, "find", "Missing", "{}")
    assert result.exit_code == 1
    assert "No model found" in result.output


def test_missing_reference_fails(cli_runner: CliRunner, config_file: Path):
    _invoke(cli_runner, config_file, "create", "User", '{"_id": "u1"}')
    result = _invoke(cli_runner, config_file, "assoc-find", "User", "u1", "name")
    assert result.exit_code == 1
    assert "No such reference exists" in result.output


def test_invalid_json_values(cli_runner: CliRunner, config_file: Path):
    result = _invoke(cli_runner, config_file, "create", "User", "{not json")
    assert result.exit_code == 1
    assert "Invalid JSON" in result.output


def test_invalid_config(cli_runner: CliRunner, tmp_path: Path):
    config = tmp_path / "footprint.toml"
    config.write_text("[database\n")
    result = _invoke(cli_runner, config, "models")
    assert result.exit_code == 1
    assert "Invalid TOML" in result.output


def test_non_record_values_fail_cleanly(cli_runner: CliRunner, config_file: Path):
    result = _invoke(cli_runner, config_file, "create", "User", '"x"')
    assert result.exit_code == 1
    assert not isinstance(result.exception, TypeError)
    assert "values must be a mapping" in result.output
