"""Tests for the cms-access command-line interface."""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from cms_access_control.cli.main import cli


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_file(runner: CliRunner, tmp_path: Path) -> Path:
    path = tmp_path / "access.yaml"
    result = runner.invoke(cli, ["init", "-o", str(path)])
    assert result.exit_code == 0
    return path


class TestVersionAndInit:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "cms-access-control" in result.output

    def test_init_writes_loadable_yaml(self, config_file: Path) -> None:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        assert data["version"] == "1"
        assert len(data["roles"]) == 4
        assert len(data["permissions"]) == 37


class TestValidate:
    def test_valid_config(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["validate", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "All 4 roles valid" in result.output

    def test_invalid_yaml(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("roles: [unclosed", encoding="utf-8")
        result = runner.invoke(cli, ["validate", "-c", str(path)])
        assert result.exit_code == 2

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["validate", "-c", str(tmp_path / "nope.yaml")])
        assert result.exit_code != 0


class TestDecisionCommands:
    def test_check_allowed(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli,
            ["check", "--role", "editor", "--resource", "articles", "--action", "update", "-c", str(config_file)],
        )
        assert result.exit_code == 0
        assert "ALLOWED" in result.output

    def test_check_denied_strict(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "check",
                "--role",
                "editor",
                "--resource",
                "articles",
                "--action",
                "delete",
                "--strict",
                "-c",
                str(config_file),
            ],
        )
        assert result.exit_code == 1
        assert "DENIED" in result.output
        assert "Strict mode" in result.output

    def test_check_uses_defaults_without_config(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["check", "-r", "viewer", "--resource", "articles", "-a", "read"])
        assert result.exit_code == 0

    def test_check_invalid_context(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            result = runner.invoke(
                cli,
                ["check", "-r", "viewer", "--resource", "articles", "-a", "read", "--context", "{bad"],
            )
        assert result.exit_code == 2

    def test_page(self, runner: CliRunner, config_file: Path) -> None:
        allowed = runner.invoke(cli, ["page", "--role", "admin", "/admin/users", "-c", str(config_file)])
        denied = runner.invoke(cli, ["page", "--role", "viewer", "/admin/users", "-c", str(config_file)])
        assert allowed.exit_code == 0
        assert denied.exit_code == 1

    def test_operation(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli, ["operation", "--role", "editor", "delete_media", "-c", str(config_file)]
        )
        assert result.exit_code == 1
        assert "DENIED" in result.output

    def test_operation_with_context(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "operation",
                "--role",
                "editor",
                "upload_media",
                "--context",
                '{"environment": {"ip": "127.0.0.1"}}',
                "-c",
                str(config_file),
            ],
        )
        assert result.exit_code == 0

    def test_menu(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["menu", "--role", "viewer", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "Dashboard" in result.output
        assert "/admin/roles" not in result.output

    def test_menu_unknown_role(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["menu", "--role", "ghost", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "No accessible menu items" in result.output

    def test_resource(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["resource", "--role", "viewer", "articles", "-c", str(config_file)])
        assert result.exit_code == 0
        assert "read" in result.output
