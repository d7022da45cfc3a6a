"""Tests for config CLI commands."""

import pytest
from typer.testing import CliRunner

from flow_automator.cli.exit_codes import ExitCode
from flow_automator.config import load_config
from flow_automator.main import app


runner = CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Point the config and data directories at a temporary directory."""
    monkeypatch.setenv("FLOW_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("FLOW_DATA_DIR", str(tmp_path / "data"))
    return tmp_path


class TestConfigInit:
    """Tests for config init."""

    def test_init_creates_file(self, workspace):
        result = runner.invoke(app, ["config", "init"])

        assert result.exit_code == 0
        assert (workspace / "config" / "config.toml").exists()
        assert (workspace / "data").is_dir()

    def test_init_refuses_overwrite(self, workspace):
        runner.invoke(app, ["config", "init"])

        result = runner.invoke(app, ["config", "init"])
        assert result.exit_code == ExitCode.GENERAL_ERROR

        result = runner.invoke(app, ["config", "init", "--force"])
        assert result.exit_code == 0


class TestConfigSet:
    """Tests for config set."""

    def test_set_value(self, workspace):
        result = runner.invoke(app, ["config", "set", "queue.cooldown_after", "7"])

        assert result.exit_code == 0
        assert load_config(workspace / "config" / "config.toml").queue.cooldown_after == 7

    def test_set_requires_section(self, workspace):
        result = runner.invoke(app, ["config", "set", "cooldown_after", "7"])
        assert result.exit_code == ExitCode.INVALID_ARGUMENT

    def test_set_unknown_section(self, workspace):
        result = runner.invoke(app, ["config", "set", "scheduler.enabled", "true"])
        assert result.exit_code == ExitCode.CONFIGURATION_ERROR


class TestConfigShow:
    """Tests for config show."""

    def test_show_section(self, workspace):
        result = runner.invoke(app, ["config", "show", "queue"])

        assert result.exit_code == 0
        assert "delay_min_ms" in result.output
        assert "endpoint" not in result.output

    def test_show_json(self, workspace):
        runner.invoke(app, ["config", "set", "queue.cooldown_after", "9"])

        result = runner.invoke(app, ["config", "show", "--format", "json"])

        assert result.exit_code == 0
        assert '"cooldown_after": 9' in result.output

    def test_show_unknown_format(self, workspace):
        result = runner.invoke(app, ["config", "show", "--format", "xml"])
        assert result.exit_code == ExitCode.INVALID_ARGUMENT

    def test_show_unknown_section(self, workspace):
        result = runner.invoke(app, ["config", "show", "scheduler"])
        assert result.exit_code == ExitCode.INVALID_ARGUMENT


class TestConfigValidate:
    """Tests for config validate."""

    def test_valid_defaults(self, workspace):
        result = runner.invoke(app, ["config", "validate"])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_invalid_values(self, workspace, monkeypatch):
        monkeypatch.setenv("FLOW_DELAY_MIN_MS", "9000")
        monkeypatch.setenv("FLOW_DELAY_MAX_MS", "1000")

        result = runner.invoke(app, ["config", "validate"])

        assert result.exit_code == ExitCode.CONFIGURATION_ERROR
        assert "queue.delay_max_ms" in result.output
