"""Unit tests for config commands."""

import json
from pathlib import Path

from gravekeeper.cli.main import app
from gravekeeper.core.config import Settings, load_settings
from typer.testing import CliRunner

runner = CliRunner()


class TestConfigInit:
    """Tests for config init."""

    def test_writes_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"

        result = runner.invoke(app, ["--config", str(path), "config", "init"])

        assert result.exit_code == 0
        assert load_settings(path) == Settings()

    def test_keeps_existing_without_force(self, config_file: Path, settings: Settings) -> None:
        """An existing file is left alone unless --force is given."""
        result = runner.invoke(app, ["--config", str(config_file), "config", "init"])

        assert result.exit_code == 0
        assert "already exists" in result.stdout
        assert load_settings(config_file) == settings

    def test_force_overwrites(self, config_file: Path) -> None:
        result = runner.invoke(app, ["--config", str(config_file), "config", "init", "--force"])

        assert result.exit_code == 0
        assert load_settings(config_file) == Settings()


class TestConfigShow:
    """Tests for config show."""

    def test_json_shows_effective_paths(self, config_file: Path, graveyard_dir: Path) -> None:
        result = runner.invoke(app, ["--config", str(config_file), "config", "show", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["graveyard_dir"] == str(graveyard_dir)
        assert data["stale_days"] == 180

    def test_toml_output(self, config_file: Path) -> None:
        result = runner.invoke(app, ["--config", str(config_file), "config", "show"])

        assert result.exit_code == 0
        assert "stale_days = 180" in result.stdout
