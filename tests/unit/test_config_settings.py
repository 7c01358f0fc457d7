"""Tests for Storyloom settings loading."""

import json

import pytest

from storyloom.config import (
    StoryloomSettings,
    clear_settings_cache,
    get_settings,
    get_settings_for_cli,
    set_settings,
)
from storyloom.config.template import generate_config_template, write_config_template
from storyloom.exceptions import ConfigurationError


class TestStoryloomSettings:
    """Test settings fields and validators."""

    def test_defaults(self, tmp_path):
        settings = StoryloomSettings(database_path=tmp_path / "s.db")
        assert settings.database_foreign_keys is True
        assert settings.mcp_server_name == "storyloom"
        assert settings.log_format == "console"

    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORYLOOM_DATABASE_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("STORYLOOM_LOG_LEVEL", "info")

        settings = StoryloomSettings()
        assert settings.database_path == (tmp_path / "env.db").resolve()
        assert settings.log_level == "INFO"

    def test_path_expansion(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORY_DIR", str(tmp_path))
        settings = StoryloomSettings(database_path="$STORY_DIR/x.db")
        assert settings.database_path == (tmp_path / "x.db").resolve()

    def test_rejects_collection_paths(self):
        with pytest.raises(ValueError):
            StoryloomSettings(database_path=["a", "b"])


class TestConfigFiles:
    """Test loading settings from files."""

    def test_yaml_file(self, tmp_path):
        config = tmp_path / "storyloom.yaml"
        config.write_text(
            f"database_path: {tmp_path / 'yaml.db'}\nlog_format: JSON\n",
            encoding="utf-8",
        )
        settings = StoryloomSettings.from_file(config)
        assert settings.database_path.name == "yaml.db"
        assert settings.log_format == "json"

    def test_json_file(self, tmp_path):
        config = tmp_path / "storyloom.json"
        config.write_text(json.dumps({"mcp_server_name": "loom"}), encoding="utf-8")
        assert StoryloomSettings.from_file(config).mcp_server_name == "loom"

    def test_wrong_key_is_named(self, tmp_path):
        config = tmp_path / "storyloom.yaml"
        config.write_text("db_path: x.db\n", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            StoryloomSettings.from_file(config)
        assert "database_path" in exc_info.value.hint

    def test_unsupported_format(self, tmp_path):
        config = tmp_path / "storyloom.ini"
        config.write_text("[db]\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            StoryloomSettings.from_file(config)

    def test_later_files_win_and_cli_args_win_over_files(self, tmp_path):
        first = tmp_path / "a.yaml"
        second = tmp_path / "b.yaml"
        first.write_text("app_name: first\nmcp_server_name: first\n", encoding="utf-8")
        second.write_text("app_name: second\n", encoding="utf-8")

        settings = StoryloomSettings.from_multiple_sources(
            config_files=[first, second],
            cli_args={"mcp_server_name": "cli"},
        )
        assert settings.app_name == "second"
        assert settings.mcp_server_name == "cli"


class TestGlobalSettings:
    """Test the cached global settings."""

    def test_set_and_get(self, tmp_path):
        settings = StoryloomSettings(database_path=tmp_path / "g.db")
        set_settings(settings)
        assert get_settings() is settings

    def test_clear_cache_rereads_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORYLOOM_APP_NAME", "fresh")
        clear_settings_cache()
        assert get_settings().app_name == "fresh"

    def test_cli_overrides_skip_none(self, tmp_path):
        base = StoryloomSettings(database_path=tmp_path / "base.db")
        set_settings(base)

        assert get_settings_for_cli(cli_overrides={"database_path": None}) is base
        overridden = get_settings_for_cli(
            cli_overrides={"database_path": tmp_path / "cli.db"}
        )
        assert overridden.database_path == (tmp_path / "cli.db").resolve()

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_settings_for_cli(config_file=tmp_path / "missing.yaml")


class TestConfigTemplate:
    """Test the generated configuration template."""

    def test_template_mentions_settings(self):
        template = generate_config_template()
        assert "database_path" in template
        assert "log_level" in template

    def test_write_refuses_to_overwrite(self, tmp_path):
        output = tmp_path / "config.yaml"
        write_config_template(output)
        with pytest.raises(FileExistsError):
            write_config_template(output)
        write_config_template(output, force=True)
        assert output.exists()

    def test_template_loads_as_settings(self, tmp_path):
        output = write_config_template(tmp_path / "config.yaml")
        settings = StoryloomSettings.from_file(output)
        assert settings.database_path.name == "storyloom.db"
