"""Tests for INI loading, environment overrides and migration."""

import configparser

import pytest

from seedkeeper.exceptions import ConfigurationError
from seedkeeper.storage.config_manager import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "seedkeeper" / "config.ini"


def write_ini(path, **values):
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["[DEFAULT]"] + [f"{key} = {value}" for key, value in values.items()]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, config_file):
        config = ConfigManager(config_file).load_config(environ={})

        assert config.url == ""
        assert config.seeding_multiplier == 10
        assert config.poll_interval == 10.0
        assert config.sweep_interval == 300.0
        assert not config.credentials.is_complete
        assert not config_file.exists()

    def test_environment_only(self, config_file):
        environ = {
            "QBITTORRENT_URL": "http://qb:8080/",
            "QBITTORRENT_USERNAME": "admin",
            "QBITTORRENT_PASSWORD": "secret",
            "SEEDING_TIME_MULTIPLIER": "5",
            "QBITTORRENT_ANIME_SAVE_PATH": "/anime",
        }

        config = ConfigManager(config_file).load_config(environ=environ)

        assert config.url == "http://qb:8080"
        assert config.credentials.is_complete
        assert config.seeding_multiplier == 5
        assert config.save_path_for("anime") == "/anime"

    def test_environment_overrides_file_and_cli_overrides_both(self, config_file):
        write_ini(config_file, url="http://file:1", username="file-user", password="p")
        environ = {"QBITTORRENT_URL": "http://env:2", "QBITTORRENT_USERNAME": "  "}

        manager = ConfigManager(config_file)
        config = manager.load_config(environ=environ)
        assert config.url == "http://env:2"
        # Blank environment values do not override
        assert config.username == "file-user"

        config = ConfigManager(config_file).load_config(
            cli_options={"url": "http://cli:3"}, environ=environ
        )
        assert config.url == "http://cli:3"

    def test_invalid_multiplier_falls_back(self, config_file):
        write_ini(config_file, seeding_multiplier="ten")
        config = ConfigManager(config_file).load_config(environ={})
        assert config.seeding_multiplier == 10

    def test_bad_float_is_configuration_error(self, config_file):
        write_ini(config_file, poll_interval="soon")
        with pytest.raises(ConfigurationError, match="poll_interval"):
            ConfigManager(config_file).load_config(environ={})

    def test_validation_failure_is_configuration_error(self, config_file):
        with pytest.raises(ConfigurationError, match="validation failed"):
            ConfigManager(config_file).load_config(
                environ={"QBITTORRENT_URL": "ftp://qb"}
            )

    def test_config_path_is_directory(self, config_file):
        config = ConfigManager(config_file).load_config(environ={})
        assert config.config_path == str(config_file.parent)


class TestSaveAndMigrate:
    def test_save_new_config_writes_all_keys(self, config_file):
        ConfigManager(config_file).save_new_config(
            {"url": "http://qb:8080", "username": "u", "password": "p"}
        )

        parser = configparser.ConfigParser(interpolation=None)
        parser.read(config_file, encoding="utf-8")
        section = parser["DEFAULT"]
        assert section["url"] == "http://qb:8080"
        assert section["seeding_multiplier"] == "10"
        assert "sweep_interval" in section
        assert "config_path" not in section

    def test_saved_config_round_trips(self, config_file):
        manager = ConfigManager(config_file)
        manager.save_new_config(
            {"url": "http://qb:8080", "username": "u", "password": "p%word"}
        )

        config = ConfigManager(config_file).load_config(environ={})

        assert config.password == "p%word"
        assert config.credentials.is_complete

    def test_old_file_is_migrated(self, config_file):
        write_ini(config_file, url="http://qb:8080", username="u", password="p")

        config = ConfigManager(config_file).load_config(environ={})

        content = config_file.read_text(encoding="utf-8")
        assert "tracking_retention_hours" in content
        assert "poll_interval" in content
        assert config.url == "http://qb:8080"
        assert config.tracking_retention_hours == 0.0
