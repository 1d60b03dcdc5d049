"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from seedkeeper.exceptions import ConfigurationError
from seedkeeper.models.config import AppConfig

log = logging.getLogger(__name__)

# Environment variables that override values from the INI file
ENV_OVERRIDES = {
    "QBITTORRENT_URL": "url",
    "QBITTORRENT_USERNAME": "username",
    "QBITTORRENT_PASSWORD": "password",
    "SEEDING_TIME_MULTIPLIER": "seeding_multiplier",
    "QBITTORRENT_DEFAULT_SAVE_PATH": "default_save_path",
    "QBITTORRENT_SERIES_SAVE_PATH": "series_save_path",
    "QBITTORRENT_MOVIES_SAVE_PATH": "movies_save_path",
    "QBITTORRENT_ANIME_SAVE_PATH": "anime_save_path",
}

FLOAT_KEYS = ("request_timeout", "poll_interval", "sweep_interval", "tracking_retention_hours")


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(
        self,
        cli_options: dict[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> AppConfig:
        """
        Loads configuration from the INI file, applies environment and CLI
        overrides, and validates it.

        A missing file is not an error: the environment may provide everything.
        Missing credentials are reported later, by the call that needs them.

        Args:
            cli_options: A dictionary of options provided via the command line.
            environ: Environment to read overrides from (defaults to os.environ).

        Returns:
            A validated AppConfig object.

        Raises:
            ConfigurationError: If the config file cannot be parsed or validation
            fails.
        """
        config_values: dict[str, Any] = {}

        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(f"Error parsing configuration file: {e}") from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_values = self._get_config_as_dict()
        else:
            log.debug(
                f"No configuration file at '{self.config_file_path}', "
                "using environment and defaults."
            )

        config_values.update(self._get_env_overrides(environ))

        if cli_options:
            config_values.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return AppConfig(**config_values, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = AppConfig()
        for key in sorted(AppConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key))
            config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _get_env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, str]:
        environ = os.environ if environ is None else environ
        return {
            key: environ[name]
            for name, key in ENV_OVERRIDES.items()
            if environ.get(name, "").strip()
        }

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        values: dict[str, Any] = {
            "url": section.get("url", ""),
            "username": section.get("username", ""),
            "password": section.get("password", ""),
            # Coerced (with a warning on bad input) by the model
            "seeding_multiplier": section.get("seeding_multiplier", "10"),
            "default_save_path": section.get("default_save_path", ""),
            "series_save_path": section.get("series_save_path", ""),
            "movies_save_path": section.get("movies_save_path", ""),
            "anime_save_path": section.get("anime_save_path", ""),
        }
        for key in FLOAT_KEYS:
            if key not in section:
                continue
            try:
                values[key] = section.getfloat(key)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for '{key}' in configuration file: {e}"
                ) from e
        return values

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = AppConfig()
        config_section = self._parser["DEFAULT"]
        needs_saving = False

        for key in sorted(AppConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = str(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
