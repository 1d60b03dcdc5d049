"""
Pydantic models for application configuration.
Provides validation for all settings loaded from the INI file and environment.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator

log = logging.getLogger(__name__)

DEFAULT_SEEDING_MULTIPLIER = 10
DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_SWEEP_INTERVAL = 300.0

# Category -> fallback folder used when no save path is configured
CATEGORY_FOLDERS = {
    "series": "series",
    "movie": "movies",
    "anime": "anime",
}
DEFAULT_SAVE_ROOT = "/downloads/torrents"


def coerce_multiplier(value: Any) -> int:
    """
    Validates a seeding multiplier, substituting the default for bad input.

    The multiplier must be a positive integer. Anything else is logged and
    replaced with DEFAULT_SEEDING_MULTIPLIER instead of failing.
    """
    try:
        if isinstance(value, bool):
            raise ValueError
        if isinstance(value, float) and not value.is_integer():
            raise ValueError
        multiplier = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        multiplier = 0

    if multiplier <= 0:
        log.warning(
            f"[yellow]Invalid seeding multiplier value: {value!r}. "
            f"Using default value of {DEFAULT_SEEDING_MULTIPLIER}.[/yellow]"
        )
        return DEFAULT_SEEDING_MULTIPLIER
    return multiplier


class Credentials(BaseModel):
    """Immutable connection details for the download client's WebUI."""

    url: str = ""
    username: str = ""
    password: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        frozen = True
        str_strip_whitespace = True

    @field_validator("url")
    @classmethod
    def normalize_url(cls, v: str) -> str:
        """Drops trailing slashes so endpoints can be appended safely."""
        return v.rstrip("/")

    @property
    def is_complete(self) -> bool:
        return bool(self.url and self.username and self.password)


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    # Remote download client
    url: str = ""
    username: str = ""
    password: str = Field("", repr=False)
    request_timeout: float = 30.0

    # Seeding policy and timers
    seeding_multiplier: int = DEFAULT_SEEDING_MULTIPLIER
    poll_interval: float = DEFAULT_POLL_INTERVAL
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL
    tracking_retention_hours: float = 0.0

    # Save locations
    default_save_path: str = ""
    series_save_path: str = ""
    movies_save_path: str = ""
    anime_save_path: str = ""

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Requires an http(s) scheme when a URL is given."""
        v = v.rstrip("/")
        if v and not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got: {v}")
        return v

    @field_validator("seeding_multiplier", mode="before")
    @classmethod
    def validate_multiplier(cls, v: Any) -> int:
        return coerce_multiplier(v)

    @field_validator("poll_interval", "sweep_interval", "request_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Intervals and timeouts must be greater than zero.")
        return v

    @field_validator("tracking_retention_hours")
    @classmethod
    def validate_retention(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Tracking retention cannot be negative (0 disables it).")
        return v

    @property
    def credentials(self) -> Credentials:
        return Credentials(url=self.url, username=self.username, password=self.password)

    def save_path_for(self, category: str | None) -> str:
        """
        Resolves the save path for a download category.

        Known categories use their own path, then the default save path, then a
        folder under /downloads/torrents. Unknown categories use the default.
        """
        key = (category or "").strip().lower()
        if key in CATEGORY_FOLDERS:
            specific = {
                "series": self.series_save_path,
                "movie": self.movies_save_path,
                "anime": self.anime_save_path,
            }[key]
            return (
                specific
                or self.default_save_path
                or f"{DEFAULT_SAVE_ROOT}/{CATEGORY_FOLDERS[key]}"
            )
        return self.default_save_path or f"{DEFAULT_SAVE_ROOT}/default"

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
