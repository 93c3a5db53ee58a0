"""shelfcache Settings Configuration Model.

Settings are read from ``SHELFCACHE_*`` environment variables and may be
loaded from, or saved to, a TOML file.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import toml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shelfcache.shared.constants import CacheDefaults
from shelfcache.shared.errors import create_config_error

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_cache_directory() -> Path:
    return Path.home() / ".cache" / CacheDefaults.DIRECTORY_NAME


class CacheSettings(BaseSettings):
    """Cache configuration.

    This class manages where stores are created and how strictly the
    cache manager reacts to misuse and storage failures.
    """

    model_config = SettingsConfigDict(
        env_prefix=CacheDefaults.ENV_PREFIX,
        env_ignore_empty=True,
        extra="ignore",
    )

    debug: bool = Field(
        default=False,
        description="Fail fast: raise on storage errors and wrong-thread access",
    )
    cache_directory: Path = Field(
        default_factory=_default_cache_directory,
        description="Directory holding one store file per cache manager",
    )
    db_suffix: str = Field(
        default=CacheDefaults.DB_SUFFIX,
        min_length=1,
        description="File suffix of store files",
    )
    drop_on_confinement_violation: bool = Field(
        default=False,
        description="Skip wrong-thread operations instead of running them",
    )
    log_level: str = Field(
        default=CacheDefaults.LOG_LEVEL,
        description="Log level of the shelfcache logger",
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            msg = f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {value!r}"
            raise ValueError(msg)
        return level

    @field_validator("cache_directory")
    @classmethod
    def _expand_cache_directory(cls, value: Path) -> Path:
        return value.expanduser()

    def store_path(self, name: str) -> Path:
        """Return the store file location for a cache manager name."""
        return self.cache_directory / f"{name}{self.db_suffix}"

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> CacheSettings:
        """Load settings from TOML file with environment variable overrides.

        The file may hold the fields at top level or under a ``[cache]`` table.

        Raises:
            FileNotFoundError: If the file does not exist
            ApplicationError: If the file is not valid TOML or holds invalid values
        """
        file_path = Path(file_path)
        if not file_path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        try:
            raw_config = toml.load(file_path)
            section = raw_config.get("cache", raw_config)
            return cls(**section)
        except (toml.TomlDecodeError, ValidationError) as e:
            raise create_config_error(
                f"Invalid configuration file {file_path}: {e}",
                operation="from_toml_file",
                original_error=e,
            ) from e

    def to_toml_file(self, file_path: str | Path) -> None:
        """Save settings to TOML file under a ``[cache]`` table."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json")
        with open(file_path, "w", encoding="utf-8") as f:
            toml.dump({"cache": config_dict}, f)

        logger.debug("Saved settings to %s", file_path)


_settings: CacheSettings | None = None
_settings_lock = threading.Lock()


def get_settings() -> CacheSettings:
    """Return the process default settings, loading them on first use."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        with _settings_lock:
            if _settings is None:
                _settings = CacheSettings()
    return _settings


def reset_settings() -> None:
    """Forget the process default settings (used by tests)."""
    global _settings  # noqa: PLW0603
    _settings = None
