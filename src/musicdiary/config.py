"""Central Configuration System for MusicDiary.

This module is the single source of truth for application configuration.
Every other module that needs settings imports from here.

The configuration system supports:
- Multi-source configuration (environment variables > config file > defaults)
- API key lookup (environment > system keyring)
- Graceful degradation when the config file is missing or malformed

Example:
    >>> from musicdiary.config import get_config, get_api_key
    >>>
    >>> cfg = get_config()
    >>> print(cfg.ai.analysis_model)
    >>> print(cfg.storage.data_dir)

Config File Format (YAML):
    ```yaml
    ai:
      mode: enabled  # enabled | disabled
      analysis_model: gemini-2.5-flash
      image_model: gemini-2.5-flash-image
      temperature: 0.8
      timeout_seconds: 60
      max_retries: 2

    storage:
      data_dir: ~/.musicdiary
      storage_key: music_diary_data_v1

    default_language: ja
    debug: false
    verbose: false
    ```
"""

from __future__ import annotations

import functools
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Literal

import keyring
import keyring.errors
import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings

from musicdiary.exceptions import MusicDiaryError

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ConfigError(MusicDiaryError):
    """Base exception for configuration errors."""

    pass


class APIKeyNotFoundError(ConfigError):
    """Raised when the Gemini API key cannot be found in any source."""

    pass


# =============================================================================
# Enums
# =============================================================================


class AIMode(str, Enum):
    """AI feature activation modes.

    Attributes:
        ENABLED: Call Gemini for analysis and image generation.
        DISABLED: Never call Gemini. Every record gets the fallback analysis.
    """

    ENABLED = "enabled"
    DISABLED = "disabled"


# =============================================================================
# Configuration Models
# =============================================================================


class AIConfig(BaseModel):
    """Configuration for the Gemini integration.

    Attributes:
        mode: AI activation mode.
        analysis_model: Model used for the structured emotion analysis.
        image_model: Model used for the abstract artwork.
        temperature: Sampling temperature for the analysis call.
        timeout_seconds: Request timeout reported on timeout errors.
        max_retries: Retry attempts on transient failures.
        retry_base_delay: Base delay for exponential backoff.
    """

    mode: AIMode = Field(default=AIMode.ENABLED, description="AI activation mode.")
    analysis_model: str = Field(
        default="gemini-2.5-flash", description="Model for the emotion analysis."
    )
    image_model: str = Field(
        default="gemini-2.5-flash-image", description="Model for the mood artwork."
    )
    temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    timeout_seconds: int = Field(default=60, ge=5, le=600)
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_base_delay: float = Field(default=1.0, ge=0.0, le=10.0)

    def is_enabled(self) -> bool:
        """Check if AI features are enabled."""
        return self.mode != AIMode.DISABLED


class StorageConfig(BaseModel):
    """Where the diary collection lives on disk.

    Attributes:
        data_dir: Directory holding one JSON file per storage key.
        storage_key: Name of the slot holding the serialized record list.
    """

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".musicdiary")
    storage_key: str = Field(default="music_diary_data_v1", min_length=1)

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        """Expand ~ and resolve path."""
        if isinstance(v, (str, Path)):
            return Path(v).expanduser().resolve()
        return v


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Supports loading from environment variables with the MUSICDIARY_ prefix,
    e.g. ``MUSICDIARY_AI__MODE=disabled`` or ``MUSICDIARY_STORAGE__DATA_DIR=/tmp``.

    Configuration priority (highest wins):
    1. Environment variables (MUSICDIARY_*)
    2. Config file (YAML)
    3. In-code defaults
    """

    ai: AIConfig = Field(default_factory=AIConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    default_language: Literal["ja", "en"] = Field(default="ja")
    debug: bool = Field(default=False)
    verbose: bool = Field(default=False)

    model_config = {
        "env_prefix": "MUSICDIARY_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment wins over values read from the YAML file.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


# =============================================================================
# API Key Management
# =============================================================================


class APIKeyManager:
    """Resolves the Gemini API key.

    Lookup order:
    1. ``GEMINI_API_KEY`` environment variable
    2. ``API_KEY`` environment variable
    3. System keyring (service ``musicdiary``)

    The key is never logged.
    """

    ENV_VAR_NAMES = ("GEMINI_API_KEY", "API_KEY")
    KEYRING_SERVICE = "musicdiary"
    KEYRING_USERNAME = "gemini_api_key"

    def get_key(self) -> SecretStr | None:
        """Return the first key found, wrapped in SecretStr."""
        for name in self.ENV_VAR_NAMES:
            value = os.environ.get(name, "").strip()
            if value:
                return SecretStr(value)

        stored = self._read_from_keyring()
        if stored:
            return SecretStr(stored.strip())
        return None

    def store_key(self, key: str) -> None:
        """Store the key in the system keyring.

        Raises:
            ConfigError: If the key is malformed or the keyring rejects it.
        """
        key = key.strip()
        if not self.validate_key_format(key):
            raise ConfigError("API key has an invalid format")
        try:
            keyring.set_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME, key)
        except keyring.errors.KeyringError as e:
            raise ConfigError(f"Could not store key in keyring: {type(e).__name__}") from e

    def delete_key(self) -> bool:
        """Remove the key from the keyring. Returns False if none was stored."""
        try:
            keyring.delete_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME)
            return True
        except keyring.errors.PasswordDeleteError:
            return False
        except keyring.errors.KeyringError as e:
            raise ConfigError(f"Could not delete key from keyring: {type(e).__name__}") from e

    def validate_key_format(self, key: str) -> bool:
        """Basic shape check. Does not contact the API."""
        if len(key) < 20 or len(key) > 200:
            return False
        return not any(c.isspace() for c in key)

    def _read_from_keyring(self) -> str | None:
        try:
            return keyring.get_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME)
        except keyring.errors.KeyringError as e:
            # No usable backend on this machine.
            logger.debug(f"Keyring access failed: {type(e).__name__}")
            return None


# =============================================================================
# Loading
# =============================================================================


def _default_search_paths(path: Path | None) -> list[Path | None]:
    return [
        path,
        Path("./musicdiary.yaml"),
        Path("./musicdiary.yml"),
        Path.home() / ".musicdiary" / "config.yaml",
    ]


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from file, environment, and defaults.

    If no config file is found, uses defaults only (not an error).
    If the config file is malformed, logs a warning and uses defaults.

    Args:
        path: Optional path to a config file checked before the default locations.

    Returns:
        Fully-populated AppConfig instance.
    """
    config_data: dict[str, Any] = {}

    config_file = next(
        (p for p in _default_search_paths(path) if p is not None and p.exists()),
        None,
    )

    if config_file is not None:
        try:
            loaded = yaml.safe_load(config_file.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                config_data = loaded
            elif loaded is not None:
                logger.warning(f"Config file {config_file} has unexpected format. Using defaults.")
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse config file {config_file}: {e}. Using defaults.")
        except OSError as e:
            logger.warning(
                f"Failed to read config file {config_file}: {type(e).__name__}. Using defaults."
            )

    try:
        return AppConfig(**config_data)
    except Exception as e:
        logger.warning(f"Error parsing config values: {e}. Using defaults.")
        return AppConfig()


@functools.lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the cached configuration singleton."""
    return load_config()


def get_api_key() -> SecretStr:
    """Get the Gemini API key.

    Raises:
        APIKeyNotFoundError: If no API key is configured in any source.
    """
    key = APIKeyManager().get_key()
    if key is None:
        raise APIKeyNotFoundError(
            "No API key found. Set GEMINI_API_KEY or run 'musicdiary config set-key'."
        )
    return key


def reset_config() -> None:
    """Clear the configuration cache (used by tests and --config)."""
    get_config.cache_clear()
