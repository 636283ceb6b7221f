"""Configuration: settings from the environment and rules from YAML."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from route_docs.exceptions import ConfigError


class Settings(BaseSettings):
    """Generator settings loaded from ``ROUTE_DOCS_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTE_DOCS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Grouping
    default_group: str = "general"

    # Example values
    faker_seed: int | None = None

    # Response strategies
    base_url: str = "http://localhost"
    storage_path: Path = Path("storage")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None


RULE_KEYS = ("bindings", "headers", "response_calls")


def load_rules(file_path: Path) -> dict:
    """Read the rules applied to every route (bindings, headers, response calls)."""
    try:
        data = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid rules file {file_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Rules file {file_path} must contain a mapping")

    for key in RULE_KEYS:
        if key in data and not isinstance(data[key], dict):
            raise ConfigError(f"'{key}' in {file_path} must be a mapping")
    return data
