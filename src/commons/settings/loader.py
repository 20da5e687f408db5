"""Settings loader with layered JSON files and environment overrides."""

import json
import os
from pathlib import Path
from typing import Any

from src.commons.settings.models import Settings

ENV_PREFIX = "VIDEO_WORKFLOW__"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def coerce_env_value(raw: str) -> Any:
    """Decode JSON lists and objects; leave scalars as text.

    Scalars stay strings so that pydantic converts them per field type
    (``"5"`` to an int field, but a numeric password stays a string).
    """
    if raw.lstrip().startswith(("[", "{")):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw
    return raw


class SettingsLoader:
    """Loads and merges configuration from multiple sources.

    Configuration precedence (highest to lowest):
    1. Environment variables (``VIDEO_WORKFLOW__SECTION__KEY``)
    2. Environment-specific config (``appsettings.{env}.json``)
    3. Base config (``appsettings.json``)
    """

    def __init__(
        self,
        config_dir: Path | None = None,
        environment: str | None = None,
    ) -> None:
        """Initialize the settings loader.

        Args:
            config_dir: Directory containing configuration files.
                       Defaults to 'config' in current working directory.
            environment: Environment name (dev, staging, prod).
                        Defaults to VIDEO_WORKFLOW__APP__ENVIRONMENT or 'dev'.
        """
        self.config_dir = config_dir or Path("config")
        self.environment = environment or os.getenv(
            f"{ENV_PREFIX}APP__ENVIRONMENT", "dev"
        )

    def load(self) -> Settings:
        """Resolve every layer into a Settings instance."""
        layers = [
            self._read_json("appsettings.json"),
            self._read_json(f"appsettings.{self.environment}.json"),
            self._read_env(),
        ]
        config: dict[str, Any] = {}
        for layer in layers:
            config = deep_merge(config, layer)
        return Settings(**config)

    def _read_env(self) -> dict[str, Any]:
        """Collect prefixed environment variables into a nested dict.

        ``VIDEO_WORKFLOW__WORKFLOW__MAX_RETRIES=5`` becomes
        ``{"workflow": {"max_retries": 5}}``.
        """
        overrides: dict[str, Any] = {}
        for key, raw in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            *parents, leaf = key[len(ENV_PREFIX) :].lower().split("__")
            node = overrides
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = coerce_env_value(raw)
        return overrides

    def _read_json(self, filename: str) -> dict[str, Any]:
        path = self.config_dir / filename
        if not path.exists():
            return {}
        with path.open(encoding="utf-8") as f:
            return dict(json.load(f))


# Global settings instance
_settings: Settings | None = None


def get_settings(
    config_dir: Path | None = None,
    environment: str | None = None,
    *,
    reload: bool = False,
) -> Settings:
    """Get or create the global settings instance.

    Args:
        config_dir: Optional config directory override.
        environment: Optional environment override.
        reload: Force reload settings from files.

    Returns:
        Settings instance.
    """
    global _settings  # noqa: PLW0603
    if _settings is None or reload:
        loader = SettingsLoader(config_dir=config_dir, environment=environment)
        _settings = loader.load()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings instance. Used by tests."""
    global _settings  # noqa: PLW0603
    _settings = None
