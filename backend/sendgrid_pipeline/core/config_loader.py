"""
Configuration loader for YAML-based configs.

Handles loading, validation, and caching of global settings, SendGrid
source configurations, mail sink configurations and email post-actions.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config_models import EmailActionConfig, GlobalConfig, SendGridSinkConfig, SourceConfig

logger = logging.getLogger(__name__)


def expand_env(value: Any) -> Any:
    """Expand ${VAR} references in string values, recursing into containers."""
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    return value


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Read a YAML mapping with environment references expanded."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a mapping")
    return expand_env(data)


def load_source_file(path: str | Path) -> SourceConfig:
    """Load a single source configuration from a YAML file."""
    return SourceConfig(**load_yaml(path))


def load_sink_file(path: str | Path) -> SendGridSinkConfig:
    """Load a single mail sink configuration from a YAML file."""
    return SendGridSinkConfig(**load_yaml(path))


def _file_stem(name: str) -> str:
    return name.lower().replace(" ", "_")


class ConfigLoader:
    """
    Loads and manages configuration from YAML files.

    Supports:
    - Global config from global_config.yaml
    - Source configs from sources/*.yaml, keyed by referenceName
    - Mail sink configs from sinks/*.yaml, keyed by referenceName
    - Email post-actions from actions/*.yaml, keyed by file stem
    """

    def __init__(self, config_dir: str | Path | None = None):
        """
        Initialize the config loader.

        Args:
            config_dir: Path to config directory. Defaults to ./config
        """
        if config_dir is None:
            # Default to config dir relative to this file's package
            config_dir = Path(__file__).parent.parent.parent / "config"

        self.config_dir = Path(config_dir)
        self._global_config: GlobalConfig | None = None
        self._source_configs: dict[str, SourceConfig] = {}

    @property
    def sources_dir(self) -> Path:
        return self.config_dir / "sources"

    @property
    def sinks_dir(self) -> Path:
        return self.config_dir / "sinks"

    @property
    def actions_dir(self) -> Path:
        return self.config_dir / "actions"

    @property
    def global_config(self) -> GlobalConfig:
        """Get the global configuration (lazy loaded)."""
        if self._global_config is None:
            self._global_config = self._load_global_config()
        return self._global_config

    def _load_global_config(self) -> GlobalConfig:
        """Load global configuration from YAML file."""
        config_path = self.config_dir / "global_config.yaml"

        if config_path.exists():
            return GlobalConfig(**load_yaml(config_path))

        # Return defaults if no config file exists
        return GlobalConfig()

    # =========================================================================
    # SOURCES
    # =========================================================================

    def get_source_config(self, name: str) -> SourceConfig | None:
        """
        Get configuration for a source.

        Args:
            name: Reference name or file stem of the source

        Returns:
            SourceConfig if found, None otherwise
        """
        if name in self._source_configs:
            return self._source_configs[name]

        config_path = self.sources_dir / f"{_file_stem(name)}.yaml"
        if config_path.exists():
            config = load_source_file(config_path)
        else:
            config = self.load_all_sources().get(name)

        if config:
            self._source_configs[name] = config
        return config

    def list_sources(self) -> list[str]:
        """List the reference names of all source configurations."""
        return sorted(self.load_all_sources())

    def load_all_sources(self) -> dict[str, SourceConfig]:
        """Load all source configurations, skipping unreadable files."""
        if not self.sources_dir.exists():
            return {}

        configs = {}
        for path in sorted(self.sources_dir.glob("*.yaml")):
            try:
                config = load_source_file(path)
            except (OSError, ValueError, yaml.YAMLError, ValidationError) as e:
                logger.warning("Failed to load %s: %s", path, e)
                continue
            configs[config.reference_name] = config
            self._source_configs[config.reference_name] = config

        return configs

    def save_source_config(self, config: SourceConfig) -> Path:
        """Save a source configuration, secrets included, to YAML."""
        self.sources_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.sources_dir / f"{_file_stem(config.reference_name)}.yaml"

        data = config.to_properties(include_secrets=True)
        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        self._source_configs[config.reference_name] = config
        return config_path

    def delete_source_config(self, name: str) -> bool:
        """Delete a source configuration file."""
        config_path = self.sources_dir / f"{_file_stem(name)}.yaml"

        deleted = False
        if config_path.exists():
            config_path.unlink()
            deleted = True

        self._source_configs.pop(name, None)
        return deleted

    # =========================================================================
    # SINKS
    # =========================================================================

    def get_sink_config(self, name: str) -> SendGridSinkConfig | None:
        """
        Get configuration for a mail sink.

        Args:
            name: Reference name or file stem of the sink

        Returns:
            SendGridSinkConfig if found, None otherwise
        """
        config_path = self.sinks_dir / f"{_file_stem(name)}.yaml"
        if config_path.exists():
            return load_sink_file(config_path)
        return self.load_all_sinks().get(name)

    def list_sinks(self) -> list[str]:
        """List the reference names of all sink configurations."""
        return sorted(self.load_all_sinks())

    def load_all_sinks(self) -> dict[str, SendGridSinkConfig]:
        """Load all sink configurations, skipping unreadable files."""
        if not self.sinks_dir.exists():
            return {}

        configs = {}
        for path in sorted(self.sinks_dir.glob("*.yaml")):
            try:
                config = load_sink_file(path)
            except (OSError, ValueError, yaml.YAMLError, ValidationError) as e:
                logger.warning("Failed to load %s: %s", path, e)
                continue
            configs[config.reference_name] = config
        return configs

    # =========================================================================
    # GLOBAL / ACTIONS
    # =========================================================================

    def save_global_config(self, config: GlobalConfig) -> None:
        """Save global configuration to YAML file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.config_dir / "global_config.yaml"

        data = config.model_dump(mode="json", exclude_none=True)
        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        self._global_config = config

    def get_email_action(self, name: str) -> EmailActionConfig | None:
        """Load an email post-action from actions/<name>.yaml."""
        config_path = self.actions_dir / f"{_file_stem(name)}.yaml"
        if not config_path.exists():
            return None
        return EmailActionConfig(**load_yaml(config_path))

    def list_actions(self) -> list[str]:
        if not self.actions_dir.exists():
            return []
        return sorted(path.stem for path in self.actions_dir.glob("*.yaml"))

    def reload(self) -> None:
        """Reload all configurations from disk."""
        self._global_config = None
        self._source_configs = {}
