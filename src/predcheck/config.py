# SPDX-License-Identifier: MIT
"""Configuration management for the reference credibility checker."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_BATCH_DELAY_SECONDS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_CONTACT_EMAIL,
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_MATCHER_BASE_URL,
    DEFAULT_MATCHER_MODEL,
    DEFAULT_MATCHER_TIMEOUT,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_PREFILTER_TOP_N,
    DEFAULT_SERVICE_TIMEOUT,
    DEFAULT_WATCHLIST_TIMEOUT,
    CROSSREF_BASE_URL,
    OPENALEX_BASE_URL,
    PUBMED_EUTILS_BASE_URL,
)


ENV_PREFIX = "PREDCHECK_"
MATCHER_API_KEY_ENV = "GROQ_API_KEY"
SERVICE_NAMES = ("openalex", "crossref", "pubmed", "matcher")


class AnalysisConfig(BaseModel):
    """Configuration for batch analysis."""

    batch_size: int = Field(DEFAULT_BATCH_SIZE, ge=1, description="References per batch")
    batch_delay_seconds: float = Field(
        DEFAULT_BATCH_DELAY_SECONDS, ge=0.0, description="Pause between batches"
    )
    match_threshold: int = Field(
        DEFAULT_MATCH_THRESHOLD, ge=0, le=100, description="Matcher confidence needed"
    )
    prefilter_top_n: int = Field(
        DEFAULT_PREFILTER_TOP_N, ge=1, description="Candidates sent to the matcher"
    )
    deadline_seconds: float | None = Field(
        None, gt=0, description="Stop scheduling batches after this many seconds"
    )


class ServiceConfig(BaseModel):
    """Configuration for one external service."""

    enabled: bool = Field(True, description="Whether the service is consulted")
    timeout: float = Field(DEFAULT_SERVICE_TIMEOUT, gt=0, description="Seconds per call")
    email: str = Field(DEFAULT_CONTACT_EMAIL, description="Polite-pool contact address")
    base_url: str | None = Field(None, description="API root")
    api_key: str | None = Field(None, description="API key, if the service needs one")
    model: str | None = Field(None, description="Model name (matcher only)")


class StorageConfig(BaseModel):
    """Configuration for the SQLite database."""

    db_path: str = Field(
        ".predcheck/predcheck.db", description="Database for watchlists and analyses"
    )
    lookup_timeout: float = Field(
        DEFAULT_WATCHLIST_TIMEOUT, gt=0, description="Seconds per watchlist read"
    )


class OutputConfig(BaseModel):
    """Configuration for output formatting."""

    format: str = Field(DEFAULT_OUTPUT_FORMAT, description="Output format: text, json")
    verbose: bool = Field(False, description="Include per-reference details")


class AppConfig(BaseModel):
    """Main application configuration."""

    analysis: AnalysisConfig = AnalysisConfig()
    services: dict[str, ServiceConfig] = Field(
        default_factory=dict, description="External service configurations"
    )
    storage: StorageConfig = StorageConfig()
    output: OutputConfig = OutputConfig()

    def service(self, name: str) -> ServiceConfig:
        """Return the configuration of ``name``, defaults if unset."""
        return self.services.get(name) or ServiceConfig()


class ConfigManager:
    """Manages application configuration from files and environment."""

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path or self._find_config_file()
        self._config: AppConfig | None = None

    def _find_config_file(self) -> Path | None:
        """Find configuration file in standard locations."""
        search_paths = [
            Path.cwd() / ".predcheck" / "config.yaml",  # Local project config
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "predcheck" / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def load_config(self) -> AppConfig:
        """Load configuration from file or create default."""
        if self._config is not None:
            return self._config

        default_config = self.get_default_config()

        if self.config_path and self.config_path.exists():
            with open(self.config_path, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}

            config_data = self._deep_merge_configs(default_config, file_config)
        else:
            config_data = default_config

        config_data = self._apply_env_overrides(config_data)

        self._config = AppConfig(**config_data)
        return self._config

    def _deep_merge_configs(
        self, default_config: dict[str, Any], override_config: dict[str, Any]
    ) -> dict[str, Any]:
        """Deep merge override config into default config.

        The ``services`` section is merged per service, so an override such as
        ``services: {pubmed: {enabled: false}}`` keeps the remaining defaults
        of that service.

        Example:
            Default: {"services": {"pubmed": {"enabled": True, "timeout": 15}}}
            Override: {"services": {"pubmed": {"enabled": False}}}
            Result: {"services": {"pubmed": {"enabled": False, "timeout": 15}}}
        """
        result = copy.deepcopy(default_config)

        for key, value in override_config.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                if key == "services":
                    for service_name, service_config in value.items():
                        if service_name in result[key] and isinstance(
                            service_config, dict
                        ):
                            result[key][service_name].update(service_config)
                        else:
                            result[key][service_name] = service_config
                else:
                    result[key].update(value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config.

        Examples: ``PREDCHECK_OUTPUT_VERBOSE=true``,
        ``PREDCHECK_ANALYSIS_BATCH_SIZE=5``,
        ``PREDCHECK_SERVICES_MATCHER_API_KEY=...``
        """
        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            config_key = key[len(ENV_PREFIX) :].lower()
            section, _, field = config_key.partition("_")
            if not field:
                continue

            if section == "services":
                service_name, _, service_field = field.partition("_")
                if service_name in SERVICE_NAMES and service_field:
                    services = config_data.setdefault("services", {})
                    services.setdefault(service_name, {})[service_field] = value
            elif section in ("analysis", "storage", "output"):
                config_data.setdefault(section, {})[field] = value

        matcher = config_data.setdefault("services", {}).setdefault("matcher", {})
        if not matcher.get("api_key") and os.environ.get(MATCHER_API_KEY_ENV):
            matcher["api_key"] = os.environ[MATCHER_API_KEY_ENV]

        return config_data

    def show_config(self) -> str:
        """Show the complete configuration in YAML format, API keys masked."""
        config_dict = self.load_config().model_dump()
        for service in config_dict["services"].values():
            if service.get("api_key"):
                service["api_key"] = "***"
        return yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    def get_default_config(self) -> dict[str, Any]:
        """Get default configuration with every service enabled."""
        services: dict[str, dict[str, Any]] = {
            "openalex": {"base_url": OPENALEX_BASE_URL},
            "crossref": {"base_url": CROSSREF_BASE_URL},
            "pubmed": {"base_url": PUBMED_EUTILS_BASE_URL},
            "matcher": {
                "base_url": DEFAULT_MATCHER_BASE_URL,
                "model": DEFAULT_MATCHER_MODEL,
                "timeout": DEFAULT_MATCHER_TIMEOUT,
            },
        }
        for service in services.values():
            service.setdefault("enabled", True)
            service.setdefault("timeout", DEFAULT_SERVICE_TIMEOUT)
            service.setdefault("email", DEFAULT_CONTACT_EMAIL)

        return {
            "analysis": {
                "batch_size": DEFAULT_BATCH_SIZE,
                "batch_delay_seconds": DEFAULT_BATCH_DELAY_SECONDS,
                "match_threshold": DEFAULT_MATCH_THRESHOLD,
                "prefilter_top_n": DEFAULT_PREFILTER_TOP_N,
                "deadline_seconds": None,
            },
            "services": services,
            "storage": {
                "db_path": ".predcheck/predcheck.db",
                "lookup_timeout": DEFAULT_WATCHLIST_TIMEOUT,
            },
            "output": {"format": DEFAULT_OUTPUT_FORMAT, "verbose": False},
        }

    def create_default_config(self, output_path: Path) -> None:
        """Write the default configuration to ``output_path``.

        Raises:
            ValueError: If ``output_path`` already exists
        """
        if output_path.exists():
            raise ValueError(f"Configuration file already exists: {output_path}")

        default_config = self.get_default_config()

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            yaml.dump(default_config, f, default_flow_style=False, sort_keys=False)


# Global config manager instance with factory pattern
_config_manager_instance: ConfigManager | None = None


def get_config_manager(config_path: Path | None = None) -> ConfigManager:
    """Get or create the global config manager instance.

    Args:
        config_path: Optional path to config file (only used on first call)

    Returns:
        The global ConfigManager instance
    """
    global _config_manager_instance
    if _config_manager_instance is None:
        _config_manager_instance = ConfigManager(config_path)
    return _config_manager_instance


def set_config_manager(manager: ConfigManager) -> None:
    """Set the config manager instance (primarily for testing)."""
    global _config_manager_instance
    _config_manager_instance = manager


def reset_config_manager() -> None:
    """Reset the config manager instance (primarily for testing)."""
    global _config_manager_instance
    _config_manager_instance = None
