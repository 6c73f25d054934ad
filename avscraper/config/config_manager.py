"""Configuration manager for loading and validating settings."""

import copy
import os
import yaml
import logging
from dataclasses import fields
from pathlib import Path
from typing import Dict, Any, Optional, List

from ..models.config import (
    DetectionConfig,
    EngineConfig,
    LoggingSettings,
    NormalizerConfig,
    OrchestratorConfig,
    ProxyConfig,
    RateLimitConfig,
    RetryConfig,
)
from ..utils.error_handler import ConfigurationError
from ..utils.proxy_manager import system_proxy_urls


class ConfigManager:
    """Manages engine configuration from YAML files and environment variables."""

    SECTION_TYPES = {
        'rate_limit': RateLimitConfig,
        'proxy': ProxyConfig,
        'anti_bot': DetectionConfig,
        'http': RetryConfig,
        'orchestrator': OrchestratorConfig,
        'normalizer': NormalizerConfig,
        'logging': LoggingSettings,
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_file: Path to the configuration file. If None, uses default locations.
        """
        self.logger = logging.getLogger(__name__)
        self.config_file = config_file or self._find_config_file()
        self._config_data: Optional[Dict[str, Any]] = None
        self._config: Optional[EngineConfig] = None

    def _find_config_file(self) -> str:
        """Find the configuration file in default locations."""
        possible_paths = [
            os.getenv('CONFIG_FILE'),
            'config/config.yaml',
            'config/config.yml',
            os.path.expanduser('~/.avscraper/config.yaml')
        ]

        for path in possible_paths:
            if path and Path(path).exists():
                self.logger.info(f"Found config file: {path}")
                return path

        # Return default path even if it doesn't exist
        return 'config/config.yaml'

    def load_config(self) -> Dict[str, Any]:
        """
        Load configuration from file and environment variables.

        Returns:
            Dictionary containing all configuration data

        Raises:
            ConfigurationError: If the file exists but is not a YAML mapping
        """
        if self._config_data is not None:
            return self._config_data

        config_path = Path(self.config_file)

        if not config_path.exists():
            self.logger.warning(f"Config file not found: {config_path}, using defaults")
            self._config_data = {}
        else:
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in config file {config_path}: {e}") from e

            if not isinstance(data, dict):
                raise ConfigurationError(f"Config file {config_path} must contain a mapping")

            self._config_data = data
            self.logger.info(f"Loaded config from: {config_path}")

        self._merge_defaults(self._config_data, self._get_default_config())

        # Override with environment variables
        self._apply_env_overrides()

        return self._config_data

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values."""
        defaults = EngineConfig()
        return {
            name: {f.name: copy.deepcopy(getattr(getattr(defaults, name), f.name))
                   for f in fields(section_type)}
            for name, section_type in self.SECTION_TYPES.items()
        }

    def _merge_defaults(self, target: Dict[str, Any], defaults: Dict[str, Any]) -> None:
        """Recursively merge default configuration values without overwriting user-defined settings."""
        for key, default_value in defaults.items():
            if key not in target:
                target[key] = copy.deepcopy(default_value)
            else:
                current_value = target[key]
                if isinstance(default_value, dict) and isinstance(current_value, dict) and key != 'priority':
                    self._merge_defaults(current_value, default_value)

    def _apply_env_overrides(self):
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            'AVSCRAPER_LOG_LEVEL': ['logging', 'level'],
            'AVSCRAPER_RPS': ['rate_limit', 'requests_per_second'],
            'AVSCRAPER_BURST': ['rate_limit', 'burst_size'],
            'AVSCRAPER_MAX_RETRIES': ['http', 'max_retries'],
            'AVSCRAPER_TIMEOUT': ['http', 'timeout'],
            'AVSCRAPER_PROXIES': ['proxy', 'proxies'],
            'AVSCRAPER_STRATEGY': ['orchestrator', 'strategy'],
        }

        for env_var, config_path in env_mappings.items():
            value = os.getenv(env_var)
            if value is None:
                continue

            # Convert string values to appropriate types
            if env_var == 'AVSCRAPER_MAX_RETRIES':
                try:
                    value = int(value)
                except ValueError:
                    self.logger.warning(f"Invalid integer value for {env_var}: {value}")
                    continue
            elif env_var in ('AVSCRAPER_RPS', 'AVSCRAPER_BURST', 'AVSCRAPER_TIMEOUT'):
                try:
                    value = float(value)
                except ValueError:
                    self.logger.warning(f"Invalid number for {env_var}: {value}")
                    continue
            elif env_var == 'AVSCRAPER_PROXIES':
                value = [v.strip() for v in value.split(',') if v.strip()]
                self._set_nested_value(self._config_data, ['proxy', 'enabled'], bool(value))

            self._set_nested_value(self._config_data, config_path, value)
            self.logger.debug(f"Applied env override: {env_var}")

    def _set_nested_value(self, data: Dict[str, Any], path: List[str], value: Any):
        """Set a nested value in the configuration dictionary."""
        current = data
        for key in path[:-1]:
            if key not in current or not isinstance(current[key], dict):
                current[key] = {}
            current = current[key]
        current[path[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-separated key.

        Args:
            key: Dot-separated key (e.g., 'rate_limit.requests_per_second')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if self._config_data is None:
            self.load_config()

        current = self._config_data
        try:
            for k in key.split('.'):
                current = current[k]
            return current
        except (KeyError, TypeError):
            return default

    def get_config_data(self) -> Dict[str, Any]:
        if self._config_data is None:
            self.load_config()
        return self._config_data or {}

    def load_engine_config(self) -> EngineConfig:
        """
        Get the configuration as an EngineConfig object.

        Returns:
            EngineConfig with every section populated

        Raises:
            ConfigurationError: If a section holds invalid values
        """
        if self._config is not None:
            return self._config

        data = self.get_config_data()
        sections = {}
        for name, section_type in self.SECTION_TYPES.items():
            section = data.get(name) or {}
            known = {f.name for f in fields(section_type)}
            unknown = set(section) - known
            if unknown:
                self.logger.warning(f"Ignoring unknown keys in '{name}': {sorted(unknown)}")
            try:
                sections[name] = section_type(**{k: v for k, v in section.items() if k in known})
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid '{name}' configuration: {e}") from e

        self._config = EngineConfig(**sections)
        return self._config

    def validate_config(self) -> List[str]:
        """
        Validate the configuration and return any errors.

        Returns:
            List of validation error messages
        """
        from ..scrapers.registry import ADAPTER_REGISTRY

        try:
            config = self.load_engine_config()
        except ConfigurationError as e:
            return [str(e)]

        errors = []
        for name in config.orchestrator.adapters:
            if name not in ADAPTER_REGISTRY:
                errors.append(f"Unknown adapter: {name}")

        for fmt, names in config.orchestrator.priority.items():
            for name in names:
                if name not in ADAPTER_REGISTRY:
                    errors.append(f"Unknown adapter in '{fmt}' priority list: {name}")

        if config.proxy.enabled and not config.proxy.proxies and not (
            config.proxy.use_system_proxy and system_proxy_urls()
        ):
            errors.append("Proxy pool is enabled but no proxies are configured")

        return errors

    def save_config(self, path: Optional[str] = None) -> None:
        """Write the current configuration data as YAML."""
        target = Path(path or self.config_file)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.get_config_data(), f, default_flow_style=False, allow_unicode=True)
        self.logger.info(f"Saved config to: {target}")
