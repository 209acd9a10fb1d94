"""
Configuration Management

YAML-based configuration for HTTP-RPC clients.

Key Features:
- YAML file with ${VAR} / ${VAR:default} environment substitution
- .env loading through python-dotenv
- Dotted-key lookup of endpoint URLs with process-environment fallback
- Typed access to client and logging settings

Usage:
    from config import ConfigManager

    config = ConfigManager()
    url = config.lookup('services.user.url')
    settings = config.get_client_settings()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import msgspec
import yaml
from dotenv import load_dotenv

from infrastructure.exceptions import ConfigurationError
from infrastructure.logging.structs import LoggingConfig
from .property_source import PropertySource, DictPropertySource, EnvironmentPropertySource
from .structs import ClientSettings

ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')


def guess_file_paths(file_name: str) -> List[Path]:
    """Possible locations of a configuration file, in search order."""
    return [
        Path(__file__).parent.parent.parent / file_name,  # Project root
        Path(__file__).parent.parent / file_name,         # src directory
        Path.cwd() / file_name,                           # Current working directory
        Path.home() / file_name,                          # User home directory (fallback)
    ]


class ConfigManager(PropertySource):
    """
    Configuration loaded from config.yaml and the environment.

    Pass `data` to configure from a mapping instead of a file. With neither
    `data` nor `config_path`, the default locations are searched and a
    missing file yields an empty configuration (environment only).
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        data: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
        load_env: bool = True
    ):
        self._logger = logging.getLogger(__name__)
        self._environ = environ if environ is not None else os.environ

        if load_env and environ is None:
            self._load_env_file()

        if data is not None:
            self._config_data = data
        else:
            self._config_data = self._load_yaml_config(Path(config_path) if config_path else None)

        self._yaml_source = DictPropertySource(self._config_data)
        self._env_source = EnvironmentPropertySource(self._environ)

    def _load_env_file(self) -> None:
        for env_path in guess_file_paths('.env'):
            if env_path.exists():
                load_dotenv(dotenv_path=env_path, override=False)
                self._logger.info(f"Loaded environment variables from: {env_path}")
                return
        self._logger.debug("No .env file found - using system environment variables only")

    def _load_yaml_config(self, config_path: Optional[Path]) -> Dict[str, Any]:
        if config_path is not None:
            if not config_path.exists():
                raise ConfigurationError(f"Config file not found: {config_path}", str(config_path))
            candidates = [config_path]
        else:
            candidates = [p for p in guess_file_paths('config.yaml') if p.exists()]

        for path in candidates:
            with open(path, 'r') as f:
                raw_content = f.read()
            try:
                config_data = yaml.safe_load(self._substitute_env_vars(raw_content)) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}", str(path)) from e
            if not isinstance(config_data, dict):
                raise ConfigurationError(f"Top level of {path} must be a mapping", str(path))
            self._logger.info(f"Configuration loaded from: {path}")
            return config_data

        self._logger.debug("No config.yaml found - using environment only")
        return {}

    def _substitute_env_vars(self, content: str) -> str:
        """
        Substitute environment variables in configuration content.

        Supports syntax:
        - ${VAR_NAME} - Environment variable, empty when unset
        - ${VAR_NAME:default} - Optional with default value
        """
        def replace_var(match):
            var_expr = match.group(1)

            if ':' in var_expr:
                var_name, default_value = var_expr.split(':', 1)
                env_value = self._environ.get(var_name.strip())
                if env_value is None:
                    return default_value
                return env_value

            var_name = var_expr.strip()
            env_value = self._environ.get(var_name)
            if env_value is None:
                self._logger.warning(f"Environment variable {var_name} not set - using empty value")
                return ""
            return env_value

        return ENV_VAR_PATTERN.sub(replace_var, content)

    @property
    def config_data(self) -> Dict[str, Any]:
        return self._config_data

    def lookup(self, key: str) -> Optional[str]:
        """Resolve key from config.yaml first, then from the environment."""
        value = self._yaml_source.lookup(key)
        if value:
            return value
        return self._env_source.lookup(key)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.lookup(key)
        return value if value is not None else default

    def get_client_settings(self) -> ClientSettings:
        """Client settings from the `httprpc:` section."""
        section = self._config_data.get('httprpc') or {}
        try:
            settings = msgspec.convert(section, ClientSettings)
            settings.validate()
        except (msgspec.ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid httprpc settings: {e}", 'httprpc') from e
        return settings

    def get_logging_config(self) -> LoggingConfig:
        """Logging configuration from the `logging:` section, or the environment default."""
        section = self._config_data.get('logging')
        if not section:
            if self._environ.get('ENVIRONMENT', 'dev') == 'prod':
                return LoggingConfig.default_production()
            return LoggingConfig.default_development()
        try:
            config = LoggingConfig.from_dict(section)
            config.validate()
        except (msgspec.ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid logging settings: {e}", 'logging') from e
        return config
