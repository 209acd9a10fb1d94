"""
Logging Factory

Creates and configures logger instances using struct-based configuration.
Components receive the result as self.logger.
"""

import os
import threading
from typing import Dict, List, Optional

from .interfaces import LoggerInterface, LogBackend, LogLevel
from .rpc_logger import RpcLogger
from .backends.console import ConsoleBackend
from .backends.file import FileBackend
from .structs import LoggingConfig


class LoggerFactory:
    """Logging factory - trust config, fail fast."""

    _cached_loggers: Dict[str, RpcLogger] = {}
    _backends: Optional[List[LogBackend]] = None
    _default_config: Optional[LoggingConfig] = None
    _lock = threading.RLock()

    @classmethod
    def create_logger(cls, name: str, config: Optional[LoggingConfig] = None) -> LoggerInterface:
        """Create or return the cached logger for name."""
        with cls._lock:
            if name in cls._cached_loggers:
                return cls._cached_loggers[name]

            if config is None:
                config = cls._get_default_config()
                backends = cls._get_shared_backends(config)
            else:
                backends = cls._create_backends(config)

            logger = RpcLogger(
                name=name,
                backends=backends,
                default_context=config.default_context
            )
            cls._cached_loggers[name] = logger
            return logger

    @classmethod
    def configure(cls, config: LoggingConfig) -> None:
        """Replace the default configuration; cached loggers are rebuilt on next use."""
        config.validate()
        with cls._lock:
            cls._close_backends()
            cls._cached_loggers.clear()
            cls._default_config = config

    @classmethod
    def get_default_config(cls) -> LoggingConfig:
        return cls._get_default_config()

    @classmethod
    def override_logger(cls, name: str, **overrides) -> bool:
        """
        Override logger configuration at runtime.

        Args:
            name: Logger name to override
            **overrides: Configuration overrides:
                - min_level: Change minimum log level (e.g., "ERROR", "WARNING")
                - enabled: Enable/disable all backends of the logger

        Returns:
            True if logger was found and modified, False otherwise
        """
        with cls._lock:
            logger = cls._cached_loggers.get(name)
            if logger is None:
                return False

            if "min_level" in overrides or "enabled" in overrides:
                # Detach from shared backends before changing them
                logger.backends = cls._create_backends(cls._get_default_config())

            if "min_level" in overrides:
                level = overrides["min_level"]
                level = LogLevel[level.upper()] if isinstance(level, str) else LogLevel(level)
                for backend in logger.backends:
                    backend.min_level = level

            if "enabled" in overrides:
                for backend in logger.backends:
                    backend.enabled = overrides["enabled"]

            return True

    @classmethod
    def clear_cache(cls) -> None:
        with cls._lock:
            cls._close_backends()
            cls._cached_loggers.clear()
            cls._default_config = None

    @classmethod
    def _create_backends(cls, config: LoggingConfig) -> List[LogBackend]:
        backends: List[LogBackend] = []
        if config.console and config.console.enabled:
            backends.append(ConsoleBackend(config.console, 'console'))
        if config.file and config.file.enabled:
            backends.append(FileBackend(config.file, 'file'))
        return backends

    @classmethod
    def _get_shared_backends(cls, config: LoggingConfig) -> List[LogBackend]:
        if cls._backends is None:
            cls._backends = cls._create_backends(config)
        return cls._backends

    @classmethod
    def _close_backends(cls) -> None:
        if cls._backends:
            for backend in cls._backends:
                backend.close()
        cls._backends = None

    @classmethod
    def _get_default_config(cls) -> LoggingConfig:
        if cls._default_config is None:
            environment = os.getenv('ENVIRONMENT', 'dev')
            if environment == 'prod':
                cls._default_config = LoggingConfig.default_production()
            else:
                cls._default_config = LoggingConfig.default_development()
        return cls._default_config


def get_logger(name: str) -> LoggerInterface:
    """Get logger instance."""
    return LoggerFactory.create_logger(name)


def configure_logging(config: LoggingConfig) -> None:
    """Install config as the process-wide logging configuration."""
    LoggerFactory.configure(config)
