"""
Core Logging Interfaces

Defines lightweight interfaces for structured logging with pluggable
backends. Formatting happens in backends, never in the logger.
"""

import time
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Dict, Optional
from dataclasses import dataclass, field


class LogLevel(IntEnum):
    """Log levels with numeric values for fast comparison."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class LogType(IntEnum):
    """Log types for routing decisions."""
    TEXT = 1      # Regular log messages
    METRIC = 2    # Numeric metrics (latency)


@dataclass
class LogRecord:
    """
    Lightweight log record passed from logger to backends.

    Formatting happens in backends, not here.
    """
    timestamp: float
    level: LogLevel
    log_type: LogType
    logger_name: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    # For metrics (only used when log_type == METRIC)
    metric_name: Optional[str] = None
    metric_value: Optional[float] = None

    correlation_id: Optional[str] = None

    @classmethod
    def create_text(cls, level: LogLevel, logger_name: str, message: str, **context) -> 'LogRecord':
        """Fast factory method for text log records."""
        return cls(
            timestamp=time.time(),
            level=level,
            log_type=LogType.TEXT,
            logger_name=logger_name,
            message=message,
            context=context
        )

    @classmethod
    def create_metric(cls, logger_name: str, metric_name: str, value: float, **tags) -> 'LogRecord':
        """Fast factory method for metric log records."""
        return cls(
            timestamp=time.time(),
            level=LogLevel.INFO,
            log_type=LogType.METRIC,
            logger_name=logger_name,
            message="",
            context=tags,
            metric_name=metric_name,
            metric_value=value
        )


class LogBackend(ABC):
    """
    Abstract base for all logging backends.

    Each backend handles its own formatting and output logic.
    """

    def __init__(self, name: str, min_level: LogLevel = LogLevel.DEBUG):
        self.name = name
        self.min_level = min_level
        self.enabled = True
        self._error_count = 0
        self._max_errors = 10  # Disable after too many failures

    @abstractmethod
    def should_handle(self, record: LogRecord) -> bool:
        """Fast check if this backend should process the record."""
        pass

    @abstractmethod
    def write(self, record: LogRecord) -> None:
        """
        Write log record to backend destination.

        May be called from any thread; implementations serialize their own output.
        """
        pass

    def flush(self) -> None:
        """Flush any buffered data."""
        pass

    def close(self) -> None:
        """Release backend resources."""
        pass

    def disable(self) -> None:
        self.enabled = False

    def enable(self) -> None:
        self.enabled = True
        self._error_count = 0

    def _handle_error(self, error: Exception) -> None:
        """Count backend errors, disabling the backend after too many."""
        self._error_count += 1
        if self._error_count >= self._max_errors:
            self.enabled = False


class LoggerInterface(ABC):
    """
    Interface for the structured logger.

    This is what gets injected into components as self.logger.
    Context is passed as keyword arguments.
    """

    @abstractmethod
    def debug(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def info(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def warning(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def error(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def critical(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def metric(self, name: str, value: float, **tags) -> None:
        """Log metric value."""
        pass

    @abstractmethod
    def latency(self, operation: str, duration_ms: float, **tags) -> None:
        """Log latency metric. Convenience method for timing."""
        pass

    @abstractmethod
    def set_context(self, **context) -> None:
        """Set persistent context for all logs from this logger."""
        pass

    @abstractmethod
    def flush(self) -> None:
        pass
