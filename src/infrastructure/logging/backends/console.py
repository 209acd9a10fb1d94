"""
Console Backend

Console output through Python's logging system so existing handlers,
formatters and log management tools keep working.
"""

import logging
from typing import Dict

from ..interfaces import LogBackend, LogRecord, LogLevel, LogType
from ..structs import ConsoleBackendConfig


class ConsoleBackend(LogBackend):
    """
    Console logging backend.

    Uses Python's standard logging for full compatibility with existing
    console handlers and formatters.
    """

    def __init__(self, config: ConsoleBackendConfig, name: str = "console"):
        if not isinstance(config, ConsoleBackendConfig):
            raise TypeError(f"Expected ConsoleBackendConfig, got {type(config)}")

        super().__init__(name, LogLevel[config.min_level.upper()])

        self.config = config
        self.include_context = config.include_context
        self.max_message_length = config.max_message_length
        self.max_value_length = config.max_value_length
        self.enabled = config.enabled

        # Cache for Python loggers (one per logger name)
        self._py_loggers: Dict[str, logging.Logger] = {}

        if self.enabled:
            self._ensure_python_logging_configured()

    def should_handle(self, record: LogRecord) -> bool:
        if not self.enabled:
            return False
        return record.level >= self.min_level

    def write(self, record: LogRecord) -> None:
        py_logger = self._get_python_logger(record.logger_name)
        py_logger.log(self._convert_level(record.level), self._format_message(record))

    def _ensure_python_logging_configured(self) -> None:
        root_logger = logging.getLogger()
        if not root_logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter('%(levelname)-8s %(name)-20s %(message)s'))
            py_level = self._convert_level(self.min_level)
            console_handler.setLevel(py_level)
            root_logger.setLevel(py_level)
            root_logger.addHandler(console_handler)

    def _get_python_logger(self, name: str) -> logging.Logger:
        if name not in self._py_loggers:
            self._py_loggers[name] = logging.getLogger(name)
        return self._py_loggers[name]

    @staticmethod
    def _convert_level(level: LogLevel) -> int:
        return int(level)

    def _format_message(self, record: LogRecord) -> str:
        if record.log_type == LogType.METRIC:
            message = f"{record.metric_name}={record.metric_value}"
        else:
            message = record.message

        if len(message) > self.max_message_length:
            message = message[:self.max_message_length] + "..."

        if self.include_context and record.context:
            context_parts = []
            for key, value in record.context.items():
                value_str = str(value)
                if len(value_str) > self.max_value_length:
                    value_str = value_str[:self.max_value_length] + "..."
                context_parts.append(f"{key}={value_str}")
            message += f" | {', '.join(context_parts)}"

        if record.correlation_id:
            message += f" | correlation_id={record.correlation_id}"

        if record.log_type != LogType.TEXT:
            message = f"[{record.log_type.name}] {message}"

        return message

    def set_level(self, level: LogLevel) -> None:
        self.min_level = level
