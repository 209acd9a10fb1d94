"""
File Backend for Persistent Logging

Rotating file logging in text or JSON-lines format with full context
preservation.
"""

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

import msgspec

from ..interfaces import LogBackend, LogRecord, LogLevel, LogType
from ..structs import FileBackendConfig


class FileBackend(LogBackend):
    """
    File logging backend.

    Features:
    - Configurable format (text/JSON)
    - Automatic directory creation
    - Size-based rotation

    Accepts only FileBackendConfig struct for configuration.
    """

    def __init__(self, config: FileBackendConfig, name: str = "file"):
        if not isinstance(config, FileBackendConfig):
            raise TypeError(f"Expected FileBackendConfig, got {type(config)}")

        super().__init__(name, LogLevel[config.min_level.upper()])

        self.config = config
        self.file_path = Path(config.path)
        self.format_type = config.format  # 'text' or 'json'
        self.enabled = config.enabled
        self._encoder = msgspec.json.Encoder(enc_hook=str)

        self._handler = None
        if self.enabled:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            self._handler = RotatingFileHandler(
                self.file_path,
                maxBytes=config.max_size_mb * 1024 * 1024,
                backupCount=config.backup_count,
                encoding="utf-8"
            )

    def should_handle(self, record: LogRecord) -> bool:
        if not self.enabled or self._handler is None:
            return False
        return record.level >= self.min_level

    def write(self, record: LogRecord) -> None:
        if self.format_type == 'json':
            line = self._format_json(record)
        else:
            line = self._format_text(record)

        # handle() takes the handler lock and applies rotation
        self._handler.handle(logging.makeLogRecord({"msg": line, "levelno": int(record.level),
                                                  "levelname": record.level.name}))

    def _format_text(self, record: LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.timestamp).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        if record.log_type == LogType.METRIC:
            message = f"{record.metric_name}={record.metric_value}"
        else:
            message = record.message
        line = f"{timestamp} {record.level.name:<8} {record.logger_name} {message}"
        if record.context:
            line += " | " + ", ".join(f"{k}={v}" for k, v in record.context.items())
        if record.correlation_id:
            line += f" | correlation_id={record.correlation_id}"
        return line

    def _format_json(self, record: LogRecord) -> str:
        payload = {
            "timestamp": record.timestamp,
            "level": record.level.name,
            "type": record.log_type.name,
            "logger": record.logger_name,
            "message": record.message,
            "context": record.context,
        }
        if record.log_type == LogType.METRIC:
            payload["metric_name"] = record.metric_name
            payload["metric_value"] = record.metric_value
        if record.correlation_id:
            payload["correlation_id"] = record.correlation_id
        return self._encoder.encode(payload).decode("utf-8")

    def flush(self) -> None:
        if self._handler is not None:
            self._handler.flush()

    def close(self) -> None:
        if self._handler is not None:
            self._handler.close()
            self._handler = None
