"""
Structured Logger Implementation

Logger with keyword-context records and multiple backends. Dispatch is
synchronous and guarded by a lock: RPC completions are logged from the
reactor thread while synchronous calls log from caller threads.
"""

import threading
from typing import Any, Dict, List

from .interfaces import LoggerInterface, LogBackend, LogRecord, LogLevel


class RpcLogger(LoggerInterface):
    """
    Structured logger dispatching records to its backends.

    Key features:
    - Keyword context on every call
    - Persistent context via set_context
    - Thread-safe dispatch
    """

    def __init__(self, name: str, backends: List[LogBackend], default_context: Dict[str, Any] = None):
        self.name = name
        self.backends = backends

        # Persistent context for all log messages
        self.context = dict(default_context or {})

        self._lock = threading.Lock()

    def _dispatch(self, record: LogRecord) -> None:
        with self._lock:
            for backend in self.backends:
                if backend.enabled and backend.should_handle(record):
                    try:
                        backend.write(record)
                    except Exception as e:
                        # Logging must not fail the caller
                        backend._handle_error(e)

    def _log(self, level: LogLevel, msg: str, **context) -> None:
        full_context = {**self.context, **context}
        correlation_id = full_context.pop('correlation_id', None)

        record = LogRecord.create_text(level, self.name, msg, **full_context)
        record.correlation_id = correlation_id

        self._dispatch(record)

    def debug(self, msg: str, **context) -> None:
        self._log(LogLevel.DEBUG, msg, **context)

    def info(self, msg: str, **context) -> None:
        self._log(LogLevel.INFO, msg, **context)

    def warning(self, msg: str, **context) -> None:
        self._log(LogLevel.WARNING, msg, **context)

    def error(self, msg: str, **context) -> None:
        self._log(LogLevel.ERROR, msg, **context)

    def critical(self, msg: str, **context) -> None:
        self._log(LogLevel.CRITICAL, msg, **context)

    def metric(self, name: str, value: float, **tags) -> None:
        full_tags = {**self.context, **tags}
        correlation_id = full_tags.pop('correlation_id', None)

        record = LogRecord.create_metric(self.name, name, value, **full_tags)
        record.correlation_id = correlation_id
        self._dispatch(record)

    def latency(self, operation: str, duration_ms: float, **tags) -> None:
        self.metric(f"{operation}_latency_ms", duration_ms, **tags)

    def set_context(self, **context) -> None:
        self.context.update(context)

    def flush(self) -> None:
        with self._lock:
            for backend in self.backends:
                try:
                    backend.flush()
                except Exception as e:
                    backend._handle_error(e)

    def close(self) -> None:
        self.flush()
        for backend in self.backends:
            backend.close()
