"""
Structured Logging

Usage:
    from infrastructure.logging import get_logger

    logger = get_logger('httprpc.executor')
    logger.info("RPC call", url=url, cost_ms=12.5)

    logger.latency("rpc_call", 12.5, method="GET")
"""

from .interfaces import (
    LogLevel,
    LogType,
    LogRecord,
    LogBackend,
    LoggerInterface
)

from .rpc_logger import RpcLogger

from .factory import (
    LoggerFactory,
    get_logger,
    configure_logging
)

from .structs import (
    LoggingConfig,
    BackendConfig,
    ConsoleBackendConfig,
    FileBackendConfig
)

from .backends.console import ConsoleBackend
from .backends.file import FileBackend

__all__ = [
    'LogLevel',
    'LogType',
    'LogRecord',
    'LogBackend',
    'LoggerInterface',

    'RpcLogger',

    'LoggerFactory',
    'get_logger',
    'configure_logging',

    'LoggingConfig',
    'BackendConfig',
    'ConsoleBackendConfig',
    'FileBackendConfig',

    'ConsoleBackend',
    'FileBackend',
]
