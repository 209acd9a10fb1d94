from .rpc import (
    RpcError,
    MissingEndpointConfiguration,
    UnsupportedParameterType,
    FormatRequired,
    ParameterValidationError,
    ParameterConflictError,
    RemoteStatusError,
    ResponseDecodeError,
    TransportError,
    AsyncTimeout,
    AsyncCancelledError,
)
from .system import ConfigurationError

__all__ = [
    "RpcError",
    "ConfigurationError",
    "MissingEndpointConfiguration",
    "UnsupportedParameterType",
    "FormatRequired",
    "ParameterValidationError",
    "ParameterConflictError",
    "RemoteStatusError",
    "ResponseDecodeError",
    "TransportError",
    "AsyncTimeout",
    "AsyncCancelledError",
]
