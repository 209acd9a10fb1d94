"""
RPC Exception Hierarchy

Errors raised by the invocation dispatch engine. Binding and validation
errors are raised before any network operation; remote and decode errors
surface synchronously or through the failure channel of async calls.
"""

from typing import Any, Dict, Optional


class RpcError(Exception):
    """Base exception for all HTTP-RPC errors."""
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)


# Call-time resolution errors (not retried)
class MissingEndpointConfiguration(RpcError):
    """URL config key could not be resolved and no default URL is declared."""
    def __init__(self, url_key: str) -> None:
        self.url_key = url_key
        super().__init__(f"No URL configured for key {url_key!r}", {"url_key": url_key})


# Binding errors (call never executes)
class UnsupportedParameterType(RpcError):
    """Argument type is outside the binding contract."""
    def __init__(self, parameter: str, value_type: type) -> None:
        self.parameter = parameter
        self.value_type = value_type
        super().__init__(
            f"Unsupported type {value_type.__name__} for parameter {parameter!r}",
            {"parameter": parameter, "type": value_type.__name__}
        )


class FormatRequired(RpcError):
    """Date-valued argument bound without a format string."""
    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(f"Date parameter {parameter!r} requires date_format", {"parameter": parameter})


class ParameterValidationError(RpcError):
    """Argument violates a declared constraint."""
    pass


class ParameterConflictError(RpcError):
    """Flattened body field collides with an explicitly bound field."""
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Parameter key {key!r} is bound more than once", {"key": key})


# Remote errors
class RemoteStatusError(RpcError):
    """Non-success HTTP status."""
    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}" if message else f"HTTP {status_code}",
                         {"status_code": status_code})


class ResponseDecodeError(RpcError):
    """Response payload could not be decoded into the declared type."""
    pass


class TransportError(RpcError):
    """Network connection or timeout failure reported by the transport."""
    pass


# Waiter-side errors
class AsyncTimeout(RpcError):
    """Waiting on an async handle timed out. The handle state is unchanged."""
    pass


class AsyncCancelledError(RpcError):
    """Waited on a cancelled async handle."""
    pass
