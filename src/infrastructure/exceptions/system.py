from typing import Optional

from .rpc import RpcError


class ConfigurationError(RpcError):
    """Configuration-specific exception for setup errors."""

    def __init__(self, message: str, setting_name: Optional[str] = None):
        self.setting_name = setting_name
        super().__init__(message, {"setting": setting_name} if setting_name else None)
