from typing import Optional, Dict
from msgspec import Struct

SUCCESS_POLICIES = ("exact", "2xx")


class ClientSettings(Struct, frozen=True):
    """
    HTTP-RPC client settings.

    Attributes:
        base_url: Prefix joined onto relative request URLs ("/users/1")
        timeout: Total request timeout in seconds
        connect_timeout: Connection timeout in seconds
        max_concurrent: Maximum concurrent connections per host
        success_policy: "exact" accepts only HTTP 200, "2xx" accepts any 2xx status
        user_agent: User-Agent header sent with every request
        default_headers: Headers sent with every request, overridden by declared headers
        date_format: strftime format for dates inside JSON bodies, ISO 8601 when None
    """
    base_url: Optional[str] = None
    timeout: float = 20.0
    connect_timeout: float = 20.0
    max_concurrent: int = 50
    success_policy: str = "exact"
    user_agent: str = "httprpc/1.0"
    default_headers: Optional[Dict[str, str]] = None
    date_format: Optional[str] = None

    def validate(self) -> None:
        """Validate client settings."""
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.max_concurrent <= 0:
            raise ValueError("max_concurrent must be positive")
        if self.success_policy not in SUCCESS_POLICIES:
            raise ValueError(f"Invalid success_policy: {self.success_policy}")

    def is_success(self, status: int) -> bool:
        if self.success_policy == "2xx":
            return 200 <= status < 300
        return status == 200
