from enum import Enum
from typing import Dict, Optional
import msgspec


class RequestMethod(Enum):
    """Supported request verbs. POST_JSON submits the body as JSON."""
    GET = "GET"
    POST = "POST"
    POST_JSON = "POST_JSON"

    @property
    def http_verb(self) -> str:
        """Verb on the wire."""
        return "GET" if self is RequestMethod.GET else "POST"


class HttpResponse(msgspec.Struct, frozen=True):
    """Raw HTTP response handed back by a transport."""
    status: int
    body: bytes = b""
    headers: Dict[str, str] = msgspec.field(default_factory=dict)
    charset: Optional[str] = None

    @property
    def text(self) -> str:
        try:
            return self.body.decode(self.charset or "utf-8", errors="replace")
        except LookupError:
            # Charset unknown to Python
            return self.body.decode("utf-8", errors="replace")
