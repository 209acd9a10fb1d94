from .structs import RequestMethod, HttpResponse
from .transport import Transport, TransportCallback, RequestBody
from .reactor import Reactor
from .aiohttp_transport import AiohttpTransport

__all__ = [
    "RequestMethod",
    "HttpResponse",
    "Transport",
    "TransportCallback",
    "RequestBody",
    "Reactor",
    "AiohttpTransport",
]
