"""
Transport Contract

The engine talks to the network only through this interface. Body is a
flat string map for GET (query string) and POST (urlencoded form), and
pre-serialized JSON bytes for POST_JSON.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Union

from .structs import HttpResponse, RequestMethod

RequestBody = Optional[Union[Dict[str, str], bytes]]


class TransportCallback(ABC):
    """Completion sink for asynchronous transport calls."""

    @abstractmethod
    def completed(self, response: HttpResponse) -> None:
        pass

    @abstractmethod
    def failed(self, error: BaseException) -> None:
        pass

    @abstractmethod
    def cancelled(self) -> None:
        pass


class Transport(ABC):
    """
    HTTP transport.

    Connection management, TLS and socket-level retries belong here, not
    in the engine.
    """

    @abstractmethod
    def execute(
        self,
        method: RequestMethod,
        url: str,
        headers: Dict[str, str],
        body: RequestBody
    ) -> HttpResponse:
        """
        Execute request and block until the response arrives.

        Raises:
            TransportError: On connection failure or timeout
        """
        pass

    @abstractmethod
    def execute_async(
        self,
        method: RequestMethod,
        url: str,
        headers: Dict[str, str],
        body: RequestBody,
        callback: TransportCallback
    ) -> None:
        """
        Dispatch request without blocking.

        The callback is notified from the transport's own I/O thread,
        never from the calling thread.
        """
        pass

    def close(self) -> None:
        """Release connections."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
