"""
Test doubles for HTTP-RPC tests.

FakeTransport records every request and answers from a queue of canned
responses. Async calls complete on a separate thread, mimicking the
reactor, and can be told to repeat their notification to exercise
duplicate-completion handling.
"""

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import msgspec

from httprpc import BaseModel, Callback
from infrastructure.networking.http import HttpResponse, RequestMethod, Transport, TransportCallback


class User(BaseModel):
    id: int
    name: str
    email: Optional[str] = None


class Page(BaseModel):
    page: int
    size: int


@dataclass
class SentRequest:
    method: RequestMethod
    url: str
    headers: Dict[str, str]
    body: Any
    thread: str


class FakeTransport(Transport):
    """
    In-memory transport.

    Attributes:
        requests: Requests in arrival order
        duplicates: Extra notifications sent after each async completion
        fail_with: Error raised/reported instead of a response
        cancel_async: Report cancellation instead of completing
    """

    def __init__(self, default: Optional[HttpResponse] = None):
        self.requests: List[SentRequest] = []
        self.responses: deque = deque()
        self.default = default or HttpResponse(status=200, body=b"{}")
        self.duplicates = 0
        self.fail_with: Optional[BaseException] = None
        self.cancel_async = False
        self.completion_threads: List[str] = []
        self._threads: List[threading.Thread] = []
        self.closed = False

    def respond(self, status: int = 200, body: Any = b"", headers: Optional[Dict[str, str]] = None,
                charset: Optional[str] = None) -> None:
        """Queue a response; non-bytes bodies are JSON encoded."""
        if not isinstance(body, (bytes, str)):
            body = msgspec.json.encode(body)
        elif isinstance(body, str):
            body = body.encode('utf-8')
        self.responses.append(HttpResponse(status=status, body=body, headers=headers or {}, charset=charset))

    def _next_response(self) -> HttpResponse:
        return self.responses.popleft() if self.responses else self.default

    def _record(self, method, url, headers, body) -> None:
        self.requests.append(SentRequest(method, url, dict(headers), body, threading.current_thread().name))

    @property
    def last(self) -> SentRequest:
        return self.requests[-1]

    def execute(self, method, url, headers, body) -> HttpResponse:
        self._record(method, url, headers, body)
        if self.fail_with is not None:
            raise self.fail_with
        return self._next_response()

    def execute_async(self, method, url, headers, body, callback: TransportCallback) -> None:
        self._record(method, url, headers, body)
        response = self._next_response()
        thread = threading.Thread(target=self._notify, args=(callback, response), name="fake-reactor")
        self._threads.append(thread)
        thread.start()

    def _notify(self, callback: TransportCallback, response: HttpResponse) -> None:
        self.completion_threads.append(threading.current_thread().name)
        for _ in range(1 + self.duplicates):
            if self.cancel_async:
                callback.cancelled()
            elif self.fail_with is not None:
                callback.failed(self.fail_with)
            else:
                callback.completed(response)
        if self.duplicates:
            # Conflicting late notifications
            callback.failed(RuntimeError("late failure"))
            callback.cancelled()

    def join(self, timeout: float = 2.0) -> None:
        for thread in self._threads:
            thread.join(timeout)

    def close(self) -> None:
        self.join()
        self.closed = True


class RecordingCallback(Callback[Any]):
    """Callback recording every notification it receives."""

    def __init__(self):
        self.results: List[Any] = []
        self.errors: List[BaseException] = []
        self.cancellations = 0
        self.threads: List[str] = []
        self.event = threading.Event()

    def handle_result(self, result: Any) -> None:
        self.threads.append(threading.current_thread().name)
        self.results.append(result)
        self.event.set()

    def handle_error(self, error: BaseException) -> None:
        self.threads.append(threading.current_thread().name)
        self.errors.append(error)
        self.event.set()

    def handle_cancel(self) -> None:
        self.cancellations += 1
        self.event.set()

    @property
    def calls(self) -> int:
        return len(self.results) + len(self.errors) + self.cancellations

    def wait(self, timeout: float = 2.0) -> bool:
        return self.event.wait(timeout)


@dataclass
class Address:
    city: str
    zip_code: Optional[str] = None
