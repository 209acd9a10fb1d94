"""
Async Result Bridge

Single-assignment completion cell returned by asynchronous RPC methods,
and the callback contract for methods that take an inline completion sink.

State machine:
    PENDING -> COMPLETED(value) | FAILED(error) | CANCELLED

All three end states are terminal. The first transition wins; later
attempts return False and leave the handle untouched, so a waiter never
observes more than one outcome.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

from infrastructure.exceptions import AsyncCancelledError, AsyncTimeout
from infrastructure.logging import get_logger

T = TypeVar('T')

_logger = get_logger('httprpc.async_handle')


class HandleState(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Callback(ABC, Generic[T]):
    """
    Completion sink passed as the last argument of an async RPC method.

    Declare the parameter as Callback[T] to receive the decoded T, or as
    Callback[HttpResponse] (or bare Callback) to receive the raw response.
    Methods run on the reactor thread.
    """

    @abstractmethod
    def handle_result(self, result: T) -> None:
        pass

    @abstractmethod
    def handle_error(self, error: BaseException) -> None:
        pass

    def handle_cancel(self) -> None:
        """Called when the call is cancelled. Ignored by default."""
        pass


class AsyncHandle(Callback[T]):
    """
    Awaitable, thread-safe handle for an in-flight RPC call.

    Blocking usage:
        handle = client.get_user_async(42)
        user = handle.result(timeout=5.0)

    Coroutine usage:
        user = await client.get_user_async(42)

    Cancelling only stops waiting; the underlying HTTP request still runs
    to completion and its result is dropped.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._state = HandleState.PENDING
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._done_callbacks: List[Callable[['AsyncHandle[T]'], None]] = []

    @property
    def state(self) -> HandleState:
        return self._state

    def done(self) -> bool:
        return self._state is not HandleState.PENDING

    def cancelled(self) -> bool:
        return self._state is HandleState.CANCELLED

    def _transition(self, state: HandleState, value: Any = None, error: Optional[BaseException] = None) -> bool:
        with self._condition:
            if self._state is not HandleState.PENDING:
                return False
            self._state = state
            self._value = value
            self._error = error
            callbacks, self._done_callbacks = self._done_callbacks, []
            self._condition.notify_all()

        for fn in callbacks:
            self._invoke(fn)
        return True

    def set_result(self, value: T) -> bool:
        """Complete with value. Returns False if already terminal."""
        return self._transition(HandleState.COMPLETED, value=value)

    def set_error(self, error: BaseException) -> bool:
        """Fail with error. Returns False if already terminal."""
        return self._transition(HandleState.FAILED, error=error)

    def cancel(self) -> bool:
        """Mark cancelled and release waiters. Returns False if already terminal."""
        return self._transition(HandleState.CANCELLED)

    # Callback interface, so a handle can itself be a completion sink
    def handle_result(self, result: T) -> None:
        self.set_result(result)

    def handle_error(self, error: BaseException) -> None:
        self.set_error(error)

    def handle_cancel(self) -> None:
        self.cancel()

    def _wait(self, timeout: Optional[float]) -> None:
        with self._condition:
            finished = self._condition.wait_for(self.done, timeout)
        if not finished:
            raise AsyncTimeout(f"No result within {timeout}s", {"timeout": timeout})

    def result(self, timeout: Optional[float] = None) -> T:
        """
        Block until terminal and return the value.

        Raises:
            AsyncTimeout: Timeout expired; the handle stays PENDING
            AsyncCancelledError: Handle was cancelled
            Exception: The error the call failed with
        """
        self._wait(timeout)
        if self._state is HandleState.CANCELLED:
            raise AsyncCancelledError("RPC call was cancelled")
        if self._state is HandleState.FAILED:
            raise self._error
        return self._value

    def exception(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        """Block until terminal and return the failure, or None on success."""
        self._wait(timeout)
        if self._state is HandleState.CANCELLED:
            raise AsyncCancelledError("RPC call was cancelled")
        return self._error

    def add_done_callback(self, fn: Callable[['AsyncHandle[T]'], None]) -> None:
        """
        Run fn(handle) once the handle is terminal.

        Runs immediately in the calling thread if already terminal,
        otherwise in the thread that completes the handle.
        """
        with self._condition:
            if self._state is HandleState.PENDING:
                self._done_callbacks.append(fn)
                return
        self._invoke(fn)

    def forward_to(self, callback: Callback[T]) -> None:
        """Deliver the outcome to callback exactly once."""
        def _forward(handle: 'AsyncHandle[T]') -> None:
            if handle._state is HandleState.COMPLETED:
                callback.handle_result(handle._value)
            elif handle._state is HandleState.FAILED:
                callback.handle_error(handle._error)
            else:
                callback.handle_cancel()

        self.add_done_callback(_forward)

    def _invoke(self, fn: Callable[['AsyncHandle[T]'], None]) -> None:
        try:
            fn(self)
        except Exception as e:
            _logger.error("Async handle callback raised",
                          callback=getattr(fn, '__qualname__', repr(fn)),
                          error=str(e),
                          error_type=type(e).__name__)

    def __await__(self):
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def _copy(_: Any = None) -> None:
            if future.done():
                return
            if self._state is HandleState.COMPLETED:
                future.set_result(self._value)
            elif self._state is HandleState.FAILED:
                future.set_exception(self._error)
            else:
                future.set_exception(AsyncCancelledError("RPC call was cancelled"))

        def _relay(_: 'AsyncHandle[T]') -> None:
            if loop.is_closed():
                return
            loop.call_soon_threadsafe(_copy)

        self.add_done_callback(_relay)
        return (yield from future.__await__())

    def __repr__(self) -> str:
        return f"<AsyncHandle state={self._state.value}>"
