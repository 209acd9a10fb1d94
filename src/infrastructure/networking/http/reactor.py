"""
I/O Reactor

A daemon thread running a private asyncio event loop. Every asynchronous
RPC completes on this thread; synchronous calls block their caller on a
future resolved here.
"""

import asyncio
import concurrent.futures
import threading
from typing import Any, Coroutine, Optional

from infrastructure.logging import get_logger


class Reactor:
    """Background event loop shared by all calls of a transport."""

    def __init__(self, name: str = "httprpc-reactor"):
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._started = threading.Event()
        self._lock = threading.Lock()
        self.logger = get_logger('httprpc.reactor')

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        self.start()
        return self._loop

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the loop thread. Idempotent."""
        with self._lock:
            if self.is_running:
                return
            self._loop = asyncio.new_event_loop()
            self._started.clear()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        self._started.wait()
        self.logger.debug("Reactor started", thread=self.name)

    def _run(self) -> None:
        loop = self._loop
        asyncio.set_event_loop(loop)
        loop.call_soon(self._started.set)
        try:
            loop.run_forever()
        finally:
            # In-flight calls observe cancellation
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    def in_reactor_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        """Schedule coro on the loop from any thread."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine[Any, Any, Any], timeout: Optional[float] = None) -> Any:
        """Run coro on the loop and block the calling thread for its result."""
        if self.in_reactor_thread():
            coro.close()
            raise RuntimeError("Blocking call issued from the reactor thread would deadlock")
        return self.submit(coro).result(timeout)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the loop; pending tasks are cancelled."""
        with self._lock:
            if not self.is_running:
                return
            loop, thread = self._loop, self._thread
            loop.call_soon_threadsafe(loop.stop)
        if threading.current_thread() is not thread:
            thread.join(timeout)
        self.logger.debug("Reactor stopped", thread=self.name)
