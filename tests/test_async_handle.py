"""
Tests for the async result bridge: single-assignment semantics, waiting,
timeouts, cancellation, callbacks and awaiting from a coroutine.
"""

import asyncio
import threading

import pytest

from httprpc import AsyncHandle, HandleState
from infrastructure.exceptions import AsyncCancelledError, AsyncTimeout, RemoteStatusError
from tests.helpers import RecordingCallback


class TestTransitions:

    def test_starts_pending(self):
        handle = AsyncHandle()
        assert handle.state is HandleState.PENDING
        assert not handle.done()

    def test_first_write_wins(self):
        handle = AsyncHandle()
        assert handle.set_result(1)
        assert not handle.set_result(2)
        assert not handle.set_error(ValueError("late"))
        assert not handle.cancel()
        assert handle.state is HandleState.COMPLETED
        assert handle.result() == 1

    def test_failed_is_terminal(self):
        handle = AsyncHandle()
        error = RemoteStatusError(500)
        assert handle.set_error(error)
        assert not handle.set_result("x")
        assert handle.exception() is error
        with pytest.raises(RemoteStatusError):
            handle.result()

    def test_concurrent_writers_single_effective_write(self):
        handle = AsyncHandle()
        barrier = threading.Barrier(8)
        wins = []

        def writer(value):
            barrier.wait()
            if handle.set_result(value):
                wins.append(value)

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(wins) == 1
        assert handle.result() == wins[0]


class TestWaiting:

    def test_result_blocks_until_completed(self):
        handle = AsyncHandle()
        timer = threading.Timer(0.05, handle.set_result, args=("done",))
        timer.start()
        assert handle.result(timeout=2) == "done"

    def test_timeout_leaves_state_unchanged(self):
        handle = AsyncHandle()
        with pytest.raises(AsyncTimeout):
            handle.result(timeout=0.01)
        assert handle.state is HandleState.PENDING

        # Late completion after a timeout is accepted, not an error
        assert handle.set_result(5)
        assert handle.result(timeout=0) == 5

    def test_cancel_releases_waiters(self):
        handle = AsyncHandle()
        threading.Timer(0.05, handle.cancel).start()
        with pytest.raises(AsyncCancelledError):
            handle.result(timeout=2)
        assert handle.cancelled()

    def test_exception_on_success_is_none(self):
        handle = AsyncHandle()
        handle.set_result({})
        assert handle.exception() is None


class TestCallbacks:

    def test_done_callback_runs_once(self):
        handle = AsyncHandle()
        seen = []
        handle.add_done_callback(lambda h: seen.append(h.state))
        handle.set_result(1)
        handle.set_result(2)
        assert seen == [HandleState.COMPLETED]

    def test_done_callback_on_finished_handle_runs_immediately(self):
        handle = AsyncHandle()
        handle.set_result(1)
        seen = []
        handle.add_done_callback(lambda h: seen.append(h.result()))
        assert seen == [1]

    def test_failing_callback_does_not_break_others(self):
        handle = AsyncHandle()
        seen = []

        def broken(_):
            raise RuntimeError("boom")

        handle.add_done_callback(broken)
        handle.add_done_callback(lambda h: seen.append(True))
        handle.set_result(1)
        assert seen == [True]

    def test_forward_to_callback(self):
        handle = AsyncHandle()
        callback = RecordingCallback()
        handle.forward_to(callback)
        handle.set_error(RemoteStatusError(404))
        handle.set_result("ignored")
        assert callback.calls == 1
        assert isinstance(callback.errors[0], RemoteStatusError)

    def test_forward_cancel(self):
        handle = AsyncHandle()
        callback = RecordingCallback()
        handle.forward_to(callback)
        handle.cancel()
        assert callback.cancellations == 1

    def test_handle_is_a_callback(self):
        handle = AsyncHandle()
        handle.handle_result("v")
        assert handle.result() == "v"


class TestAwait:

    async def test_await_completed_from_other_thread(self):
        handle = AsyncHandle()
        threading.Timer(0.05, handle.set_result, args=(42,)).start()
        assert await asyncio.wait_for(handle, timeout=2) == 42

    async def test_await_failed(self):
        handle = AsyncHandle()
        handle.set_error(RemoteStatusError(503))
        with pytest.raises(RemoteStatusError):
            await handle

    async def test_await_cancelled(self):
        handle = AsyncHandle()
        handle.cancel()
        with pytest.raises(AsyncCancelledError):
            await handle
