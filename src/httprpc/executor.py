"""
Request Executor

Single execution path of every RPC call. Measures wall-clock latency
around each execution regardless of outcome, applies the success policy
and emits exactly one log record per execution.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional

from config.structs import ClientSettings
from infrastructure.exceptions import RemoteStatusError, ResponseDecodeError, RpcError, TransportError
from infrastructure.logging import LoggerInterface, get_logger
from infrastructure.networking.http import (
    HttpResponse,
    RequestBody,
    RequestMethod,
    Transport,
    TransportCallback,
)
from .serialization import JsonSerializer


@dataclass(frozen=True)
class RequestPlan:
    """
    Fully resolved request.

    body is the flat parameter map for GET/POST and the structured JSON
    body object for POST_JSON.
    """
    method: RequestMethod
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None


@dataclass
class RequestMetrics:
    """Rolling request statistics of one executor."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    cancelled_requests: int = 0
    avg_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    p99_latency_ms: float = 0.0


class RequestExecutor:
    """Executes RequestPlans through a Transport, sync or async."""

    def __init__(
        self,
        transport: Transport,
        serializer: JsonSerializer,
        settings: Optional[ClientSettings] = None,
        logger: Optional[LoggerInterface] = None
    ):
        self.transport = transport
        self.serializer = serializer
        self.settings = settings or ClientSettings()
        self.logger = logger or get_logger('httprpc.executor')

        # Performance monitoring
        self._metrics = RequestMetrics()
        self._latency_samples = deque(maxlen=1000)  # Rolling window for percentiles
        self._metrics_lock = threading.Lock()

    def encode_body(self, plan: RequestPlan) -> RequestBody:
        if plan.method is RequestMethod.POST_JSON:
            return self.serializer.to_wire(plan.body) if plan.body is not None else b""
        return dict(plan.body or {})

    def check_status(self, response: HttpResponse) -> None:
        """
        Raises:
            RemoteStatusError: Status rejected by the success policy
        """
        if not self.settings.is_success(response.status):
            raise RemoteStatusError(response.status, response.text[:200])

    def execute(self, plan: RequestPlan) -> HttpResponse:
        """
        Execute plan and block until completion.

        Raises:
            RemoteStatusError: Non-success status
            TransportError: Connection failure or timeout
        """
        start_time = time.perf_counter()
        response: Optional[HttpResponse] = None
        error: Optional[BaseException] = None

        try:
            body = self.encode_body(plan)
            response = self.transport.execute(plan.method, plan.url, plan.headers, body)
            self.check_status(response)
            return response
        except Exception as e:
            error = e
            raise
        finally:
            cost_ms = (time.perf_counter() - start_time) * 1000
            self._update_metrics(cost_ms, success=error is None)
            self._log_call("RPC call", plan, response, error, cost_ms)

    def execute_async(
        self,
        plan: RequestPlan,
        on_response: Callable[[HttpResponse], None],
        on_error: Callable[[BaseException], None],
        on_cancel: Callable[[], None]
    ) -> None:
        """
        Dispatch plan without blocking.

        Exactly one of the handlers runs, on the transport's I/O thread, or
        in the caller's thread when dispatch itself fails.
        """
        completion = _CompletionOnce(self, plan, on_response, on_error, on_cancel)
        try:
            body = self.encode_body(plan)
            self.transport.execute_async(plan.method, plan.url, plan.headers, body, completion)
        except Exception as e:
            completion.failed(e)

    def _update_metrics(self, latency_ms: float, success: bool, cancelled: bool = False) -> None:
        with self._metrics_lock:
            self._metrics.total_requests += 1
            if cancelled:
                self._metrics.cancelled_requests += 1
            elif success:
                self._metrics.successful_requests += 1
            else:
                self._metrics.failed_requests += 1

            self._latency_samples.append(latency_ms)

            sorted_samples = sorted(self._latency_samples)
            n = len(sorted_samples)
            self._metrics.avg_latency_ms = sum(sorted_samples) / n
            self._metrics.p95_latency_ms = sorted_samples[int(0.95 * n)] if n > 0 else 0.0
            self._metrics.p99_latency_ms = sorted_samples[int(0.99 * n)] if n > 0 else 0.0

    def _format_pars(self, plan: RequestPlan) -> str:
        if plan.body is None:
            return ""
        try:
            return self.serializer.to_string(plan.body)
        except RpcError:
            return repr(plan.body)

    def _log_call(
        self,
        message: str,
        plan: RequestPlan,
        response: Optional[HttpResponse],
        error: Optional[BaseException],
        cost_ms: float,
        cancelled: bool = False
    ) -> None:
        context = dict(
            url=plan.url,
            method=plan.method.value,
            headers=plan.headers,
            pars=self._format_pars(plan),
            result=response.text if response is not None else None,
            status=response.status if response is not None else None,
            cost_ms=round(cost_ms, 3),
        )
        if cancelled:
            self.logger.warning(message, cancelled=True, **context)
        elif error is not None:
            self.logger.error(message, error=str(error), error_type=type(error).__name__, **context)
        else:
            self.logger.info(message, **context)

    def get_metrics(self) -> RequestMetrics:
        """Snapshot of current request metrics."""
        with self._metrics_lock:
            return replace(self._metrics)

    def reset_metrics(self) -> None:
        with self._metrics_lock:
            self._metrics = RequestMetrics()
            self._latency_samples.clear()

    def close(self) -> None:
        self.transport.close()


class _CompletionOnce(TransportCallback):
    """
    Transport callback that processes only the first notification.

    Transports may report an outcome more than once; later notifications
    are dropped before logging, metrics and delivery.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        plan: RequestPlan,
        on_response: Callable[[HttpResponse], None],
        on_error: Callable[[BaseException], None],
        on_cancel: Callable[[], None]
    ):
        self._executor = executor
        self._plan = plan
        self._on_response = on_response
        self._on_error = on_error
        self._on_cancel = on_cancel
        self._start_time = time.perf_counter()
        self._fired = False
        self._lock = threading.Lock()

    def _claim(self) -> Optional[float]:
        with self._lock:
            if self._fired:
                return None
            self._fired = True
        return (time.perf_counter() - self._start_time) * 1000

    def completed(self, response: HttpResponse) -> None:
        cost_ms = self._claim()
        if cost_ms is None:
            return
        try:
            self._executor.check_status(response)
            self._executor._log_call("Async RPC call", self._plan, response, None, cost_ms)
        except Exception as e:
            if not isinstance(e, RpcError):
                e = ResponseDecodeError(f"Cannot process response: {type(e).__name__}: {e}",
                                        {"status": response.status})
            self._report_failure(e, response, cost_ms)
            return
        self._executor._update_metrics(cost_ms, success=True)
        self._on_response(response)

    def failed(self, error: BaseException) -> None:
        cost_ms = self._claim()
        if cost_ms is None:
            return
        if not isinstance(error, RpcError):
            error = TransportError(f"Transport raised {type(error).__name__}: {error}", {"url": self._plan.url})
        self._report_failure(error, None, cost_ms)

    def _report_failure(self, error: RpcError, response: Optional[HttpResponse], cost_ms: float) -> None:
        self._executor._update_metrics(cost_ms, success=False)
        try:
            self._executor._log_call("Async RPC call", self._plan, response, error, cost_ms)
        finally:
            # The claim is taken, so this is the only delivery
            self._on_error(error)

    def cancelled(self) -> None:
        cost_ms = self._claim()
        if cost_ms is None:
            return
        self._executor._update_metrics(cost_ms, success=False, cancelled=True)
        self._executor._log_call("Async RPC call", self._plan, None, None, cost_ms, cancelled=True)
        self._on_cancel()
