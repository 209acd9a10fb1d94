"""
RPC Engine

Shared dispatch path of every declared method:

    descriptor -> binder -> URL resolver -> signer -> executor
        sync:  converter -> return value
        async: handle <- converter (on the reactor thread)

The engine owns one instance of each collaborator; transport and
serializer are injected and live as long as the engine.
"""

from typing import Any, Callable, Optional, Sequence, Tuple, Type

from config.property_source import PropertySource
from config.structs import ClientSettings
from infrastructure.exceptions import ResponseDecodeError, RpcError
from infrastructure.logging import LoggerInterface, get_logger
from infrastructure.networking.http import HttpResponse, RequestMethod, Transport
from .async_handle import AsyncHandle
from .binder import BoundParameters, ParameterBinder
from .converter import ResponseConverter
from .descriptor import DescriptorCache, MethodDescriptor, ReturnShape
from .executor import RequestExecutor, RequestMetrics, RequestPlan
from .serialization import JsonSerializer
from .signer import HmacSha256Signer, Signer, SignerAdapter
from .url_resolver import UrlResolver


class RpcEngine:
    """Invocation dispatch engine shared by all clients built on it."""

    def __init__(
        self,
        transport: Transport,
        settings: Optional[ClientSettings] = None,
        property_source: Optional[PropertySource] = None,
        serializer: Optional[JsonSerializer] = None,
        signer: Optional[Signer] = None,
        logger: Optional[LoggerInterface] = None
    ):
        self.settings = settings or ClientSettings()
        self.serializer = serializer or JsonSerializer(self.settings.date_format)
        self.logger = logger or get_logger('httprpc.engine')

        self.descriptors = DescriptorCache()
        self.binder = ParameterBinder()
        self.url_resolver = UrlResolver(property_source)
        self.signer = SignerAdapter(signer or HmacSha256Signer(), self.serializer)
        self.executor = RequestExecutor(transport, self.serializer, self.settings)
        self.converter = ResponseConverter(self.serializer)

    def descriptor_for(self, func: Callable, owner: Optional[Type] = None) -> MethodDescriptor:
        """Build (once) and return the descriptor of a declared method."""
        return self.descriptors.get(func, owner)

    def prepare(self, descriptor: MethodDescriptor, arguments: Sequence[Any]) -> Tuple[RequestPlan, BoundParameters]:
        """
        Bind, resolve and sign one call without executing it.

        Raises:
            RpcError: Binding, validation or URL resolution failure
        """
        bound = self.binder.bind(descriptor, arguments)
        url = self.url_resolver.resolve(descriptor, bound)
        self.signer.apply(descriptor, bound)

        body = bound.body if descriptor.http_method is RequestMethod.POST_JSON else bound.params
        plan = RequestPlan(method=descriptor.http_method, url=url, headers=bound.headers, body=body)
        return plan, bound

    def invoke(self, descriptor: MethodDescriptor, arguments: Sequence[Any]) -> Any:
        """
        Execute a call.

        Returns:
            Sync methods: the converted value.
            Async methods: an AsyncHandle, or None with an inline callback.
        """
        if descriptor.is_async:
            return self._invoke_async(descriptor, arguments)

        plan, _ = self.prepare(descriptor, arguments)
        response = self.executor.execute(plan)
        return self.converter.convert(response, descriptor.return_shape)

    def _invoke_async(self, descriptor: MethodDescriptor, arguments: Sequence[Any]) -> Optional[AsyncHandle]:
        handle: AsyncHandle = AsyncHandle()

        if descriptor.has_inline_callback:
            # A missing callback has no failure channel to report to
            callback = arguments[descriptor.callback_index]
            self.binder.bind_callback(descriptor, callback)
            handle.forward_to(callback)

        result = None if descriptor.has_inline_callback else handle
        shape = descriptor.result_shape

        try:
            plan, _ = self.prepare(descriptor, arguments)
        except RpcError as e:
            self.logger.debug("Async RPC call rejected before dispatch",
                              method=descriptor.qualname, error=str(e))
            handle.set_error(e)
            return result

        self.executor.execute_async(
            plan,
            on_response=lambda response: self._complete(handle, response, shape),
            on_error=handle.set_error,
            on_cancel=handle.cancel
        )
        return result

    def _complete(self, handle: AsyncHandle, response: HttpResponse, shape: ReturnShape) -> None:
        try:
            value = self.converter.convert(response, shape)
        except RpcError as e:
            handle.set_error(e)
            return
        except Exception as e:
            handle.set_error(ResponseDecodeError(f"Cannot convert response: {type(e).__name__}: {e}",
                                                 {"status": response.status}))
            return
        handle.set_result(value)

    def get_metrics(self) -> RequestMetrics:
        return self.executor.get_metrics()

    def close(self) -> None:
        """Close the transport."""
        self.executor.close()
