"""
Client Declaration Base

HttpRpcClient turns @http_request method stubs into dispatch methods
delegating to an RpcEngine. Descriptors of all declared methods are
built and validated when the client is constructed, so declaration
errors surface at startup rather than on first call.
"""

import functools
from typing import Any, Callable, Dict, Optional

from config.config_manager import ConfigManager
from infrastructure.networking.http import AiohttpTransport, Transport
from .annotations import get_request_mapping
from .descriptor import MethodDescriptor
from .engine import RpcEngine
from .executor import RequestMetrics
from .serialization import JsonSerializer
from .signer import Signer


class RpcMethod:
    """Class attribute replacing a declared method stub."""

    def __init__(self, func: Callable):
        self.func = func
        self.name = func.__name__
        functools.update_wrapper(self, func)

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        return instance._dispatcher(self)

    def __repr__(self) -> str:
        return f"<RpcMethod {self.func.__qualname__}>"


class HttpRpcClient:
    """
    Base class of declarative HTTP-RPC clients.

    Usage:
        class UserClient(HttpRpcClient):
            @http_request(RequestMethod.GET, url="/users/{id}")
            def get_user(self, id: Annotated[int, PathVariable("id")]) -> User: ...

        client = UserClient(engine)
        user = client.get_user(42)
    """

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for name, attr in list(cls.__dict__.items()):
            if callable(attr) and get_request_mapping(attr) is not None:
                method = RpcMethod(attr)
                method.name = name
                setattr(cls, name, method)

    def __init__(self, engine: RpcEngine):
        self._engine = engine
        self._descriptors: Dict[str, MethodDescriptor] = {}
        for name, method in self.rpc_methods().items():
            self._descriptors[name] = engine.descriptor_for(method.func, type(self))

    @classmethod
    def rpc_methods(cls) -> Dict[str, RpcMethod]:
        """Declared RPC methods by attribute name, subclasses overriding bases."""
        methods: Dict[str, RpcMethod] = {}
        for klass in reversed(cls.__mro__):
            for name, attr in klass.__dict__.items():
                if isinstance(attr, RpcMethod):
                    methods[name] = attr
                elif name in methods:
                    # Plain override of an inherited RPC method
                    del methods[name]
        return methods

    def _dispatcher(self, method: RpcMethod) -> Callable:
        descriptor = self._descriptors[method.name]
        signature = descriptor.signature
        engine = self._engine

        @functools.wraps(method.func)
        def dispatch(*args, **kwargs):
            bound = signature.bind(self, *args, **kwargs)
            bound.apply_defaults()
            arguments = list(bound.arguments.values())[1:]
            return engine.invoke(descriptor, arguments)

        return dispatch

    def descriptor(self, name: str) -> MethodDescriptor:
        return self._descriptors[name]

    @property
    def engine(self) -> RpcEngine:
        return self._engine

    def get_metrics(self) -> RequestMetrics:
        return self._engine.get_metrics()

    def close(self) -> None:
        self._engine.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ClientProxyFactory:
    """Builds engines and clients from configuration."""

    @staticmethod
    def create_engine(
        config: Optional[ConfigManager] = None,
        transport: Optional[Transport] = None,
        signer: Optional[Signer] = None
    ) -> RpcEngine:
        """
        Args:
            config: Configuration manager; loaded from config.yaml when None
            transport: Transport override; AiohttpTransport from settings when None
            signer: Signing primitive; HMAC-SHA256 when None
        """
        config = config or ConfigManager()
        settings = config.get_client_settings()
        return RpcEngine(
            transport=transport or AiohttpTransport(settings),
            settings=settings,
            property_source=config,
            serializer=JsonSerializer(settings.date_format),
            signer=signer
        )

    @classmethod
    def create_service_proxy(cls, client_cls, config: Optional[ConfigManager] = None, **kwargs):
        """Instantiate client_cls on an engine built from config."""
        return client_cls(cls.create_engine(config, **kwargs))
