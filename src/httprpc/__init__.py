"""
Declarative HTTP-RPC client.

Usage:
    from httprpc import HttpRpcClient, http_request, PathVariable, RequestMethod

    class UserClient(HttpRpcClient):
        @http_request(RequestMethod.GET, url="/users/{id}")
        def get_user(self, id: Annotated[int, PathVariable("id")]) -> User: ...

    client = ClientProxyFactory.create_service_proxy(UserClient)
"""

from infrastructure.networking.http import HttpResponse, RequestMethod

from .annotations import (
    CallFunction,
    PathVariable,
    ReqParam,
    ReqSign,
    RequestBody,
    RequestMapping,
    http_client,
    http_request,
)
from .async_handle import AsyncHandle, Callback, HandleState
from .binder import BoundParameters, ParameterBinder, ParameterBinding
from .client import ClientProxyFactory, HttpRpcClient, RpcMethod
from .converter import ResponseConverter
from .descriptor import (
    DescriptorCache,
    MethodDescriptor,
    ParameterRole,
    ParameterSpec,
    ReturnKind,
    ReturnShape,
    build_descriptor,
)
from .engine import RpcEngine
from .executor import RequestExecutor, RequestMetrics, RequestPlan
from .model import BaseModel
from .serialization import JsonSerializer
from .signer import HmacSha256Signer, Signer, SignerAdapter
from .url_resolver import UrlResolver

__all__ = [
    # Declaration
    'HttpRpcClient',
    'ClientProxyFactory',
    'RpcMethod',
    'http_request',
    'http_client',
    'RequestMapping',
    'PathVariable',
    'ReqParam',
    'RequestBody',
    'ReqSign',
    'CallFunction',
    'RequestMethod',
    'BaseModel',

    # Async
    'AsyncHandle',
    'Callback',
    'HandleState',

    # Engine components
    'RpcEngine',
    'MethodDescriptor',
    'ParameterSpec',
    'ParameterRole',
    'ReturnKind',
    'ReturnShape',
    'DescriptorCache',
    'build_descriptor',
    'ParameterBinder',
    'ParameterBinding',
    'BoundParameters',
    'UrlResolver',
    'Signer',
    'HmacSha256Signer',
    'SignerAdapter',
    'RequestExecutor',
    'RequestPlan',
    'RequestMetrics',
    'ResponseConverter',
    'JsonSerializer',
    'HttpResponse',
]
