"""
Declaration Surface

Markers and decorators used to declare RPC methods on an HttpRpcClient
subclass. Parameter roles are attached with typing.Annotated:

    @http_client(headers={"X-App": "demo"})
    class UserClient(HttpRpcClient):

        @http_request(RequestMethod.GET, url="/users/{id}")
        def get_user(self, id: Annotated[int, PathVariable("id")]) -> User: ...

        @http_request(RequestMethod.POST, url_key="user.create.url", async_=True)
        def create_user(self, user: User,
                        key: Annotated[str, ReqSign("sign")],
                        stamp: Annotated[str, ReqParam("stamp", header=True)]) -> AsyncHandle[User]: ...
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, TypeVar

from infrastructure.networking.http import RequestMethod

F = TypeVar('F', bound=Callable)

HTTP_REQUEST_ATTR = '__http_request__'
HTTP_HEADERS_ATTR = '__http_headers__'


@dataclass(frozen=True)
class PathVariable:
    """Substitutes {name} in the URL template. Empty name uses the parameter name."""
    name: str = ""


@dataclass(frozen=True)
class ReqParam:
    """
    Query/form field, or request header when header=True.

    Attributes:
        name: Wire key; empty uses the parameter name
        header: Bind as request header instead of parameter map entry
        url: Always append to the URL query string, even for POST
        date_format: strftime format for date values
    """
    name: str = ""
    header: bool = False
    url: bool = False
    date_format: Optional[str] = None


@dataclass(frozen=True)
class RequestBody:
    """Structured body object. header=True flattens its fields into headers."""
    header: bool = False


@dataclass(frozen=True)
class ReqSign:
    """
    Private key used to sign the request.

    Attributes:
        name: Header that receives the signature
        timestamp_key: Header whose value is appended to the signed text
    """
    name: str = "sign"
    timestamp_key: str = "stamp"


@dataclass(frozen=True)
class CallFunction:
    """Marks the trailing parameter as the inline completion callback."""
    pass


PARAMETER_MARKERS = (PathVariable, ReqParam, RequestBody, ReqSign, CallFunction)


@dataclass(frozen=True)
class RequestMapping:
    """Method-level request declaration captured by @http_request."""
    method: RequestMethod = RequestMethod.GET
    url: str = ""
    url_key: str = ""
    default_url: str = ""
    async_: bool = False
    headers: Mapping[str, str] = field(default_factory=dict)


def http_request(
    method: RequestMethod = RequestMethod.GET,
    url: str = "",
    url_key: str = "",
    default_url: str = "",
    async_: bool = False,
    headers: Optional[Dict[str, str]] = None
) -> Callable[[F], F]:
    """
    Declare an RPC method.

    Args:
        method: Request verb
        url: Literal URL or template with {name} placeholders
        url_key: Configuration key resolved to the URL at call time
        default_url: Fallback when url_key is not configured
        async_: Return an AsyncHandle (or deliver to an inline callback)
        headers: Static headers sent with every call of this method
    """
    mapping = RequestMapping(
        method=method,
        url=url,
        url_key=url_key,
        default_url=default_url,
        async_=async_,
        headers=dict(headers or {})
    )

    def decorator(func: F) -> F:
        setattr(func, HTTP_REQUEST_ATTR, mapping)
        return func

    return decorator


def http_client(headers: Optional[Dict[str, str]] = None) -> Callable[[type], type]:
    """Attach static headers to every method of a client class."""
    def decorator(cls: type) -> type:
        setattr(cls, HTTP_HEADERS_ATTR, dict(headers or {}))
        return cls

    return decorator


def get_request_mapping(func: Callable) -> Optional[RequestMapping]:
    return getattr(func, HTTP_REQUEST_ATTR, None)
