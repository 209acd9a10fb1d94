"""
Descriptor Model

Static per-method metadata extracted once from an RPC method declaration:
URL source, verb, async contract, parameter roles and return shape. Every
contradiction in a declaration is reported here as ConfigurationError, so
a call never re-validates.
"""

import collections.abc
import dataclasses
import datetime
import inspect
import threading
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type

import msgspec

from infrastructure.exceptions import ConfigurationError
from infrastructure.networking.http import HttpResponse, RequestMethod
from .annotations import (
    HTTP_HEADERS_ATTR,
    PARAMETER_MARKERS,
    CallFunction,
    PathVariable,
    ReqParam,
    ReqSign,
    RequestBody,
    RequestMapping,
    get_request_mapping,
)
from .async_handle import AsyncHandle, Callback


class ParameterRole(Enum):
    URL_PATH = "url_path"
    QUERY_OR_BODY_FIELD = "query_or_body_field"
    HEADER = "header"
    BODY_OBJECT = "body_object"
    SIGNING_INPUT = "signing_input"
    CALLBACK = "callback"


class ReturnKind(Enum):
    VOID = "void"
    SCALAR = "scalar"
    GENERIC = "generic"
    ASYNC_WRAPPER = "async_wrapper"
    RAW = "raw"


@dataclass(frozen=True)
class ReturnShape:
    """Declared result type. ASYNC_WRAPPER carries the unwrapped shape in inner."""
    kind: ReturnKind
    type: Any = None
    inner: Optional['ReturnShape'] = None

    @property
    def value_shape(self) -> 'ReturnShape':
        """Shape the response body is converted to."""
        return self.inner if self.kind is ReturnKind.ASYNC_WRAPPER else self


VOID_SHAPE = ReturnShape(ReturnKind.VOID)
RAW_SHAPE = ReturnShape(ReturnKind.RAW, HttpResponse)


@dataclass(frozen=True)
class ParameterSpec:
    """
    Role and wire metadata of one method parameter.

    Attributes:
        index: Position among the call arguments (self excluded)
        name: Python parameter name
        role: Binding role
        wire_name: Header name, form/query key or path placeholder
        annotation: Declared type with Annotated metadata stripped
        in_url: Field goes to the URL query string regardless of verb
        in_header: BODY_OBJECT flattened into headers
        date_format: strftime format for date values
        constraint: Annotated type carrying msgspec.Meta constraints
        timestamp_key: SIGNING_INPUT only, header holding the timestamp
    """
    index: int
    name: str
    role: ParameterRole
    wire_name: str
    annotation: Any = Any
    in_url: bool = False
    in_header: bool = False
    date_format: Optional[str] = None
    constraint: Any = None
    timestamp_key: Optional[str] = None


@dataclass(frozen=True)
class MethodDescriptor:
    """Immutable request/response description of one RPC method."""
    name: str
    qualname: str
    http_method: RequestMethod
    url_template: str
    url_config_key: str
    default_url: str
    is_async: bool
    has_inline_callback: bool
    return_shape: ReturnShape
    parameters: Tuple[ParameterSpec, ...]
    signature: inspect.Signature
    static_headers: Mapping[str, str] = field(default_factory=dict)
    callback_shape: Optional[ReturnShape] = None

    @property
    def signing(self) -> Optional[ParameterSpec]:
        for spec in self.parameters:
            if spec.role is ParameterRole.SIGNING_INPUT:
                return spec
        return None

    @property
    def requires_signature(self) -> bool:
        return self.signing is not None

    @property
    def callback_index(self) -> Optional[int]:
        if not self.has_inline_callback:
            return None
        return self.parameters[-1].index

    @property
    def form_field_count(self) -> int:
        """Parameters contributing to the form/query parameter map."""
        return sum(
            1 for spec in self.parameters
            if (spec.role is ParameterRole.QUERY_OR_BODY_FIELD and not spec.in_url)
            or (spec.role is ParameterRole.BODY_OBJECT and not spec.in_header)
        )

    @property
    def result_shape(self) -> ReturnShape:
        """Shape delivered on completion: the callback's for inline callbacks."""
        if self.has_inline_callback:
            return self.callback_shape
        return self.return_shape.value_shape


SCALAR_TYPES = (str, int, float, bool)
DATE_TYPES = (datetime.date, datetime.datetime)


def is_model_type(tp: Any) -> bool:
    """msgspec structs and dataclasses are structured models."""
    return isinstance(tp, type) and (issubclass(tp, msgspec.Struct) or dataclasses.is_dataclass(tp))


def _split_annotated(annotation: Any) -> Tuple[Any, Tuple[Any, ...]]:
    if typing.get_origin(annotation) is typing.Annotated:
        base, *metadata = typing.get_args(annotation)
        return base, tuple(metadata)
    return annotation, ()


def _strip_optional(tp: Any) -> Any:
    if typing.get_origin(tp) is typing.Union:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def _is_callback_type(tp: Any) -> bool:
    tp = _strip_optional(tp)
    origin = typing.get_origin(tp) or tp
    return isinstance(origin, type) and issubclass(origin, Callback) and not issubclass(origin, AsyncHandle)


def _value_shape(tp: Any) -> ReturnShape:
    if tp is None or tp is type(None):
        return VOID_SHAPE
    if tp is str:
        return ReturnShape(ReturnKind.SCALAR, str)
    if tp is HttpResponse:
        return RAW_SHAPE
    return ReturnShape(ReturnKind.GENERIC, tp)


def _return_shape(tp: Any) -> ReturnShape:
    origin = typing.get_origin(tp)
    if tp is AsyncHandle or tp is collections.abc.Awaitable or tp is typing.Awaitable:
        return ReturnShape(ReturnKind.ASYNC_WRAPPER, tp, ReturnShape(ReturnKind.GENERIC, Any))
    if origin is AsyncHandle or origin is collections.abc.Awaitable:
        args = typing.get_args(tp)
        inner = _value_shape(args[0]) if args else ReturnShape(ReturnKind.GENERIC, Any)
        return ReturnShape(ReturnKind.ASYNC_WRAPPER, tp, inner)
    return _value_shape(tp)


def _callback_shape(tp: Any) -> ReturnShape:
    args = typing.get_args(_strip_optional(tp))
    if not args or args[0] is HttpResponse or isinstance(args[0], typing.TypeVar):
        return RAW_SHAPE
    return _value_shape(args[0])


def _class_headers(owner: Optional[type]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if owner is None:
        return headers
    for klass in reversed(owner.__mro__):
        headers.update(klass.__dict__.get(HTTP_HEADERS_ATTR, {}))
    return headers


def _classify(index: int, parameter: inspect.Parameter, annotation: Any, where: str) -> ParameterSpec:
    base, metadata = _split_annotated(annotation)
    markers = [m for m in metadata if isinstance(m, PARAMETER_MARKERS)]
    constraints = [m for m in metadata if isinstance(m, msgspec.Meta)]

    if len(markers) > 1:
        raise ConfigurationError(f"{where}: parameter {parameter.name!r} declares more than one role",
                                 parameter.name)
    marker = markers[0] if markers else None
    constraint = typing.Annotated[(base, *constraints)] if constraints else None
    name = parameter.name

    if isinstance(marker, CallFunction) or (marker is None and _is_callback_type(base)):
        return ParameterSpec(index, name, ParameterRole.CALLBACK, name, base)

    if isinstance(marker, PathVariable):
        return ParameterSpec(index, name, ParameterRole.URL_PATH, marker.name or name, base,
                             constraint=constraint)

    if isinstance(marker, ReqSign):
        return ParameterSpec(index, name, ParameterRole.SIGNING_INPUT, marker.name, base,
                             timestamp_key=marker.timestamp_key)

    if isinstance(marker, RequestBody):
        return ParameterSpec(index, name, ParameterRole.BODY_OBJECT, name, base,
                             in_header=marker.header, constraint=constraint)

    if isinstance(marker, ReqParam):
        role = ParameterRole.HEADER if marker.header else ParameterRole.QUERY_OR_BODY_FIELD
        return ParameterSpec(index, name, role, marker.name or name, base,
                             in_url=marker.url and not marker.header,
                             date_format=marker.date_format, constraint=constraint)

    if is_model_type(_strip_optional(base)):
        return ParameterSpec(index, name, ParameterRole.BODY_OBJECT, name, base, constraint=constraint)

    return ParameterSpec(index, name, ParameterRole.QUERY_OR_BODY_FIELD, name, base, constraint=constraint)


def build_descriptor(func: Callable, owner: Optional[type] = None) -> MethodDescriptor:
    """
    Build and validate the descriptor of an @http_request method.

    Args:
        func: Declared method (first parameter is self)
        owner: Client class, source of class-level static headers

    Raises:
        ConfigurationError: Declaration is missing or self-contradictory
    """
    where = getattr(func, '__qualname__', repr(func))
    mapping: Optional[RequestMapping] = get_request_mapping(func)
    if mapping is None:
        raise ConfigurationError(f"{where} is not declared with @http_request")

    if not mapping.url and not mapping.url_key:
        raise ConfigurationError(f"{where}: one of url or url_key is required")
    if mapping.url and mapping.url_key:
        raise ConfigurationError(f"{where}: url and url_key are mutually exclusive")

    try:
        hints = typing.get_type_hints(func, include_extras=True)
    except (NameError, TypeError) as e:
        raise ConfigurationError(f"{where}: cannot resolve type hints: {e}") from e

    signature = inspect.signature(func)
    declared = list(signature.parameters.values())[1:]

    specs = []
    for index, parameter in enumerate(declared):
        if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise ConfigurationError(f"{where}: variadic parameter {parameter.name!r} cannot be bound",
                                     parameter.name)
        specs.append(_classify(index, parameter, hints.get(parameter.name, Any), where))

    return_shape = _return_shape(hints.get('return', Any))

    # Async contract
    if mapping.async_:
        if return_shape.kind not in (ReturnKind.VOID, ReturnKind.ASYNC_WRAPPER):
            raise ConfigurationError(f"{where}: async method must return None or an AsyncHandle")
    elif return_shape.kind is ReturnKind.ASYNC_WRAPPER:
        raise ConfigurationError(f"{where}: synchronous method cannot return an async wrapper")

    # Inline callback
    callbacks = [s for s in specs if s.role is ParameterRole.CALLBACK]
    callback_shape = None
    if callbacks:
        callback = callbacks[0]
        if len(callbacks) > 1 or callback is not specs[-1]:
            raise ConfigurationError(f"{where}: callback must be the last parameter", callback.name)
        if not mapping.async_:
            raise ConfigurationError(f"{where}: callback requires async_=True", callback.name)
        if return_shape.kind is not ReturnKind.VOID:
            raise ConfigurationError(f"{where}: method with a callback must return None", callback.name)
        callback_shape = _callback_shape(callback.annotation)

    if sum(1 for s in specs if s.role is ParameterRole.SIGNING_INPUT) > 1:
        raise ConfigurationError(f"{where}: at most one signing parameter is allowed")

    if mapping.method is RequestMethod.POST_JSON:
        bodies = sum(1 for s in specs if s.role is ParameterRole.BODY_OBJECT and not s.in_header)
        if bodies > 1:
            raise ConfigurationError(f"{where}: JSON body methods accept one body object")
        if bodies and any(s.role is ParameterRole.QUERY_OR_BODY_FIELD and not s.in_url for s in specs):
            raise ConfigurationError(
                f"{where}: JSON body object cannot be combined with body fields, use ReqParam(url=True)"
            )

    _check_duplicate_keys(specs, where)

    headers = _class_headers(owner)
    headers.update(mapping.headers)

    return MethodDescriptor(
        name=func.__name__,
        qualname=where,
        http_method=mapping.method,
        url_template=mapping.url,
        url_config_key=mapping.url_key,
        default_url=mapping.default_url,
        is_async=mapping.async_,
        has_inline_callback=bool(callbacks),
        return_shape=return_shape,
        parameters=tuple(specs),
        signature=signature,
        static_headers=headers,
        callback_shape=callback_shape,
    )


def _check_duplicate_keys(specs, where: str) -> None:
    seen: Dict[Tuple[str, str], str] = {}
    for spec in specs:
        if spec.role is ParameterRole.QUERY_OR_BODY_FIELD:
            channel = 'url' if spec.in_url else 'form'
        elif spec.role is ParameterRole.HEADER:
            channel = 'header'
        elif spec.role is ParameterRole.URL_PATH:
            channel = 'url_path'
        else:
            continue
        key = (channel, spec.wire_name)
        if key in seen:
            raise ConfigurationError(
                f"{where}: parameters {seen[key]!r} and {spec.name!r} share key {spec.wire_name!r}",
                spec.name
            )
        seen[key] = spec.name


class DescriptorCache:
    """Descriptors keyed by (client class, function). Built once, reused forever."""

    def __init__(self) -> None:
        self._descriptors: Dict[Tuple[Optional[type], Callable], MethodDescriptor] = {}
        self._lock = threading.Lock()

    def get(self, func: Callable, owner: Optional[Type] = None) -> MethodDescriptor:
        key = (owner, func)
        descriptor = self._descriptors.get(key)
        if descriptor is None:
            with self._lock:
                descriptor = self._descriptors.get(key)
                if descriptor is None:
                    descriptor = build_descriptor(func, owner)
                    self._descriptors[key] = descriptor
        return descriptor

    def __len__(self) -> int:
        return len(self._descriptors)

    def clear(self) -> None:
        with self._lock:
            self._descriptors.clear()
