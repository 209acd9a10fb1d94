"""
Parameter Binder

Turns the argument list of one call into ParameterBindings and the flat
maps a request is built from. Dispatch is on the role recorded in the
descriptor, never on the runtime type of an argument; runtime types are
only checked against what the role accepts.

Wire rendering:
- bool -> "true"/"false", other scalars -> str()
- dates -> strftime with the parameter's date_format (FormatRequired without one)
- collections of scalars -> comma-joined, order preserved
- models -> flattened fields, None fields omitted
- collections of models -> key[i].field when several parameters feed the
  form map, merged unqualified otherwise
"""

import dataclasses
import datetime
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import msgspec

from infrastructure.exceptions import (
    FormatRequired,
    ParameterConflictError,
    ParameterValidationError,
    UnsupportedParameterType,
)
from infrastructure.networking.http import RequestMethod
from .descriptor import DATE_TYPES, SCALAR_TYPES, MethodDescriptor, ParameterRole, ParameterSpec

COLLECTION_TYPES = (list, tuple, set, frozenset)


@dataclass(frozen=True)
class ParameterBinding:
    """Resolved role and value of one argument."""
    role: ParameterRole
    name: str
    value: Any


@dataclass
class BoundParameters:
    """
    Everything the binder extracted from one call.

    Attributes:
        bindings: One entry per non-null argument
        params: Flattened form/query map (GET query string, POST form)
        url_params: Fields forced into the URL query string
        path_variables: Placeholder values for the URL template
        headers: Static and bound request headers
        body: JSON body for POST_JSON, None otherwise
        private_key: Signing key, when the method signs
        callback: Inline completion sink
    """
    bindings: List[ParameterBinding] = field(default_factory=list)
    params: Dict[str, str] = field(default_factory=dict)
    url_params: Dict[str, str] = field(default_factory=dict)
    path_variables: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    private_key: Optional[str] = None
    callback: Any = None


def is_model(value: Any) -> bool:
    return isinstance(value, msgspec.Struct) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    )


def render_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class _KeyOwners:
    """Records which parameter wrote each key of a target map."""

    def __init__(self) -> None:
        self._owners: Dict[int, Dict[str, str]] = {}

    def put(self, target: Dict[str, str], key: str, value: str, owner: str) -> None:
        owners = self._owners.setdefault(id(target), {})
        previous = owners.get(key)
        if previous is not None and previous != owner:
            raise ParameterConflictError(key)
        owners[key] = owner
        target[key] = value


class ParameterBinder:
    """Binds call arguments according to a MethodDescriptor."""

    def __init__(self) -> None:
        self._handlers: Dict[ParameterRole, Callable[..., None]] = {
            ParameterRole.URL_PATH: self._bind_path,
            ParameterRole.QUERY_OR_BODY_FIELD: self._bind_field,
            ParameterRole.HEADER: self._bind_header,
            ParameterRole.BODY_OBJECT: self._bind_body,
            ParameterRole.SIGNING_INPUT: self._bind_signing,
            ParameterRole.CALLBACK: self._bind_callback,
        }

    def bind(self, descriptor: MethodDescriptor, arguments: Sequence[Any]) -> BoundParameters:
        """
        Bind arguments (self excluded, in declaration order).

        Raises:
            UnsupportedParameterType: Argument type not accepted by its role
            FormatRequired: Date argument without date_format
            ParameterValidationError: Constraint violated or callback missing
            ParameterConflictError: Two parameters write the same key
        """
        if len(arguments) != len(descriptor.parameters):
            raise ParameterValidationError(
                f"{descriptor.qualname} expects {len(descriptor.parameters)} arguments, got {len(arguments)}"
            )

        bound = BoundParameters(headers=dict(descriptor.static_headers))
        state = _BindState(descriptor, bound)

        for spec, value in zip(descriptor.parameters, arguments):
            if spec.role is ParameterRole.CALLBACK:
                self._bind_callback(state, spec, value)
                continue
            if value is None:
                continue
            self._validate(spec, value)
            self._handlers[spec.role](state, spec, value)
            bound.bindings.append(ParameterBinding(spec.role, spec.wire_name, value))

        if descriptor.http_method is RequestMethod.POST_JSON and bound.body is None and state.json_fields:
            bound.body = state.json_fields
        return bound

    @staticmethod
    def _validate(spec: ParameterSpec, value: Any) -> None:
        if spec.constraint is None:
            return
        try:
            msgspec.convert(value, spec.constraint, from_attributes=True)
        except msgspec.ValidationError as e:
            raise ParameterValidationError(
                f"Invalid value for parameter {spec.name!r}: {e}",
                {"parameter": spec.name}
            ) from e

    # Role handlers

    def _bind_path(self, state: '_BindState', spec: ParameterSpec, value: Any) -> None:
        state.bound.path_variables[spec.wire_name] = self._render_single(spec, value)

    def _bind_field(self, state: '_BindState', spec: ParameterSpec, value: Any) -> None:
        bound = state.bound
        if state.descriptor.http_method is RequestMethod.POST_JSON and not spec.in_url:
            # JSON bodies keep raw values
            if not (isinstance(value, SCALAR_TYPES + DATE_TYPES + (Mapping,) + COLLECTION_TYPES)
                    or is_model(value)):
                raise UnsupportedParameterType(spec.name, type(value))
            state.json_fields[spec.wire_name] = value
            return

        target = bound.url_params if spec.in_url else bound.params
        if is_model(value):
            for key, rendered in self._flatten(spec, value):
                state.keys.put(target, key, rendered, spec.name)
        elif isinstance(value, COLLECTION_TYPES):
            self._bind_collection(state, spec, value, target)
        else:
            state.keys.put(target, spec.wire_name, self._render_single(spec, value), spec.name)

    def _bind_collection(self, state: '_BindState', spec: ParameterSpec, values: Any,
                         target: Dict[str, str]) -> None:
        scalars: List[str] = []
        indexed = state.descriptor.form_field_count > 1
        for position, element in enumerate(values):
            if element is None:
                continue
            if is_model(element):
                prefix = f"{spec.wire_name}[{position}]." if indexed else ""
                for key, rendered in self._flatten(spec, element):
                    state.keys.put(target, prefix + key, rendered, spec.name)
            else:
                scalars.append(self._render_single(spec, element))
        if scalars:
            state.keys.put(target, spec.wire_name, ",".join(scalars), spec.name)

    def _bind_header(self, state: '_BindState', spec: ParameterSpec, value: Any) -> None:
        headers = state.bound.headers
        if isinstance(value, COLLECTION_TYPES):
            rendered = ",".join(self._render_single(spec, v) for v in value if v is not None)
        else:
            rendered = self._render_single(spec, value)
        state.keys.put(headers, spec.wire_name, rendered, spec.name)

    def _bind_body(self, state: '_BindState', spec: ParameterSpec, value: Any) -> None:
        bound = state.bound
        if spec.in_header:
            for key, rendered in self._flatten(spec, value):
                state.keys.put(bound.headers, key, rendered, spec.name)
            return

        if state.descriptor.http_method is RequestMethod.POST_JSON:
            if not (is_model(value) or isinstance(value, (Mapping,) + COLLECTION_TYPES)):
                raise UnsupportedParameterType(spec.name, type(value))
            bound.body = value
            return

        if isinstance(value, COLLECTION_TYPES):
            self._bind_collection(state, spec, value, bound.params)
            return
        for key, rendered in self._flatten(spec, value):
            state.keys.put(bound.params, key, rendered, spec.name)

    def _bind_signing(self, state: '_BindState', spec: ParameterSpec, value: Any) -> None:
        if not isinstance(value, str):
            raise UnsupportedParameterType(spec.name, type(value))
        state.bound.private_key = value

    def bind_callback(self, descriptor: MethodDescriptor, value: Any) -> Any:
        """Check the inline callback argument of a call."""
        return self._check_callback(descriptor.parameters[-1], value)

    def _bind_callback(self, state: '_BindState', spec: ParameterSpec, value: Any) -> None:
        state.bound.callback = self._check_callback(spec, value)

    @staticmethod
    def _check_callback(spec: ParameterSpec, value: Any) -> Any:
        if value is None:
            raise ParameterValidationError(f"Callback argument {spec.name!r} is required",
                                           {"parameter": spec.name})
        if not (callable(getattr(value, 'handle_result', None)) and callable(getattr(value, 'handle_error', None))):
            raise UnsupportedParameterType(spec.name, type(value))
        return value

    # Rendering

    @staticmethod
    def _render_single(spec: ParameterSpec, value: Any) -> str:
        if isinstance(value, DATE_TYPES):
            if not spec.date_format:
                raise FormatRequired(spec.name)
            return value.strftime(spec.date_format)
        if isinstance(value, SCALAR_TYPES):
            return render_scalar(value)
        raise UnsupportedParameterType(spec.name, type(value))

    def _flatten(self, spec: ParameterSpec, model: Any):
        """Yield (field, rendered) pairs of a model or flat mapping."""
        if is_model(model):
            fields = msgspec.to_builtins(model, builtin_types=DATE_TYPES)
        elif isinstance(model, Mapping):
            fields = model
        else:
            raise UnsupportedParameterType(spec.name, type(model))

        for key, value in fields.items():
            if value is None:
                continue
            if isinstance(value, (Mapping,) + COLLECTION_TYPES) or is_model(value):
                raise UnsupportedParameterType(f"{spec.name}.{key}", type(value))
            if isinstance(value, DATE_TYPES) and not spec.date_format:
                # Model dates without a parameter format render ISO 8601
                yield str(key), value.isoformat()
                continue
            yield str(key), self._render_single(spec, value)


class _BindState:
    """Per-call scratch state."""

    def __init__(self, descriptor: MethodDescriptor, bound: BoundParameters) -> None:
        self.descriptor = descriptor
        self.bound = bound
        self.keys = _KeyOwners()
        self.json_fields: Dict[str, Any] = {}
