"""
JSON Serialization

msgspec-based wire codec. Encoding omits None fields at every level and
renders dates with the configured format (ISO 8601 by default); decoding
ignores unknown fields.
"""

import datetime
from typing import Any, Dict, Optional

import msgspec

from infrastructure.exceptions import ParameterValidationError, ResponseDecodeError


class JsonSerializer:
    """Encodes request bodies and decodes responses into declared types."""

    def __init__(self, date_format: Optional[str] = None):
        self.date_format = date_format
        self._encoder = msgspec.json.Encoder()
        self._decoders: Dict[Any, msgspec.json.Decoder] = {}

    def to_builtins(self, value: Any) -> Any:
        """Convert value to JSON-compatible builtins with None fields removed."""
        try:
            builtins = msgspec.to_builtins(value, builtin_types=(datetime.datetime, datetime.date))
        except TypeError as e:
            raise ParameterValidationError(f"Value of type {type(value).__name__} is not serializable: {e}") from e
        return self._prune(builtins)

    def _prune(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._prune(v) for k, v in value.items() if v is not None}
        if isinstance(value, list):
            return [self._prune(v) for v in value]
        if isinstance(value, datetime.date):
            if self.date_format:
                return value.strftime(self.date_format)
            return value.isoformat()
        return value

    def to_wire(self, value: Any) -> bytes:
        return self._encoder.encode(self.to_builtins(value))

    def to_string(self, value: Any) -> str:
        return self.to_wire(value).decode('utf-8')

    def _decoder(self, target_type: Any) -> msgspec.json.Decoder:
        decoder = self._decoders.get(target_type)
        if decoder is None:
            decoder = msgspec.json.Decoder(target_type)
            self._decoders[target_type] = decoder
        return decoder

    def from_wire(self, data: bytes, target_type: Any = Any) -> Any:
        """
        Decode JSON bytes into target_type.

        Raises:
            ResponseDecodeError: Malformed payload or type mismatch
        """
        try:
            return self._decoder(target_type).decode(data)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            preview = data[:100].decode('utf-8', errors='replace')
            raise ResponseDecodeError(f"Cannot decode response: {e}", {"body": preview}) from e
