"""
Response Converter

Maps a raw response onto the declared return shape.
"""

from typing import Any

from infrastructure.exceptions import ResponseDecodeError
from infrastructure.networking.http import HttpResponse
from .descriptor import ReturnKind, ReturnShape
from .serialization import JsonSerializer


class ResponseConverter:
    def __init__(self, serializer: JsonSerializer):
        self.serializer = serializer

    def convert(self, response: HttpResponse, shape: ReturnShape) -> Any:
        """
        Convert response according to shape; async wrappers are unwrapped one level.

        Raises:
            ResponseDecodeError: Body does not decode into the declared type
        """
        shape = shape.value_shape
        kind = shape.kind

        if kind is ReturnKind.VOID:
            return None
        if kind is ReturnKind.RAW:
            return response
        if kind is ReturnKind.SCALAR:
            return response.text

        if not response.body.strip():
            # Empty body decodes only into types accepting null
            try:
                return self.serializer.from_wire(b"null", shape.type)
            except ResponseDecodeError:
                raise ResponseDecodeError("Empty response body", {"status": response.status}) from None
        return self.serializer.from_wire(response.body, shape.type)
