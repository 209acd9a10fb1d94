"""Base type for request and response models."""

import msgspec


class BaseModel(msgspec.Struct, kw_only=True):
    """
    Structured model for request bodies and decoded responses.

    Subclasses declare fields as msgspec struct fields; unknown response
    fields are ignored on decode.
    """

    def to_json_string(self) -> str:
        return msgspec.json.encode(self).decode('utf-8')

    def to_dict(self) -> dict:
        return msgspec.to_builtins(self)
