"""
Request Signing

Signer is the pluggable signing primitive; SignerAdapter canonicalizes
the bound request and places the signature into the headers.

Canonical text:
    form verbs:  k1=v1&k2=v2 (keys sorted), then &<timestamp> when present
    JSON verbs:  serialized body, then &<timestamp> when present
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from typing import Optional

from infrastructure.logging import LoggerInterface, get_logger
from infrastructure.networking.http import RequestMethod
from .binder import BoundParameters
from .descriptor import MethodDescriptor
from .serialization import JsonSerializer


class Signer(ABC):
    """Signing primitive."""

    @abstractmethod
    def sign(self, text: str, key: str) -> str:
        """
        Sign canonical text.

        Args:
            text: Canonical request text
            key: Private key supplied by the caller

        Returns:
            Signature text placed into the signature header
        """
        pass


class HmacSha256Signer(Signer):
    """HMAC-SHA256, hex encoded."""

    def sign(self, text: str, key: str) -> str:
        return hmac.new(
            key.encode('utf-8'),
            text.encode('utf-8'),
            hashlib.sha256
        ).hexdigest()


class SignerAdapter:
    """Applies a Signer to methods declaring a ReqSign parameter."""

    def __init__(self, signer: Signer, serializer: JsonSerializer,
                 logger: Optional[LoggerInterface] = None):
        self.signer = signer
        self.serializer = serializer
        self.logger = logger or get_logger('httprpc.signer')

    def canonicalize(self, descriptor: MethodDescriptor, bound: BoundParameters) -> str:
        signing = descriptor.signing
        parts = []

        if descriptor.http_method is RequestMethod.POST_JSON:
            if bound.body is not None:
                parts.append(self.serializer.to_wire(bound.body).decode('utf-8'))
        else:
            parts.extend(f"{key}={bound.params[key]}" for key in sorted(bound.params))

        timestamp = bound.headers.get(signing.timestamp_key) if signing.timestamp_key else None
        if timestamp is not None:
            parts.append(timestamp)

        return "&".join(parts)

    def apply(self, descriptor: MethodDescriptor, bound: BoundParameters) -> None:
        """Insert the signature header. No-op without a signing key."""
        signing = descriptor.signing
        if signing is None:
            return
        if bound.private_key is None:
            self.logger.debug("Signing skipped, no key supplied", method=descriptor.qualname)
            return

        text = self.canonicalize(descriptor, bound)
        bound.headers[signing.wire_name] = self.signer.sign(text, bound.private_key)
