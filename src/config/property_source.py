"""
Property Sources

Key → string lookup used to resolve endpoint URLs from configuration.
"""

import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping, Optional


class PropertySource(ABC):
    """Configuration lookup: key -> string or None when absent."""

    @abstractmethod
    def lookup(self, key: str) -> Optional[str]:
        pass


class DictPropertySource(PropertySource):
    """Lookup in a nested mapping; dotted keys walk into sub-mappings."""

    def __init__(self, data: Mapping[str, Any]):
        self._data = data

    def lookup(self, key: str) -> Optional[str]:
        if key in self._data and not isinstance(self._data[key], Mapping):
            return _as_property(self._data[key])

        node: Any = self._data
        for part in key.split('.'):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]

        if isinstance(node, Mapping):
            return None
        return _as_property(node)


class EnvironmentPropertySource(PropertySource):
    """Process environment lookup. Tries the key as-is, then as UPPER_SNAKE."""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self._environ = environ if environ is not None else os.environ

    def lookup(self, key: str) -> Optional[str]:
        value = self._environ.get(key)
        if value is None:
            value = self._environ.get(key.replace('.', '_').replace('-', '_').upper())
        return value if value else None


class ChainedPropertySource(PropertySource):
    """First source with a non-empty value wins."""

    def __init__(self, sources: Iterable[PropertySource]):
        self._sources = list(sources)

    def lookup(self, key: str) -> Optional[str]:
        for source in self._sources:
            value = source.lookup(key)
            if value:
                return value
        return None


def _as_property(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
