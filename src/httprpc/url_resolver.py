"""
URL Resolver

Resolves the request URL of a call: the literal template, or the value of
the configuration key with the declared default as fallback. Path
placeholders are substituted from URL_PATH bindings; placeholders without
a binding stay in the URL verbatim so partial templates keep working.
"""

import re
from typing import Dict, List, Optional
from urllib.parse import quote, urlencode

from config.property_source import PropertySource
from infrastructure.exceptions import MissingEndpointConfiguration
from infrastructure.logging import LoggerInterface, get_logger
from .binder import BoundParameters
from .descriptor import MethodDescriptor

PLACEHOLDER = re.compile(r"\{([^{}/]+)\}")


class UrlResolver:
    """Builds final request URLs from descriptors and bound parameters."""

    def __init__(self, property_source: Optional[PropertySource] = None,
                 logger: Optional[LoggerInterface] = None):
        self.property_source = property_source
        self.logger = logger or get_logger('httprpc.url_resolver')

    def resolve_base(self, descriptor: MethodDescriptor) -> str:
        """
        URL before substitution.

        Raises:
            MissingEndpointConfiguration: Key unresolved and no default URL
        """
        if descriptor.url_template:
            return descriptor.url_template

        key = descriptor.url_config_key
        url = self.property_source.lookup(key) if self.property_source else None
        if url:
            return url
        if descriptor.default_url:
            self.logger.debug("Using default URL", url_key=key, url=descriptor.default_url)
            return descriptor.default_url
        raise MissingEndpointConfiguration(key)

    def resolve(self, descriptor: MethodDescriptor, bound: BoundParameters) -> str:
        url = substitute(self.resolve_base(descriptor), bound.path_variables)

        unresolved = placeholders(url)
        if unresolved:
            self.logger.debug("Unresolved path placeholders left in URL",
                              method=descriptor.qualname, placeholders=unresolved)

        return append_query(url, bound.url_params)


def substitute(template: str, variables: Dict[str, str]) -> str:
    """Replace {name} with the percent-encoded value of each bound variable."""
    url = template
    for name, value in variables.items():
        url = url.replace("{" + name + "}", quote(value, safe=""))
    return url


def placeholders(url: str) -> List[str]:
    return PLACEHOLDER.findall(url)


def append_query(url: str, params: Dict[str, str]) -> str:
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return url + separator + urlencode(params)
