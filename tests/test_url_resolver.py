"""Tests for URL resolution and path substitution."""

from typing import Annotated, Optional

import pytest

from config.property_source import DictPropertySource
from httprpc import (
    BoundParameters,
    PathVariable,
    RequestMethod,
    UrlResolver,
    build_descriptor,
    http_request,
)
from httprpc.url_resolver import append_query, placeholders, substitute
from infrastructure.exceptions import MissingEndpointConfiguration


@pytest.fixture
def resolver():
    return UrlResolver(DictPropertySource({
        "services": {"user": {"url": "http://users.local/users/{id}"}},
        "flat.key": "http://flat.local/ping",
    }))


class TestSubstitution:

    def test_placeholder_replaced_others_untouched(self):
        assert substitute("/users/{id}/posts/{post}", {"id": "7"}) == "/users/7/posts/{post}"

    def test_values_percent_encoded(self):
        assert substitute("/files/{name}", {"name": "a b/c"}) == "/files/a%20b%2Fc"

    def test_placeholders_listed(self):
        assert placeholders("/a/{x}/b/{y}") == ["x", "y"]

    def test_append_query(self):
        assert append_query("/users", {"v": "2"}) == "/users?v=2"
        assert append_query("/users?a=1", {"v": "2", "q": "x y"}) == "/users?a=1&v=2&q=x+y"
        assert append_query("/users", {}) == "/users"


class TestResolve:

    def test_literal_template(self, resolver):
        @http_request(RequestMethod.GET, url="/users/{id}")
        def get_user(self, id: Annotated[str, PathVariable("id")]) -> str: ...

        bound = BoundParameters(path_variables={"id": "42"})
        assert resolver.resolve(build_descriptor(get_user), bound) == "/users/42"

    def test_unresolved_placeholder_left_verbatim(self, resolver):
        @http_request(RequestMethod.GET, url="/users/{id}/{section}")
        def get_user(self, id: Annotated[str, PathVariable("id")],
                     section: Annotated[Optional[str], PathVariable("section")] = None) -> str: ...

        bound = BoundParameters(path_variables={"id": "42"})
        assert resolver.resolve(build_descriptor(get_user), bound) == "/users/42/{section}"

    def test_config_key(self, resolver):
        @http_request(RequestMethod.GET, url_key="services.user.url")
        def get_user(self, id: Annotated[str, PathVariable("id")]) -> str: ...

        bound = BoundParameters(path_variables={"id": "1"})
        assert resolver.resolve(build_descriptor(get_user), bound) == "http://users.local/users/1"

    def test_flat_dotted_key(self, resolver):
        @http_request(RequestMethod.GET, url_key="flat.key")
        def ping(self) -> str: ...

        assert resolver.resolve(build_descriptor(ping), BoundParameters()) == "http://flat.local/ping"

    def test_default_url_fallback(self, resolver):
        @http_request(RequestMethod.GET, url_key="missing.key", default_url="http://fallback/ping")
        def ping(self) -> str: ...

        assert resolver.resolve(build_descriptor(ping), BoundParameters()) == "http://fallback/ping"

    def test_missing_endpoint(self, resolver):
        @http_request(RequestMethod.GET, url_key="missing.key")
        def ping(self) -> str: ...

        with pytest.raises(MissingEndpointConfiguration) as exc_info:
            resolver.resolve(build_descriptor(ping), BoundParameters())
        assert exc_info.value.url_key == "missing.key"

    def test_missing_endpoint_without_property_source(self):
        @http_request(RequestMethod.GET, url_key="services.user.url")
        def ping(self) -> str: ...

        with pytest.raises(MissingEndpointConfiguration):
            UrlResolver().resolve(build_descriptor(ping), BoundParameters())

    def test_url_params_appended(self, resolver):
        @http_request(RequestMethod.POST, url="/users?src=web")
        def create(self) -> str: ...

        bound = BoundParameters(url_params={"v": "2"})
        assert resolver.resolve(build_descriptor(create), bound) == "/users?src=web&v=2"
