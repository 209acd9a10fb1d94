"""
End-to-end tests of declared clients over the fake transport.

Covers the sync/async contract, inline callbacks, signing, URL keys and
the failure channel of asynchronous calls.
"""

import hashlib
import hmac
from typing import Annotated, Any, Dict, List, Optional
from unittest.mock import Mock

import pytest

from config.config_manager import ConfigManager
from httprpc import (
    AsyncHandle,
    Callback,
    ClientProxyFactory,
    HandleState,
    HttpResponse,
    HttpRpcClient,
    PathVariable,
    ReqParam,
    ReqSign,
    RequestBody,
    RequestMethod,
    RpcMethod,
    http_client,
    http_request,
)
from infrastructure.exceptions import (
    ConfigurationError,
    MissingEndpointConfiguration,
    ParameterValidationError,
    RemoteStatusError,
    ResponseDecodeError,
    UnsupportedParameterType,
)
from tests.helpers import FakeTransport, RecordingCallback, User


@http_client(headers={"X-Client": "users"})
class UserClient(HttpRpcClient):

    @http_request(RequestMethod.GET, url="/users/{id}")
    def get_user(self, id: Annotated[str, PathVariable("id")]) -> User: ...

    @http_request(RequestMethod.GET, url="/users")
    def search(self, name: Optional[str] = None, city: Optional[str] = None) -> List[User]: ...

    @http_request(RequestMethod.GET, url="/users/{id}/name")
    def get_name(self, id: Annotated[int, PathVariable("id")]) -> str: ...

    @http_request(RequestMethod.POST, url="/users/{id}/touch")
    def touch(self, id: Annotated[int, PathVariable("id")]) -> None: ...

    @http_request(RequestMethod.POST_JSON, url="/users")
    def create(self, user: User) -> User: ...

    @http_request(RequestMethod.POST, url="/orders")
    def place_order(self, symbol: str, qty: int,
                    stamp: Annotated[str, ReqParam("stamp", header=True)],
                    key: Annotated[str, ReqSign("sign")]) -> Dict[str, Any]: ...

    @http_request(RequestMethod.GET, url_key="services.user.url")
    def configured(self) -> HttpResponse: ...

    @http_request(RequestMethod.GET, url_key="services.missing.url")
    def unconfigured(self) -> str: ...

    @http_request(RequestMethod.GET, url="/users/{id}", async_=True)
    def get_user_async(self, id: Annotated[str, PathVariable("id")]) -> AsyncHandle[User]: ...

    @http_request(RequestMethod.GET, url="/users/{id}", async_=True)
    def get_user_callback(self, id: Annotated[str, PathVariable("id")], callback: Callback[User]) -> None: ...

    @http_request(RequestMethod.GET, url="/ping", async_=True)
    def ping_raw(self, callback: Callback[HttpResponse]) -> None: ...

    @http_request(RequestMethod.POST, url="/events", async_=True)
    def fire(self, name: str) -> None: ...

    @http_request(RequestMethod.GET, url_key="services.missing.url", async_=True)
    def unconfigured_async(self) -> AsyncHandle[str]: ...

    @http_request(RequestMethod.POST_JSON, url="/audit", async_=True)
    def record_async(self, payload: Annotated[Dict[str, Any], RequestBody()]) -> AsyncHandle[Dict[str, Any]]: ...

    @http_request(RequestMethod.POST_JSON, url="/audit", async_=True)
    def note_async(self, note: Any) -> AsyncHandle[Dict[str, Any]]: ...

    def helper(self) -> str:
        return "plain"


@pytest.fixture
def client(engine):
    return UserClient(engine)


class TestSyncCalls:

    def test_get_user_scenario(self, client, transport):
        transport.respond(body={"id": 42, "name": "ann"})

        user = client.get_user("42")

        assert user == User(id=42, name="ann")
        assert transport.last.url == "/users/42"
        assert transport.last.method is RequestMethod.GET
        assert transport.last.body == {}

    def test_sync_never_returns_handle(self, client, transport):
        transport.respond(body={"id": 1, "name": "a"})
        assert not isinstance(client.get_user("1"), AsyncHandle)

    def test_null_optional_omitted(self, client, transport):
        transport.respond(body=[])
        client.search(name="ann")
        assert transport.last.body == {"name": "ann"}

    def test_scalar_text(self, client, transport):
        transport.respond(body=b"ann")
        assert client.get_name(1) == "ann"

    def test_void(self, client, transport):
        transport.respond(body=b"ok")
        assert client.touch(3) is None
        assert transport.last.url == "/users/3/touch"

    def test_class_headers_sent(self, client, transport):
        transport.respond(body={"id": 1, "name": "a"})
        client.get_user("1")
        assert transport.last.headers["X-Client"] == "users"

    def test_json_body(self, client, transport):
        transport.respond(body={"id": 9, "name": "new"})
        created = client.create(User(id=0, name="new"))
        assert created.id == 9
        assert transport.last.body == b'{"id":0,"name":"new"}'

    def test_keyword_arguments(self, client, transport):
        transport.respond(body=[])
        client.search(city="Oslo")
        assert transport.last.body == {"city": "Oslo"}

    def test_wrong_arguments_raise_type_error(self, client):
        with pytest.raises(TypeError):
            client.get_user()

    def test_remote_status_error(self, client, transport):
        transport.respond(status=404, body=b"not found")
        with pytest.raises(RemoteStatusError) as exc_info:
            client.get_user("1")
        assert exc_info.value.status_code == 404

    def test_unknown_charset(self, client, transport):
        transport.respond(body={"id": 42, "name": "ann"}, charset="x-bogus")
        assert client.get_user("42") == User(id=42, name="ann")

    def test_decode_error(self, client, transport):
        transport.respond(body=b"{broken")
        with pytest.raises(ResponseDecodeError):
            client.get_user("1")

    def test_plain_methods_untouched(self, client):
        assert client.helper() == "plain"
        assert isinstance(UserClient.__dict__["get_user"], RpcMethod)


class TestUrlKeys:

    def test_configured_url(self, client, transport):
        response = client.configured()
        assert isinstance(response, HttpResponse)
        assert transport.last.url == "http://users.local/api/users"

    def test_missing_endpoint_before_network(self, client, transport):
        with pytest.raises(MissingEndpointConfiguration):
            client.unconfigured()
        assert transport.requests == []


class TestSigning:

    def test_signature_header(self, client, transport):
        transport.respond(body={"ok": True})
        client.place_order("BTC", 2, "1700000000", "secret")

        expected = hmac.new(b"secret", b"qty=2&symbol=BTC&1700000000", hashlib.sha256).hexdigest()
        assert transport.last.headers["sign"] == expected
        assert transport.last.headers["stamp"] == "1700000000"
        assert transport.last.body == {"symbol": "BTC", "qty": "2"}


class TestAsyncCalls:

    def test_returns_handle(self, client, transport):
        transport.respond(body={"id": 5, "name": "e"})
        handle = client.get_user_async("5")
        assert isinstance(handle, AsyncHandle)
        assert handle.result(timeout=2) == User(id=5, name="e")

    def test_completion_on_reactor_thread(self, client, transport):
        transport.respond(body={"id": 5, "name": "e"})
        handle = client.get_user_async("5")
        handle.result(timeout=2)
        transport.join()
        assert transport.completion_threads == ["fake-reactor"]

    def test_void_async_returns_handle(self, client, transport):
        handle = client.fire("deploy")
        assert isinstance(handle, AsyncHandle)
        assert handle.result(timeout=2) is None

    def test_status_error_fails_handle(self, client, transport):
        transport.respond(status=500, body=b"down")
        handle = client.get_user_async("5")
        with pytest.raises(RemoteStatusError):
            handle.result(timeout=2)
        assert handle.state is HandleState.FAILED

    def test_decode_error_fails_handle(self, client, transport):
        transport.respond(body=b"[1,2]")
        handle = client.get_user_async("5")
        with pytest.raises(ResponseDecodeError):
            handle.result(timeout=2)

    def test_resolution_error_through_failure_channel(self, client, transport):
        handle = client.unconfigured_async()
        assert isinstance(handle.exception(timeout=2), MissingEndpointConfiguration)
        assert transport.requests == []

    def test_unknown_charset_still_completes(self, client, transport):
        transport.respond(body={"id": 5, "name": "e"}, charset="x-bogus")
        handle = client.get_user_async("5")
        assert handle.result(timeout=2) == User(id=5, name="e")

    def test_unserializable_body_through_failure_channel(self, client, transport):
        handle = client.record_async({"when": object()})
        assert isinstance(handle, AsyncHandle)
        assert isinstance(handle.exception(timeout=2), ParameterValidationError)
        assert transport.requests == []

    def test_unsupported_json_field_through_failure_channel(self, client, transport):
        handle = client.note_async(object())
        assert isinstance(handle.exception(timeout=2), UnsupportedParameterType)
        assert transport.requests == []

    async def test_await_handle(self, client, transport):
        transport.respond(body={"id": 8, "name": "h"})
        user = await client.get_user_async("8")
        assert user.name == "h"


class TestInlineCallback:

    def test_no_handle_returned(self, client, transport):
        callback = RecordingCallback()
        transport.respond(body={"id": 1, "name": "a"})
        assert client.get_user_callback("1", callback) is None
        assert callback.wait()
        assert callback.results == [User(id=1, name="a")]

    def test_delivered_exactly_once_under_duplicates(self, client, transport):
        transport.duplicates = 5
        transport.respond(body={"id": 1, "name": "a"})
        callback = RecordingCallback()

        client.get_user_callback("1", callback)
        assert callback.wait()
        transport.join()

        assert callback.calls == 1
        assert callback.threads == ["fake-reactor"]

    def test_error_delivered_to_callback(self, client, transport):
        transport.respond(status=403, body=b"denied")
        callback = RecordingCallback()
        client.get_user_callback("1", callback)
        assert callback.wait()
        assert isinstance(callback.errors[0], RemoteStatusError)

    def test_raw_response_callback(self, client, transport):
        transport.respond(body=b"pong")
        callback = RecordingCallback()
        client.ping_raw(callback)
        assert callback.wait()
        assert callback.results[0].text == "pong"

    def test_missing_callback_raises(self, client, transport):
        with pytest.raises(ParameterValidationError):
            client.get_user_callback("1", None)
        assert transport.requests == []

    def test_invalid_callback_raises(self, client):
        with pytest.raises(UnsupportedParameterType):
            client.get_user_callback("1", object())


class TestClientConstruction:

    def test_invalid_declaration_fails_at_construction(self, engine):
        class Broken(HttpRpcClient):
            @http_request(RequestMethod.GET, url="/x", async_=True)
            def call(self) -> User: ...

        with pytest.raises(ConfigurationError):
            Broken(engine)

    def test_descriptors_built_once(self, engine, transport):
        UserClient(engine)
        built = len(engine.descriptors)
        UserClient(engine)
        assert len(engine.descriptors) == built

    def test_subclass_inherits_methods(self, engine, transport):
        class AdminClient(UserClient):
            @http_request(RequestMethod.GET, url="/admins/{id}")
            def get_user(self, id: Annotated[str, PathVariable("id")]) -> User: ...

        transport.respond(body={"id": 1, "name": "root"})
        admin = AdminClient(engine)
        admin.get_user("1")
        assert transport.last.url == "/admins/1"
        assert "touch" in AdminClient.rpc_methods()

    def test_context_manager_closes_transport(self, engine, transport):
        with UserClient(engine):
            pass
        assert transport.closed

    def test_metrics_exposed(self, client, transport):
        transport.respond(body={"id": 1, "name": "a"})
        client.get_user("1")
        assert client.get_metrics().total_requests == 1


class TestClientProxyFactory:

    def test_create_service_proxy_from_config(self):
        config = ConfigManager(data={
            "httprpc": {"success_policy": "2xx"},
            "services": {"user": {"url": "http://cfg.local/users"}},
        }, environ={})
        transport = FakeTransport()
        transport.respond(status=204)

        client = ClientProxyFactory.create_service_proxy(UserClient, config, transport=transport)
        client.configured()

        assert transport.last.url == "http://cfg.local/users"
        assert client.engine.settings.success_policy == "2xx"

    def test_custom_signer(self):
        signer = Mock()
        signer.sign.return_value = "signed"
        transport = FakeTransport()
        transport.respond(body={})

        client = ClientProxyFactory.create_service_proxy(
            UserClient, ConfigManager(data={}, environ={}), transport=transport, signer=signer
        )
        client.place_order("ETH", 1, "5", "key")
        assert transport.last.headers["sign"] == "signed"
