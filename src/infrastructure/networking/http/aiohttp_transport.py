"""
aiohttp Transport

Single aiohttp session living on the reactor loop, shared by synchronous
and asynchronous calls. Connection pooling and timeouts are configured
from ClientSettings.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from config.structs import ClientSettings
from infrastructure.exceptions import TransportError
from infrastructure.logging import LoggerInterface, get_logger
from .reactor import Reactor
from .structs import HttpResponse, RequestMethod
from .transport import RequestBody, Transport, TransportCallback


class AiohttpTransport(Transport):
    """
    Transport backed by aiohttp.

    Features:
    - Connection pooling with a persistent session
    - Total and connect timeouts from settings
    - Relative URLs joined onto settings.base_url
    - Async completions delivered on the reactor thread
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        reactor: Optional[Reactor] = None,
        logger: Optional[LoggerInterface] = None
    ):
        self.settings = settings or ClientSettings()
        self._reactor = reactor or Reactor()
        self._owns_reactor = reactor is None

        self._session: Optional[aiohttp.ClientSession] = None
        self._connector: Optional[aiohttp.TCPConnector] = None

        self.logger = logger or get_logger('httprpc.transport.aiohttp')

    @property
    def reactor(self) -> Reactor:
        return self._reactor

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Create the aiohttp session on first use. Runs on the reactor loop."""
        if self._session is None or self._session.closed:
            self._connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=self.settings.max_concurrent,
                ttl_dns_cache=300,
                keepalive_timeout=60,
            )

            timeout = aiohttp.ClientTimeout(
                total=self.settings.timeout,
                connect=self.settings.connect_timeout,
            )

            default_headers = {
                'User-Agent': self.settings.user_agent,
                'Accept-Encoding': 'gzip, deflate',
            }
            if self.settings.default_headers:
                default_headers.update(self.settings.default_headers)

            self._session = aiohttp.ClientSession(
                connector=self._connector,
                timeout=timeout,
                headers=default_headers
            )
        return self._session

    def _resolve_url(self, url: str) -> str:
        base_url = self.settings.base_url
        if base_url and url.startswith('/'):
            return base_url.rstrip('/') + url
        return url

    async def _request(
        self,
        method: RequestMethod,
        url: str,
        headers: Dict[str, str],
        body: RequestBody
    ) -> HttpResponse:
        session = await self._ensure_session()

        request_headers = dict(headers)
        request_kwargs: Dict[str, Any] = {'headers': request_headers}

        if method is RequestMethod.GET:
            if body:
                request_kwargs['params'] = body
        elif method is RequestMethod.POST:
            # dict data is sent as application/x-www-form-urlencoded
            request_kwargs['data'] = body or {}
        else:
            request_headers.setdefault('Content-Type', 'application/json')
            request_kwargs['data'] = body or b''

        full_url = self._resolve_url(url)
        try:
            async with session.request(method.http_verb, full_url, **request_kwargs) as response:
                content = await response.read()
                return HttpResponse(
                    status=response.status,
                    body=content,
                    headers={k: v for k, v in response.headers.items()},
                    charset=response.charset
                )
        except aiohttp.ClientError as e:
            raise TransportError(f"Connection failed: {e}", {"url": full_url}) from e
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request timed out after {self.settings.timeout}s", {"url": full_url}) from e

    def execute(
        self,
        method: RequestMethod,
        url: str,
        headers: Dict[str, str],
        body: RequestBody
    ) -> HttpResponse:
        return self._reactor.run(self._request(method, url, headers, body))

    def execute_async(
        self,
        method: RequestMethod,
        url: str,
        headers: Dict[str, str],
        body: RequestBody,
        callback: TransportCallback
    ) -> None:
        self._reactor.submit(self._deliver(self._request(method, url, headers, body), callback))

    async def _deliver(self, request, callback: TransportCallback) -> None:
        try:
            response = await request
        except asyncio.CancelledError:
            callback.cancelled()
            raise
        except Exception as e:
            callback.failed(e)
            return
        callback.completed(response)

    async def _close_session(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        if self._connector:
            await self._connector.close()
        self._session = None
        self._connector = None

    def close(self) -> None:
        """Close the session and, when owned, stop the reactor."""
        if self._reactor.is_running:
            if self._reactor.in_reactor_thread():
                self._reactor.submit(self._close_session())
            else:
                self._reactor.run(self._close_session())
        if self._owns_reactor:
            self._reactor.stop()
        self.logger.debug("AiohttpTransport closed")
