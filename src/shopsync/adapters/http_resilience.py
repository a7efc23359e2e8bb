"""httpx client that paces every request through a shared call budget."""

from __future__ import annotations

import asyncio
import random
import re
from logging import getLogger
from typing import (
    TYPE_CHECKING,
    TypedDict,
    Unpack,
)

import httpx

from shopsync.adapters.scheduler import RequestScheduler

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from types import TracebackType

    from httpx._types import (
        HeaderTypes,
        QueryParamTypes,
        TimeoutTypes,
        URLTypes,
    )

    from shopsync.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

_NOISE = re.compile(r"/admin|\.json", re.IGNORECASE)


def describe_request(method: str, url: URLTypes) -> str:
    """Short ``METHOD path`` label used in request logs."""
    return f"{method} {_NOISE.sub('', httpx.URL(url).path)}"


class RequestOptions(TypedDict, total=False):
    json: object
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    timeout: TimeoutTypes


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: HeaderTypes
    transport: httpx.AsyncBaseTransport


class DebugTransport(httpx.AsyncBaseTransport):
    """Stand-in transport that sleeps for a random duration and answers ``{}``.

    Used in debug mode so that request pacing can be observed without a live shop.
    """

    def __init__(
        self,
        *,
        max_delay_seconds: float = 1.0,
        rng: random.Random | None = None,
    ) -> None:
        self._max_delay = max_delay_seconds
        self._rng = rng or random.Random()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        log.debug("mock %s", describe_request(request.method, request.url))
        # random fraction of a random ceiling between 10% and 100% of the maximum
        ceiling = self._rng.randint(100, 999) / 1000 * self._max_delay
        await asyncio.sleep(self._rng.random() * ceiling)
        return httpx.Response(200, json={}, request=request)


class ResilientClient:
    """httpx client whose every request passes through a :class:`RequestScheduler`."""

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        scheduler: RequestScheduler | None = None,
    ) -> None:
        self.config = config
        if scheduler is None:
            ratelimit = config.ratelimit
            scheduler = (
                RequestScheduler(ratelimit.max_calls, ratelimit.per_seconds)
                if ratelimit
                else RequestScheduler()
            )
        self.scheduler = scheduler

        client_kwargs: AsyncClientOptions = {"timeout": config.timeout_seconds}
        if config.base_url is not None:
            client_kwargs["base_url"] = config.base_url
        if config.default_headers:
            client_kwargs["headers"] = dict(config.default_headers)
        if transport is not None:
            client_kwargs["transport"] = transport

        self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        async def do_request() -> httpx.Response:
            log.debug(describe_request(method, url))
            return await self._client.request(method, url, **kwargs)

        return await self._send(do_request)

    async def _send(self, func: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        return await self.scheduler.submit(func)
