from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from shopsync.adapters.shopify.client import ShopifyClient
from shopsync.bindings import Shopify
from shopsync.config import ShopifyConfig, build_shopify_config
from tests.support.fake_shop import FakeShop, make_client_factory

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from tests.support.fake_shop import RunClient

TEST_SHOP = "example-shop.myshopify.com"
TEST_TOKEN = "shpat_test"  # noqa: S105


@pytest.fixture
def fake_shop() -> FakeShop:
    return FakeShop()


@pytest.fixture
def shop_config() -> ShopifyConfig:
    # a generous budget keeps the suite fast; pacing itself is covered in test_scheduler
    return build_shopify_config(shop=TEST_SHOP, access_token=TEST_TOKEN, requests_per_second=1000)


@pytest.fixture
def run_client(fake_shop: FakeShop, shop_config: ShopifyConfig) -> RunClient:
    """Run a coroutine against a client wired to ``fake_shop``."""

    def run(operation: Callable[[ShopifyClient], Awaitable[Any]]) -> Any:
        async def runner() -> Any:
            client = ShopifyClient(
                config=shop_config, client_factory=make_client_factory(fake_shop.handle)
            )
            async with client:
                return await operation(client)

        return asyncio.run(runner())

    return run


@pytest.fixture
def run_shop(fake_shop: FakeShop, shop_config: ShopifyConfig) -> Callable[..., Any]:
    """Run an operation against a :class:`Shopify` wired to ``fake_shop``."""

    def run(operation: Callable[[Shopify], Awaitable[Any]]) -> Any:
        async def runner() -> Any:
            shop = Shopify.from_config(
                shop_config, client_factory=make_client_factory(fake_shop.handle)
            )
            async with shop:
                return await operation(shop)

        return asyncio.run(runner())

    return run
