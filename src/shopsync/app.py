"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Any

from shopsync.bindings import Shopify
from shopsync.config import get_shopify_config

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Mapping

    from shopsync.config.shopify import ShopifyConfig

log = getLogger(__name__)


def _template_names(prefix: str, items: Iterable[Mapping[str, Any]]) -> list[str]:
    return [
        f"{prefix}.{item['template_suffix']}.liquid"
        for item in items
        if item.get("template_suffix")
    ]


async def collect_template_suffixes(shop: Shopify) -> list[str]:
    """Liquid template names referenced by products and pages, without duplicates."""

    pages = await shop.pages.retrieve_all()
    products = await shop.products.retrieve_all()
    names = _template_names("product", products) + _template_names("page", pages)
    return list(dict.fromkeys(names))


def run_with_shop[T](
    operation: Callable[[Shopify], Awaitable[T]],
    *,
    config: ShopifyConfig | None = None,
) -> T:
    """Run ``operation`` against a freshly opened shop and close it afterwards."""

    effective_config = config or get_shopify_config()
    log.info(
        "Connecting to %s (budget=%s req/s, debug=%s)",
        effective_config.shop,
        effective_config.requests_per_second,
        effective_config.debug,
    )

    async def runner() -> T:
        async with Shopify.from_config(effective_config) as shop:
            return await operation(shop)

    return asyncio.run(runner())
