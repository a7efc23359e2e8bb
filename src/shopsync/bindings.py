"""Named, asset-bound operations over a :class:`ShopifyClient`.

``Shopify`` exposes one :class:`BoundResource` per entry of the schema table,
both through a registry (``shop["article_metafields"]``) and as attributes
(``shop.article_metafields``)::

    async with Shopify.from_config(get_shopify_config()) as shop:
        blog = await shop.blogs.ensure({"title": "News"})
        await shop.articles.ensure(["handle"], articles, parent_id=blog["id"])
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from shopsync.adapters.shopify.client import ShopifyClient
from shopsync.domain.resources import SCHEMAS, alias, operation_name

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping, Sequence
    from types import TracebackType

    from shopsync.adapters.http_resilience import ResilientClient
    from shopsync.config.shopify import ShopifyConfig
    from shopsync.domain.ensure import Match
    from shopsync.domain.ports.resources import Resource
    from shopsync.domain.reconciliation import ReconciliationResult
    from shopsync.domain.resources import Asset, ResourceId


@dataclass(frozen=True, slots=True)
class BoundResource:
    """Thin forwarders to the client with ``asset`` filled in."""

    asset: Asset
    client: ShopifyClient

    @property
    def name(self) -> str:
        return alias(self.asset).plural

    async def retrieve(
        self, parent_id: ResourceId | None = None, child_id: ResourceId | None = None
    ) -> Any:
        return await self.client.retrieve_singular(self.asset, parent_id, child_id)

    async def retrieve_page(
        self, page: int = 1, parent_id: ResourceId | None = None
    ) -> list[Resource]:
        return await self.client.retrieve_page(self.asset, page, parent_id)

    async def count(self, parent_id: ResourceId | None = None) -> int:
        return await self.client.retrieve_count(self.asset, parent_id)

    async def retrieve_all(self, parent_id: ResourceId | None = None) -> list[Resource]:
        return await self.client.retrieve_all(self.asset, parent_id)

    async def retrieve_with_metafields(
        self, parent_id: ResourceId | None = None, child_id: ResourceId | None = None
    ) -> Resource | None:
        return await self.client.retrieve_singular_with_metafields(self.asset, parent_id, child_id)

    async def retrieve_all_with_metafields(
        self, parent_id: ResourceId | None = None
    ) -> list[Resource]:
        return await self.client.retrieve_all_with_metafields(self.asset, parent_id)

    async def create(
        self, content: Mapping[str, Any], parent_id: ResourceId | None = None
    ) -> Resource:
        return await self.client.create(self.asset, content, parent_id)

    async def update(
        self,
        content: Mapping[str, Any],
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> Resource:
        return await self.client.update_singular(self.asset, content, parent_id, child_id)

    async def update_many(
        self, items: Sequence[Mapping[str, Any]], parent_id: ResourceId | None = None
    ) -> list[Resource]:
        return await self.client.update_plural(self.asset, items, parent_id)

    async def update_with_metafields(
        self,
        content: Mapping[str, Any],
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> ReconciliationResult:
        return await self.client.update_singular_with_metafields(
            self.asset, content, parent_id, child_id
        )

    async def delete(
        self, parent_id: ResourceId | None = None, child_id: ResourceId | None = None
    ) -> Resource:
        return await self.client.delete_singular(self.asset, parent_id, child_id)

    async def delete_many(
        self, items: Sequence[Mapping[str, Any]], parent_id: ResourceId | None = None
    ) -> list[Resource]:
        return await self.client.delete_plural(self.asset, items, parent_id)

    async def ensure(
        self,
        match: Match,
        content: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None = None,
        parent_id: ResourceId | None = None,
    ) -> Resource | ReconciliationResult | list[Resource | ReconciliationResult]:
        return await self.client.ensure(self.asset, match, content, parent_id)


def build_registry(client: ShopifyClient) -> dict[str, BoundResource]:
    registry: dict[str, BoundResource] = {}
    for asset in SCHEMAS:
        name = operation_name(asset)
        if name in registry:
            raise ValueError(f"Duplicate operation name {name!r} in schema table")
        registry[name] = BoundResource(asset, client)
    return registry


class Shopify:
    """Entry point bundling a client with its bound resources."""

    def __init__(self, client: ShopifyClient) -> None:
        self.client = client
        self.resources = build_registry(client)
        self.blogs = self.resources["blogs"]
        self.articles = self.resources["articles"]
        self.blog_metafields = self.resources["blog_metafields"]
        self.article_metafields = self.resources["article_metafields"]
        self.pages = self.resources["pages"]
        self.page_metafields = self.resources["page_metafields"]
        self.products = self.resources["products"]
        self.product_metafields = self.resources["product_metafields"]
        self.redirects = self.resources["redirects"]
        self.metafields = self.resources["metafields"]

    @classmethod
    def from_config(
        cls,
        config: ShopifyConfig,
        *,
        client_factory: Callable[[ShopifyConfig], ResilientClient] | None = None,
    ) -> Shopify:
        return cls(ShopifyClient(config=config, client_factory=client_factory))

    def __getitem__(self, name: str) -> BoundResource:
        try:
            return self.resources[name]
        except KeyError:
            known = ", ".join(sorted(self.resources))
            raise KeyError(f"Unknown resource {name!r}; expected one of: {known}") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self.resources)

    async def __aenter__(self) -> Shopify:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.client.aclose()
