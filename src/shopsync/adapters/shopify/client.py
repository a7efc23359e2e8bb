"""Generic CRUD client for the Shopify Admin REST API.

The client knows nothing about concrete resource kinds: every operation takes an
:class:`~shopsync.domain.resources.Asset` and derives paths and envelope keys
from it. All requests go through one :class:`ResilientClient`, so they share a
single call budget for the lifetime of the client.
"""

from __future__ import annotations

import asyncio
import math
from itertools import chain
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from shopsync.adapters.http_resilience import DebugTransport, ResilientClient
from shopsync.domain.ensure import ensure
from shopsync.domain.reconciliation import reconcile_metafields
from shopsync.domain.resources import (
    METAFIELDS,
    PAGE_SIZE,
    MissingIdentifierError,
    Nested,
    build_path,
    collection_envelope_key,
    envelope_key,
    metafield_asset,
    operation_name,
    read_envelope_key,
    require_instance_id,
    resolve_address,
    resource_of,
)

from .schema import CountResponse, ErrorResponse, MetafieldPayload

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType

    from shopsync.config.shopify import ShopifyConfig
    from shopsync.domain.ensure import Match
    from shopsync.domain.ports.resources import Resource
    from shopsync.domain.reconciliation import ReconciliationResult
    from shopsync.domain.resources import Asset, ResourceId

log = getLogger(__name__)


class ShopifyAPIError(RuntimeError):
    """Raised when the Shopify API answers with an error or an unexpected payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_resilient_client(config: ShopifyConfig) -> ResilientClient:
    transport = DebugTransport() if config.debug else None
    return ResilientClient(config.resilience, transport=transport)


class ShopifyClient:
    """Asset-parameterised retrieve/create/update/delete operations."""

    def __init__(
        self,
        *,
        config: ShopifyConfig,
        client_factory: Callable[[ShopifyConfig], ResilientClient] | None = None,
    ) -> None:
        self.config = config
        self._http = (client_factory or build_resilient_client)(config)
        log.debug("shop %s", config.shop)

    async def __aenter__(self) -> ShopifyClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ----- reads -----

    async def retrieve_singular(
        self,
        asset: Asset,
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> Any:
        payload = await self._request("GET", build_path(asset, parent_id, child_id))
        unwrapped = payload.get(read_envelope_key(asset))
        if isinstance(asset, Nested) and asset.child == METAFIELDS:
            _validate_metafields(unwrapped or [])
        return unwrapped

    async def retrieve_page(
        self,
        asset: Asset,
        page: int = 1,
        parent_id: ResourceId | None = None,
    ) -> list[Resource]:
        payload = await self._request(
            "GET",
            self._collection_path(asset, parent_id),
            params={"limit": PAGE_SIZE, "page": page},
        )
        return list(payload.get(collection_envelope_key(asset)) or [])

    async def retrieve_count(self, asset: Asset, parent_id: ResourceId | None = None) -> int:
        payload = await self._request(
            "GET", self._collection_path(asset, parent_id, suffix="count")
        )
        try:
            return CountResponse.model_validate(payload).count
        except ValidationError as exc:
            raise ShopifyAPIError(f"Unexpected count payload: {payload!r}") from exc

    async def retrieve_all(
        self,
        asset: Asset,
        parent_id: ResourceId | None = None,
    ) -> list[Resource]:
        count = await self.retrieve_count(asset, parent_id)
        pages = range(1, math.ceil(count / PAGE_SIZE) + 1)
        log.debug("Retrieving %s %s in %s page(s)", count, operation_name(asset), len(pages))
        # gather keeps results in argument order, i.e. page order
        batches = await asyncio.gather(
            *(self.retrieve_page(asset, page, parent_id) for page in pages)
        )
        return list(chain.from_iterable(batches))

    async def retrieve_singular_with_metafields(
        self,
        asset: Asset,
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> Resource | None:
        _require_metafield_owner(asset)
        item = await self.retrieve_singular(asset, parent_id, child_id)
        if item is None:
            return None
        return await self._with_metafields(asset, item)

    async def retrieve_all_with_metafields(
        self,
        asset: Asset,
        parent_id: ResourceId | None = None,
    ) -> list[Resource]:
        _require_metafield_owner(asset)
        items = await self.retrieve_all(asset, parent_id)
        return list(await asyncio.gather(*(self._with_metafields(asset, item) for item in items)))

    # ----- writes -----

    async def create(
        self,
        asset: Asset,
        content: Mapping[str, Any],
        parent_id: ResourceId | None = None,
    ) -> Resource:
        key = envelope_key(asset)
        payload = await self._request(
            "POST", self._collection_path(asset, parent_id), json={key: dict(content)}
        )
        return payload.get(key) or {}

    async def update_singular(
        self,
        asset: Asset,
        content: Mapping[str, Any],
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> Resource:
        parent_id, child_id = resolve_address(asset, content, parent_id, child_id)
        require_instance_id(asset, parent_id, child_id)
        key = envelope_key(asset)
        payload = await self._request(
            "PUT", build_path(asset, parent_id, child_id), json={key: dict(content)}
        )
        return payload.get(key) or {}

    async def update_plural(
        self,
        asset: Asset,
        items: Sequence[Mapping[str, Any]],
        parent_id: ResourceId | None = None,
    ) -> list[Resource]:
        """Update ``items`` one after another, stopping at the first failure."""
        results: list[Resource] = []
        for item in items:
            results.append(await self.update_singular(asset, item, parent_id))
        return results

    async def update_singular_with_metafields(
        self,
        asset: Asset,
        content: Mapping[str, Any],
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> ReconciliationResult:
        return await reconcile_metafields(self, asset, content, parent_id, child_id)

    async def delete_singular(
        self,
        asset: Asset,
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> Resource:
        require_instance_id(asset, parent_id, child_id)
        return await self._request("DELETE", build_path(asset, parent_id, child_id))

    async def delete_plural(
        self,
        asset: Asset,
        items: Sequence[Mapping[str, Any]],
        parent_id: ResourceId | None = None,
    ) -> list[Resource]:
        """Delete ``items`` one after another, stopping at the first failure."""
        results: list[Resource] = []
        for item in items:
            item_parent, item_id = resolve_address(asset, item, parent_id)
            results.append(await self.delete_singular(asset, item_parent, item_id))
        return results

    async def ensure(
        self,
        asset: Asset,
        match: Match,
        content: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None = None,
        parent_id: ResourceId | None = None,
    ) -> Resource | ReconciliationResult | list[Resource | ReconciliationResult]:
        return await ensure(self, asset, match, content, parent_id)

    # ----- plumbing -----

    async def _with_metafields(self, asset: Asset, item: Mapping[str, Any]) -> Resource:
        metafields = await self.retrieve_singular(metafield_asset(asset), item["id"])
        return {**item, "metafields": metafields or []}

    def _collection_path(
        self,
        asset: Asset,
        parent_id: ResourceId | None,
        *,
        suffix: str | None = None,
    ) -> str:
        if isinstance(asset, Nested):
            if parent_id is None:
                raise MissingIdentifierError(
                    f"No parent identifier resolves for {operation_name(asset)}"
                )
            return build_path(asset, parent_id, suffix=suffix)
        return build_path(asset, suffix=suffix)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: object | None = None,
        params: dict[str, int] | None = None,
    ) -> dict[str, Any]:
        response = await self._http.request(method, path, json=json, params=params)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _error_detail(response)
            log.error(f"Shopify API error {response.status_code} on {method} {path}: {detail}")
            raise ShopifyAPIError(
                f"{method} {path} failed with {response.status_code}: {detail}",
                status_code=response.status_code,
            ) from exc

        if not response.content:
            return {}
        payload = response.json()
        if not isinstance(payload, dict):
            raise ShopifyAPIError("Unexpected Shopify response payload")
        return payload


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict) and "errors" in payload:
        return str(ErrorResponse.model_validate(payload).errors)
    return str(payload)


def _require_metafield_owner(asset: Asset) -> None:
    if resource_of(asset) == METAFIELDS:
        raise ValueError(f"{operation_name(asset)} have no metafields of their own")


def _validate_metafields(items: object) -> None:
    if not isinstance(items, list):
        raise ShopifyAPIError("Metafields payload is not a list")
    try:
        for item in items:
            MetafieldPayload.model_validate(item)
    except ValidationError as exc:
        raise ShopifyAPIError("Unexpected metafield payload") from exc
