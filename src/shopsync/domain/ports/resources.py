"""Port for reading and writing remote resource instances."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from shopsync.domain.reconciliation import ReconciliationResult
    from shopsync.domain.resources import Asset, ResourceId

Resource = dict[str, Any]


@runtime_checkable
class ResourceGateway(Protocol):
    """Generic CRUD over assets, as offered by the shop client."""

    async def retrieve_singular(
        self,
        asset: Asset,
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> Any: ...

    async def retrieve_all(
        self,
        asset: Asset,
        parent_id: ResourceId | None = None,
    ) -> list[Resource]: ...

    async def create(
        self,
        asset: Asset,
        content: Mapping[str, Any],
        parent_id: ResourceId | None = None,
    ) -> Resource: ...

    async def update_singular(
        self,
        asset: Asset,
        content: Mapping[str, Any],
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> Resource: ...

    async def update_plural(
        self,
        asset: Asset,
        items: Sequence[Mapping[str, Any]],
        parent_id: ResourceId | None = None,
    ) -> list[Resource]: ...

    async def delete_plural(
        self,
        asset: Asset,
        items: Sequence[Mapping[str, Any]],
        parent_id: ResourceId | None = None,
    ) -> list[Resource]: ...

    async def update_singular_with_metafields(
        self,
        asset: Asset,
        content: Mapping[str, Any],
        parent_id: ResourceId | None = None,
        child_id: ResourceId | None = None,
    ) -> ReconciliationResult: ...
