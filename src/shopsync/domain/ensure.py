"""Idempotent upserts: find-or-create and find-and-update by a match predicate."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from logging import getLogger
from typing import TYPE_CHECKING, Any, overload

from shopsync.domain.resources import Nested, operation_name, parent_link_field

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shopsync.domain.ports.resources import Resource, ResourceGateway
    from shopsync.domain.reconciliation import ReconciliationResult
    from shopsync.domain.resources import Asset, ResourceId

log = getLogger(__name__)

Match = Mapping[str, Any] | Sequence[str]


def find_where(items: Iterable[Mapping[str, Any]], match: Mapping[str, Any]) -> Resource | None:
    """First item whose fields equal every field of ``match``."""
    for item in items:
        if all(key in item and item[key] == value for key, value in match.items()):
            return dict(item)
    return None


def build_predicate(match: Match, content: Mapping[str, Any]) -> Mapping[str, Any]:
    """``match`` as given, or a predicate built from ``content``'s values for those fields."""
    if isinstance(match, Mapping):
        return match
    if isinstance(match, str):
        match = [match]
    return {name: content.get(name) for name in match}


def _item_parent(
    asset: Asset,
    content: Mapping[str, Any],
    parent_id: ResourceId | None,
) -> ResourceId | None:
    link = parent_link_field(asset)
    linked = content.get(link) if link else None
    return linked if linked is not None else parent_id


def _parent_key(parent_id: ResourceId | None) -> str | None:
    # "1" from the command line and 1 from content address the same parent
    return None if parent_id is None else str(parent_id)


def _resolve_target(
    asset: Asset,
    content: Mapping[str, Any],
    found: Mapping[str, Any] | None,
    parent_id: ResourceId | None,
) -> ResourceId | None:
    """Id of the instance to update, or ``None`` when the content must be created.

    When the caller passes the content's own id as ``parent_id`` the content is
    taken to be the parent-level object and no child id resolves. Whether that
    branch is intended is unconfirmed; it is kept as is.
    """
    if found is None:
        return None
    if isinstance(asset, Nested) and parent_id is not None and "id" in content:
        if str(parent_id) == str(content["id"]):
            return None
    return found.get("id")


@overload
async def ensure(
    gateway: ResourceGateway,
    asset: Asset,
    match: Mapping[str, Any],
    content: None = None,
    parent_id: ResourceId | None = None,
) -> Resource: ...


@overload
async def ensure(
    gateway: ResourceGateway,
    asset: Asset,
    match: Match,
    content: Mapping[str, Any],
    parent_id: ResourceId | None = None,
) -> Resource | ReconciliationResult: ...


@overload
async def ensure(
    gateway: ResourceGateway,
    asset: Asset,
    match: Match,
    content: Sequence[Mapping[str, Any]],
    parent_id: ResourceId | None = None,
) -> list[Resource | ReconciliationResult]: ...


async def ensure(
    gateway: ResourceGateway,
    asset: Asset,
    match: Match,
    content: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None = None,
    parent_id: ResourceId | None = None,
) -> Resource | ReconciliationResult | list[Resource | ReconciliationResult]:
    """Make sure resources matching ``match`` exist and look like ``content``.

    Without ``content`` the first instance equal to ``match`` is returned, or
    ``match`` itself is created. With a mapping or a list of mappings, every
    item is created when nothing matches it, else updated in place together
    with its metafields. Existing instances are fetched once per parent id.
    """

    if content is None:
        if not isinstance(match, Mapping):
            raise TypeError("A singular ensure needs a mapping to match on")
        existing = await gateway.retrieve_all(asset, parent_id)
        found = find_where(existing, match)
        if found is not None:
            log.debug("Found existing %s %s", operation_name(asset), found.get("id"))
            return found
        log.info("Creating %s matching %s", operation_name(asset), dict(match))
        return await gateway.create(asset, match, parent_id)

    singular = isinstance(content, Mapping)
    items: list[Mapping[str, Any]] = [content] if isinstance(content, Mapping) else list(content)

    candidates: dict[str | None, list[Resource]] = {}
    for item in items:
        item_parent = _item_parent(asset, item, parent_id)
        key = _parent_key(item_parent)
        if key not in candidates:
            candidates[key] = await gateway.retrieve_all(asset, item_parent)

    results: list[Resource | ReconciliationResult] = []
    for item in items:
        item_parent = _item_parent(asset, item, parent_id)
        existing = candidates[_parent_key(item_parent)]
        found = find_where(existing, build_predicate(match, item)) if existing else None
        target = _resolve_target(asset, item, found, parent_id)
        if target is None:
            log.info("Creating %s", operation_name(asset))
            results.append(await gateway.create(asset, item, item_parent))
            continue
        log.info("Updating %s %s", operation_name(asset), target)
        if isinstance(asset, Nested):
            outcome = await gateway.update_singular_with_metafields(
                asset, {**item, "id": target}, item_parent, target
            )
        else:
            outcome = await gateway.update_singular_with_metafields(
                asset, {**item, "id": target}, target
            )
        results.append(outcome)

    return results[0] if singular else results
