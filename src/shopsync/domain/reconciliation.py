"""Metafield reconciliation: diff a desired metafield list against the shop's.

Applying a diff is a three-phase saga, not a transaction:

1. ``resource`` - update the owning resource, creating new metafields through
   its ``metafields`` field;
2. ``delete`` - delete metafields that are no longer desired;
3. ``update`` - update metafields whose namespace or value changed.

A failure in phase 2 or 3 leaves earlier phases applied. It is reported as a
:class:`PartialReconciliationError` carrying what was already done.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal

from shopsync.domain.resources import (
    metafield_asset,
    operation_name,
    require_instance_id,
    resolve_address,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from shopsync.domain.ports.resources import Resource, ResourceGateway
    from shopsync.domain.resources import Asset, ResourceId

log = getLogger(__name__)

IDENTITY_DELIMITER = "."

Phase = Literal["resource", "delete", "update"]


def metafield_identity(metafield: Mapping[str, Any]) -> str:
    return f"{metafield.get('namespace')}{IDENTITY_DELIMITER}{metafield.get('key')}"


def index_metafields(metafields: Iterable[Mapping[str, Any]]) -> dict[str, Mapping[str, Any]]:
    """Index by identity; a later duplicate replaces an earlier one."""
    return {metafield_identity(metafield): metafield for metafield in metafields}


@dataclass(slots=True)
class MetafieldDiff:
    to_create: list[Resource] = field(default_factory=list["Resource"])
    to_update: list[Resource] = field(default_factory=list["Resource"])
    to_delete: list[Resource] = field(default_factory=list["Resource"])

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_delete)


def diff_metafields(
    server: Iterable[Mapping[str, Any]],
    desired: Iterable[Mapping[str, Any]],
) -> MetafieldDiff:
    server_index = index_metafields(server)
    desired_index = index_metafields(desired)
    diff = MetafieldDiff()

    for identity, wanted in desired_index.items():
        current = server_index.get(identity)
        if current is None:
            diff.to_create.append(dict(wanted))
            continue
        same_namespace = current.get("namespace") == wanted.get("namespace")
        same_value = current.get("value") == wanted.get("value")
        if same_namespace and same_value:
            continue
        diff.to_update.append({**current, **wanted})

    for identity, current in server_index.items():
        if identity not in desired_index:
            diff.to_delete.append(dict(current))

    return diff


@dataclass(slots=True)
class ReconciliationResult:
    """Outcome of each phase; ``diff`` is ``None`` when no metafields were given."""

    resource: Resource | None = None
    diff: MetafieldDiff | None = None
    deleted: list[Resource] = field(default_factory=list["Resource"])
    updated: list[Resource] = field(default_factory=list["Resource"])
    completed: list[Phase] = field(default_factory=list["Phase"])


class PartialReconciliationError(RuntimeError):
    """Raised when a reconciliation phase fails after earlier phases were applied."""

    def __init__(self, phase: Phase, result: ReconciliationResult) -> None:
        applied = ", ".join(result.completed) or "nothing"
        super().__init__(
            f"Metafield reconciliation failed in phase {phase!r}; applied: {applied}"
        )
        self.phase: Phase = phase
        self.result = result


async def reconcile_metafields(
    gateway: ResourceGateway,
    asset: Asset,
    content: Mapping[str, Any],
    parent_id: ResourceId | None = None,
    child_id: ResourceId | None = None,
) -> ReconciliationResult:
    """Update ``content``'s resource and bring its metafields in line with it."""

    result = ReconciliationResult()
    desired = content.get("metafields")
    if desired is None:
        result.resource = await gateway.update_singular(asset, content, parent_id, child_id)
        result.completed.append("resource")
        return result

    parent_id, child_id = resolve_address(asset, content, parent_id, child_id)
    owner_id = require_instance_id(asset, parent_id, child_id)
    sub_asset = metafield_asset(asset)
    server = await gateway.retrieve_singular(sub_asset, owner_id)
    diff = diff_metafields(server or [], desired)
    result.diff = diff
    log.debug(
        "Reconciling %s %s: create=%s update=%s delete=%s",
        operation_name(asset),
        owner_id,
        len(diff.to_create),
        len(diff.to_update),
        len(diff.to_delete),
    )

    payload = {**content, "metafields": diff.to_create}
    result.resource = await gateway.update_singular(asset, payload, parent_id, child_id)
    result.completed.append("resource")

    phase: Phase = "delete"
    try:
        result.deleted = await gateway.delete_plural(sub_asset, diff.to_delete, owner_id)
        result.completed.append("delete")
        phase = "update"
        result.updated = await gateway.update_plural(sub_asset, diff.to_update, owner_id)
        result.completed.append("update")
    except Exception as exc:
        log.warning(
            "Reconciliation of %s %s stopped in phase %s", operation_name(asset), owner_id, phase
        )
        raise PartialReconciliationError(phase, result) from exc

    return result
