"""Resource descriptors, assets and the path/envelope rules derived from them.

An *asset* addresses either a top-level collection (``/admin/blogs``) or a
collection nested under one parent instance (``/admin/blogs/1/articles``).
Everything the client needs to talk to a collection (URL segments, JSON
envelope keys, the field linking a child to its parent) is a pure function
of the asset.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

ResourceId = int | str


@dataclass(frozen=True, slots=True)
class ResourceDescriptor:
    """Plural/singular naming of one resource kind."""

    plural: str
    singular: str


BLOGS: Final = ResourceDescriptor("blogs", "blog")
ARTICLES: Final = ResourceDescriptor("articles", "article")
PAGES: Final = ResourceDescriptor("pages", "page")
PRODUCTS: Final = ResourceDescriptor("products", "product")
REDIRECTS: Final = ResourceDescriptor("redirects", "redirect")
METAFIELDS: Final = ResourceDescriptor("metafields", "metafield")

DESCRIPTORS: Final[dict[str, ResourceDescriptor]] = {
    descriptor.plural: descriptor
    for descriptor in (BLOGS, ARTICLES, PAGES, PRODUCTS, REDIRECTS, METAFIELDS)
}


@dataclass(frozen=True, slots=True)
class TopLevel:
    resource: ResourceDescriptor


@dataclass(frozen=True, slots=True)
class Nested:
    parent: ResourceDescriptor
    child: ResourceDescriptor


Asset = TopLevel | Nested


SCHEMAS: Final[tuple[Asset, ...]] = (
    TopLevel(BLOGS),
    Nested(BLOGS, ARTICLES),
    Nested(BLOGS, METAFIELDS),
    Nested(ARTICLES, METAFIELDS),
    TopLevel(PAGES),
    Nested(PAGES, METAFIELDS),
    TopLevel(PRODUCTS),
    Nested(PRODUCTS, METAFIELDS),
    TopLevel(REDIRECTS),
    TopLevel(METAFIELDS),
)

PAGE_SIZE: Final = 250


class MissingIdentifierError(ValueError):
    """Raised when an operation needs an instance id that cannot be resolved."""


def resource_of(asset: Asset) -> ResourceDescriptor:
    """The kind of the instances held by the asset's collection."""
    match asset:
        case TopLevel(resource=resource):
            return resource
        case Nested(child=child):
            return child


def alias(asset: Asset) -> ResourceDescriptor:
    """Descriptor whose names identify the asset in generated operation names.

    Metafields nested under different parents would all be called "metafields";
    their alias carries the parent's name instead (``ArticleMetafields``).
    """
    match asset:
        case Nested(parent=parent, child=child) if child == METAFIELDS:
            prefix = parent.singular.capitalize()
            return ResourceDescriptor(f"{prefix}Metafields", f"{prefix}Metafield")
        case _:
            return resource_of(asset)


def operation_name(asset: Asset) -> str:
    """snake_case registry key for the asset, e.g. ``article_metafields``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", alias(asset).plural).lower()


def parent_link_field(asset: Asset) -> str | None:
    """Field of a child instance that holds its parent's id."""
    match asset:
        case TopLevel():
            return None
        case Nested(child=child) if child == METAFIELDS:
            return "owner_id"
        case Nested(parent=parent):
            return f"{parent.singular}_id"


def metafield_asset(asset: Asset) -> Nested:
    """Asset addressing the metafields of the asset's instances."""
    return Nested(resource_of(asset), METAFIELDS)


def build_path(
    asset: Asset,
    parent_id: ResourceId | None = None,
    child_id: ResourceId | None = None,
    *,
    suffix: str | None = None,
) -> str:
    segments = ["admin"]
    match asset:
        case TopLevel(resource=resource):
            segments.append(resource.plural)
            if parent_id is not None:
                segments.append(str(parent_id))
        case Nested(parent=parent, child=child):
            segments.append(parent.plural)
            if parent_id is not None:
                segments.append(str(parent_id))
            segments.append(child.plural)
            if child_id is not None:
                segments.append(str(child_id))
    if suffix is not None:
        segments.append(suffix)
    return "/" + "/".join(segments) + ".json"


def envelope_key(asset: Asset) -> str:
    """Payload key wrapping a single instance in request and response bodies."""
    return resource_of(asset).singular


def collection_envelope_key(asset: Asset) -> str:
    """Payload key wrapping a list of instances in response bodies."""
    return resource_of(asset).plural


def read_envelope_key(asset: Asset) -> str:
    """Payload key of a singular read.

    The API answers parent-scoped metafield reads with a list under the plural
    key, even when a single instance is addressed.
    """
    match asset:
        case Nested(child=child) if child == METAFIELDS:
            return collection_envelope_key(asset)
        case _:
            return envelope_key(asset)


def instance_id(
    asset: Asset,
    parent_id: ResourceId | None,
    child_id: ResourceId | None,
) -> ResourceId | None:
    """The id addressing one instance of the asset's collection."""
    match asset:
        case TopLevel():
            return parent_id
        case Nested():
            return child_id


def resolve_address(
    asset: Asset,
    content: Mapping[str, object],
    parent_id: ResourceId | None = None,
    child_id: ResourceId | None = None,
) -> tuple[ResourceId | None, ResourceId | None]:
    """Ids addressing ``content``; ids carried by the content win over passed ones."""
    own_id = _as_id(content.get("id"))
    match asset:
        case TopLevel():
            return (own_id if own_id is not None else parent_id), None
        case Nested():
            link = parent_link_field(asset)
            linked = _as_id(content.get(link)) if link else None
            return (
                linked if linked is not None else parent_id,
                own_id if own_id is not None else child_id,
            )


def require_instance_id(
    asset: Asset,
    parent_id: ResourceId | None,
    child_id: ResourceId | None,
) -> ResourceId:
    resolved = instance_id(asset, parent_id, child_id)
    if resolved is None:
        raise MissingIdentifierError(f"No identifier resolves for {operation_name(asset)}")
    if isinstance(asset, Nested) and parent_id is None:
        raise MissingIdentifierError(
            f"No parent identifier resolves for {operation_name(asset)}"
        )
    return resolved


def _as_id(value: object) -> ResourceId | None:
    if isinstance(value, bool) or value is None or value == "":
        return None
    if isinstance(value, int | str):
        return value
    return None
