"""Shopify Admin REST adapter."""

from __future__ import annotations

from .client import ShopifyAPIError, ShopifyClient, build_resilient_client
from .schema import CountResponse, MetafieldPayload

__all__ = [
    "CountResponse",
    "MetafieldPayload",
    "ShopifyAPIError",
    "ShopifyClient",
    "build_resilient_client",
]
