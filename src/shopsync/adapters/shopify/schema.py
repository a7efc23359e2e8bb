"""Minimal Pydantic models for the Shopify Admin REST API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ShopifyBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class CountResponse(ShopifyBaseModel):
    # debug mode answers every request with an empty body
    count: int = 0


class MetafieldPayload(ShopifyBaseModel):
    id: int | str | None = None
    namespace: str
    key: str
    value: Any = None
    owner_id: int | str | None = None
    owner_resource: str | None = None


class ErrorResponse(ShopifyBaseModel):
    errors: Any = None
