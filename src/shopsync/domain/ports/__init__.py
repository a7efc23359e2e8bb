"""Ports the domain layer uses to reach the shop."""

from __future__ import annotations

from .resources import Resource, ResourceGateway

__all__ = ["Resource", "ResourceGateway"]
