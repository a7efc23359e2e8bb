"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig
from .shopify import (
    ACCESS_TOKEN_HEADER,
    DEFAULT_REQUESTS_PER_SECOND,
    ShopifyConfig,
    build_shopify_config,
    get_shopify_config,
)

__all__ = [
    "ACCESS_TOKEN_HEADER",
    "DEFAULT_REQUESTS_PER_SECOND",
    "ConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "ShopifyConfig",
    "build_shopify_config",
    "env_flag",
    "env_int",
    "get_shopify_config",
    "require_env_vars",
]
