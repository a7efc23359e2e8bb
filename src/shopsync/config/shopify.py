"""Shopify shop configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag, env_int, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

ACCESS_TOKEN_HEADER = "X-Shopify-Access-Token"  # noqa: S105
DEFAULT_REQUESTS_PER_SECOND = 2
SHOPIFY_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class ShopifyConfig:
    """Holds the shop identity, its credential and the request budget."""

    shop: str
    access_token: str
    resilience: ResilienceConfig
    debug: bool = False

    @property
    def requests_per_second(self) -> int:
        ratelimit = self.resilience.ratelimit
        return ratelimit.max_calls if ratelimit else DEFAULT_REQUESTS_PER_SECOND


def build_shopify_config(
    *,
    shop: str,
    access_token: str,
    debug: bool = False,
    requests_per_second: int = DEFAULT_REQUESTS_PER_SECOND,
) -> ShopifyConfig:
    if not shop.strip():
        raise ConfigurationError("Shop identity must not be blank")
    if requests_per_second < 1:
        raise ConfigurationError(
            f"requests_per_second must be at least 1, got {requests_per_second}"
        )
    resilience = ResilienceConfig(
        name="shopify",
        base_url=f"https://{shop.strip()}",
        timeout_seconds=SHOPIFY_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=requests_per_second, per_seconds=1.0),
        default_headers={ACCESS_TOKEN_HEADER: access_token},
    )
    return ShopifyConfig(
        shop=shop.strip(),
        access_token=access_token,
        resilience=resilience,
        debug=debug,
    )


def get_shopify_config(
    *,
    debug: bool | None = None,
    requests_per_second: int | None = None,
) -> ShopifyConfig:
    values = require_env_vars(("SHOPIFY_SHOP", "SHOPIFY_ACCESS_TOKEN"))
    return build_shopify_config(
        shop=values["SHOPIFY_SHOP"],
        access_token=values["SHOPIFY_ACCESS_TOKEN"],
        debug=env_flag("SHOPIFY_DEBUG") if debug is None else debug,
        requests_per_second=(
            env_int("SHOPIFY_REQUESTS_PER_SECOND", default=DEFAULT_REQUESTS_PER_SECOND)
            if requests_per_second is None
            else requests_per_second
        ),
    )
