# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from shopsync.app import collect_template_suffixes, run_with_shop
from shopsync.common.logging import configure_logging
from shopsync.config import ConfigurationError, get_shopify_config
from shopsync.domain.reconciliation import ReconciliationResult
from shopsync.domain.resources import METAFIELDS, SCHEMAS, Nested, operation_name, resource_of

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from types import FrameType

    from shopsync.bindings import BoundResource, Shopify

log = logging.getLogger(__name__)

ASSETS = {operation_name(asset): asset for asset in SCHEMAS}
RESOURCE_NAMES = tuple(ASSETS)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Work with a Shopify shop's REST resources")
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Replace every request with a paced no-op (overrides SHOPIFY_DEBUG)",
    )
    parser.add_argument(
        "--requests-per-second",
        type=int,
        default=None,
        help="Request budget per second (overrides SHOPIFY_REQUESTS_PER_SECOND)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every request")
    subparsers = parser.add_subparsers(dest="command", required=True)

    retrieve = subparsers.add_parser("retrieve", help="Print one or all instances of a resource")
    retrieve.add_argument("resource", choices=RESOURCE_NAMES)
    retrieve.add_argument("--parent-id", type=str, help="Parent instance id")
    retrieve.add_argument(
        "--id",
        type=str,
        help="Instance id; omit to retrieve every instance",
    )
    retrieve.add_argument(
        "--with-metafields",
        action="store_true",
        help="Attach each instance's metafields",
    )

    count = subparsers.add_parser("count", help="Print the number of instances of a resource")
    count.add_argument("resource", choices=RESOURCE_NAMES)
    count.add_argument("--parent-id", type=str, help="Parent instance id")

    ensure = subparsers.add_parser(
        "ensure", help="Create or update instances described in a JSON file"
    )
    ensure.add_argument("resource", choices=RESOURCE_NAMES)
    ensure.add_argument(
        "--file",
        type=Path,
        required=True,
        help="JSON file holding one object or a list of objects",
    )
    ensure.add_argument(
        "--match",
        nargs="+",
        required=True,
        help="Fields whose values identify an existing instance",
    )
    ensure.add_argument("--parent-id", type=str, help="Parent instance id")

    subparsers.add_parser(
        "template-suffixes", help="List liquid templates referenced by products and pages"
    )

    return parser.parse_args(list(argv))


def _load_content(path: Path) -> dict[str, Any] | list[dict[str, Any]]:
    try:
        content = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot read {path}: {exc}") from exc
    if isinstance(content, dict):
        return content
    if isinstance(content, list) and all(isinstance(item, dict) for item in content):
        return content
    raise ValueError(f"{path} must hold a JSON object or a list of objects")


def _to_jsonable(value: object) -> object:
    if isinstance(value, ReconciliationResult):
        return asdict(value)
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    return value


async def _retrieve(resource: BoundResource, args: argparse.Namespace) -> object:
    if args.id is None:
        if args.with_metafields:
            return await resource.retrieve_all_with_metafields(args.parent_id)
        return await resource.retrieve_all(args.parent_id)

    if isinstance(resource.asset, Nested):
        parent_id, child_id = args.parent_id, args.id
    else:
        parent_id, child_id = args.id, None
    if args.with_metafields:
        return await resource.retrieve_with_metafields(parent_id, child_id)
    return await resource.retrieve(parent_id, child_id)


def _build_operation(args: argparse.Namespace) -> Callable[[Shopify], Awaitable[object]]:
    if args.command == "template-suffixes":
        return collect_template_suffixes

    resource_name: str = args.resource

    if args.command == "retrieve":
        if args.with_metafields and resource_of(ASSETS[resource_name]) == METAFIELDS:
            raise ValueError(f"--with-metafields does not apply to {resource_name}")

        async def retrieve(shop: Shopify) -> object:
            return await _retrieve(shop[resource_name], args)

        return retrieve

    if args.command == "count":

        async def count(shop: Shopify) -> object:
            return await shop[resource_name].count(args.parent_id)

        return count

    if args.command == "ensure":
        content = _load_content(args.file)

        async def ensure(shop: Shopify) -> object:
            return await shop[resource_name].ensure(args.match, content, args.parent_id)

        return ensure

    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        operation = _build_operation(parsed_args)
        config = get_shopify_config(
            debug=parsed_args.debug,
            requests_per_second=parsed_args.requests_per_second,
        )
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        result = run_with_shop(operation, config=config)
    except Exception:
        log.exception("Fatal error while talking to the shop")
        sys.exit(1)

    print(json.dumps(_to_jsonable(result), indent=2, default=str))


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
