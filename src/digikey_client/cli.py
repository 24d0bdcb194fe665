from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from .client import ApiClientService
from .config_loader import DEFAULT_ENV_FILE, load_settings
from .errors import ApiClientError, ApiError
from .initializer import bootstrap_tokens
from .observability import setup_logging

logger = logging.getLogger("digikey-client.cli")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="DigiKey product search client",
    )
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help="Path to a .env file with DIGIKEY_* settings",
    )
    parser.add_argument(
        "--sandbox",
        action="store_true",
        default=None,
        help="Use the DigiKey sandbox environment",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_cmd = subparsers.add_parser("init", help="Bootstrap tokens via OAuth flow")
    init_cmd.add_argument(
        "--code",
        default=None,
        help="Authorization code from the DigiKey redirect (omit for interactive prompt)",
    )

    subparsers.add_parser("refresh", help="Force a token refresh and store the result")

    details_cmd = subparsers.add_parser("details", help="Look up one product by part number")
    details_cmd.add_argument("part_number")
    details_cmd.add_argument(
        "--includes",
        default=None,
        help="Comma separated list of fields to include in the response",
    )

    search_cmd = subparsers.add_parser("search", help="Keyword search")
    search_cmd.add_argument("keywords")
    search_cmd.add_argument("--record-count", type=int, default=25)

    batch_cmd = subparsers.add_parser("batch", help="Batch product details lookup")
    batch_cmd.add_argument("parts", nargs="+")
    batch_cmd.add_argument(
        "--include-marketplace",
        action="store_true",
        help="Include marketplace products in the results",
    )

    return parser.parse_args(argv)


def _print_body(body: str) -> None:
    try:
        print(json.dumps(json.loads(body), indent=2))
    except ValueError:
        print(body)


def run(args: argparse.Namespace) -> int:
    overrides = {}
    if args.sandbox is not None:
        overrides["sandbox"] = args.sandbox
    settings = load_settings(env_file=args.env_file or None, **overrides)
    setup_logging(settings.log_level, settings.log_format)

    if args.command == "init":
        bootstrap_tokens(auth_code=args.code, settings=settings)
        return 0

    client = ApiClientService.from_settings(settings)
    if args.command == "refresh":
        client.refresh()
        print(repr(client.credentials))
        return 0

    if args.command == "details":
        includes = args.includes.split(",") if args.includes else None
        body = client.product_details(args.part_number, includes=includes)
    elif args.command == "search":
        body = client.keyword_search(args.keywords, record_count=args.record_count)
    else:
        body = client.batch_product_details(
            args.parts, exclude_marketplace=not args.include_marketplace
        )

    _print_body(body)
    if client.last_rate_limit_remaining is not None:
        logger.info("Rate limit remaining: %s", client.last_rate_limit_remaining)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    setup_logging()
    args = parse_args(argv)
    try:
        return run(args)
    except ApiError as exc:
        logger.error("Response")
        logger.error("  Status Code : %s", exc.status_code)
        logger.error("  Content     : %s", exc.body)
        logger.error("  Reason      : %s", exc.reason)
        return 1
    except ApiClientError as exc:
        logger.error("%s: %s", exc.kind, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
