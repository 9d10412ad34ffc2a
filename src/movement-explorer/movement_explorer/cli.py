import argparse
import json
import logging
import sys
from typing import Any, Optional

from .config import load_config
from .formatting import (
    classify_search_input,
    format_fixed_point,
    format_gas_cost,
    format_relative_time,
    parse_entry_function_id,
    truncate_address,
)
from .service import ExplorerService

ACCOUNT_SECTIONS = ("overview", "transactions", "tokens", "nfts", "modules", "resources")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query the Movement indexer and node: transactions, accounts, blocks and modules.",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    latest_parser = subparsers.add_parser("latest", help="List the latest user transactions")
    latest_parser.add_argument(
        "--page",
        required=False,
        type=int,
        help="Zero-based page index. Defaults to 0.",
    )

    tx_parser = subparsers.add_parser("tx", help="Fetch a transaction and its events by version")
    tx_parser.add_argument(
        "--version",
        required=True,
        help="Transaction version (decimal).",
    )

    account_parser = subparsers.add_parser("account", help="Fetch account details")
    account_parser.add_argument(
        "--address",
        required=True,
        help="Account address (0x-prefixed, short form accepted).",
    )
    account_parser.add_argument(
        "--section",
        choices=ACCOUNT_SECTIONS,
        default="overview",
        help="Which part of the account to fetch. Defaults to overview.",
    )
    account_parser.add_argument(
        "--page",
        required=False,
        type=int,
        help="Zero-based page index for account transactions.",
    )

    block_parser = subparsers.add_parser("block", help="Fetch a block and its user transactions by height")
    block_parser.add_argument(
        "--height",
        required=True,
        help="Block height (decimal).",
    )

    search_parser = subparsers.add_parser("search", help="Search by address, transaction version or block height")
    search_parser.add_argument("query", help="Address (0x + 64 hex), version or block height.")

    modules_parser = subparsers.add_parser("modules", help="List module ABIs published at an address")
    modules_parser.add_argument(
        "--address",
        required=True,
        help="Account address (0x-prefixed).",
    )

    resources_parser = subparsers.add_parser("resources", help="List raw resources stored under an address")
    resources_parser.add_argument(
        "--address",
        required=True,
        help="Account address (0x-prefixed).",
    )

    run_parser = subparsers.add_parser("run", help="Run a view function (entry functions need a wallet)")
    run_parser.add_argument("--address", required=True, help="Module address.")
    run_parser.add_argument("--module", required=True, help="Module name.")
    run_parser.add_argument("--function", required=True, help="Function name.")
    run_parser.add_argument(
        "--type-arg",
        action="append",
        default=[],
        help="Type argument (repeatable, in order), e.g. 0x1::aptos_coin::AptosCoin.",
    )
    run_parser.add_argument(
        "--arg",
        action="append",
        default=[],
        help="Argument value (repeatable, in parameter order, signer excluded).",
    )

    format_parser = subparsers.add_parser("format", help="Run a formatting helper locally")
    format_parser.add_argument(
        "kind",
        choices=["address", "amount", "gas", "time", "entry-function", "classify"],
    )
    format_parser.add_argument("values", nargs="+", help="Input value(s) for the helper.")
    format_parser.add_argument(
        "--decimals",
        type=int,
        default=8,
        help="Decimals for the amount helper. Defaults to 8.",
    )

    return parser


def _format(kind: str, values: list[str], decimals: int, version_threshold: int) -> Any:
    if kind == "address":
        return truncate_address(values[0])
    if kind == "amount":
        return format_fixed_point(values[0], decimals)
    if kind == "gas":
        if len(values) < 2:
            raise ValueError("gas expects <gas_used> <gas_unit_price>.")
        return format_gas_cost(values[0], values[1])
    if kind == "time":
        return format_relative_time(values[0])
    if kind == "entry-function":
        return parse_entry_function_id(values[0])
    return classify_search_input(values[0], version_threshold)


def _account(service: ExplorerService, args: argparse.Namespace) -> Any:
    if args.section == "transactions":
        return service.account_transactions(args.address, args.page)
    if args.section == "tokens":
        return service.account_tokens(args.address)
    if args.section == "nfts":
        return service.account_nfts(args.address)
    if args.section == "modules":
        return service.list_modules(args.address)
    if args.section == "resources":
        return service.account_resources(args.address)
    return service.get_account(args.address, args.page)


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

        if args.command == "format":
            result = _format(args.kind, args.values, args.decimals, config.version_threshold)
            print(json.dumps(result, indent=2))
            return

        service = ExplorerService(config)

        if args.command == "latest":
            result = service.latest_transactions(args.page)
        elif args.command == "tx":
            result = service.get_transaction(args.version)
        elif args.command == "account":
            result = _account(service, args)
        elif args.command == "block":
            result = service.get_block(args.height)
        elif args.command == "search":
            result = service.search(args.query)
        elif args.command == "modules":
            result = service.list_modules(args.address)
        elif args.command == "resources":
            result = service.account_resources(args.address)
        else:
            result = service.run_function(
                args.address,
                args.module,
                args.function,
                type_args=args.type_arg,
                args=args.arg,
            )
        print(json.dumps(result, indent=2))
        if args.command == "run" and result.get("error"):
            sys.exit(1)
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
