"""
MCP server exposing Movement explorer views and the module runner.
"""

import argparse
import json
import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from mcp.server.fastmcp import FastMCP

from .config import load_config
from .service import ExplorerService

server = FastMCP(
    name="movement-explorer",
    instructions=(
        "Explore the Movement network: latest transactions, transactions by version, accounts, "
        "blocks, module ABIs, and view-function calls."
    ),
)

_service: Optional[ExplorerService] = None


def _get_service() -> ExplorerService:
    global _service
    if _service is None:
        cfg = load_config()
        _service = ExplorerService(cfg)
    return _service


def _normalize_string_list(value: Optional[Any], name: str) -> Optional[list[str]]:
    """
    Ensure a parameter intended as a list of strings is one:
    - str/bytes: likely misuse, raise with guidance
    - Mapping: reject (not an array)
    - list/tuple: each element stringified; nested lists/objects become JSON text
    """
    if value is None:
        return None
    if isinstance(value, (str, bytes, bytearray)):
        raise ValueError(f"{name} must be an array of strings (e.g. ['0x1', '100']); got a string/bytes.")
    if isinstance(value, Mapping):
        raise ValueError(f"{name} must be an array, not an object/map.")
    if not isinstance(value, (list, tuple)):
        value = [value]

    out: list[str] = []
    for item in value:
        if isinstance(item, bool):
            out.append("true" if item else "false")
        elif isinstance(item, (list, dict)):
            out.append(json.dumps(item))
        else:
            out.append("" if item is None else str(item))
    return out


@server.tool(
    name="latest_transactions",
    title="Latest Transactions",
    description="List the most recent user transactions, newest first. `page` is zero-based.",
)
def latest_transactions(page: Optional[int] = None) -> dict:
    svc = _get_service()
    return svc.latest_transactions(page)


@server.tool(
    name="get_transaction",
    title="Get Transaction",
    description="Fetch a user transaction and its events by version.",
)
def get_transaction(version: Union[int, str]) -> dict:
    svc = _get_service()
    return svc.get_transaction(version)


@server.tool(
    name="get_account",
    title="Get Account Overview",
    description="Fetch an account's transactions page, fungible balances, NFTs and module summaries.",
)
def get_account(address: str, page: Optional[int] = None) -> dict:
    svc = _get_service()
    return svc.get_account(address, page)


@server.tool(
    name="account_transactions",
    title="Account Transactions",
    description="List transactions touching an account, newest first. `page` is zero-based.",
)
def account_transactions(address: str, page: Optional[int] = None) -> dict:
    svc = _get_service()
    return svc.account_transactions(address, page)


@server.tool(
    name="account_tokens",
    title="Account Token Balances",
    description="List non-zero fungible asset balances with token metadata and formatted amounts.",
)
def account_tokens(address: str) -> dict:
    svc = _get_service()
    return svc.account_tokens(address)


@server.tool(
    name="account_nfts",
    title="Account NFTs",
    description="List NFTs owned by an account with token name and URI.",
)
def account_nfts(address: str) -> dict:
    svc = _get_service()
    return svc.account_nfts(address)


@server.tool(
    name="account_resources",
    title="Account Resources",
    description="List raw on-chain resources stored under an account.",
)
def account_resources(address: str) -> dict:
    svc = _get_service()
    return svc.account_resources(address)


@server.tool(
    name="get_block",
    title="Get Block",
    description="Fetch block metadata and its user transactions by block height.",
)
def get_block(height: Union[int, str]) -> dict:
    svc = _get_service()
    return svc.get_block(height)


@server.tool(
    name="search",
    title="Search",
    description="Search by address (0x + 64 hex), transaction version, or block height.",
)
def search(query: str) -> dict:
    svc = _get_service()
    return svc.search(query)


@server.tool(
    name="list_modules",
    title="List Modules",
    description="List module ABIs published at an address, with view/entry functions and argument hints.",
)
def list_modules(address: str) -> dict:
    svc = _get_service()
    return svc.list_modules(address)


@server.tool(
    name="run_function",
    title="Run Module Function",
    description=(
        "Run an exposed function. View functions are queried through the node; entry functions need "
        "a connected wallet and fail otherwise. `type_args` and `args` must be arrays of strings "
        "in declaration order (signer excluded)."
    ),
)
def run_function(
    address: str,
    module: str,
    function: str,
    type_args: Optional[Any] = None,
    args: Optional[Any] = None,
) -> dict:
    svc = _get_service()
    return svc.run_function(
        address,
        module,
        function,
        type_args=_normalize_string_list(type_args, "type_args"),
        args=_normalize_string_list(args, "args"),
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Movement explorer MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for SSE transport (only when transport=sse).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=load_config().log_level)

    # FastMCP uses host/port only for SSE/HTTP transports; stdio ignores them.
    server.settings.host = args.host
    server.settings.port = args.port

    if args.transport == "sse":
        server.run(transport="sse", mount_path=args.mount_path)
    else:
        server.run(transport=args.transport)


if __name__ == "__main__":
    main()
