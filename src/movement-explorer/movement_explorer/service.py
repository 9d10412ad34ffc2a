import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from .abi import ModuleDescriptor
from .cache import QueryCache
from .config import Config
from .errors import ExplorerError
from .formatting import (
    MOVE_DECIMALS,
    MOVE_SYMBOL,
    SEARCH_ADDRESS,
    SEARCH_BLOCK,
    SEARCH_VERSION,
    classify_search_input,
    format_fixed_point,
    format_gas_cost,
    format_relative_time,
    parse_entry_function_id,
    truncate_address,
)
from .indexer_client import IndexerClient
from .rpc_client import NodeClient
from .runner import ModuleRunner
from .wallet import WalletCapability

logger = logging.getLogger(__name__)

SHORT_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{1,64}$")
INVALID_SEARCH_MESSAGE = "Invalid search. Enter an address (0x...), transaction version, or block number."

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class ExplorerService:
    """Combine configuration, cache, and clients to serve explorer views."""

    def __init__(
        self,
        config: Config,
        indexer: Optional[IndexerClient] = None,
        node: Optional[NodeClient] = None,
        wallet: Optional[WalletCapability] = None,
    ) -> None:
        self.config = config
        self.cache = QueryCache()
        self.indexer = indexer or IndexerClient(config.indexer_url, timeout=config.request_timeout)
        self.node = node or NodeClient(config.rpc_url, timeout=config.request_timeout)
        self.wallet = wallet

    def latest_transactions(self, page: Optional[int] = None) -> Dict[str, Any]:
        page_num = self._normalize_non_negative_int(page, 0, "page")
        page_size = self.config.page_size
        rows = self.indexer.latest_transactions(page_size, page_num * page_size)
        return {
            "network": self.config.network,
            "page": page_num,
            "page_size": page_size,
            "transactions": [self._map_transaction(tx) for tx in rows],
        }

    def get_transaction(self, version: Union[int, str]) -> Dict[str, Any]:
        normalized = self._normalize_non_negative_int(version, None, "version")
        tx = self._transaction(normalized)
        events: List[Dict[str, Any]] = []
        if tx is not None:
            rows = self._cached(
                "transaction-events", (normalized,), lambda: self.indexer.transaction_events(normalized)
            )
            events = [self._map_event(event) for event in rows]

        return {
            "network": self.config.network,
            "version": normalized,
            "found": tx is not None,
            "transaction": self._map_transaction_detail(tx) if tx is not None else None,
            "events": events,
        }

    def get_block(self, height: Union[int, str]) -> Dict[str, Any]:
        normalized = self._normalize_non_negative_int(height, None, "height")
        block = self._cached("block", (normalized,), lambda: self.indexer.block_by_height(normalized))
        transactions: List[Dict[str, Any]] = []
        if block is not None:
            rows = self._cached(
                "block-transactions", (normalized,), lambda: self.indexer.block_transactions(normalized)
            )
            transactions = [self._map_transaction(tx) for tx in rows]

        return {
            "network": self.config.network,
            "height": normalized,
            "found": block is not None,
            "block": self._map_block(block) if block is not None else None,
            "transactions": transactions,
        }

    def account_transactions(self, address: str, page: Optional[int] = None) -> Dict[str, Any]:
        normalized_address = self._normalize_address(address)
        page_num = self._normalize_non_negative_int(page, 0, "page")
        page_size = self.config.page_size

        rows = self.indexer.account_transactions(normalized_address, page_size, page_num * page_size)
        versions = [row["transaction_version"] for row in rows if row.get("transaction_version") is not None]
        by_version = self._fetch_many(self._transaction, versions)
        # keep the indexer's ordering; versions that are not user transactions are skipped
        transactions = [self._map_transaction(by_version[v]) for v in versions if by_version.get(v) is not None]

        return {
            "address": normalized_address,
            "network": self.config.network,
            "page": page_num,
            "page_size": page_size,
            "transactions": transactions,
        }

    def account_tokens(self, address: str) -> Dict[str, Any]:
        normalized_address = self._normalize_address(address)
        balances = self.indexer.account_token_balances(normalized_address)
        asset_types = [b["asset_type"] for b in balances if b.get("asset_type")]
        metadata = self._fetch_many(self._token_metadata, asset_types, tolerate_errors=True)

        return {
            "address": normalized_address,
            "network": self.config.network,
            "tokens": [self._map_balance(b, metadata.get(b.get("asset_type"))) for b in balances],
        }

    def account_nfts(self, address: str) -> Dict[str, Any]:
        normalized_address = self._normalize_address(address)
        ownerships = self.indexer.account_nfts(normalized_address, self.config.nft_limit)
        token_ids = [o["token_data_id"] for o in ownerships if o.get("token_data_id")]
        token_data = self._fetch_many(self._nft_token_data, token_ids, tolerate_errors=True)

        return {
            "address": normalized_address,
            "network": self.config.network,
            "nfts": [self._map_nft(o, token_data.get(o.get("token_data_id"))) for o in ownerships],
        }

    def list_modules(self, address: str) -> Dict[str, Any]:
        normalized_address = self._normalize_address(address)
        modules = self._modules(normalized_address)
        return {
            "address": normalized_address,
            "network": self.config.network,
            "modules": [module.to_dict() for module in modules],
        }

    def account_resources(self, address: str) -> Dict[str, Any]:
        normalized_address = self._normalize_address(address)
        return {
            "address": normalized_address,
            "network": self.config.network,
            "resources": self.node.get_account_resources(normalized_address),
        }

    def get_account(self, address: str, page: Optional[int] = None) -> Dict[str, Any]:
        """Account overview: transactions page, balances, NFTs and module summaries."""
        normalized_address = self._normalize_address(address)
        modules = self._modules(normalized_address)
        return {
            "address": normalized_address,
            "network": self.config.network,
            "transactions": self.account_transactions(normalized_address, page)["transactions"],
            "tokens": self.account_tokens(normalized_address)["tokens"],
            "nfts": self.account_nfts(normalized_address)["nfts"],
            "modules": [
                {
                    "name": module.name,
                    "function_count": len(module.exposed_functions),
                    "view_functions": [f.name for f in module.exposed_functions if f.is_view],
                    "entry_functions": [f.name for f in module.exposed_functions if f.is_entry],
                }
                for module in modules
            ],
        }

    def resolve_view(
        self,
        tx: Optional[Union[int, str]] = None,
        address: Optional[str] = None,
        block: Optional[Union[int, str]] = None,
        page: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Pick the view for the given parameters: tx, then address, then block, else latest."""
        if tx not in (None, ""):
            return {"view": "transaction", "data": self.get_transaction(tx)}
        if address:
            return {"view": "account", "data": self.get_account(address, page)}
        if block not in (None, ""):
            return {"view": "block", "data": self.get_block(block)}
        return {"view": "latest", "data": self.latest_transactions(page)}

    def search(self, query: str) -> Dict[str, Any]:
        trimmed = (query or "").strip()
        if not trimmed:
            raise ValueError("search query must be a non-empty string.")

        kind = classify_search_input(trimmed, self.config.version_threshold)
        if kind == SEARCH_ADDRESS:
            view = self.resolve_view(address=trimmed)
        elif kind == SEARCH_VERSION:
            view = self.resolve_view(tx=trimmed)
        elif kind == SEARCH_BLOCK:
            view = self.resolve_view(block=trimmed)
        else:
            raise ValueError(INVALID_SEARCH_MESSAGE)
        return {"query": trimmed, "kind": kind, **view}

    def get_module(self, address: str, module_name: str) -> ModuleDescriptor:
        normalized_address = self._normalize_address(address)
        for module in self._modules(normalized_address):
            if module.name == module_name:
                return module
        raise ValueError(f"Module '{module_name}' not found at {normalized_address}.")

    def runner_for(
        self,
        address: str,
        module_name: str,
        function_name: str,
        wallet: Optional[WalletCapability] = None,
    ) -> ModuleRunner:
        module = self.get_module(address, module_name)
        func = module.find_function(function_name)
        if func is None:
            raise ValueError(f"Function '{function_name}' not found in module {module_name}.")
        return ModuleRunner(self.node, module.address or address, module.name, func, wallet or self.wallet)

    def run_function(
        self,
        address: str,
        module_name: str,
        function_name: str,
        type_args: Optional[Sequence[str]] = None,
        args: Optional[Sequence[str]] = None,
        wallet: Optional[WalletCapability] = None,
    ) -> Dict[str, Any]:
        runner = self.runner_for(address, module_name, function_name, wallet)
        outcome = runner.run(type_args, args)
        return {
            "function": f"{runner.address}::{runner.module_name}::{runner.func.name}",
            "kind": "view" if runner.func.is_view else "entry" if runner.func.is_entry else None,
            **outcome.to_dict(),
        }

    def _transaction(self, version: int) -> Optional[Dict[str, Any]]:
        return self._cached("transaction", (version,), lambda: self.indexer.transaction_by_version(version))

    def _token_metadata(self, asset_type: str) -> Optional[Dict[str, Any]]:
        return self._cached("token-metadata", (asset_type,), lambda: self.indexer.token_metadata(asset_type))

    def _nft_token_data(self, token_data_id: str) -> Optional[Dict[str, Any]]:
        return self._cached("nft-data", (token_data_id,), lambda: self.indexer.nft_token_data(token_data_id))

    def _modules(self, address: str) -> List[ModuleDescriptor]:
        return self._cached(
            "account-modules",
            (address,),
            lambda: [ModuleDescriptor.from_dict(abi) for abi in self.node.get_account_modules(address)],
        )

    def _cached(self, operation: str, params: Tuple[Any, ...], loader: Callable[[], V]) -> V:
        if self.cache.contains(operation, *params):
            return self.cache.get(operation, *params)
        value = loader()
        self.cache.set(operation, *params, value=value)
        return value

    def _fetch_many(
        self,
        fetch: Callable[[K], Optional[V]],
        keys: Iterable[K],
        tolerate_errors: bool = False,
    ) -> Dict[K, Optional[V]]:
        """Run independent lookups concurrently; results are keyed by their input."""
        unique = list(dict.fromkeys(keys))
        if not unique:
            return {}

        results: Dict[K, Optional[V]] = {}
        workers = max(1, min(self.config.max_workers, len(unique)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(fetch, key): key for key in unique}
            for future in as_completed(futures):
                key = futures[future]
                try:
                    results[key] = future.result()
                except ExplorerError as exc:
                    if not tolerate_errors:
                        raise
                    logger.warning("Lookup for %s failed: %s", key, exc)
                    results[key] = None
        return results

    def _normalize_address(self, address: str) -> str:
        if not isinstance(address, str):
            raise ValueError("Address must be a string.")

        candidate = address.strip().lower()
        if not candidate.startswith("0x"):
            candidate = f"0x{candidate}"

        if not SHORT_ADDRESS_PATTERN.match(candidate):
            raise ValueError("Invalid address format. Expected 0x-prefixed hex of up to 64 characters.")

        return "0x" + candidate[2:].rjust(64, "0")

    def _normalize_non_negative_int(self, value: Any, default: Optional[int], field: str) -> int:
        if value is None:
            if default is None:
                raise ValueError(f"{field} is required.")
            return default
        if isinstance(value, bool):
            raise ValueError(f"{field} must be a non-negative integer.")
        if isinstance(value, int):
            ivalue = value
        elif isinstance(value, str) and value.strip().isdigit():
            ivalue = int(value.strip())
        else:
            raise ValueError(f"{field} must be a non-negative integer.")
        if ivalue < 0:
            raise ValueError(f"{field} must be a non-negative integer.")
        return ivalue

    def _age(self, timestamp: Optional[str]) -> Optional[str]:
        if not timestamp:
            return None
        try:
            return format_relative_time(timestamp)
        except ValueError:
            logger.debug("Unparseable timestamp %r", timestamp)
            return None

    def _gas_fee(self, units: Any, unit_price: Any) -> Optional[str]:
        if units is None or unit_price is None:
            return None
        try:
            return f"{format_gas_cost(units, unit_price)} {MOVE_SYMBOL}"
        except ValueError:
            return None

    def _map_transaction(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        sender = tx.get("sender") or ""
        return {
            "version": tx.get("version"),
            "sender": sender,
            "sender_short": truncate_address(sender),
            "function": parse_entry_function_id(tx.get("entry_function_id_str")),
            "entry_function_id": tx.get("entry_function_id_str"),
            "block_height": tx.get("block_height"),
            "timestamp": tx.get("timestamp"),
            "age": self._age(tx.get("timestamp")),
            "gas_fee": self._gas_fee(tx.get("max_gas_amount"), tx.get("gas_unit_price")),
        }

    def _map_transaction_detail(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        detail = self._map_transaction(tx)
        detail.update(
            {
                "epoch": tx.get("epoch"),
                "sequence_number": tx.get("sequence_number"),
                "gas_unit_price": tx.get("gas_unit_price"),
                "max_gas_amount": tx.get("max_gas_amount"),
                "gas_price_per_unit": self._gas_fee(1, tx.get("gas_unit_price")),
            }
        )
        return detail

    def _map_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        data = event.get("data")
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                pass
        return {
            "event_index": event.get("event_index"),
            "type": event.get("type"),
            "account_address": event.get("account_address"),
            "sequence_number": event.get("sequence_number"),
            "creation_number": event.get("creation_number"),
            "data": data,
        }

    def _map_block(self, block: Dict[str, Any]) -> Dict[str, Any]:
        proposer = block.get("proposer") or ""
        return {
            "block_height": block.get("block_height"),
            "version": block.get("version"),
            "epoch": block.get("epoch"),
            "round": block.get("round"),
            "proposer": proposer,
            "proposer_short": truncate_address(proposer),
            "timestamp": block.get("timestamp"),
            "age": self._age(block.get("timestamp")),
        }

    def _map_balance(self, balance: Dict[str, Any], metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        asset_type = balance.get("asset_type") or ""
        meta = metadata or {}
        decimals = meta.get("decimals")
        if not isinstance(decimals, int) or isinstance(decimals, bool) or decimals < 0:
            decimals = MOVE_DECIMALS

        amount = balance.get("amount")
        try:
            formatted: Optional[str] = format_fixed_point(amount, decimals)
        except ValueError:
            formatted = None

        return {
            "asset_type": asset_type,
            "asset_type_short": truncate_address(asset_type, 16, 8),
            "name": meta.get("name") or asset_type.split("::")[-1] or "Unknown",
            "symbol": meta.get("symbol") or "",
            "decimals": decimals,
            "icon_uri": meta.get("icon_uri"),
            "amount": amount,
            "amount_formatted": formatted,
            "last_transaction_version": balance.get("last_transaction_version"),
        }

    def _map_nft(self, ownership: Dict[str, Any], token_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        token_id = ownership.get("token_data_id") or ""
        data = token_data or {}
        return {
            "token_data_id": token_id,
            "name": data.get("token_name") or truncate_address(token_id, 8, 6),
            "token_uri": data.get("token_uri"),
            "description": data.get("description"),
            "collection_id": data.get("collection_id"),
            "amount": ownership.get("amount"),
            "last_transaction_version": ownership.get("last_transaction_version"),
        }
