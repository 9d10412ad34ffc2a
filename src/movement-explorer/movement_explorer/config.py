import os
from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_NETWORK = "mainnet"
DEFAULT_VERSION_THRESHOLD = 1_000_000
DEFAULT_PAGE_SIZE = 25
DEFAULT_NFT_LIMIT = 50
DEFAULT_MAX_WORKERS = 8

# Static endpoint presets; MOVEMENT_RPC_URL / MOVEMENT_INDEXER_URL override them.
NETWORK_ENDPOINTS = {
    "mainnet": (
        "https://mainnet.movementnetwork.xyz/v1",
        "https://indexer.mainnet.movementnetwork.xyz/v1/graphql",
    ),
    "testnet": (
        "https://testnet.movementnetwork.xyz/v1",
        "https://indexer.testnet.movementnetwork.xyz/v1/graphql",
    ),
}


@dataclass
class Config:
    rpc_url: str
    indexer_url: str
    network: str = DEFAULT_NETWORK
    request_timeout: Optional[float] = None
    version_threshold: int = DEFAULT_VERSION_THRESHOLD
    page_size: int = DEFAULT_PAGE_SIZE
    nft_limit: int = DEFAULT_NFT_LIMIT
    max_workers: int = DEFAULT_MAX_WORKERS
    log_level: str = "WARNING"


def resolve_endpoints(network: str) -> Tuple[str, str]:
    """Resolve (rpc_url, indexer_url) for a named network preset."""
    normalized = (network or "").strip().lower()
    if normalized in NETWORK_ENDPOINTS:
        return NETWORK_ENDPOINTS[normalized]

    allowed = ", ".join(sorted(NETWORK_ENDPOINTS.keys()))
    raise ValueError(
        f"Unknown network '{network}'. Supported: {allowed}. "
        "Set MOVEMENT_RPC_URL and MOVEMENT_INDEXER_URL explicitly for other deployments."
    )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer.") from exc
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer.")
    return value


def load_config() -> Config:
    """Load configuration from environment variables."""
    network = os.getenv("MOVEMENT_NETWORK", DEFAULT_NETWORK).strip().lower()
    rpc_env = os.getenv("MOVEMENT_RPC_URL")
    indexer_env = os.getenv("MOVEMENT_INDEXER_URL")

    if rpc_env and indexer_env:
        rpc_url, indexer_url = rpc_env, indexer_env
    else:
        preset_rpc, preset_indexer = resolve_endpoints(network)
        rpc_url = rpc_env or preset_rpc
        indexer_url = indexer_env or preset_indexer

    timeout_env = os.getenv("REQUEST_TIMEOUT")
    timeout = float(timeout_env) if timeout_env and timeout_env.strip() else None

    return Config(
        rpc_url=rpc_url.strip().rstrip("/"),
        indexer_url=indexer_url.strip().rstrip("/"),
        network=network,
        request_timeout=timeout,
        version_threshold=_int_env("SEARCH_VERSION_THRESHOLD", DEFAULT_VERSION_THRESHOLD),
        page_size=_int_env("PAGE_SIZE", DEFAULT_PAGE_SIZE),
        nft_limit=_int_env("NFT_LIMIT", DEFAULT_NFT_LIMIT),
        max_workers=_int_env("MAX_WORKERS", DEFAULT_MAX_WORKERS),
        log_level=os.getenv("LOG_LEVEL", "WARNING").strip().upper(),
    )
