from __future__ import annotations

import pytest

from movement_explorer.config import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_VERSION_THRESHOLD,
    NETWORK_ENDPOINTS,
    load_config,
    resolve_endpoints,
)

ENV_VARS = (
    "MOVEMENT_NETWORK",
    "MOVEMENT_RPC_URL",
    "MOVEMENT_INDEXER_URL",
    "REQUEST_TIMEOUT",
    "SEARCH_VERSION_THRESHOLD",
    "PAGE_SIZE",
    "NFT_LIMIT",
    "MAX_WORKERS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_to_mainnet_preset() -> None:
    config = load_config()

    assert config.network == "mainnet"
    assert (config.rpc_url, config.indexer_url) == NETWORK_ENDPOINTS["mainnet"]
    assert config.request_timeout is None
    assert config.version_threshold == DEFAULT_VERSION_THRESHOLD
    assert config.page_size == DEFAULT_PAGE_SIZE
    assert config.log_level == "WARNING"


def test_testnet_preset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOVEMENT_NETWORK", " Testnet ")
    config = load_config()
    assert config.network == "testnet"
    assert config.rpc_url == "https://testnet.movementnetwork.xyz/v1"


def test_explicit_urls_win_for_unknown_network(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOVEMENT_NETWORK", "devnet")
    monkeypatch.setenv("MOVEMENT_RPC_URL", "http://localhost:8080/v1/")
    monkeypatch.setenv("MOVEMENT_INDEXER_URL", "http://localhost:8090/v1/graphql")

    config = load_config()

    assert config.rpc_url == "http://localhost:8080/v1"
    assert config.indexer_url == "http://localhost:8090/v1/graphql"


def test_single_override_keeps_preset_for_the_other(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOVEMENT_INDEXER_URL", "http://localhost:8090/v1/graphql")
    config = load_config()
    assert config.rpc_url == NETWORK_ENDPOINTS["mainnet"][0]
    assert config.indexer_url == "http://localhost:8090/v1/graphql"


def test_unknown_network_without_urls(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOVEMENT_NETWORK", "devnet")
    with pytest.raises(ValueError, match="Unknown network 'devnet'"):
        load_config()


def test_numeric_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("SEARCH_VERSION_THRESHOLD", "500")
    monkeypatch.setenv("PAGE_SIZE", "10")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = load_config()

    assert config.request_timeout == 2.5
    assert config.version_threshold == 500
    assert config.page_size == 10
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("value", ["0", "-3", "ten"])
def test_invalid_positive_int(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("PAGE_SIZE", value)
    with pytest.raises(ValueError, match="PAGE_SIZE"):
        load_config()


def test_resolve_endpoints_is_case_insensitive() -> None:
    assert resolve_endpoints("MAINNET") == NETWORK_ENDPOINTS["mainnet"]
