from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from movement_explorer.errors import TransportError
from movement_explorer.indexer_client import IndexerClient
from movement_explorer.rpc_client import NodeClient


def _response(status: int = 200, payload=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


def _session(*responses) -> MagicMock:
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    session.post.side_effect = list(responses)
    return session


def test_node_client_requires_url() -> None:
    with pytest.raises(ValueError):
        NodeClient("  ")


def test_get_account_modules_returns_abis() -> None:
    abi = {"address": "0x1", "name": "coin", "exposed_functions": []}
    session = _session(_response(200, [{"bytecode": "0x00", "abi": abi}, {"bytecode": "0x01"}]))
    client = NodeClient("https://node.example/v1/", session=session)

    assert client.get_account_modules("0x1") == [abi]
    session.request.assert_called_once_with(
        "GET", "https://node.example/v1/accounts/0x1/modules", timeout=None
    )
    assert session.headers["Content-Type"] == "application/json"


def test_account_lists_treat_404_as_empty() -> None:
    session = _session(_response(404, text="not found"), _response(404))
    client = NodeClient("https://node.example/v1", session=session)

    assert client.get_account_modules("0x9") == []
    assert client.get_account_resources("0x9") == []


def test_account_lists_raise_on_server_error() -> None:
    session = _session(_response(500, text="oops"))
    client = NodeClient("https://node.example/v1", session=session)

    with pytest.raises(TransportError, match="Failed to fetch resources: 500") as excinfo:
        client.get_account_resources("0x1")
    assert excinfo.value.status_code == 500


def test_view_function_posts_request() -> None:
    session = _session(_response(200, ["100"]))
    client = NodeClient("https://node.example/v1", timeout=5, session=session)
    request = {"function": "0x1::coin::balance", "type_arguments": [], "arguments": ["0x1"]}

    assert client.view_function(request) == ["100"]
    session.request.assert_called_once_with("POST", "https://node.example/v1/view", timeout=5, json=request)


def test_view_function_error_carries_body_text() -> None:
    session = _session(_response(400, text='{"message":"Invalid argument"}'))
    client = NodeClient("https://node.example/v1", session=session)

    with pytest.raises(TransportError) as excinfo:
        client.view_function({"function": "0x1::m::f", "type_arguments": [], "arguments": []})
    assert str(excinfo.value) == 'View function failed: {"message":"Invalid argument"}'


def test_view_function_requires_function_id() -> None:
    client = NodeClient("https://node.example/v1", session=_session())
    with pytest.raises(ValueError):
        client.view_function({"arguments": []})


def test_node_network_failure_is_transport_error() -> None:
    session = _session(requests.ConnectionError("refused"))
    client = NodeClient("https://node.example/v1", session=session)

    with pytest.raises(TransportError, match="refused"):
        client.get_account_modules("0x1")


def test_node_invalid_json_is_transport_error() -> None:
    session = _session(_response(200, ValueError("no json")))
    client = NodeClient("https://node.example/v1", session=session)

    with pytest.raises(TransportError):
        client.view_function({"function": "0x1::m::f"})


def test_latest_transactions_sends_graphql_body() -> None:
    rows = [{"version": 10}, {"version": 9}]
    session = _session(_response(200, {"data": {"user_transactions": rows}}))
    client = IndexerClient("https://indexer.example/v1/graphql", session=session)

    assert client.latest_transactions(limit=2, offset=4) == rows
    _, kwargs = session.post.call_args
    assert kwargs["json"]["variables"] == {"limit": 2, "offset": 4}
    assert "order_by: {version: desc}" in kwargs["json"]["query"]


def test_first_row_or_none() -> None:
    session = _session(
        _response(200, {"data": {"block_metadata_transactions": [{"block_height": 5}]}}),
        _response(200, {"data": {"block_metadata_transactions": []}}),
    )
    client = IndexerClient("https://indexer.example/v1/graphql", session=session)

    assert client.block_by_height(5) == {"block_height": 5}
    assert client.block_by_height(6) is None


def test_graphql_errors_raise() -> None:
    payload = {"errors": [{"message": "field 'x' not found"}, {"message": "second"}]}
    session = _session(_response(200, payload))
    client = IndexerClient("https://indexer.example/v1/graphql", session=session)

    with pytest.raises(TransportError, match="field 'x' not found; second"):
        client.transaction_events(1)


def test_indexer_http_error_raises() -> None:
    session = _session(_response(503, text="unavailable"))
    client = IndexerClient("https://indexer.example/v1/graphql", session=session)

    with pytest.raises(TransportError) as excinfo:
        client.account_token_balances("0x1")
    assert excinfo.value.status_code == 503


def test_indexer_missing_data_raises() -> None:
    session = _session(_response(200, {"something": "else"}))
    client = IndexerClient("https://indexer.example/v1/graphql", session=session)

    with pytest.raises(TransportError):
        client.account_nfts("0x1")


def test_indexer_network_failure() -> None:
    session = _session(requests.Timeout("timed out"))
    client = IndexerClient("https://indexer.example/v1/graphql", session=session)

    with pytest.raises(TransportError, match="timed out"):
        client.token_metadata("0x1::aptos_coin::AptosCoin")
