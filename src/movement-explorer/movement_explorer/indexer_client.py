import logging
from typing import Any, Dict, List, Optional

import requests

from .errors import TransportError

logger = logging.getLogger(__name__)

USER_TRANSACTION_FIELDS = """
        version
        sender
        gas_unit_price
        max_gas_amount
        timestamp
        block_height
        entry_function_id_str
        epoch
        sequence_number
"""

LATEST_TRANSACTIONS_QUERY = (
    """
    query LatestTransactions($limit: Int!, $offset: Int!) {
      user_transactions(limit: $limit, offset: $offset, order_by: {version: desc}) {"""
    + USER_TRANSACTION_FIELDS
    + """      }
    }
"""
)

TRANSACTION_BY_VERSION_QUERY = (
    """
    query TransactionByVersion($version: bigint!) {
      user_transactions(where: {version: {_eq: $version}}) {"""
    + USER_TRANSACTION_FIELDS
    + """      }
    }
"""
)

BLOCK_TRANSACTIONS_QUERY = (
    """
    query BlockTransactions($height: bigint!) {
      user_transactions(where: {block_height: {_eq: $height}}, order_by: {version: asc}) {"""
    + USER_TRANSACTION_FIELDS
    + """      }
    }
"""
)

ACCOUNT_TRANSACTIONS_QUERY = """
    query AccountTransactions($address: String!, $limit: Int!, $offset: Int!) {
      account_transactions(
        where: {account_address: {_eq: $address}}
        limit: $limit
        offset: $offset
        order_by: {transaction_version: desc}
      ) {
        transaction_version
        account_address
      }
    }
"""

ACCOUNT_TOKENS_QUERY = """
    query AccountTokens($address: String!) {
      current_fungible_asset_balances(where: {owner_address: {_eq: $address}, amount: {_gt: "0"}}) {
        owner_address
        asset_type
        amount
        last_transaction_version
      }
    }
"""

ACCOUNT_NFTS_QUERY = """
    query AccountNFTs($address: String!, $limit: Int!) {
      current_token_ownerships_v2(where: {owner_address: {_eq: $address}, amount: {_gt: "0"}}, limit: $limit) {
        token_data_id
        amount
        last_transaction_version
        owner_address
      }
    }
"""

BLOCK_BY_HEIGHT_QUERY = """
    query BlockByHeight($height: bigint!) {
      block_metadata_transactions(where: {block_height: {_eq: $height}}) {
        version
        block_height
        epoch
        round
        proposer
        timestamp
      }
    }
"""

TRANSACTION_EVENTS_QUERY = """
    query TransactionEvents($version: bigint!) {
      events(where: {transaction_version: {_eq: $version}}, order_by: {event_index: asc}) {
        transaction_version
        event_index
        account_address
        type
        data
        sequence_number
        creation_number
      }
    }
"""

TOKEN_METADATA_QUERY = """
    query TokenMetadata($assetType: String!) {
      fungible_asset_metadata(where: {asset_type: {_eq: $assetType}}) {
        asset_type
        name
        symbol
        decimals
        icon_uri
      }
    }
"""

NFT_TOKEN_DATA_QUERY = """
    query NFTTokenData($tokenDataId: String!) {
      current_token_datas_v2(where: {token_data_id: {_eq: $tokenDataId}}) {
        token_data_id
        token_name
        token_uri
        description
        collection_id
      }
    }
"""


class IndexerClient:
    """Thin wrapper around the GraphQL indexer."""

    def __init__(
        self,
        indexer_url: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        url = (indexer_url or "").strip()
        if not url:
            raise ValueError("indexer_url must be a non-empty string.")

        self.indexer_url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def latest_transactions(self, limit: int = 25, offset: int = 0) -> List[Dict[str, Any]]:
        return self._rows(LATEST_TRANSACTIONS_QUERY, {"limit": limit, "offset": offset}, "user_transactions")

    def transaction_by_version(self, version: int) -> Optional[Dict[str, Any]]:
        return self._first(TRANSACTION_BY_VERSION_QUERY, {"version": version}, "user_transactions")

    def account_transactions(self, address: str, limit: int = 25, offset: int = 0) -> List[Dict[str, Any]]:
        variables = {"address": address, "limit": limit, "offset": offset}
        return self._rows(ACCOUNT_TRANSACTIONS_QUERY, variables, "account_transactions")

    def account_token_balances(self, address: str) -> List[Dict[str, Any]]:
        return self._rows(ACCOUNT_TOKENS_QUERY, {"address": address}, "current_fungible_asset_balances")

    def account_nfts(self, address: str, limit: int = 50) -> List[Dict[str, Any]]:
        variables = {"address": address, "limit": limit}
        return self._rows(ACCOUNT_NFTS_QUERY, variables, "current_token_ownerships_v2")

    def block_by_height(self, height: int) -> Optional[Dict[str, Any]]:
        return self._first(BLOCK_BY_HEIGHT_QUERY, {"height": height}, "block_metadata_transactions")

    def block_transactions(self, height: int) -> List[Dict[str, Any]]:
        return self._rows(BLOCK_TRANSACTIONS_QUERY, {"height": height}, "user_transactions")

    def transaction_events(self, version: int) -> List[Dict[str, Any]]:
        return self._rows(TRANSACTION_EVENTS_QUERY, {"version": version}, "events")

    def token_metadata(self, asset_type: str) -> Optional[Dict[str, Any]]:
        return self._first(TOKEN_METADATA_QUERY, {"assetType": asset_type}, "fungible_asset_metadata")

    def nft_token_data(self, token_data_id: str) -> Optional[Dict[str, Any]]:
        return self._first(NFT_TOKEN_DATA_QUERY, {"tokenDataId": token_data_id}, "current_token_datas_v2")

    def _first(self, query: str, variables: Dict[str, Any], root: str) -> Optional[Dict[str, Any]]:
        rows = self._rows(query, variables, root)
        return rows[0] if rows else None

    def _rows(self, query: str, variables: Dict[str, Any], root: str) -> List[Dict[str, Any]]:
        data = self._request(query, variables)
        rows = data.get(root)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise TransportError(f"Unexpected indexer response ({root} is not a list).")
        return [row for row in rows if isinstance(row, dict)]

    def _format_errors(self, errors: Any) -> str:
        messages: List[str] = []
        if isinstance(errors, list):
            for item in errors:
                if isinstance(item, dict) and item.get("message"):
                    messages.append(str(item["message"]))
                elif isinstance(item, str):
                    messages.append(item)
        return "; ".join(messages) or "unknown error"

    def _request(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("Indexer query %s", variables)
        try:
            response = self.session.post(
                self.indexer_url,
                json={"query": query, "variables": variables},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Request to indexer failed: {exc}") from exc

        if not response.ok:
            raise TransportError(
                f"Indexer request failed: {response.status_code} {response.text}".rstrip(),
                response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError("Failed to parse response from indexer.") from exc

        if not isinstance(payload, dict):
            raise TransportError("Unexpected response from indexer.")
        if payload.get("errors"):
            raise TransportError(f"Indexer error: {self._format_errors(payload['errors'])}.")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise TransportError("Unexpected response from indexer (missing data).")
        return data
