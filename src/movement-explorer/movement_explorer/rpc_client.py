import logging
from typing import Any, Dict, List, Optional

import requests

from .errors import TransportError

logger = logging.getLogger(__name__)


class NodeClient:
    """Minimal client for the node REST API (modules, resources, view)."""

    def __init__(
        self,
        rpc_url: str,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        url = (rpc_url or "").strip()
        if not url:
            raise ValueError("rpc_url must be a non-empty string.")

        self.rpc_url = url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if headers:
            self.session.headers.update(dict(headers))

    def get_account_modules(self, address: str) -> List[Dict[str, Any]]:
        """Return the ABI of every module published at `address`."""
        modules = self._get_account_list(address, "modules")
        return [mod["abi"] for mod in modules if isinstance(mod, dict) and isinstance(mod.get("abi"), dict)]

    def get_account_resources(self, address: str) -> List[Dict[str, Any]]:
        return self._get_account_list(address, "resources")

    def view_function(self, request: Dict[str, Any]) -> List[Any]:
        if not isinstance(request, dict) or not request.get("function"):
            raise ValueError("view request must include a function id.")

        response = self._send("POST", f"{self.rpc_url}/view", json=request)
        if not response.ok:
            raise TransportError(f"View function failed: {response.text}", response.status_code)
        return self._decode(response, "view function")

    def _get_account_list(self, address: str, kind: str) -> List[Any]:
        response = self._send("GET", f"{self.rpc_url}/accounts/{address}/{kind}")
        if not response.ok:
            if response.status_code == 404:
                logger.debug("No %s found for %s", kind, address)
                return []
            raise TransportError(f"Failed to fetch {kind}: {response.status_code}", response.status_code)

        data = self._decode(response, kind)
        if not isinstance(data, list):
            raise TransportError(f"Unexpected {kind} response (non-array).")
        return data

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        logger.debug("%s %s", method, url)
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise TransportError(f"Request to node failed: {exc}") from exc

    def _decode(self, response: requests.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"Failed to parse {what} response from node.") from exc
