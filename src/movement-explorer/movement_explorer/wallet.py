from typing import Any, Dict, List, Optional, Protocol

from .errors import WalletNotConnectedError


class WalletCapability(Protocol):
    """Signing session injected by the surrounding application."""

    @property
    def connected(self) -> bool: ...

    @property
    def account_address(self) -> Optional[str]: ...

    def wallets(self) -> List[str]: ...

    def connect(self, wallet_name: str) -> None: ...

    def disconnect(self) -> None: ...

    def sign_and_submit(self, payload: Dict[str, Any]) -> Dict[str, Any]: ...


class NullWallet:
    """Capability for surfaces with no signer attached; never connected."""

    @property
    def connected(self) -> bool:
        return False

    @property
    def account_address(self) -> Optional[str]:
        return None

    def wallets(self) -> List[str]:
        return []

    def connect(self, wallet_name: str) -> None:
        raise WalletNotConnectedError(f"Wallet '{wallet_name}' is not installed.")

    def disconnect(self) -> None:
        return None

    def sign_and_submit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        raise WalletNotConnectedError()
