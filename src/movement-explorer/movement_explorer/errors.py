from typing import Optional


class ExplorerError(Exception):
    """Base class for failures raised by the explorer clients and runner."""


class TransportError(ExplorerError):
    """Non-2xx response, GraphQL error payload, or network failure."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class WalletNotConnectedError(ExplorerError):
    """Entry function invoked without an active signing session."""

    def __init__(self, message: str = "Please connect your wallet to execute entry functions") -> None:
        super().__init__(message)
