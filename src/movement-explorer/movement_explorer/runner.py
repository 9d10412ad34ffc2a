import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .abi import ExposedFunction, PreparedCall, prepare_call
from .errors import WalletNotConnectedError
from .wallet import NullWallet, WalletCapability

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RunOutcome:
    status: RunStatus
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "result": self.result, "error": self.error}


class ViewCaller(Protocol):
    def view_function(self, request: Dict[str, Any]) -> List[Any]: ...


class ModuleRunner:
    """
    Run one exposed function of a module, through the view endpoint or the
    wallet depending on its ABI flags.

    Each `run` moves idle -> running -> succeeded | failed. Entering running
    clears the previous result and error; failures never escape `run`, they
    become the outcome's error message.
    """

    def __init__(
        self,
        client: ViewCaller,
        address: str,
        module_name: str,
        func: ExposedFunction,
        wallet: Optional[WalletCapability] = None,
    ) -> None:
        self.client = client
        self.address = address
        self.module_name = module_name
        self.func = func
        self.wallet = wallet if wallet is not None else NullWallet()
        self.status = RunStatus.IDLE
        self.result: Any = None
        self.error: Optional[str] = None

    @property
    def outcome(self) -> RunOutcome:
        return RunOutcome(self.status, self.result, self.error)

    def run(
        self,
        type_args: Optional[Sequence[str]] = None,
        args: Optional[Sequence[str]] = None,
    ) -> RunOutcome:
        self.status = RunStatus.RUNNING
        self.result = None
        self.error = None

        try:
            call = prepare_call(self.address, self.module_name, self.func, type_args, args)
            if call.is_view:
                result = self._run_view(call)
            elif call.is_entry:
                result = self._run_entry(call)
            else:
                raise ValueError(f"{self.func.name} is neither a view nor an entry function.")
        except Exception as exc:  # pylint: disable=broad-except
            message = str(exc) or "Unknown error occurred"
            logger.info("Run of %s::%s failed: %s", self.module_name, self.func.name, message)
            self.status = RunStatus.FAILED
            self.error = message
        else:
            self.status = RunStatus.SUCCEEDED
            self.result = result
        return self.outcome

    def _run_view(self, call: PreparedCall) -> Any:
        request = call.view_request()
        logger.debug("View request %s", request)
        return self.client.view_function(request)

    def _run_entry(self, call: PreparedCall) -> Dict[str, Any]:
        if not self.wallet.connected:
            raise WalletNotConnectedError()

        payload = call.entry_payload()
        logger.debug("Submitting entry payload %s", payload)
        response = self.wallet.sign_and_submit(payload)
        tx_hash = response.get("hash") if isinstance(response, dict) else getattr(response, "hash", None)
        if not tx_hash:
            raise ValueError("Wallet did not return a transaction hash.")
        return {"success": True, "hash": tx_hash}
