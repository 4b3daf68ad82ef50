"""
Stub transport that simulates a Substrate node.

Used in demo mode and tests. Calls are checked for encodable parameters and
signed with the real keypair, but nothing leaves the process.
"""
import hashlib
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from substrateinterface import Keypair

from .exceptions import (
    EncodingError, LedgerConnectionError, RejectReason, SubmissionRejected, SubmissionTimeout
)
from .transport import (
    STATUS_FINALIZED, STATUS_IN_BLOCK, STATUS_READY, STATUS_RETRACTED, STATUS_USURPED,
    LedgerTransport, StatusHandler, TxStatus
)

logger = logging.getLogger(__name__)

DEFAULT_STATUSES = (STATUS_READY, STATUS_IN_BLOCK, STATUS_FINALIZED)
BLOCK_STATUSES = frozenset({STATUS_IN_BLOCK, STATUS_FINALIZED, STATUS_USURPED, STATUS_RETRACTED})
STUB_PALLETS = ["System", "Timestamp", "Balances", "SettlementSp1Pallet"]


def _encodable(value: Any) -> bool:
    if value is None or isinstance(value, (bytes, int)):
        return True
    if isinstance(value, str):
        return not value.startswith("0x") or all(c in "0123456789abcdefABCDEF" for c in value[2:])
    if isinstance(value, dict):
        return all(isinstance(k, str) and _encodable(v) for k, v in value.items())
    return False


class StubLedgerTransport(LedgerTransport):
    """
    A simulated node.

    The status sequence of the next submissions can be changed through
    ``statuses``; a sequence without a terminal status ends in
    SubmissionTimeout, the way a silent node would.
    """

    def __init__(
        self,
        statuses: Iterable[str] = DEFAULT_STATUSES,
        fail_connect: bool = False,
        reject_submission: bool = False,
        dispatch_error: Optional[str] = None,
    ):
        self.statuses = list(statuses)
        self.fail_connect = fail_connect
        self.reject_submission = reject_submission
        self.dispatch_error = dispatch_error
        self.ws_url: Optional[str] = None
        self.submitted: List[Dict[str, Any]] = []
        self.connect_count = 0
        self._connected = False

    def is_available(self) -> bool:
        """
        Check if stub transport is available.

        Returns:
            Always True since stub transport has no dependencies
        """
        return True

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self, ws_url: str, timeout: float) -> None:
        self.connect_count += 1
        if self.fail_connect:
            raise LedgerConnectionError(f"Failed to connect to {ws_url}: stub node unreachable")
        self.ws_url = ws_url
        self._connected = True
        logger.debug(f"Initialized stub ledger transport for {ws_url}")

    def compose_call(self, module: str, function: str, params: Dict[str, Any]) -> Any:
        if not self._connected:
            raise LedgerConnectionError("Stub transport not connected")
        for name, value in params.items():
            if not _encodable(value):
                raise EncodingError(f"Cannot encode {module}.{function}: parameter '{name}' "
                                    f"of type {type(value).__name__}")
        return {"call_module": module, "call_function": function, "call_args": dict(params)}

    def submit_and_watch(self, call: Any, keypair: Keypair, on_status: StatusHandler) -> str:
        if not self._connected:
            raise LedgerConnectionError("Stub transport not connected")

        payload = json.dumps(call, sort_keys=True, default=lambda v: "0x" + v.hex()).encode()
        keypair.sign(payload)
        nonce = len(self.submitted)
        extrinsic_hash = "0x" + hashlib.blake2b(payload + nonce.to_bytes(4, "little"), digest_size=32).hexdigest()

        if self.reject_submission:
            raise SubmissionRejected("Node rejected extrinsic: 1010 Invalid Transaction (stub)",
                                     reason=RejectReason.NODE_REJECTED.value)

        self.submitted.append(call)
        block_hash = "0x" + hashlib.sha256(f"stub-block-{nonce}".encode()).hexdigest()
        logger.info(f"Simulated submission of {call['call_module']}.{call['call_function']} as {extrinsic_hash[:18]}...")

        for kind in self.statuses:
            status = TxStatus(kind=kind, block_hash=block_hash if kind in BLOCK_STATUSES else None)
            try:
                if on_status(status):
                    return extrinsic_hash
            except SubmissionTimeout as e:
                if e.extrinsic_hash is None:
                    e.extrinsic_hash = extrinsic_hash
                raise

        raise SubmissionTimeout(f"Node sent no update for {extrinsic_hash}", extrinsic_hash=extrinsic_hash)

    def inclusion_details(self, extrinsic_hash: str, block_hash: str) -> Tuple[Optional[int], Optional[str]]:
        # Index 0 is the timestamp inherent
        return 1, self.dispatch_error

    def list_pallets(self) -> List[str]:
        if not self._connected:
            raise LedgerConnectionError("Stub transport not connected")
        return list(STUB_PALLETS)

    def close(self) -> None:
        """Close the stub transport."""
        self._connected = False
