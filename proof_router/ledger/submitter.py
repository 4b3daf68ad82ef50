"""
TransactionSubmitter - signs and submits proofs to a Substrate ledger.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .._rate_limited_log import rate_limited_log
from ..exceptions import ConfigurationError
from ..models import CanonicalProof, TransactionReceipt
from ..store import ProofStore
from ..utils import from_hex, short_hex, to_hex
from .exceptions import (
    EncodingError, LedgerConnectionError, SubmissionRejected, SubmissionTimeout
)
from .signer import SigningContext, SigningIdentity
from .transport import (
    REJECTED_STATUSES, STATUS_FINALIZED, STATUS_IN_BLOCK, LedgerTransport, TxStatus
)

VK_LENGTH = 32


class SubmitterState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    READY = "ready"
    AWAITING_INCLUSION = "awaiting_inclusion"
    COMPLETED = "completed"
    FAILED = "failed"


class CallKind(str, Enum):
    REMARK = "remark"
    PROOF = "proof"


@dataclass
class LedgerCall:
    """A call encoded by the transport, ready to be signed"""
    kind: CallKind
    module: str
    function: str
    params: Dict[str, Any]
    encoded: Any


def normalize_verification_key(vk: bytes) -> bytes:
    """
    Return a 32-byte verification key.

    Keys that were hex-encoded twice arrive as the ASCII text of their hex
    form and are decoded once more.

    Raises:
        EncodingError: If the key is not 32 bytes after decoding
    """
    if len(vk) != VK_LENGTH:
        try:
            vk = from_hex(vk.decode("ascii").strip())
        except (UnicodeDecodeError, ValueError):
            raise EncodingError(f"Verification key must be {VK_LENGTH} bytes, got {len(vk)}") from None
    if len(vk) != VK_LENGTH:
        raise EncodingError(f"Verification key must be {VK_LENGTH} bytes, got {len(vk)}")
    return vk


class TransactionSubmitter:
    """
    Submits remarks and proof-submission calls over a cached connection.

    State machine per submission: DISCONNECTED -> CONNECTED -> READY ->
    AWAITING_INCLUSION -> COMPLETED | FAILED. Later submissions start again
    at READY, reusing the connection and the signer.
    """

    def __init__(
        self,
        transport: LedgerTransport,
        signing_context: Optional[SigningContext],
        ws_url: str,
        settlement_pallet: str = "SettlementSp1Pallet",
        default_vk: Optional[bytes] = None,
        inclusion_timeout: float = 120,
        wait_for_finalization: bool = True,
        store: Optional[ProofStore] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the TransactionSubmitter

        Args:
            transport: Ledger transport to submit through
            signing_context: Holder of the secret phrase; None for a
                submitter that only reads chain state
            ws_url: WebSocket URL of the node
            settlement_pallet: Pallet that verifies submitted proofs
            default_vk: Verification key used when a proof carries none
            inclusion_timeout: Seconds to wait for a terminal status
            wait_for_finalization: Keep waiting after inBlock until finalized
            store: Proof store for file submissions
            logger: Optional logger instance
        """
        self.transport = transport
        self.signing_context = signing_context
        self.ws_url = ws_url
        self.settlement_pallet = settlement_pallet
        self.default_vk = default_vk
        self.inclusion_timeout = inclusion_timeout
        self.wait_for_finalization = wait_for_finalization
        self.store = store or ProofStore()
        self.logger = logger or logging.getLogger(__name__)

        self._identity: Optional[SigningIdentity] = None
        self._state = SubmitterState.DISCONNECTED
        self.transitions: List[SubmitterState] = [self._state]

    @property
    def state(self) -> SubmitterState:
        return self._state

    def _enter(self, state: SubmitterState) -> None:
        self.logger.debug(f"Submitter {self._state.value} -> {state.value}")
        self._state = state
        self.transitions.append(state)

    @property
    def identity(self) -> Optional[SigningIdentity]:
        return self._identity

    def connect(self, ws_url: Optional[str] = None) -> None:
        """
        Connect to the node.

        Raises:
            LedgerConnectionError: If the node cannot be reached
        """
        if ws_url:
            self.ws_url = ws_url
        self.transport.connect(self.ws_url, self.inclusion_timeout)
        self._enter(SubmitterState.CONNECTED)

    def derive_signer(self) -> SigningIdentity:
        """
        Derive the signing identity from the signing context.

        Raises:
            LedgerConnectionError: If called before connect()
            ConfigurationError: If the submitter has no signing context
            InvalidKeyMaterial: If the secret phrase is malformed
        """
        if self._state == SubmitterState.DISCONNECTED:
            raise LedgerConnectionError("Cannot derive signer before connecting")
        if self.signing_context is None:
            raise ConfigurationError("No secret phrase configured; this submitter can only read chain state")
        self._identity = self.signing_context.derive()
        self._enter(SubmitterState.READY)
        return self._identity

    def ensure_ready(self) -> None:
        """Connect and derive the signer as needed, then enter READY."""
        if self._state == SubmitterState.DISCONNECTED or not self.transport.connected:
            if self._state != SubmitterState.DISCONNECTED:
                rate_limited_log(f"Connection to {self.ws_url} lost, reconnecting", logger_instance=self.logger)
                self._enter(SubmitterState.DISCONNECTED)
            self.connect()
        if self._identity is None:
            self.derive_signer()
        elif self._state != SubmitterState.READY:
            self._enter(SubmitterState.READY)

    def build_call(self, kind: Union[CallKind, str], payload: Union[bytes, CanonicalProof]) -> LedgerCall:
        """
        Build a remark or proof-submission call.

        Args:
            kind: CallKind.REMARK (payload is bytes) or CallKind.PROOF
                (payload is a CanonicalProof)
            payload: Call payload

        Returns:
            LedgerCall ready for sign_and_submit

        Raises:
            EncodingError: If the payload does not fit the call
        """
        kind = CallKind(kind)
        self.ensure_ready()

        if kind == CallKind.REMARK:
            if not isinstance(payload, (bytes, bytearray)):
                raise EncodingError(f"Remark payload must be bytes, got {type(payload).__name__}")
            module, function = "System", "remark"
            params = {"remark": to_hex(payload)}
        else:
            if not isinstance(payload, CanonicalProof):
                raise EncodingError(f"Proof payload must be a CanonicalProof, got {type(payload).__name__}")
            vk = payload.verification_key if payload.verification_key is not None else self.default_vk
            if vk is None:
                raise EncodingError("Proof has no verification key and no default is configured")
            vk = normalize_verification_key(vk)
            module, function = self.settlement_pallet, "submit_proof"
            params = {
                "vk_or_hash": {"Vk": to_hex(vk)},
                "proof": to_hex(payload.proof),
                "pubs": to_hex(payload.pub_inputs),
                "domain_id": None,
            }
            self.logger.info(f"Proof call: vk {to_hex(vk)}, proof {len(payload.proof)} bytes, "
                             f"pubs {len(payload.pub_inputs)} bytes")

        encoded = self.transport.compose_call(module, function, params)
        return LedgerCall(kind=kind, module=module, function=function, params=params, encoded=encoded)

    def sign_and_submit(self, call: LedgerCall) -> TransactionReceipt:
        """
        Sign a call, submit it and wait for a terminal status.

        Returns:
            TransactionReceipt; ``error`` is set if the call failed on chain

        Raises:
            SubmissionRejected: On invalid, dropped or usurped extrinsics
            SubmissionTimeout: If no terminal status arrives in time
            LedgerConnectionError: If the connection is lost
        """
        self.ensure_ready()
        self.logger.info(f"Submitting {call.module}.{call.function} as {self._identity.address}")
        self._enter(SubmitterState.AWAITING_INCLUSION)

        deadline = time.monotonic() + self.inclusion_timeout
        progress: Dict[str, Any] = {"block_hash": None, "finalized": False, "rejected": None}

        def on_status(status: TxStatus) -> bool:
            if status.kind == STATUS_FINALIZED:
                progress["block_hash"] = status.block_hash
                progress["finalized"] = True
                return True
            if status.kind == STATUS_IN_BLOCK:
                progress["block_hash"] = status.block_hash
                self.logger.info(f"Included in block {status.block_hash}")
                if not self.wait_for_finalization:
                    return True
            elif status.kind in REJECTED_STATUSES:
                progress["rejected"] = status.kind
                return True
            if time.monotonic() > deadline:
                raise SubmissionTimeout(f"No terminal status within {self.inclusion_timeout:g}s")
            return False

        try:
            extrinsic_hash = self.transport.submit_and_watch(call.encoded, self._identity.keypair, on_status)
        except SubmissionTimeout as e:
            if progress["block_hash"] is None:
                self._enter(SubmitterState.FAILED)
                raise
            # Already in a block; finality is just slow
            self.logger.warning(f"Finality not reached within {self.inclusion_timeout:g}s")
            extrinsic_hash = e.extrinsic_hash
        except SubmissionRejected:
            self._enter(SubmitterState.FAILED)
            raise
        except LedgerConnectionError:
            self._enter(SubmitterState.FAILED)
            self.transport.close()
            raise

        if progress["rejected"] is not None:
            self._enter(SubmitterState.FAILED)
            raise SubmissionRejected(f"Extrinsic {progress['rejected']}", reason=progress["rejected"])

        receipt = self._receipt(extrinsic_hash, progress["block_hash"], progress["finalized"])
        self._enter(SubmitterState.COMPLETED)
        if receipt.error:
            self.logger.error(f"Extrinsic {receipt.extrinsic_hash} failed: {receipt.error}")
        else:
            self.logger.info(f"Transaction hash: {receipt.extrinsic_hash} (finalized={receipt.finalized})")
        return receipt

    def _receipt(self, extrinsic_hash: Optional[str], block_hash: str, finalized: bool) -> TransactionReceipt:
        extrinsic_index, error = (None, None)
        if extrinsic_hash is not None:
            extrinsic_index, error = self.transport.inclusion_details(extrinsic_hash, block_hash)
        return TransactionReceipt(
            extrinsic_hash=extrinsic_hash or "",
            block_reference=block_hash,
            extrinsic_index=extrinsic_index,
            finalized=finalized,
            error=error,
        )

    def submit_remark(self, payload: bytes) -> TransactionReceipt:
        """Submit bytes as a System.remark transaction."""
        self.logger.debug(f"Remark payload: {short_hex(payload)}")
        return self.sign_and_submit(self.build_call(CallKind.REMARK, payload))

    def submit_proof(self, proof: CanonicalProof) -> TransactionReceipt:
        """Submit a canonical proof to the settlement pallet."""
        return self.sign_and_submit(self.build_call(CallKind.PROOF, proof))

    def submit_file(self, path: Union[str, Path], kind: Union[CallKind, str]) -> TransactionReceipt:
        """
        Submit a saved proof file without reconverting it.

        A remark carries the file's bytes; a proof submission loads the file
        through the proof store.

        Raises:
            PersistenceError: If the file cannot be read or parsed
        """
        kind = CallKind(kind)
        self.logger.info(f"Reading proof file from: {path}")
        if kind == CallKind.REMARK:
            return self.submit_remark(self.store.read_bytes(path))
        return self.submit_proof(self.store.load(path))

    def list_pallets(self) -> List[str]:
        """Names of the pallets of the connected chain. Needs no signer."""
        if not self.transport.connected:
            if self._state != SubmitterState.DISCONNECTED:
                self._enter(SubmitterState.DISCONNECTED)
            self.connect()
        return self.transport.list_pallets()

    def reset(self) -> None:
        """Drop the connection; the next submission reconnects."""
        self.transport.close()
        if self._state != SubmitterState.DISCONNECTED:
            self._enter(SubmitterState.DISCONNECTED)

    close = reset
