"""
Transport layer for the ledger node.

This module provides an abstraction over the connection to a Substrate node,
with a WebSocket implementation backed by substrate-interface and a stub
implementation that simulates a node for demo mode.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from substrateinterface import Keypair

logger = logging.getLogger(__name__)

# Status names of the author_submitAndWatchExtrinsic stream
STATUS_FUTURE = "future"
STATUS_READY = "ready"
STATUS_BROADCAST = "broadcast"
STATUS_IN_BLOCK = "inBlock"
STATUS_FINALIZED = "finalized"
STATUS_RETRACTED = "retracted"
STATUS_FINALITY_TIMEOUT = "finalityTimeout"
STATUS_USURPED = "usurped"
STATUS_DROPPED = "dropped"
STATUS_INVALID = "invalid"

REJECTED_STATUSES = frozenset({
    STATUS_INVALID, STATUS_DROPPED, STATUS_USURPED, STATUS_RETRACTED, STATUS_FINALITY_TIMEOUT
})


@dataclass
class TxStatus:
    """One update of a watched extrinsic"""
    kind: str
    block_hash: Optional[str] = None

    @classmethod
    def from_result(cls, result: Any) -> "TxStatus":
        """
        Parse the ``result`` of a status notification.

        Plain statuses arrive as strings ("ready"), block-bound ones as a
        single-key object ({"inBlock": "0x..."}).
        """
        if isinstance(result, str):
            return cls(kind=result)
        if isinstance(result, dict) and result:
            kind, value = next(iter(result.items()))
            return cls(kind=kind, block_hash=value if isinstance(value, str) else None)
        return cls(kind=str(result))


StatusHandler = Callable[[TxStatus], bool]


class LedgerTransport(ABC):
    """
    Abstract base class for ledger transport implementations.

    Implementations translate library failures into the ledger exceptions:
    LedgerConnectionError, EncodingError, SubmissionRejected and
    SubmissionTimeout.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if this transport is available for use.

        Returns:
            True if transport is available, False otherwise
        """
        pass

    @property
    @abstractmethod
    def connected(self) -> bool:
        pass

    @abstractmethod
    def connect(self, ws_url: str, timeout: float) -> None:
        """
        Open a connection to the node.

        Args:
            ws_url: WebSocket URL of the node
            timeout: Seconds to wait for any single message from the node

        Raises:
            LedgerConnectionError: If the handshake fails or the node is unreachable
        """
        pass

    @abstractmethod
    def compose_call(self, module: str, function: str, params: Dict[str, Any]) -> Any:
        """
        Encode a runtime call.

        Raises:
            EncodingError: If the parameters do not fit the call
        """
        pass

    @abstractmethod
    def submit_and_watch(self, call: Any, keypair: Keypair, on_status: StatusHandler) -> str:
        """
        Sign a call, submit it and feed status updates to ``on_status``
        until it returns True.

        Args:
            call: Call returned by compose_call
            keypair: Signing keypair
            on_status: Handler called with every TxStatus

        Returns:
            Extrinsic hash as 0x-prefixed hex

        Raises:
            SubmissionRejected: If the node refuses the extrinsic
            SubmissionTimeout: If the node stays silent past the timeout
            LedgerConnectionError: If the connection drops
        """
        pass

    @abstractmethod
    def inclusion_details(self, extrinsic_hash: str, block_hash: str) -> Tuple[Optional[int], Optional[str]]:
        """
        Look up an included extrinsic.

        Returns:
            Tuple of (extrinsic index in the block, dispatch error or None)
        """
        pass

    @abstractmethod
    def list_pallets(self) -> List[str]:
        """Names of the runtime pallets of the connected chain."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close any open connections or resources."""
        pass


def get_substrate_transport() -> LedgerTransport:
    from .substrate_transport import SubstrateTransport
    return SubstrateTransport()


def get_stub_transport() -> LedgerTransport:
    """
    Get a stub transport that simulates a node without network access.

    Returns:
        Stub-based transport implementation
    """
    from .stub_transport import StubLedgerTransport
    return StubLedgerTransport()


def get_transport(demo_mode: bool = False) -> LedgerTransport:
    """
    Get the transport for the configured mode.

    Args:
        demo_mode: Use the simulated node instead of a real one

    Returns:
        Transport implementation
    """
    if demo_mode:
        logger.info("Using stub ledger transport (demo mode)")
        return get_stub_transport()
    logger.info("Using substrate-interface ledger transport")
    return get_substrate_transport()
