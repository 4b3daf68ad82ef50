"""
WebSocket transport for Substrate nodes, built on substrate-interface.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from scalecodec.exceptions import RemainingScaleBytesNotEmptyException
from substrateinterface import ExtrinsicReceipt, Keypair, SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from websocket import WebSocketException, WebSocketTimeoutException

from .exceptions import (
    EncodingError, LedgerConnectionError, RejectReason, SubmissionRejected, SubmissionTimeout
)
from .transport import LedgerTransport, StatusHandler, TxStatus

logger = logging.getLogger(__name__)

# Errors raised while scale-encoding call parameters
ENCODING_ERRORS = (ValueError, TypeError, NotImplementedError, OverflowError,
                   RemainingScaleBytesNotEmptyException)


class SubstrateTransport(LedgerTransport):
    """Transport over a persistent WebSocket connection to a Substrate node"""

    def __init__(self):
        self.substrate: Optional[SubstrateInterface] = None
        self.ws_url: Optional[str] = None

    def is_available(self) -> bool:
        return True

    @property
    def connected(self) -> bool:
        return self.substrate is not None

    def _require_connection(self) -> SubstrateInterface:
        if self.substrate is None:
            raise LedgerConnectionError("Substrate transport not connected")
        return self.substrate

    def connect(self, ws_url: str, timeout: float) -> None:
        logger.info(f"Connecting to Substrate node at: {ws_url}")
        try:
            # Reconnects are handled by the submitter, a silent retry could
            # submit the same extrinsic twice
            substrate = SubstrateInterface(
                url=ws_url,
                ws_options={"timeout": timeout},
                auto_reconnect=False,
            )
            substrate.init_runtime()
        except (WebSocketException, SubstrateRequestException, OSError) as e:
            logger.error(f"Failed to connect to {ws_url}: {e}")
            raise LedgerConnectionError(f"Failed to connect to {ws_url}: {str(e)}") from e

        self.substrate = substrate
        self.ws_url = ws_url
        logger.info(f"Connected to Substrate node successfully (runtime {substrate.runtime_version})")

    def compose_call(self, module: str, function: str, params: Dict[str, Any]) -> Any:
        substrate = self._require_connection()
        try:
            return substrate.compose_call(call_module=module, call_function=function, call_params=params)
        except ENCODING_ERRORS as e:
            raise EncodingError(f"Cannot encode {module}.{function}: {str(e)}") from e
        except (WebSocketException, SubstrateRequestException, OSError) as e:
            raise LedgerConnectionError(f"Node request failed while encoding call: {str(e)}") from e

    def submit_and_watch(self, call: Any, keypair: Keypair, on_status: StatusHandler) -> str:
        substrate = self._require_connection()
        try:
            extrinsic = substrate.create_signed_extrinsic(call=call, keypair=keypair)
        except ENCODING_ERRORS as e:
            raise EncodingError(f"Cannot build signed extrinsic: {str(e)}") from e
        except (WebSocketException, SubstrateRequestException, OSError) as e:
            raise LedgerConnectionError(f"Node request failed while signing: {str(e)}") from e

        extrinsic_hash = "0x" + extrinsic.extrinsic_hash.hex()
        subscription: Dict[str, Any] = {}

        def result_handler(message, update_nr, subscription_id):
            subscription["id"] = subscription_id
            status = TxStatus.from_result(message["params"]["result"])
            logger.debug(f"Extrinsic {extrinsic_hash} status #{update_nr}: {status.kind}")
            if on_status(status):
                return {"status": status.kind}
            return None

        try:
            substrate.rpc_request("author_submitAndWatchExtrinsic", [str(extrinsic.data)],
                                  result_handler=result_handler)
        except (WebSocketTimeoutException, TimeoutError) as e:
            self._unwatch(subscription.get("id"))
            raise SubmissionTimeout(f"Node sent no update for {extrinsic_hash}",
                                    extrinsic_hash=extrinsic_hash) from e
        except SubmissionTimeout as e:
            self._unwatch(subscription.get("id"))
            if e.extrinsic_hash is None:
                e.extrinsic_hash = extrinsic_hash
            raise
        except SubstrateRequestException as e:
            # Pool rejections such as 1010 (invalid transaction) land here
            raise SubmissionRejected(f"Node rejected extrinsic: {str(e)}",
                                     reason=RejectReason.NODE_REJECTED.value) from e
        except (WebSocketException, OSError) as e:
            raise LedgerConnectionError(f"Connection lost while watching {extrinsic_hash}: {str(e)}") from e

        return extrinsic_hash

    def _unwatch(self, subscription_id: Optional[str]) -> None:
        """Drop a status subscription so the connection can be reused."""
        if not subscription_id or self.substrate is None:
            return
        try:
            self.substrate.rpc_request("author_unwatchExtrinsic", [subscription_id])
        except (WebSocketException, SubstrateRequestException, OSError) as e:
            logger.warning(f"Failed to unwatch subscription {subscription_id}: {e}")

    def inclusion_details(self, extrinsic_hash: str, block_hash: str) -> Tuple[Optional[int], Optional[str]]:
        substrate = self._require_connection()
        try:
            receipt = ExtrinsicReceipt(substrate=substrate, extrinsic_hash=extrinsic_hash, block_hash=block_hash)
            index = receipt.extrinsic_idx
            if receipt.is_success:
                return index, None
            error = receipt.error_message
        except (WebSocketException, SubstrateRequestException, OSError, ValueError) as e:
            # The extrinsic is in the block either way, only the details are missing
            logger.warning(f"Could not read inclusion details of {extrinsic_hash}: {e}")
            return None, None

        if isinstance(error, dict):
            return index, f"{error.get('type', 'Module')}.{error.get('name', 'Unknown')}"
        return index, str(error)

    def list_pallets(self) -> List[str]:
        substrate = self._require_connection()
        try:
            return [module["name"] for module in substrate.get_metadata_modules()]
        except (WebSocketException, SubstrateRequestException, OSError) as e:
            raise LedgerConnectionError(f"Failed to read runtime metadata: {str(e)}") from e

    def close(self) -> None:
        if self.substrate is not None:
            try:
                self.substrate.close()
            except (WebSocketException, OSError) as e:
                logger.debug(f"Error while closing connection: {e}")
            self.substrate = None
            logger.debug(f"Closed connection to {self.ws_url}")
