"""
Exceptions for the ledger submission module.
"""
from enum import Enum
from typing import Optional

from ..exceptions import ProofRouterError


class RejectReason(str, Enum):
    """
    Terminal transaction statuses that mean the extrinsic will not be included.

    These match the status names of the author_submitAndWatchExtrinsic stream.
    """
    INVALID = "invalid"
    DROPPED = "dropped"
    USURPED = "usurped"
    RETRACTED = "retracted"
    FINALITY_TIMEOUT = "finalityTimeout"
    NODE_REJECTED = "nodeRejected"


class LedgerError(ProofRouterError):
    """Base exception for ledger-related errors."""
    pass


class LedgerConnectionError(LedgerError):
    """Raised when the node connection cannot be established or is lost."""
    pass


class InvalidKeyMaterial(LedgerError):
    """Raised when a signing key cannot be derived from the secret phrase."""
    pass


class EncodingError(LedgerError):
    """Raised when a payload does not fit the call's expected layout."""
    pass


class SubmissionRejected(LedgerError):
    """Raised when the node or the pool rejects the transaction."""

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(message)


class SubmissionTimeout(LedgerError):
    """Raised when no terminal status arrives within the inclusion timeout."""

    def __init__(self, message: str, extrinsic_hash: Optional[str] = None):
        self.extrinsic_hash = extrinsic_hash
        super().__init__(message)
