"""
Ledger module for the proof router.

This module submits remarks and proof-submission extrinsics to a Substrate
chain, either over a real WebSocket connection or through a simulated node
in demo mode.
"""
import logging
import threading
from typing import Optional

from ..config import RouterConfig
from ..utils import from_hex
from .exceptions import (
    EncodingError, InvalidKeyMaterial, LedgerConnectionError, LedgerError,
    SubmissionRejected, SubmissionTimeout
)
from .signer import DEMO_MNEMONIC, SigningContext, SigningIdentity
from .submitter import CallKind, LedgerCall, SubmitterState, TransactionSubmitter
from .transport import LedgerTransport, get_transport

__all__ = ['TransactionSubmitter', 'SubmitterState', 'CallKind', 'LedgerCall',
           'SigningContext', 'SigningIdentity', 'LedgerTransport', 'get_transport',
           'create_submitter', 'create_reader', 'get_submitter', 'close_submitters',
           'LedgerError', 'LedgerConnectionError', 'InvalidKeyMaterial', 'EncodingError',
           'SubmissionRejected', 'SubmissionTimeout']

logger = logging.getLogger(__name__)

# Process-wide submitter cache: one connection and one signer per node URL
_submitter_cache = {}
_cache_lock = threading.RLock()


def create_submitter(config: RouterConfig, transport: Optional[LedgerTransport] = None) -> TransactionSubmitter:
    """
    Build a submitter from configuration.

    In demo mode without a configured phrase the public development phrase
    is used.

    Raises:
        ConfigurationError: If no secret phrase is configured
    """
    network = config.network_settings
    if config.demo_mode and config.mnemonic is None:
        mnemonic = DEMO_MNEMONIC
    else:
        mnemonic = config.require_mnemonic()

    default_vk = network.get("default_vk")
    return TransactionSubmitter(
        transport=transport or get_transport(config.demo_mode),
        signing_context=SigningContext(mnemonic, ss58_format=network.get("ss58_format", 42)),
        ws_url=config.resolved_ws_url(),
        settlement_pallet=network.get("settlement_pallet", "SettlementSp1Pallet"),
        default_vk=from_hex(default_vk) if default_vk else None,
        inclusion_timeout=config.inclusion_timeout,
        wait_for_finalization=config.wait_for_finalization,
    )


def create_reader(config: RouterConfig, transport: Optional[LedgerTransport] = None) -> TransactionSubmitter:
    """Build a submitter without a signer, for queries that sign nothing."""
    return TransactionSubmitter(
        transport=transport or get_transport(config.demo_mode),
        signing_context=None,
        ws_url=config.resolved_ws_url(),
        settlement_pallet=config.network_settings.get("settlement_pallet", "SettlementSp1Pallet"),
        inclusion_timeout=config.http_timeout,
    )


def get_submitter(config: RouterConfig) -> TransactionSubmitter:
    """
    Get or create the submitter for a configuration from the module-level cache.

    Args:
        config: Router configuration

    Returns:
        TransactionSubmitter instance
    """
    cache_key = (config.resolved_ws_url(), config.demo_mode)
    with _cache_lock:
        if cache_key not in _submitter_cache:
            _submitter_cache[cache_key] = create_submitter(config)
        return _submitter_cache[cache_key]


def close_submitters() -> None:
    """Close every cached submitter's connection."""
    with _cache_lock:
        for submitter in _submitter_cache.values():
            submitter.close()
        _submitter_cache.clear()
