"""
proof-router: moves proof artifacts from a proving service into a Substrate
ledger.

Fetch a proof request's artifact, convert it into the verifier's canonical
layout, persist it as hex-encoded JSON and optionally submit it on chain.
"""
from .config import RouterConfig, NetworkConfig
from .converter import FormatConverter
from .exceptions import (
    ProofRouterError, ConfigurationError, ResolutionError, RequestNotFound,
    MalformedResponse, InvalidRequestId, DownloadError, DownloadCancelled,
    ConversionError, UnsupportedScheme, PersistenceError, InvalidFormat, PipelineTimeout
)
from .models import (
    ArtifactMetadata, CanonicalProof, ProofScheme, RequestOutcome, SubmitMode, TransactionReceipt
)
from .orchestrator import BatchOrchestrator, Pipeline, summarize
from .store import ProofStore
from .version import __version__

__all__ = [
    'RouterConfig', 'NetworkConfig', 'FormatConverter', 'ProofStore',
    'Pipeline', 'BatchOrchestrator', 'summarize',
    'ArtifactMetadata', 'CanonicalProof', 'ProofScheme', 'RequestOutcome',
    'SubmitMode', 'TransactionReceipt',
    'ProofRouterError', 'ConfigurationError', 'ResolutionError', 'RequestNotFound',
    'MalformedResponse', 'InvalidRequestId', 'DownloadError', 'DownloadCancelled',
    'ConversionError', 'UnsupportedScheme', 'PersistenceError', 'InvalidFormat',
    'PipelineTimeout', '__version__',
]
