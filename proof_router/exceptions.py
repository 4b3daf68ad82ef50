"""
Exceptions for the proof router pipeline.
"""
from typing import Optional


class ProofRouterError(Exception):
    """Base exception for all pipeline errors."""
    pass


class ConfigurationError(ProofRouterError):
    """Raised when required configuration is missing or invalid."""
    pass


class ResolutionError(ProofRouterError):
    """Raised when a request id cannot be resolved to artifact metadata."""
    pass


class RequestNotFound(ResolutionError):
    """Raised when the explorer does not know the request id."""
    pass


class MalformedResponse(ResolutionError):
    """Raised when the explorer response does not contain an artifact location."""
    pass


class InvalidRequestId(ResolutionError):
    """Raised when a request id is not a 32-byte hex string."""
    pass


class DownloadError(ProofRouterError):
    """Raised when the artifact cannot be downloaded completely."""
    pass


class DownloadCancelled(DownloadError):
    """Raised when a download is cancelled before the stream ends."""
    pass


class ConversionError(ProofRouterError):
    """Raised when an artifact cannot be converted into a canonical proof."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class UnsupportedScheme(ConversionError):
    """Raised when no converter exists for the declared proof scheme."""

    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(f"Unsupported proof scheme: {scheme}")


class PersistenceError(ProofRouterError):
    """Raised when a proof file cannot be written or read."""
    pass


class InvalidFormat(PersistenceError):
    """Raised when a proof file does not have the expected layout."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class PipelineTimeout(ProofRouterError):
    """Raised when a pipeline stage exceeds its wall-clock budget."""

    def __init__(self, stage: str, timeout: float):
        self.stage = stage
        self.timeout = timeout
        super().__init__(f"{stage} timed out after {timeout:g}s")
