"""
Offline artifact client used in demo mode.

Returns a fixed synthetic artifact so the rest of the pipeline can run
without the explorer or object storage.
"""
import hashlib
import logging
import threading
from typing import Optional

from ..exceptions import DownloadCancelled
from ..models import ArtifactMetadata, ProofScheme
from ..utils import normalize_request_id

logger = logging.getLogger(__name__)

DEMO_ARTIFACT = b"proof-router demo artifact v1\x00" + bytes(range(32))
DEMO_VERIFICATION_KEY = hashlib.sha256(b"proof-router demo program").digest()


class DemoArtifactClient:
    """Drop-in replacement for ArtifactClient that never touches the network"""

    def resolve(self, request_id: str) -> ArtifactMetadata:
        request_id = normalize_request_id(request_id)
        logger.info(f"Demo mode: synthetic metadata for {request_id}")
        return ArtifactMetadata(
            request_id=request_id,
            artifact_url=f"demo://artifacts/{request_id}",
            verification_key=DEMO_VERIFICATION_KEY,
            scheme=ProofScheme.SP1,
        )

    def download(self, metadata: ArtifactMetadata, cancel: Optional[threading.Event] = None) -> bytes:
        if cancel is not None and cancel.is_set():
            raise DownloadCancelled(f"Download of {metadata.artifact_url} cancelled")
        logger.info(f"Demo mode: synthetic artifact for {metadata.request_id}")
        return DEMO_ARTIFACT

    def close(self) -> None:
        pass
