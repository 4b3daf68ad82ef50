"""
Conversion of proof artifacts into the canonical verifier layout.

Each supported scheme has one conversion method, registered in a fixed
dispatch table. Adding a scheme means adding a ProofScheme member and its
method.
"""
import logging
from typing import Callable, Dict, Optional

from .artifacts.demo import DEMO_VERIFICATION_KEY
from .exceptions import ConversionError, UnsupportedScheme
from .models import ArtifactMetadata, CanonicalProof, ProofScheme
from .utils import encode_byte_vector

logger = logging.getLogger(__name__)

VK_LENGTH = 32

# SP1 proofs are submitted with a zero commitment in place of public values
SP1_PUBLIC_INPUTS = bytes(32)

DEMO_PROOF = bytes.fromhex("deadbeef") * 8
DEMO_PUBLIC_INPUTS = bytes(31) + b"\x01"


class FormatConverter:
    """
    Converts raw artifacts into CanonicalProof values.

    Output is a pure function of the artifact bytes and metadata.
    """

    def __init__(self, demo_mode: bool = False, logger: Optional[logging.Logger] = None):
        """
        Args:
            demo_mode: Return fixed demonstration bytes instead of converting
            logger: Optional logger instance
        """
        self.demo_mode = demo_mode
        self.logger = logger or logging.getLogger(__name__)
        self._converters: Dict[ProofScheme, Callable[[bytes, ArtifactMetadata], CanonicalProof]] = {
            ProofScheme.SP1: self.convert_sp1,
        }

    @property
    def supported_schemes(self):
        return sorted(scheme.value for scheme in self._converters)

    def convert(self, raw_artifact: bytes, metadata: ArtifactMetadata) -> CanonicalProof:
        """
        Convert an artifact for the scheme declared in its metadata.

        Args:
            raw_artifact: Artifact bytes as downloaded
            metadata: Metadata the artifact was resolved from

        Returns:
            CanonicalProof with non-empty proof and public inputs

        Raises:
            UnsupportedScheme: If the scheme has no converter
            ConversionError: If the artifact is malformed
        """
        if self.demo_mode:
            self.logger.info("Demo mode: returning fixed demonstration proof")
            return CanonicalProof(
                proof=DEMO_PROOF,
                pub_inputs=DEMO_PUBLIC_INPUTS,
                verification_key=DEMO_VERIFICATION_KEY,
            )

        converter = self._converters.get(metadata.scheme)
        if converter is None:
            raise UnsupportedScheme(metadata.scheme.value)

        self.logger.info(f"Converting {len(raw_artifact)} byte {metadata.scheme.value} artifact")
        return converter(raw_artifact, metadata)

    def convert_sp1(self, raw_artifact: bytes, metadata: ArtifactMetadata) -> CanonicalProof:
        """
        Convert an SP1 proof artifact.

        The proof is the artifact as a length-prefixed byte vector. The
        program verification key is carried over from the metadata.
        """
        if not raw_artifact:
            raise ConversionError("SP1 artifact is empty")

        vk = metadata.verification_key or None
        if vk is not None and len(vk) != VK_LENGTH:
            raise ConversionError(f"SP1 verification key must be {VK_LENGTH} bytes, got {len(vk)}")

        return CanonicalProof(
            proof=encode_byte_vector(raw_artifact),
            pub_inputs=SP1_PUBLIC_INPUTS,
            verification_key=vk,
        )
