"""
Data models for the proof router.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class ProofScheme(str, Enum):
    """Proof systems an artifact can be declared in"""
    SP1 = "sp1"
    RISC0 = "risc0"
    GROTH16 = "groth16"


class SubmitMode(str, Enum):
    """Which transaction, if any, follows a successful save"""
    NONE = "none"
    REMARK = "remark"
    PROOF = "proof"


class ArtifactMetadata(BaseModel):
    """Resolved location and verification data for one proof request"""
    request_id: str
    artifact_url: str
    verification_key: bytes = b""
    scheme: ProofScheme = ProofScheme.SP1

    class Config:
        frozen = True


class CanonicalProof(BaseModel):
    """
    Proof fields in the layout the target verifier expects.

    ``proof`` and ``pub_inputs`` are always present and non-empty,
    ``verification_key`` only when the submission call needs it.
    """
    proof: bytes
    pub_inputs: bytes
    verification_key: Optional[bytes] = None

    class Config:
        frozen = True

    @field_validator("proof", "pub_inputs")
    @classmethod
    def _non_empty(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError("must not be empty")
        return value


class TransactionReceipt(BaseModel):
    """Result of a submission that reached a block"""
    extrinsic_hash: str
    block_reference: Optional[str] = None
    extrinsic_index: Optional[int] = None
    finalized: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class RequestOutcome(BaseModel):
    """Per-request entry of a batch report"""
    request_id: str
    converted: bool = False
    submitted: bool = False
    error: Optional[str] = None
    output_path: Optional[str] = None
    receipt: Optional[TransactionReceipt] = None
