"""
Tests for the FormatConverter.
"""
import pytest

from proof_router.artifacts.demo import DEMO_VERIFICATION_KEY
from proof_router.converter import DEMO_PROOF, DEMO_PUBLIC_INPUTS, SP1_PUBLIC_INPUTS, FormatConverter
from proof_router.exceptions import ConversionError, UnsupportedScheme
from proof_router.models import ProofScheme

ARTIFACT = b"\x01\x02\x03\x04" * 100


class TestFormatConverter:
    """Tests for FormatConverter."""

    def test_convert_sp1(self, sample_metadata):
        proof = FormatConverter().convert(ARTIFACT, sample_metadata)

        assert proof.proof[:8] == len(ARTIFACT).to_bytes(8, "little")
        assert proof.proof[8:] == ARTIFACT
        assert proof.pub_inputs == SP1_PUBLIC_INPUTS
        assert proof.verification_key == sample_metadata.verification_key

    def test_convert_is_deterministic(self, sample_metadata):
        converter = FormatConverter()
        assert converter.convert(ARTIFACT, sample_metadata) == converter.convert(ARTIFACT, sample_metadata)
        assert FormatConverter().convert(ARTIFACT, sample_metadata) == converter.convert(ARTIFACT, sample_metadata)

    def test_missing_key_is_left_out(self, sample_metadata):
        metadata = sample_metadata.model_copy(update={"verification_key": b""})
        proof = FormatConverter().convert(ARTIFACT, metadata)
        assert proof.verification_key is None

    def test_empty_artifact(self, sample_metadata):
        with pytest.raises(ConversionError, match="empty"):
            FormatConverter().convert(b"", sample_metadata)

    def test_bad_key_length(self, sample_metadata):
        metadata = sample_metadata.model_copy(update={"verification_key": b"\x01" * 20})
        with pytest.raises(ConversionError) as exc_info:
            FormatConverter().convert(ARTIFACT, metadata)
        assert "20" in exc_info.value.reason

    @pytest.mark.parametrize("scheme", [ProofScheme.RISC0, ProofScheme.GROTH16])
    def test_unsupported_scheme(self, sample_metadata, scheme):
        """Declared schemes without a converter are rejected, never guessed"""
        metadata = sample_metadata.model_copy(update={"scheme": scheme})

        with pytest.raises(UnsupportedScheme) as exc_info:
            FormatConverter().convert(ARTIFACT, metadata)

        assert exc_info.value.scheme == scheme.value
        assert isinstance(exc_info.value, ConversionError)

    def test_supported_schemes(self):
        assert FormatConverter().supported_schemes == ["sp1"]

    def test_demo_mode_returns_fixed_proof(self, sample_metadata):
        proof = FormatConverter(demo_mode=True).convert(ARTIFACT, sample_metadata)

        assert proof.proof == DEMO_PROOF
        assert proof.pub_inputs == DEMO_PUBLIC_INPUTS
        assert proof.verification_key == DEMO_VERIFICATION_KEY
