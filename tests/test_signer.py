"""
Tests for signing identity derivation.
"""
import pytest

from proof_router.ledger.exceptions import InvalidKeyMaterial
from proof_router.ledger.signer import DEMO_MNEMONIC, SigningContext, SigningIdentity


class TestSigningContext:
    """Tests for SigningContext."""

    def test_derive_once(self, signing_context):
        identity = signing_context.derive()

        assert isinstance(identity, SigningIdentity)
        assert signing_context.derived is True
        assert signing_context.derive() is identity

    def test_address_format(self):
        generic = SigningContext(DEMO_MNEMONIC).derive()
        other = SigningContext(DEMO_MNEMONIC, ss58_format=251).derive()

        assert generic.address.startswith("5")
        assert generic.public_key == other.public_key
        assert generic.address != other.address

    def test_whitespace_in_phrase_is_normalized(self):
        spaced = "  " + DEMO_MNEMONIC.replace(" ", "   ") + "\n"
        assert SigningContext(spaced).derive().address == SigningContext(DEMO_MNEMONIC).derive().address

    def test_invalid_phrase(self):
        """Errors for bad phrases never carry the phrase itself"""
        phrase = "these words are certainly not a valid recovery phrase at all today"

        with pytest.raises(InvalidKeyMaterial) as exc_info:
            SigningContext(phrase).derive()

        assert "certainly" not in str(exc_info.value)
        assert exc_info.value.__cause__ is None

    def test_repr_hides_secrets(self, signing_context):
        identity = signing_context.derive()

        for text in (repr(signing_context), repr(identity), str(identity)):
            assert "bottom" not in text
        assert identity.address in repr(identity)

    def test_sign(self, signing_context):
        identity = signing_context.derive()
        signature = identity.sign(b"payload")

        assert len(signature) == 64
        assert identity.keypair.verify(b"payload", signature)
