"""
Signing identity derived from the configured secret phrase.
"""
import logging
import threading
from typing import Optional, Union

from pydantic import SecretStr
from substrateinterface import Keypair, KeypairType

from .exceptions import InvalidKeyMaterial

logger = logging.getLogger(__name__)

# Well-known development phrase of Substrate test chains, used only in demo mode
DEMO_MNEMONIC = "bottom drive obey lake curtain smoke basket hold race lonely fit walk"


class SigningIdentity:
    """
    An sr25519 keypair for signing extrinsics.

    The phrase and private key never appear in repr/str output.
    """

    __slots__ = ("_keypair",)

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @property
    def keypair(self) -> Keypair:
        return self._keypair

    @property
    def address(self) -> str:
        return self._keypair.ss58_address

    @property
    def public_key(self) -> str:
        return "0x" + self._keypair.public_key.hex()

    def sign(self, payload: bytes) -> bytes:
        return self._keypair.sign(payload)

    def __repr__(self) -> str:
        return f"SigningIdentity(address={self.address})"

    __str__ = __repr__


class SigningContext:
    """
    Holds the secret phrase and derives the signing identity once.

    Create one per process and pass it to the TransactionSubmitter.
    """

    def __init__(self, mnemonic: Union[str, SecretStr], ss58_format: int = 42):
        """
        Args:
            mnemonic: BIP-39 secret phrase
            ss58_format: Address format of the target chain
        """
        if isinstance(mnemonic, str):
            mnemonic = SecretStr(mnemonic)
        self._mnemonic = mnemonic
        self.ss58_format = ss58_format
        self._identity: Optional[SigningIdentity] = None
        self._lock = threading.Lock()

    def derive(self) -> SigningIdentity:
        """
        Derive the keypair, or return the one derived earlier.

        Raises:
            InvalidKeyMaterial: If the phrase is not a valid mnemonic
        """
        with self._lock:
            if self._identity is None:
                phrase = " ".join(self._mnemonic.get_secret_value().split())
                try:
                    keypair = Keypair.create_from_mnemonic(
                        phrase,
                        ss58_format=self.ss58_format,
                        crypto_type=KeypairType.SR25519,
                    )
                except (ValueError, TypeError):
                    # Library messages may quote the phrase, so do not chain them
                    raise InvalidKeyMaterial("Secret phrase is not a valid mnemonic") from None
                self._identity = SigningIdentity(keypair)
                logger.info(f"Derived signing identity {self._identity.address}")
            return self._identity

    @property
    def derived(self) -> bool:
        return self._identity is not None

    def __repr__(self) -> str:
        return f"SigningContext(ss58_format={self.ss58_format}, derived={self.derived})"
