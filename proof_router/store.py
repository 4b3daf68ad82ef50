"""
Durable storage of canonical proofs as hex-encoded JSON files.
"""
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

import portalocker
from pydantic import ValidationError

from .exceptions import InvalidFormat, PersistenceError
from .models import CanonicalProof
from .utils import from_hex, to_hex

logger = logging.getLogger(__name__)

PROOF_KEY = "proof"
PUB_INPUTS_KEY = "pub_inputs"
VK_KEY = "vk"
# Older proof files name the public inputs "pubs"
PUB_INPUTS_ALIASES = (PUB_INPUTS_KEY, "pubs")

LOCK_TIMEOUT = 10


class ProofStore:
    """Reads and writes proof files, one JSON document per proof"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def to_document(proof: CanonicalProof) -> Dict[str, str]:
        """Hex-encode the present fields of a proof."""
        document = {
            PROOF_KEY: to_hex(proof.proof),
            PUB_INPUTS_KEY: to_hex(proof.pub_inputs),
        }
        if proof.verification_key is not None:
            document[VK_KEY] = to_hex(proof.verification_key)
        return document

    @staticmethod
    def from_document(document: Any) -> CanonicalProof:
        """
        Decode a parsed proof document.

        Raises:
            InvalidFormat: If keys are missing or fields are not hex strings
        """
        if not isinstance(document, dict):
            raise InvalidFormat(f"Proof document must be a JSON object, got {type(document).__name__}")

        if PROOF_KEY not in document:
            raise InvalidFormat(f"Missing '{PROOF_KEY}' field", field=PROOF_KEY)
        pub_key = next((key for key in PUB_INPUTS_ALIASES if key in document), None)
        if pub_key is None:
            raise InvalidFormat(f"Missing '{PUB_INPUTS_KEY}' field", field=PUB_INPUTS_KEY)

        fields = {"proof": (PROOF_KEY, document[PROOF_KEY]),
                  "pub_inputs": (pub_key, document[pub_key])}
        if document.get(VK_KEY) is not None:
            fields["verification_key"] = (VK_KEY, document[VK_KEY])

        decoded = {}
        for name, (key, value) in fields.items():
            try:
                decoded[name] = from_hex(value)
            except ValueError as e:
                raise InvalidFormat(f"Field '{key}' is not valid hex: {e}", field=key) from e

        try:
            return CanonicalProof(**decoded)
        except ValidationError as e:
            field = str(e.errors()[0]["loc"][0])
            raise InvalidFormat(f"Field '{field}' is invalid: {e.errors()[0]['msg']}", field=field) from None

    def save(
        self,
        path: Union[str, Path],
        proof: CanonicalProof,
        cancel: Optional[threading.Event] = None
    ) -> Path:
        """
        Write a proof file atomically.

        The document goes to a temporary file in the target directory which
        is renamed over the target once flushed, so readers never see a
        partial file. If ``cancel`` is set before the rename, the temporary
        file is removed and the target is left untouched.

        Args:
            path: Destination path
            proof: Proof to persist
            cancel: Event that abandons the write

        Returns:
            The destination path

        Raises:
            PersistenceError: If the file cannot be written or the write was cancelled
        """
        path = Path(path)
        content = json.dumps(self.to_document(proof), indent=2) + "\n"

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with portalocker.Lock(str(path) + ".lock", timeout=LOCK_TIMEOUT):
                fd, temp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        f.write(content)
                        f.flush()
                        os.fsync(f.fileno())
                    if cancel is not None and cancel.is_set():
                        raise PersistenceError(f"Save of {path} cancelled")
                    os.replace(temp_path, path)
                except BaseException:
                    try:
                        os.unlink(temp_path)
                    except FileNotFoundError:
                        pass
                    raise
        except (OSError, portalocker.LockException) as e:
            self.logger.error(f"Failed to save proof to {path}: {e}")
            raise PersistenceError(f"Failed to save proof to {path}: {str(e)}") from e

        self.logger.info(f"Saved proof to {path} ({len(proof.proof)} proof bytes)")
        return path

    def read_bytes(self, path: Union[str, Path]) -> bytes:
        """Raw content of a proof file, for remark submissions."""
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise PersistenceError(f"Failed to read proof file {path}: {str(e)}") from e

    def load(self, path: Union[str, Path]) -> CanonicalProof:
        """
        Read a proof file.

        Raises:
            PersistenceError: If the file cannot be read
            InvalidFormat: If the content is not a valid proof document
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise PersistenceError(f"Failed to read proof file {path}: {str(e)}") from e

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidFormat(f"Proof file {path} is not valid JSON: {str(e)}") from e

        proof = self.from_document(document)
        self.logger.debug(f"Loaded proof from {path}: fields {sorted(document)}")
        return proof
