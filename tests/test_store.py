"""
Tests for ProofStore persistence.
"""
import json
import os
import threading

import pytest
from unittest.mock import patch

from proof_router.exceptions import InvalidFormat, PersistenceError
from proof_router.models import CanonicalProof
from proof_router.store import ProofStore


@pytest.fixture
def store():
    return ProofStore()


class TestProofStore:
    """Tests for ProofStore."""

    def test_save_and_load(self, store, tmp_path, sample_proof):
        path = store.save(tmp_path / "proof.json", sample_proof)
        assert store.load(path) == sample_proof

    def test_document_layout(self, store, tmp_path, sample_proof):
        """Fields are 0x-prefixed lowercase hex under fixed keys"""
        path = store.save(tmp_path / "proof.json", sample_proof)
        document = json.loads(path.read_text())

        assert set(document) == {"proof", "pub_inputs", "vk"}
        for value in document.values():
            assert value.startswith("0x")
            assert value == value.lower()
        assert document["pub_inputs"] == "0x" + "00" * 32

    def test_key_omitted_when_absent(self, store, tmp_path):
        proof = CanonicalProof(proof=b"\x01", pub_inputs=b"\x02")
        path = store.save(tmp_path / "proof.json", proof)

        assert "vk" not in json.loads(path.read_text())
        assert store.load(path).verification_key is None

    def test_save_creates_directories(self, store, tmp_path, sample_proof):
        path = store.save(tmp_path / "out" / "nested" / "proof.json", sample_proof)
        assert path.exists()

    def test_save_leaves_no_temporary_files(self, store, tmp_path, sample_proof):
        store.save(tmp_path / "proof.json", sample_proof)
        store.save(tmp_path / "proof.json", sample_proof)

        assert not [name for name in os.listdir(tmp_path) if name.endswith(".tmp")]

    def test_failed_write_keeps_previous_file(self, store, tmp_path, sample_proof):
        """A failed save never leaves a partial file at the target"""
        path = tmp_path / "proof.json"
        store.save(path, sample_proof)
        original = path.read_text()

        with patch("proof_router.store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError, match="disk full"):
                store.save(path, CanonicalProof(proof=b"\xff", pub_inputs=b"\xff"))

        assert path.read_text() == original
        assert not [name for name in os.listdir(tmp_path) if name.endswith(".tmp")]

    def test_cancelled_save_keeps_previous_file(self, store, tmp_path, sample_proof):
        path = tmp_path / "proof.json"
        store.save(path, sample_proof)
        original = path.read_text()
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(PersistenceError, match="cancelled"):
            store.save(path, CanonicalProof(proof=b"\xff", pub_inputs=b"\xff"), cancel=cancel)

        assert path.read_text() == original
        assert not [name for name in os.listdir(tmp_path) if name.endswith(".tmp")]

    def test_load_missing_file(self, store, tmp_path):
        with pytest.raises(PersistenceError):
            store.load(tmp_path / "missing.json")

    def test_load_invalid_json(self, store, tmp_path):
        path = tmp_path / "proof.json"
        path.write_text("{not json")

        with pytest.raises(InvalidFormat):
            store.load(path)

    @pytest.mark.parametrize("document,field", [
        ({"pub_inputs": "0x01"}, "proof"),
        ({"proof": "0x01"}, "pub_inputs"),
        ({"proof": "0xzz", "pub_inputs": "0x01"}, "proof"),
        ({"proof": "0x01", "pub_inputs": 5}, "pub_inputs"),
        ({"proof": "0x01", "pub_inputs": "0x01", "vk": "0x0g"}, "vk"),
        ({"proof": "0x", "pub_inputs": "0x01"}, "proof"),
    ])
    def test_invalid_documents_name_the_field(self, store, tmp_path, document, field):
        path = tmp_path / "proof.json"
        path.write_text(json.dumps(document))

        with pytest.raises(InvalidFormat) as exc_info:
            store.load(path)

        assert exc_info.value.field == field

    def test_non_object_document(self, store, tmp_path):
        path = tmp_path / "proof.json"
        path.write_text("[1, 2]")

        with pytest.raises(InvalidFormat, match="JSON object"):
            store.load(path)

    def test_pubs_alias(self, store, tmp_path):
        """Files that name the public inputs "pubs" still load"""
        path = tmp_path / "proof.json"
        path.write_text(json.dumps({"proof": "0xAB", "pubs": "0x01"}))

        proof = store.load(path)

        assert proof.proof == b"\xab"
        assert proof.pub_inputs == b"\x01"

    def test_read_bytes(self, store, tmp_path, sample_proof):
        path = store.save(tmp_path / "proof.json", sample_proof)
        assert store.read_bytes(path) == path.read_bytes()

        with pytest.raises(PersistenceError):
            store.read_bytes(tmp_path / "missing.json")

    def test_reencoding_is_identical(self, store, tmp_path, sample_proof):
        path = store.save(tmp_path / "proof.json", sample_proof)
        document = json.loads(path.read_text())

        assert store.to_document(store.from_document(document)) == document
