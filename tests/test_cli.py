"""
Tests for the command-line interface.
"""
import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from unittest.mock import patch

from proof_router.cli import cli, read_request_ids
from proof_router.ledger.stub_transport import StubLedgerTransport
from proof_router.store import ProofStore
from tests.helpers import make_request_id


@pytest.fixture
def runner(monkeypatch):
    # Keep a developer's environment out of the tests
    for var in ("ZKV_MNEMONIC", "ROUTER_NETWORK", "ROUTER_WS_URL", "ROUTER_DEMO_MODE", "ROUTER_REQUEST_DELAY"):
        monkeypatch.delenv(var, raising=False)
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "proof-router" in result.output


def test_convert_demo(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["--demo", "convert", "--request-id", make_request_id(1)])

        assert result.exit_code == 0, result.output
        assert "Proof converted successfully: proof.json" in result.output
        assert ProofStore().load("proof.json").proof


def test_convert_and_remark_demo(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["--demo", "convert", "--request-id", make_request_id(1),
                                     "--output", "out/p.json", "--send-remark"])

        assert result.exit_code == 0, result.output
        assert "Transaction hash: 0x" in result.output


def test_submit_existing_file(runner, sample_proof):
    """Without a request id the saved file is submitted as is"""
    with runner.isolated_filesystem():
        ProofStore().save("proof.json", sample_proof)

        result = runner.invoke(cli, ["--demo", "convert", "--submit-to-zkverify"])

        assert result.exit_code == 0, result.output
        assert "Proof converted" not in result.output
        assert "Transaction hash: 0x" in result.output


def test_failed_conversion_leaves_saved_file_unsent(runner, sample_proof):
    """A leftover file is not submitted when the requested conversion fails"""
    with runner.isolated_filesystem():
        ProofStore().save("proof.json", sample_proof)

        result = runner.invoke(cli, ["--demo", "convert", "--request-id", "0xnot-a-request", "--submit-proof"])

        assert result.exit_code == 1
        assert "InvalidRequestId" in result.output
        assert "Transaction hash" not in result.output


def test_submit_missing_file(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["--demo", "convert", "--submit-proof"])

        assert result.exit_code == 1
        assert "PersistenceError" in result.output


def test_convert_flags_are_exclusive(runner):
    result = runner.invoke(cli, ["--demo", "convert", "--request-id", make_request_id(1),
                                 "--send-remark", "--submit-proof"])
    assert result.exit_code == 2


def test_convert_needs_something_to_do(runner):
    result = runner.invoke(cli, ["--demo", "convert"])
    assert result.exit_code == 2
    assert "Nothing to do" in result.output


def test_convert_invalid_request(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["--demo", "convert", "--request-id", "0x1234"])

        assert result.exit_code == 1
        assert "InvalidRequestId" in result.output


def test_live_submission_without_mnemonic(runner, sample_proof):
    """The secret phrase is only read from the environment"""
    with runner.isolated_filesystem():
        ProofStore().save("proof.json", sample_proof)

        result = runner.invoke(cli, ["convert", "--submit-proof"])

        assert result.exit_code == 1
        assert "ZKV_MNEMONIC" in result.output


def test_batch_demo(runner):
    with runner.isolated_filesystem():
        with open("ids.txt", "w") as f:
            f.write(f"# requests\n{make_request_id(1)}\n\n{make_request_id(2)}  # second\n")

        result = runner.invoke(cli, ["--demo", "batch", make_request_id(0), "--ids-file", "ids.txt",
                                     "--submit", "remark", "--delay", "0", "--output-dir", "out"])

        assert result.exit_code == 0, result.output
        assert "3 requests: 3 converted, 3 submitted, 0 failed" in result.output
        assert json.loads(Path("out/proof_2.json").read_text())["proof"].startswith("0x")


def test_batch_reports_failures(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["--demo", "batch", make_request_id(0), "bogus", "--delay", "0"])

        assert result.exit_code == 1
        assert "2 requests: 1 converted, 0 submitted, 1 failed" in result.output


def test_batch_without_ids(runner):
    result = runner.invoke(cli, ["--demo", "batch"])
    assert result.exit_code == 2


def test_list_pallets_demo(runner):
    result = runner.invoke(cli, ["--demo", "list-pallets"])

    assert result.exit_code == 0
    assert "SettlementSp1Pallet" in result.output.splitlines()


def test_list_pallets_without_mnemonic(runner):
    """Listing pallets signs nothing, so no secret phrase is needed"""
    with patch("proof_router.ledger.get_transport", return_value=StubLedgerTransport()) as mock_transport:
        result = runner.invoke(cli, ["--ws-url", "ws://node.example:9944", "list-pallets"])

    assert result.exit_code == 0, result.output
    assert "SettlementSp1Pallet" in result.output.splitlines()
    mock_transport.assert_called_once_with(False)


def test_show(runner, sample_proof):
    with runner.isolated_filesystem():
        ProofStore().save("proof.json", sample_proof)

        result = runner.invoke(cli, ["show", "proof.json"])

        assert result.exit_code == 0
        assert f"proof:      {len(sample_proof.proof)} bytes" in result.output
        assert "vk:         0x" + sample_proof.verification_key.hex() in result.output


def test_show_invalid_file(runner):
    with runner.isolated_filesystem():
        with open("proof.json", "w") as f:
            f.write("{}")

        result = runner.invoke(cli, ["show", "proof.json"])

        assert result.exit_code == 1
        assert "proof" in result.output


def test_read_request_ids(tmp_path):
    ids_file = tmp_path / "ids.txt"
    ids_file.write_text("0x01\n# comment\n\n0x02 # trailing\n")

    assert read_request_ids(["0x00"], str(ids_file)) == ["0x00", "0x01", "0x02"]
    assert read_request_ids(["0x00"], None) == ["0x00"]
