"""
Pytest fixtures for the proof router tests.
"""
import pytest

from proof_router._rate_limited_log import reset_rate_limits
from proof_router.config import NetworkConfig, RouterConfig
from proof_router.ledger import close_submitters
from proof_router.ledger.signer import DEMO_MNEMONIC, SigningContext
from proof_router.ledger.stub_transport import StubLedgerTransport
from proof_router.ledger.submitter import TransactionSubmitter
from proof_router.models import ArtifactMetadata, CanonicalProof, ProofScheme
from tests.helpers import TEST_API_BASE, TEST_ARTIFACT_URL, TEST_REQUEST_ID, TEST_VK_HEX, TEST_WS_URL


@pytest.fixture(autouse=True)
def _reset_caches():
    """Keep module-level caches from leaking between tests."""
    NetworkConfig._networks_cache = None
    reset_rate_limits()
    yield
    close_submitters()
    NetworkConfig._networks_cache = None


@pytest.fixture
def demo_config():
    return RouterConfig(demo_mode=True, inter_request_delay=0, ws_url=TEST_WS_URL)


@pytest.fixture
def live_config():
    return RouterConfig(api_base=TEST_API_BASE, ws_url=TEST_WS_URL, inter_request_delay=0)


@pytest.fixture
def sample_metadata():
    return ArtifactMetadata(
        request_id=TEST_REQUEST_ID,
        artifact_url=TEST_ARTIFACT_URL,
        verification_key=bytes.fromhex(TEST_VK_HEX[2:]),
        scheme=ProofScheme.SP1,
    )


@pytest.fixture
def sample_proof():
    return CanonicalProof(
        proof=bytes(range(256)) * 4,
        pub_inputs=bytes(32),
        verification_key=bytes.fromhex(TEST_VK_HEX[2:]),
    )


@pytest.fixture
def stub_transport():
    return StubLedgerTransport()


@pytest.fixture
def signing_context():
    return SigningContext(DEMO_MNEMONIC)


@pytest.fixture
def submitter(stub_transport, signing_context):
    return TransactionSubmitter(
        transport=stub_transport,
        signing_context=signing_context,
        ws_url=TEST_WS_URL,
        default_vk=bytes.fromhex(TEST_VK_HEX[2:]),
        inclusion_timeout=5,
    )
