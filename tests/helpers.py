"""
Shared constants and page builders for the proof router tests.
"""
TEST_API_BASE = "https://explorer.example.com"
TEST_WS_URL = "ws://127.0.0.1:9944"
TEST_REQUEST_ID = "0x921d36fb2ad5e23d521c624624e9a07e2297f70704c18661e55ccf7ca4464c78"
TEST_VK_HEX = "0x00a4c2bd8a1e9bb1bbb9a8e1c50de8a5e2c6ec8ef7b6f2cb9d1e4a7c0e5f3d21"
TEST_ARTIFACT_URL = (
    "https://spn-artifacts-mainnet.s3.us-east-2.amazonaws.com/proofs/"
    "artifact_01jq.bin?X-Amz-Expires=3600&X-Amz-Signature=abc123"
)


def make_request_id(n: int) -> str:
    """Deterministic request id ending in ``n``."""
    return "0x" + "aa" * 30 + f"{n:04x}"


def explorer_page(artifact_url: str = TEST_ARTIFACT_URL, vk: str = TEST_VK_HEX,
                  request_id: str = TEST_REQUEST_ID, proof_type: str = "compressed") -> str:
    """A rendered explorer request page as the scraper sees it."""
    escaped_url = artifact_url.replace("&", "&amp;")
    return f"""<!DOCTYPE html><html><head><title>Request {request_id}</title></head>
<body><div class="request"><h1>Proof Request</h1><span>{request_id}</span>
<section><h2>Program Blobstream</h2><dl><dt>Verification Key</dt><dd>{vk}</dd></dl></section>
<a href="{escaped_url}">Download artifact</a>
<script>self.__next_f.push([1,"{{\\"proofType\\":\\"{proof_type}\\"}}"])</script>
</div></body></html>"""
