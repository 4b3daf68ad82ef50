"""
Extraction of artifact metadata from explorer request pages.

The explorer has no stable API for proof requests; its pages are a mix of
rendered HTML and embedded JSON. These rules are versioned so callers can
tell which page layout a result was read with.
"""
import html
import logging
import re
from typing import Optional

from ..exceptions import MalformedResponse, RequestNotFound
from ..models import ArtifactMetadata, ProofScheme
from ..utils import from_hex

logger = logging.getLogger(__name__)

EXTRACTOR_VERSION = "1"

DEFAULT_ARTIFACT_PATTERN = r'(https://spn-artifacts-mainnet\.s3[^"<>\s]*)'

# Keywords that precede the program verification key, most specific first
VK_KEYWORDS = ("Program Blobstream", "Blobstream", "Program")
VK_PATTERN = re.compile(r"0x[0-9a-fA-F]{64}")
VK_WINDOW_BEFORE = 1000
VK_WINDOW_AFTER = 2000

# Matches plain and backslash-escaped JSON, as embedded in page scripts
SCHEME_PATTERN = re.compile(r'\\?"(?:scheme|proofType)\\?"\s*:\s*\\?"([A-Za-z0-9_-]+)')
# Wording of the explorer's not-found pages, never a bare status code
NOT_FOUND_PATTERN = re.compile(r"(request|page)\s+(was\s+)?not\s+found|could\s+not\s+be\s+found", re.IGNORECASE)


class MetadataExtractor:
    """Pattern-based reader for explorer request pages"""

    version = EXTRACTOR_VERSION

    def __init__(self, artifact_pattern: str = DEFAULT_ARTIFACT_PATTERN):
        self.artifact_re = re.compile(artifact_pattern)

    def extract(self, request_id: str, body: str) -> ArtifactMetadata:
        """
        Build metadata from a page body.

        Args:
            request_id: Request the page belongs to
            body: Page text, HTML or JSON

        Returns:
            ArtifactMetadata with optional fields defaulted

        Raises:
            RequestNotFound: If the page reports an unknown request
            MalformedResponse: If no artifact URL can be found
        """
        artifact_url = self.find_artifact_url(body)
        if artifact_url is None:
            if NOT_FOUND_PATTERN.search(body):
                raise RequestNotFound(f"Request {request_id} not found")
            raise MalformedResponse(
                f"No artifact URL in explorer response for {request_id} "
                f"({len(body)} chars, extractor v{self.version})"
            )

        vk = self.find_verification_key(body, exclude=request_id)
        scheme = self.find_scheme(body)
        logger.debug(f"Extracted artifact URL {artifact_url}, vk={'yes' if vk else 'no'}, scheme={scheme.value}")
        return ArtifactMetadata(
            request_id=request_id,
            artifact_url=artifact_url,
            verification_key=vk,
            scheme=scheme,
        )

    def find_artifact_url(self, body: str) -> Optional[str]:
        match = self.artifact_re.search(body)
        if not match:
            return None
        return html.unescape(match.group(1))

    def find_verification_key(self, body: str, exclude: Optional[str] = None) -> bytes:
        """
        Find the program verification key, searching near the program
        section first and then the whole page. Missing keys yield b"".

        Args:
            body: Page text
            exclude: Hex value to skip, typically the request id itself
        """
        skip = exclude.lower() if exclude else None

        def first_key(text: str) -> Optional[str]:
            for match in VK_PATTERN.finditer(text):
                if match.group(0).lower() != skip:
                    return match.group(0)
            return None

        found = None
        for keyword in VK_KEYWORDS:
            position = body.find(keyword)
            if position < 0:
                continue
            start = max(0, position - VK_WINDOW_BEFORE)
            found = first_key(body[start:position + VK_WINDOW_AFTER])
            break

        if found is None:
            found = first_key(body)
        return from_hex(found) if found else b""

    def find_scheme(self, body: str) -> ProofScheme:
        match = SCHEME_PATTERN.search(body)
        if not match:
            return ProofScheme.SP1
        value = match.group(1).lower()
        try:
            return ProofScheme(value)
        except ValueError:
            # Proof modes such as "compressed" or "plonk" are SP1 proofs
            logger.debug(f"Treating unrecognized scheme value '{value}' as sp1")
            return ProofScheme.SP1
