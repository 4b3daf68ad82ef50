"""
ArtifactClient - resolves proof requests and downloads their artifacts.
"""
import logging
import os
import subprocess
import tempfile
import threading
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import (
    DownloadCancelled, DownloadError, MalformedResponse, RequestNotFound, ResolutionError
)
from ..models import ArtifactMetadata
from ..utils import normalize_request_id
from .extract import MetadataExtractor

DOWNLOAD_CHUNK_SIZE = 64 * 1024

# Flags for dumping a client-rendered page with a headless Chromium
BROWSER_ARGS = ["--headless", "--disable-gpu", "--no-sandbox", "--dump-dom"]


class ArtifactClient:
    """
    Client for the proof explorer and its artifact storage.

    Every call makes exactly one attempt; retrying is left to the caller.
    """

    def __init__(
        self,
        api_base: str,
        timeout: float = 30,
        browser: Optional[str] = None,
        extractor: Optional[MetadataExtractor] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the ArtifactClient

        Args:
            api_base: Explorer base URL (e.g., "https://explorer.succinct.xyz")
            timeout: Timeout for HTTP requests in seconds
            browser: Optional headless browser binary used to render request pages
            extractor: Page extraction rules (defaults to MetadataExtractor())
            session: Optional requests session to use
            logger: Optional logger instance
        """
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self.browser = browser
        self.extractor = extractor or MetadataExtractor()
        self.logger = logger or logging.getLogger(__name__)

        if session is None:
            session = requests.Session()
            # One attempt per call, failures surface to the orchestrator
            no_retries = Retry(total=0, raise_on_status=False)
            session.mount("http://", HTTPAdapter(max_retries=no_retries))
            session.mount("https://", HTTPAdapter(max_retries=no_retries))
        self.session = session

    def request_url(self, request_id: str) -> str:
        return f"{self.api_base}/request/{request_id}"

    def resolve(self, request_id: str) -> ArtifactMetadata:
        """
        Resolve a request id to artifact metadata.

        Args:
            request_id: 0x-prefixed 32-byte request id

        Returns:
            ArtifactMetadata for the request

        Raises:
            InvalidRequestId: If the id is malformed
            RequestNotFound: If the explorer does not know the request
            MalformedResponse: If the page has no artifact location
            ResolutionError: For other explorer failures
        """
        request_id = normalize_request_id(request_id)
        url = self.request_url(request_id)
        self.logger.info(f"Resolving request {request_id}")

        if self.browser:
            body = self._render_page(url)
        else:
            body = self._fetch_page(url, request_id)

        self.logger.debug(f"Explorer response length: {len(body)} chars")
        return self.extractor.extract(request_id, body)

    def _fetch_page(self, url: str, request_id: str) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.error(f"Explorer request failed: {e}")
            raise ResolutionError(f"Explorer request failed: {str(e)}") from e

        if response.status_code == 404:
            raise RequestNotFound(f"Request {request_id} not found")
        if not 200 <= response.status_code < 300:
            raise ResolutionError(f"Explorer returned HTTP {response.status_code} for {request_id}")

        try:
            return response.text
        except (UnicodeDecodeError, LookupError) as e:
            raise MalformedResponse(f"Undecodable explorer response: {str(e)}") from e

    def _render_page(self, url: str) -> str:
        """Render a client-side page with the configured headless browser."""
        self.logger.debug(f"Rendering {url} with {self.browser}")
        try:
            result = subprocess.run(
                [self.browser, *BROWSER_ARGS, url],
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ResolutionError(f"Page rendering timed out after {self.timeout}s") from e
        except OSError as e:
            raise ResolutionError(f"Failed to start browser '{self.browser}': {str(e)}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise ResolutionError(f"Failed to render page: {stderr[:200]}")
        return result.stdout.decode("utf-8", errors="replace")

    def download(self, metadata: ArtifactMetadata, cancel: Optional[threading.Event] = None) -> bytes:
        """
        Download an artifact, streaming it through a temporary file.

        Args:
            metadata: Resolved metadata with the artifact URL
            cancel: Optional event; when set the stream is abandoned

        Returns:
            Raw artifact bytes

        Raises:
            DownloadCancelled: If the cancel event was set mid-stream
            DownloadError: On non-2xx responses, transport failures or truncation
        """
        url = metadata.artifact_url
        self.logger.info(f"Downloading artifact for {metadata.request_id}")

        fd, temp_path = tempfile.mkstemp(prefix="artifact-", suffix=".bin")
        try:
            received = 0
            expected = None
            with os.fdopen(fd, "wb") as temp_file:
                with self.session.get(url, stream=True, timeout=self.timeout) as response:
                    if not 200 <= response.status_code < 300:
                        raise DownloadError(f"Failed to download artifact: HTTP {response.status_code}")

                    # Length check only applies to bodies served without content coding
                    if "Content-Encoding" not in response.headers:
                        length = response.headers.get("Content-Length")
                        expected = int(length) if length and length.isdigit() else None

                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if cancel is not None and cancel.is_set():
                            raise DownloadCancelled(f"Download of {url} cancelled after {received} bytes")
                        temp_file.write(chunk)
                        received += len(chunk)

            if expected is not None and received != expected:
                raise DownloadError(f"Artifact stream truncated: got {received} of {expected} bytes")

            with open(temp_path, "rb") as f:
                data = f.read()
            self.logger.debug(f"Downloaded {len(data)} bytes")
            return data
        except requests.RequestException as e:
            self.logger.error(f"Artifact download failed: {e}")
            raise DownloadError(f"Artifact download failed: {str(e)}") from e
        finally:
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass

    def close(self) -> None:
        self.session.close()
