"""
Artifact module for the proof router.

Resolves proof request ids against the explorer and downloads the proof
artifacts they point to.
"""
from typing import Union

from ..config import RouterConfig
from .client import ArtifactClient
from .demo import DemoArtifactClient
from .extract import EXTRACTOR_VERSION, MetadataExtractor

__all__ = ['ArtifactClient', 'DemoArtifactClient', 'MetadataExtractor',
           'EXTRACTOR_VERSION', 'get_artifact_client']


def get_artifact_client(config: RouterConfig) -> Union[ArtifactClient, DemoArtifactClient]:
    """
    Get the artifact client for a configuration.

    Demo mode is selected only by the config flag, never as a fallback.
    """
    if config.demo_mode:
        return DemoArtifactClient()
    return ArtifactClient(config.api_base, timeout=config.http_timeout, browser=config.browser)
