"""
Version of the proof router.

Installed distributions report their metadata version. A source checkout
reads pyproject.toml next to the package instead.
"""
import importlib.metadata
from pathlib import Path

import tomli

DISTRIBUTION = "proof-router"
FALLBACK_VERSION = "0.1.0"
PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def read_version(pyproject: Path = PYPROJECT) -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        pass

    try:
        with open(pyproject, "rb") as f:
            return tomli.load(f)["project"]["version"]
    except (OSError, KeyError, tomli.TOMLDecodeError):
        return FALLBACK_VERSION


__version__ = read_version()
