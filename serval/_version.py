"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Version information for Serval.

This module reads the version from the VERSION file at the root of the
repository, falling back to the installed distribution metadata.
"""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path


def get_version() -> str:
    """
    Read version from VERSION file.

    Returns:
        str: The version string (e.g., "0.1.0")
    """
    version_file = Path(__file__).parent.parent / "VERSION"
    if version_file.exists():
        return version_file.read_text().strip()
    try:
        return version("serval")
    except PackageNotFoundError:
        return "unknown"


__version__ = get_version()
