"""Version utility to read from environment or installed package metadata"""

import os
from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION_NAME = "aws-assume-role"


def get_version() -> str:
    """
    Read version from BUILD_VERSION environment variable or package metadata.

    Priority:
    1. BUILD_VERSION environment variable (set by release builds from the git tag)
    2. Installed distribution metadata
    3. "unknown" as fallback

    Returns:
        str: Version string (e.g., "0.3.0" or "0.3.1-dev.1")
    """
    if build_version := os.getenv("BUILD_VERSION"):
        return build_version

    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        # Running from a source checkout without installing
        return "unknown"


__version__ = get_version()
