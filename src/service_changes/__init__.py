"""
Service Changes - detect which monorepo services a change set touches.

This package classifies the services of a monorepo (directories holding a
marker file such as ``main.go``) as added, modified or removed for a push
or a pull request.
"""

__version__ = "0.1.0"
__author__ = "Service Changes Team"
__license__ = "Apache-2.0"

from typing import Final

# Package metadata
VERSION: Final[str] = __version__
PACKAGE_NAME: Final[str] = "service-changes"
USER_AGENT: Final[str] = f"{PACKAGE_NAME}/{VERSION}"

__all__ = [
    "__version__",
    "VERSION",
    "PACKAGE_NAME",
    "USER_AGENT",
]
