"""
Core package for Service Changes.

Holds the change classification algorithm, its data model, the error
taxonomy and the orchestration of a single detection run.
"""

from .classifier import ChangeClassifier, classify_changes
from .errors import (
    ConfigurationError,
    DiscoveryError,
    ServiceChangesError,
    UnsupportedTriggerError,
    UpstreamFetchError,
)
from .models import ChangedFile, ClassificationResult, FileStatus, ServiceStatus

__all__ = [
    "ChangeClassifier",
    "classify_changes",
    "ChangedFile",
    "ClassificationResult",
    "FileStatus",
    "ServiceStatus",
    "ServiceChangesError",
    "ConfigurationError",
    "UnsupportedTriggerError",
    "UpstreamFetchError",
    "DiscoveryError",
]
