"""
Service layer for Service Changes.

This module provides the collaborators around the classifier: service
directory discovery, the GitHub change source and result reporting.
"""

__all__ = ["github_client", "reporting", "service_discovery"]
