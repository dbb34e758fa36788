"""
Structured error system for Service Changes.

Every failure that aborts a run is one of the error types below. Each type
carries a distinct process exit code so that workflow steps can tell a
missing credential apart from an unsupported trigger or a failed fetch.
Classification itself never raises for data reasons.
"""

from typing import Any, Dict, Optional
import logging

import httpx

logger = logging.getLogger(__name__)


class ServiceChangesError(Exception):
    """Base exception for all errors that abort a detection run."""

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "exit_code": self.exit_code,
            "type": self.__class__.__name__
        }

    def __str__(self) -> str:
        parts = [self.message]
        status = self.details.get("status")
        if status:
            parts.append(f"(Status: {status})")
        if self.code:
            parts.append(f"(Code: {self.code})")
        return " ".join(parts)


class ConfigurationError(ServiceChangesError):
    """A required input is missing or invalid."""

    exit_code = 2

    def __init__(
        self,
        message: str = "Configuration error",
        config_field: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, code="CONFIGURATION_ERROR", **kwargs)
        if config_field:
            self.details["config_field"] = config_field


class UnsupportedTriggerError(ServiceChangesError):
    """The run was triggered by an event that is neither a push nor a pull request."""

    exit_code = 3

    def __init__(
        self,
        message: str = "Unsupported trigger",
        event_name: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, code="UNSUPPORTED_TRIGGER", **kwargs)
        if event_name:
            self.details["event_name"] = event_name


class UpstreamFetchError(ServiceChangesError):
    """Retrieving the changed files from the source-control API failed."""

    exit_code = 4

    def __init__(
        self,
        message: str = "Failed to fetch changed files",
        status: Optional[int] = None,
        url: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, code="UPSTREAM_FETCH_ERROR", **kwargs)
        if status:
            self.details["status"] = status
        if url:
            self.details["url"] = url

    @property
    def status(self) -> Optional[int]:
        return self.details.get("status")


class DiscoveryError(ServiceChangesError):
    """Walking the filesystem for service directories failed."""

    exit_code = 5

    def __init__(
        self,
        message: str = "Service discovery failed",
        path: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, code="DISCOVERY_ERROR", **kwargs)
        if path:
            self.details["path"] = path


def classify_http_error(error: Exception) -> ServiceChangesError:
    """
    Classify an HTTP client exception into an UpstreamFetchError.

    Args:
        error: The original exception raised while talking to the API

    Returns:
        Classified error instance
    """
    if isinstance(error, ServiceChangesError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        url = str(error.request.url)

        if status == 401:
            message = "GitHub rejected the access token (bad credentials)"
        elif status == 403:
            message = "GitHub refused the request (missing permissions or rate limit exceeded)"
        elif status == 429:
            message = "GitHub rate limit exceeded"
        elif status == 404:
            message = f"GitHub resource not found: {url}"
        elif 500 <= status < 600:
            message = f"GitHub server error while requesting {url}"
        else:
            message = f"HTTP {status} error from GitHub while requesting {url}"

        return UpstreamFetchError(message, status=status, url=url, original_error=error)

    if isinstance(error, httpx.TimeoutException):
        return UpstreamFetchError(f"Request to GitHub timed out: {error}", original_error=error)

    if isinstance(error, httpx.RequestError):
        try:
            url: Optional[str] = str(error.request.url)
        except RuntimeError:
            # Raised by httpx when the request was never attached
            url = None
        return UpstreamFetchError(f"Network error while contacting GitHub: {error}", url=url, original_error=error)

    return UpstreamFetchError(str(error) or error.__class__.__name__, original_error=error)


def create_user_friendly_message(error: ServiceChangesError) -> str:
    """
    Create a user-friendly error message.

    Args:
        error: The error to convert

    Returns:
        User-friendly error message
    """
    if isinstance(error, ConfigurationError):
        field = error.details.get("config_field")
        if field == "github_token":
            return "Missing token. Provide it with --token or the GITHUB_TOKEN environment variable."
        return f"Configuration error: {error.message}"

    elif isinstance(error, UnsupportedTriggerError):
        event_name = error.details.get("event_name")
        if event_name:
            return f"Unsupported trigger '{event_name}'. Only push and pull_request events are supported."
        return "Unsupported trigger. Only push and pull_request events are supported."

    elif isinstance(error, UpstreamFetchError):
        if error.status == 401:
            return "GitHub authentication failed. Please check the access token."
        return f"Failed to fetch changed files: {error.message}"

    elif isinstance(error, DiscoveryError):
        path = error.details.get("path")
        if path:
            return f"Service discovery failed for {path}: {error.message}"
        return f"Service discovery failed: {error.message}"

    return error.message
