"""
Configuration settings for Service Changes.

This module provides configuration management using Pydantic settings
with support for environment variables, .env files and the variables the
GitHub Actions runner exports for every workflow step.
"""

from typing import Optional, List, Dict, Any
from pathlib import Path
import logging

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.errors import ConfigurationError
from .env_loader import EnvFileLoader

logger = logging.getLogger(__name__)


class ServiceChangesSettings(BaseSettings):
    """
    Main configuration settings for Service Changes.

    Settings are loaded from multiple sources in order of preference:
    1. Explicit values (command-line options)
    2. Environment variables (prefixed with SERVICE_CHANGES_, or the
       standard GITHUB_* variables of the Actions runner)
    3. .env files
    4. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="SERVICE_CHANGES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # GitHub Configuration
    github_token: Optional[str] = Field(
        default=None,
        description="Access token for the GitHub API",
        validation_alias=AliasChoices(
            "github_token", "SERVICE_CHANGES_GITHUB_TOKEN", "INPUT_GITHUBTOKEN", "GITHUB_TOKEN"
        ),
    )

    api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API",
        validation_alias=AliasChoices("api_url", "SERVICE_CHANGES_API_URL", "GITHUB_API_URL"),
    )

    # Trigger Configuration
    event_name: Optional[str] = Field(
        default=None,
        description="Name of the event that triggered the run",
        validation_alias=AliasChoices("event_name", "SERVICE_CHANGES_EVENT_NAME", "GITHUB_EVENT_NAME"),
    )

    event_path: Optional[Path] = Field(
        default=None,
        description="Path to the JSON event payload",
        validation_alias=AliasChoices("event_path", "SERVICE_CHANGES_EVENT_PATH", "GITHUB_EVENT_PATH"),
    )

    repository: Optional[str] = Field(
        default=None,
        description="Repository in owner/name form",
        validation_alias=AliasChoices("repository", "SERVICE_CHANGES_REPOSITORY", "GITHUB_REPOSITORY"),
    )

    # Discovery Configuration
    workspace: Path = Field(
        default_factory=Path.cwd,
        description="Repository checkout root",
        validation_alias=AliasChoices("workspace", "SERVICE_CHANGES_WORKSPACE", "GITHUB_WORKSPACE"),
    )

    marker_filename: str = Field(
        default="main.go",
        description="File whose presence makes a directory a service"
    )

    search_paths: List[str] = Field(
        default_factory=lambda: ["services"],
        description="Workspace-relative directories searched for services"
    )

    ignore_patterns: List[str] = Field(
        default_factory=list,
        description="Directory name patterns skipped during discovery (e.g. node_modules, vendor)"
    )

    # Output Configuration
    github_output: Optional[Path] = Field(
        default=None,
        description="GitHub Actions step output file",
        validation_alias=AliasChoices("github_output", "SERVICE_CHANGES_GITHUB_OUTPUT", "GITHUB_OUTPUT"),
    )

    output_file: Path = Field(
        default_factory=lambda: Path.home() / "changes.json",
        description="Where the JSON change record is written"
    )

    write_record: bool = Field(
        default=True,
        description="Write the JSON change record"
    )

    include_payload: bool = Field(
        default=False,
        description="Include the event payload in the JSON change record"
    )

    # Advanced Configuration
    timeout: int = Field(
        default=30,
        description="Request timeout in seconds",
        gt=0
    )

    per_page: int = Field(
        default=100,
        description="Page size for paginated GitHub requests",
        ge=1,
        le=100
    )

    # Logging Configuration
    log_level: str = Field(
        default="WARNING",
        description="Logging level"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    @field_validator("marker_filename")
    @classmethod
    def validate_marker_filename(cls, v: str) -> str:
        """Validate the marker filename."""
        v = v.strip()
        if not v:
            raise ValueError("Marker filename must not be empty")
        if "/" in v or "\\" in v:
            raise ValueError(f"Marker filename must be a file name, not a path: '{v}'")
        return v

    @field_validator("search_paths")
    @classmethod
    def validate_search_paths(cls, v: List[str]) -> List[str]:
        """Validate search paths."""
        if not v:
            raise ValueError("At least one search path is required")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level '{v}'. Valid levels: {', '.join(sorted(valid_levels))}")
        return v_upper

    @property
    def is_configured(self) -> bool:
        """Check if an access token is available."""
        return bool(self.github_token)

    def require_token(self) -> str:
        """Return the access token or fail fast when it is missing."""
        if not self.github_token:
            raise ConfigurationError("Missing token", config_field="github_token")
        return self.github_token

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary, excluding sensitive data."""
        data = self.model_dump(mode="json")
        # Mask sensitive data
        if data.get("github_token"):
            data["github_token"] = "***masked***"
        return data


def get_settings(**overrides: Any) -> ServiceChangesSettings:
    """
    Get the effective settings.

    A .env file found near the workspace is loaded into the environment
    first; explicit overrides (usually command-line options) win over every
    other source. Overrides whose value is None are ignored.

    Raises:
        ConfigurationError: If the resulting settings are invalid
    """
    values = {key: value for key, value in overrides.items() if value is not None}

    EnvFileLoader(values.get("workspace")).load_env_file()

    try:
        return ServiceChangesSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", original_error=e)
