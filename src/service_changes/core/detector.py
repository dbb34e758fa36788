"""
Detection run orchestration for Service Changes.

A run validates its configuration, reads the trigger, fetches the changed
files, discovers the service directories on disk and classifies. Any
collaborator failure aborts the whole run; classification never fails.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .classifier import ChangeClassifier
from .models import ChangedFile, ClassificationResult
from .trigger import TriggerContext, load_trigger_context
from ..config.settings import ServiceChangesSettings
from ..services.github_client import GitHubClient
from ..services.service_discovery import ServiceDirectoryResolver

logger = logging.getLogger(__name__)


@dataclass
class DetectionReport:
    """Everything a run produced."""
    result: ClassificationResult
    changes: List[ChangedFile] = field(default_factory=list)
    service_dirs: List[str] = field(default_factory=list)
    trigger: Optional[TriggerContext] = None

    @property
    def commit_ids(self) -> List[str]:
        return list(self.trigger.commit_ids) if self.trigger else []


class ServiceChangeDetector:
    """Runs one detection for a push or pull request."""

    def __init__(self, settings: ServiceChangesSettings, client: Optional[GitHubClient] = None):
        """Initialize the detector.

        Args:
            settings: Effective settings for the run
            client: GitHub client to use instead of one built from settings
        """
        self.settings = settings
        self._client = client
        self.classifier = ChangeClassifier(settings.marker_filename)
        self.resolver = ServiceDirectoryResolver(
            workspace=settings.workspace,
            marker_filename=settings.marker_filename,
            search_paths=settings.search_paths,
            ignore_patterns=settings.ignore_patterns,
        )

    async def run(self) -> DetectionReport:
        """Run the detection.

        Raises:
            ConfigurationError: If the token or trigger configuration is missing
            UnsupportedTriggerError: If the event is neither a push nor a pull request
            UpstreamFetchError: If fetching the changed files fails
            DiscoveryError: If the filesystem walk fails
        """
        token = self.settings.require_token()
        trigger = load_trigger_context(self.settings)

        client = self._client or GitHubClient(
            token=token,
            api_url=self.settings.api_url,
            timeout_seconds=self.settings.timeout,
            per_page=self.settings.per_page,
        )
        try:
            changes = await client.fetch_changes(trigger)
        finally:
            if self._client is None:
                await client.close()

        service_dirs = self.resolver.resolve()
        result = self.classifier.classify(service_dirs, changes)

        return DetectionReport(
            result=result,
            changes=changes,
            service_dirs=service_dirs,
            trigger=trigger,
        )


def classify_offline(
    settings: ServiceChangesSettings,
    changes: Iterable[ChangedFile],
    service_dirs: Optional[Iterable[str]] = None
) -> DetectionReport:
    """Classify ``changes`` without contacting GitHub.

    Service directories are discovered on disk unless supplied.
    """
    changes = list(changes)
    if service_dirs is None:
        resolver = ServiceDirectoryResolver(
            workspace=settings.workspace,
            marker_filename=settings.marker_filename,
            search_paths=settings.search_paths,
            ignore_patterns=settings.ignore_patterns,
        )
        dirs = resolver.resolve()
    else:
        dirs = list(service_dirs)

    result = ChangeClassifier(settings.marker_filename).classify(dirs, changes)
    return DetectionReport(result=result, changes=changes, service_dirs=dirs)
