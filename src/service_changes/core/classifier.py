"""
Change classification for monorepo services.

This module maps a flat list of changed files onto service directories and
derives whether each affected service was added, modified or removed.

The marker file of a service is authoritative for its lifecycle: creating it
means the service was added, deleting it means the service was removed.
When the marker file is untouched the service is reported as modified.
"""

import logging
from typing import Dict, Iterable, List, Sequence

from .directories import (
    find_service,
    is_marker_file,
    normalize_path,
    order_service_directories,
    parent_directory,
)
from .errors import ConfigurationError
from .models import ChangedFile, ClassificationResult, FileStatus, ServiceStatus

logger = logging.getLogger(__name__)

DEFAULT_MARKER_FILENAME = "main.go"

# Never evidence of a service status change
IGNORED_STATUSES = frozenset({FileStatus.RENAMED, FileStatus.UNKNOWN})


class ChangeClassifier:
    """Classifies changed files into added, modified and removed services."""

    def __init__(self, marker_filename: str = DEFAULT_MARKER_FILENAME):
        """Initialize the classifier.

        Args:
            marker_filename: File name whose presence makes a directory a service

        Raises:
            ConfigurationError: If the marker filename is empty or contains a separator
        """
        validate_marker_filename(marker_filename)
        self.marker_filename = marker_filename

    def classify(
        self,
        service_dirs: Iterable[str],
        changes: Iterable[ChangedFile]
    ) -> ClassificationResult:
        """Classify ``changes`` against the known ``service_dirs``.

        Args:
            service_dirs: Directories currently holding the marker file
            changes: Changed files with their per-file status

        Returns:
            Services grouped by derived status
        """
        relevant = self._relevant_changes(changes)
        directories = self._with_removed_services(service_dirs, relevant)
        files_by_service = self._attribute(directories, relevant)

        result = ClassificationResult(files_by_service=files_by_service)
        for directory, files in files_by_service.items():
            status = self._derive_status(directory, files)
            logger.debug(f"{directory} has status {status.value}")
            result.services[status].append(directory)

        logger.info(
            f"Classified {len(files_by_service)} service(s): "
            f"{len(result.added)} added, {len(result.modified)} modified, "
            f"{len(result.removed)} removed"
        )
        return result

    def _relevant_changes(self, changes: Iterable[ChangedFile]) -> List[ChangedFile]:
        """Normalise paths and drop changes that carry no service evidence."""
        relevant = []
        for change in changes:
            if change.status in IGNORED_STATUSES:
                logger.debug(f"Ignoring {change.status.value} file {change.path}")
                continue
            path = normalize_path(change.path)
            if not path:
                continue
            if path != change.path:
                change = ChangedFile(path=path, status=change.status, previous_path=change.previous_path)
            relevant.append(change)
        return relevant

    def _with_removed_services(
        self,
        service_dirs: Iterable[str],
        changes: Sequence[ChangedFile]
    ) -> List[str]:
        """Add directories whose marker file was deleted, keeping nesting order.

        Such directories no longer exist on disk, so discovery cannot have
        found them.
        """
        recovered = [
            parent_directory(change.path)
            for change in changes
            if change.status == FileStatus.REMOVED and is_marker_file(change.path, self.marker_filename)
        ]
        directories = order_service_directories([*service_dirs, *recovered])
        if recovered:
            logger.debug(f"Services incl removed: {directories}")
        return directories

    def _attribute(
        self,
        directories: Sequence[str],
        changes: Sequence[ChangedFile]
    ) -> Dict[str, List[ChangedFile]]:
        """Group changes under the innermost service directory containing them."""
        files_by_service: Dict[str, List[ChangedFile]] = {}
        for change in changes:
            directory = find_service(change.path, directories)
            if directory is None:
                logger.debug(f"{change.path} is not part of any service")
                continue
            files_by_service.setdefault(directory, []).append(change)
        return files_by_service

    def _derive_status(self, directory: str, files: Sequence[ChangedFile]) -> ServiceStatus:
        """The first marker file attributed to ``directory`` decides its status."""
        for change in files:
            if is_marker_file(change.path, self.marker_filename):
                return ServiceStatus.from_marker_status(change.status)
        return ServiceStatus.MODIFIED


def validate_marker_filename(marker_filename: str) -> str:
    """Ensure the marker is a bare, non-empty file name."""
    if not marker_filename or not marker_filename.strip():
        raise ConfigurationError("Marker filename must not be empty", config_field="marker_filename")
    if "/" in marker_filename or "\\" in marker_filename:
        raise ConfigurationError(
            f"Marker filename must be a file name, not a path: {marker_filename}",
            config_field="marker_filename"
        )
    return marker_filename


def classify_changes(
    service_dirs: Iterable[str],
    changes: Iterable[ChangedFile],
    marker_filename: str = DEFAULT_MARKER_FILENAME
) -> ClassificationResult:
    """Classify ``changes`` against ``service_dirs`` with a fresh classifier."""
    return ChangeClassifier(marker_filename).classify(service_dirs, changes)
