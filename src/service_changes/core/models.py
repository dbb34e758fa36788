"""Data model for change classification."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FileStatus(str, Enum):
    """Lifecycle status of a single changed file."""
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FileStatus":
        """Map a source-control status string onto a FileStatus.

        Unrecognised values become UNKNOWN rather than raising.
        """
        if not value:
            return cls.UNKNOWN
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return _STATUS_ALIASES.get(normalized, cls.UNKNOWN)


# GitHub reports a few statuses beyond the five we classify on
_STATUS_ALIASES = {
    "copied": FileStatus.ADDED,
    "changed": FileStatus.MODIFIED,
}


class ServiceStatus(str, Enum):
    """Derived status of a service directory."""
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"

    @classmethod
    def from_marker_status(cls, status: FileStatus) -> "ServiceStatus":
        """Status of a service whose marker file carries ``status``."""
        if status == FileStatus.ADDED:
            return cls.ADDED
        if status == FileStatus.REMOVED:
            return cls.REMOVED
        return cls.MODIFIED


@dataclass(frozen=True)
class ChangedFile:
    """A repository-relative path plus its change status."""
    path: str
    status: FileStatus
    previous_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangedFile":
        """Build from a GitHub-style ``{"filename", "status"}`` mapping.

        ``path`` is accepted in place of ``filename``.
        """
        path = data.get("filename") or data.get("path") or ""
        return cls(
            path=str(path),
            status=FileStatus.parse(data.get("status")),
            previous_path=data.get("previous_filename") or data.get("previous_path"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {"path": self.path, "status": self.status.value}
        if self.previous_path:
            data["previous_path"] = self.previous_path
        return data


def _empty_buckets() -> Dict[ServiceStatus, List[str]]:
    return {status: [] for status in ServiceStatus}


@dataclass
class ClassificationResult:
    """Services grouped by derived status, plus the files behind each one."""
    services: Dict[ServiceStatus, List[str]] = field(default_factory=_empty_buckets)
    files_by_service: Dict[str, List[ChangedFile]] = field(default_factory=dict)

    @property
    def added(self) -> List[str]:
        return self.services[ServiceStatus.ADDED]

    @property
    def modified(self) -> List[str]:
        return self.services[ServiceStatus.MODIFIED]

    @property
    def removed(self) -> List[str]:
        return self.services[ServiceStatus.REMOVED]

    @property
    def is_empty(self) -> bool:
        """True when no service was affected."""
        return not any(self.services.values())

    @property
    def total_services(self) -> int:
        return sum(len(dirs) for dirs in self.services.values())

    def status_of(self, directory: str) -> Optional[ServiceStatus]:
        """Return the derived status of ``directory`` or None if unaffected."""
        for status, dirs in self.services.items():
            if directory in dirs:
                return status
        return None

    def joined(self, status: ServiceStatus, separator: str = " ") -> str:
        """Join one bucket into a single string for CLI/environment export."""
        return separator.join(self.services[status])

    def to_dict(self) -> Dict[str, List[str]]:
        """Convert to the ``{added, modified, removed}`` mapping."""
        return {status.value: list(dirs) for status, dirs in self.services.items()}
