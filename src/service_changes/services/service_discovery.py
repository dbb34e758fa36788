"""
Service directory discovery for Service Changes.

This module finds every directory that currently holds the service marker
file. Directories whose marker was deleted by the change set no longer
exist on disk; those are recovered by the classifier instead.
"""

import fnmatch
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

from ..core.classifier import DEFAULT_MARKER_FILENAME, validate_marker_filename
from ..core.directories import normalize_path, order_service_directories
from ..core.errors import DiscoveryError

logger = logging.getLogger(__name__)


class ServiceDirectoryResolver:
    """Resolves the ordered set of directories that qualify as services."""

    DEFAULT_SEARCH_PATHS = ("services",)

    # Only hidden directories are skipped unless patterns are configured
    DEFAULT_IGNORE_PATTERNS: Tuple[str, ...] = ()

    def __init__(
        self,
        workspace: Path,
        marker_filename: str = DEFAULT_MARKER_FILENAME,
        search_paths: Optional[Sequence[str]] = None,
        ignore_patterns: Optional[Iterable[str]] = None
    ):
        """Initialize the resolver.

        Args:
            workspace: Repository checkout root; results are relative to it
            marker_filename: File whose presence makes a directory a service
            search_paths: Workspace-relative directories to search recursively
            ignore_patterns: fnmatch patterns for directory names to skip
        """
        self.workspace = Path(workspace)
        self.marker_filename = validate_marker_filename(marker_filename)
        self.search_paths = list(search_paths or self.DEFAULT_SEARCH_PATHS)
        self.ignore_patterns = set(
            self.DEFAULT_IGNORE_PATTERNS if ignore_patterns is None else ignore_patterns
        )

    def resolve(self) -> List[str]:
        """Find service directories, deepest first.

        Returns:
            Workspace-relative POSIX paths, deduplicated and sorted by
            descending length

        Raises:
            DiscoveryError: If the workspace or a search path is unusable or
                the walk fails
        """
        if not self.workspace.is_dir():
            raise DiscoveryError("Workspace is not a directory", path=str(self.workspace))
        root = self.workspace.resolve()

        found: List[str] = []
        for search_path in self.search_paths:
            found.extend(self._search(root, search_path))

        directories = order_service_directories(found)
        logger.info(f"Found {len(directories)} service director{'y' if len(directories) == 1 else 'ies'}")
        logger.debug(f"Services: {directories}")
        return directories

    def _search(self, root: Path, search_path: str) -> List[str]:
        start = (root / search_path).resolve()

        if not start.exists():
            logger.warning(f"Search path does not exist, skipping: {start}")
            return []
        if not start.is_dir():
            raise DiscoveryError("Search path is not a directory", path=str(start))

        logger.debug(f"Searching {start} for {self.marker_filename}")
        matches = []
        for dirpath, dirnames, filenames in os.walk(start, onerror=self._raise_walk_error):
            # Prune in place so os.walk does not descend
            dirnames[:] = sorted(d for d in dirnames if self._should_include_directory(d))

            if self.marker_filename in filenames:
                marker = Path(dirpath) / self.marker_filename
                if marker.is_file():
                    matches.append(self._relative(root, Path(dirpath)))
        return matches

    def _should_include_directory(self, name: str) -> bool:
        """Check if a directory should be traversed.

        Hidden directories are skipped, as a ``**`` glob would skip them.
        """
        if name.startswith("."):
            return False
        return not any(fnmatch.fnmatch(name, pattern) for pattern in self.ignore_patterns)

    def _relative(self, root: Path, directory: Path) -> str:
        try:
            relative = directory.relative_to(root)
        except ValueError:
            raise DiscoveryError("Service directory lies outside the workspace", path=str(directory))
        return normalize_path(relative.as_posix())

    @staticmethod
    def _raise_walk_error(error: OSError) -> None:
        raise DiscoveryError(
            f"Error walking directory: {error.strerror or error}",
            path=error.filename,
            original_error=error
        )


def resolve_service_directories(
    marker_filename: str,
    search_root: Path,
    ignore_patterns: Optional[Iterable[str]] = None
) -> List[str]:
    """Resolve services under ``search_root``, with paths relative to it."""
    resolver = ServiceDirectoryResolver(
        workspace=search_root,
        marker_filename=marker_filename,
        search_paths=["."],
        ignore_patterns=ignore_patterns,
    )
    return resolver.resolve()
