"""
Path helpers shared by service discovery and change classification.

Service directories are plain repository-relative POSIX strings compared by
prefix. When one directory is an ancestor of another the deeper one must be
tried first; ordering by descending string length guarantees that, since an
ancestor is always strictly shorter than its descendants.
"""

from typing import Iterable, List, Optional

SEPARATOR = "/"


def normalize_path(path: str) -> str:
    """Normalise a repository-relative path.

    Converts backslashes, strips a leading ``./`` and any leading or trailing
    separators. The repository root normalises to the empty string.
    """
    normalized = path.replace("\\", SEPARATOR).strip()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    normalized = normalized.strip(SEPARATOR)
    return "" if normalized == "." else normalized


def parent_directory(path: str) -> str:
    """Directory part of ``path`` (empty string for top-level files)."""
    normalized = normalize_path(path)
    head, _, _ = normalized.rpartition(SEPARATOR)
    return head


def basename(path: str) -> str:
    return normalize_path(path).rpartition(SEPARATOR)[2]


def is_marker_file(path: str, marker_filename: str) -> bool:
    """True when the last path segment is exactly the marker filename."""
    # Whole-segment match, so domain.go is not a main.go marker
    return basename(path) == marker_filename


def order_service_directories(directories: Iterable[str]) -> List[str]:
    """Deduplicate and sort directories longest first.

    The sort is stable, so directories of equal length keep the order in
    which they were first seen.
    """
    seen = set()
    unique: List[str] = []
    for directory in directories:
        normalized = normalize_path(directory)
        if normalized in seen:
            continue
        seen.add(normalized)
        unique.append(normalized)
    return sorted(unique, key=len, reverse=True)


def contains(directory: str, path: str) -> bool:
    """True when ``path`` lies strictly inside ``directory``.

    Matches on a segment boundary: ``services/foo-bar/x`` is not inside
    ``services/foo``. The repository root contains every path.
    """
    if directory == "":
        return path != ""
    return path.startswith(directory + SEPARATOR)


def find_service(path: str, ordered_directories: Iterable[str]) -> Optional[str]:
    """Return the first (innermost) directory containing ``path``."""
    for directory in ordered_directories:
        if contains(directory, path):
            return directory
    return None
