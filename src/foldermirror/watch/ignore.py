"""Ignore patterns and hidden-entry detection for folder mirroring.

This module provides:
- IgnorePatterns: Handles gitignore-style pattern matching
- DEFAULT_IGNORE_PATTERNS: Common editor and OS scratch files
- IGNORE_FILENAME: Per-folder pattern file read from the watch root
- is_hidden: Platform-aware hidden entry check
"""

from __future__ import annotations

import fnmatch
import os
import stat
import sys
from pathlib import Path

# Editor swap files and OS scratch files, applied only when asked for
DEFAULT_IGNORE_PATTERNS = [
    "Thumbs.db",
    "*.tmp",
    "*.temp",
    "~*",
    "*.swp",
    "*.swo",
]

IGNORE_FILENAME = ".mirrorignore"


def is_hidden(path: Path) -> bool:
    """Check whether a local entry is hidden.

    Dot-names are hidden everywhere. On Windows, entries carrying the
    hidden file attribute are hidden too.

    Args:
        path: Path of the entry (it may no longer exist).

    Returns:
        True if the entry is hidden.
    """
    if path.name.startswith("."):
        return True

    if sys.platform == "win32":
        try:
            attributes = os.stat(path, follow_symlinks=False).st_file_attributes
        except OSError:
            return False
        return bool(attributes & stat.FILE_ATTRIBUTE_HIDDEN)

    return False


class IgnorePatterns:
    """Ignore rules for entries below a watch root.

    Pattern syntax is a small gitignore subset:
    - ``name`` or ``*.ext``: matches an entry or any folder on its path
    - ``dir/``: matches folders only (and everything below them)
    - ``a/b`` or ``/a``: anchored to the watch root; ``**`` crosses folders

    Ignoring is opt-in. Nothing is ignored unless patterns are added, and
    DEFAULT_IGNORE_PATTERNS are only used with ``include_defaults=True``.
    """

    def __init__(
        self,
        patterns: list[str] | None = None,
        include_defaults: bool = False,
    ) -> None:
        """Initialize with patterns.

        Args:
            patterns: Ignore patterns.
            include_defaults: Whether to also apply DEFAULT_IGNORE_PATTERNS.
        """
        self._patterns: list[str] = []
        self._rules: list[tuple[str, bool, bool]] = []
        if include_defaults:
            for pattern in DEFAULT_IGNORE_PATTERNS:
                self.add_pattern(pattern)
        for pattern in patterns or []:
            self.add_pattern(pattern)

    @property
    def patterns(self) -> list[str]:
        """Get a copy of the active patterns."""
        return list(self._patterns)

    def add_pattern(self, pattern: str) -> None:
        """Add an ignore pattern. Blank patterns are skipped."""
        pattern = pattern.strip().replace("\\", "/")
        directory_only = pattern.endswith("/")
        body = pattern.strip("/")
        if not body:
            return

        anchored = "/" in pattern.rstrip("/")
        self._patterns.append(pattern)
        self._rules.append((body, directory_only, anchored))

    def load_from_file(self, path: Path) -> None:
        """Load patterns from a .mirrorignore file, if it exists."""
        if not path.exists():
            return
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    self.add_pattern(line)

    def should_ignore(self, path: Path, base_path: Path, is_directory: bool = False) -> bool:
        """Check if an entry should be ignored.

        The entry may already be gone (deletions), so the caller states
        whether it is a directory instead of asking the filesystem.

        Args:
            path: Absolute path of the entry.
            base_path: Watch root path.
            is_directory: Whether the entry is a directory.

        Returns:
            True if the entry or one of its parent folders matches a pattern.
        """
        try:
            parts = path.relative_to(base_path).parts
        except ValueError:
            return False
        if not parts:
            return False

        last = len(parts) - 1
        for body, directory_only, anchored in self._rules:
            for index, part in enumerate(parts):
                # Every path component but the last is a folder
                if directory_only and index == last and not is_directory:
                    continue
                candidate = "/".join(parts[: index + 1]) if anchored else part
                if fnmatch.fnmatch(candidate, body):
                    return True

        return False

    def __len__(self) -> int:
        return len(self._patterns)
