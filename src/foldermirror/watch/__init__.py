"""Local directory watching.

Architecture:
    WatchdogNotifier → DirectoryWatchEngine → Mirror

Components:
- **WatchdogNotifier**: One non-recursive watchdog watch per directory, with
  batched, per-directory event delivery through a blocking call
- **DirectoryWatchEngine**: Keeps the subscription map in step with the tree
  and drives the mirror from a single background thread
- **IgnorePatterns**: Optional gitignore-style filtering on top of hidden entries
"""

from foldermirror.watch.engine import DirectoryWatchEngine, Mirror
from foldermirror.watch.ignore import (
    DEFAULT_IGNORE_PATTERNS,
    IGNORE_FILENAME,
    IgnorePatterns,
    is_hidden,
)
from foldermirror.watch.notifier import (
    MAX_PENDING_EVENTS,
    DirectoryNotifier,
    WatchdogNotifier,
    WatchKey,
)

__all__ = [
    # Engine
    "DirectoryWatchEngine",
    "Mirror",
    # Notifier
    "MAX_PENDING_EVENTS",
    "DirectoryNotifier",
    "WatchdogNotifier",
    "WatchKey",
    # Ignore
    "DEFAULT_IGNORE_PATTERNS",
    "IGNORE_FILENAME",
    "IgnorePatterns",
    "is_hidden",
]
